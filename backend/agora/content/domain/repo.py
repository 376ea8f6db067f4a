"""Async repository helpers for content, comments and bookmarks."""

from __future__ import annotations

from enum import Enum
from typing import Any, Awaitable, Callable, Mapping, Optional, TypeVar
from uuid import UUID, uuid4

import asyncpg
from pydantic_core import to_jsonable_python

from agora.content.domain import models
from agora.content.domain.exceptions import NotFoundError, ValidationError
from agora.content.domain.kinds import JSON_COLUMNS, KindSpec, resolve_kind
from agora.content.domain.models import ContentKind, EntityType, OwnerContext, PublishedStatus
from agora.infra import postgres
from agora.infra.postgres import get_pool

T = TypeVar("T")

_IMMUTABLE_COLUMNS = frozenset({"id", "created_by", "created_at"})
_ADOPTION_COLUMNS = {EntityType.CLUB: ("adopted_clubs", "club"), EntityType.NODE: ("adopted_nodes", "node")}
_CONTEXT_COLUMNS = {EntityType.CLUB: "club_id", EntityType.NODE: "node_id"}


def _bind(column: str, value: Any) -> Any:
	if value is None:
		return None
	if column in JSON_COLUMNS:
		return to_jsonable_python(value)
	if isinstance(value, Enum):
		return value.value
	return value


def _row_to_item(spec: KindSpec, record: asyncpg.Record) -> models.ContentItem:
	return spec.model.model_validate(dict(record))


class ContentRepository:
	"""Thin data-access layer around asyncpg for the four content kinds."""

	async def run_atomically(self, work: Callable[[asyncpg.Connection], Awaitable[T]]) -> T:
		return await postgres.run_atomically(work)

	async def _fetchrow(self, query: str, *args: Any, conn: asyncpg.Connection | None = None) -> asyncpg.Record | None:
		if conn is not None:
			return await conn.fetchrow(query, *args)
		pool = await get_pool()
		async with pool.acquire() as pooled:
			return await pooled.fetchrow(query, *args)

	# --- Content operations ----------------------------------------------

	async def create(
		self,
		kind: ContentKind,
		payload: Mapping[str, Any],
		*,
		conn: asyncpg.Connection | None = None,
	) -> models.ContentItem:
		spec = resolve_kind(kind)
		allowed = set(spec.columns) - {"id", "created_at", "updated_at"}
		unknown = set(payload) - allowed
		if unknown:
			raise ValidationError(f"Unknown fields for {spec.label.lower()}: {', '.join(sorted(unknown))}.")
		columns = ["id", *payload.keys()]
		values = [uuid4(), *(_bind(column, value) for column, value in payload.items())]
		placeholders = ", ".join(f"${idx}" for idx in range(1, len(columns) + 1))
		record = await self._fetchrow(
			f"INSERT INTO {spec.table} ({', '.join(columns)}) VALUES ({placeholders}) RETURNING *",
			*values,
			conn=conn,
		)
		assert record is not None
		return _row_to_item(spec, record)

	async def get(
		self,
		kind: ContentKind,
		item_id: UUID,
		*,
		conn: asyncpg.Connection | None = None,
	) -> models.ContentItem | None:
		spec = resolve_kind(kind)
		record = await self._fetchrow(f"SELECT * FROM {spec.table} WHERE id=$1", item_id, conn=conn)
		return _row_to_item(spec, record) if record else None

	async def find_many(
		self,
		kind: ContentKind,
		*,
		context: OwnerContext | None = None,
		include_proposed_to: bool = False,
		status: PublishedStatus | None = None,
	) -> list[models.ContentItem]:
		spec = resolve_kind(kind)
		conditions: list[str] = []
		params: list[object] = []
		if context is not None:
			params.append(context.entity_id)
			owned = f"{_CONTEXT_COLUMNS[context.entity_type]}=${len(params)}"
			if include_proposed_to:
				params.append(context.entity_type.value)
				proposed = f"(proposed_entity_type=${len(params)} AND proposed_entity_id=${len(params) - 1})"
				conditions.append(f"({owned} OR {proposed})")
			else:
				conditions.append(owned)
		if status is not None:
			params.append(status.value)
			conditions.append(f"published_status=${len(params)}")
		conditions.append("is_deleted = FALSE")
		where_clause = f"WHERE {' AND '.join(conditions)}"
		query = f"SELECT * FROM {spec.table} {where_clause} ORDER BY created_at DESC"
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(query, *params)
		return [_row_to_item(spec, row) for row in rows]

	async def update_fields(
		self,
		kind: ContentKind,
		item_id: UUID,
		fields: Mapping[str, Any],
		*,
		conn: asyncpg.Connection | None = None,
	) -> models.ContentItem:
		spec = resolve_kind(kind)
		if not fields:
			raise ValidationError("No updates requested.")
		invalid = set(fields) - (set(spec.columns) - _IMMUTABLE_COLUMNS)
		if invalid:
			raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(invalid))}.")
		assignments: list[str] = []
		values: list[object] = []
		for column, value in fields.items():
			values.append(_bind(column, value))
			assignments.append(f"{column}=${len(values) + 1}")
		assignments.append("updated_at=NOW()")
		record = await self._fetchrow(
			f"UPDATE {spec.table} SET {', '.join(assignments)} WHERE id=$1 RETURNING *",
			item_id,
			*values,
			conn=conn,
		)
		if record is None:
			raise NotFoundError(f"{spec.label} not found.")
		return _row_to_item(spec, record)

	async def add_adoption_entry(
		self,
		kind: ContentKind,
		item_id: UUID,
		context: OwnerContext,
		*,
		conn: asyncpg.Connection | None = None,
	) -> models.ContentItem:
		"""Append ``{club|node: id, date}`` unless the entity is already listed."""
		spec = resolve_kind(kind)
		column, key = _ADOPTION_COLUMNS[context.entity_type]
		record = await self._fetchrow(
			f"""
			UPDATE {spec.table}
			SET {column} = COALESCE({column}, '[]'::jsonb)
					|| jsonb_build_array(jsonb_build_object('{key}', $2::text, 'date', to_jsonb(NOW()))),
				updated_at = NOW()
			WHERE id=$1
				AND NOT COALESCE({column}, '[]'::jsonb) @> jsonb_build_array(jsonb_build_object('{key}', $2::text))
			RETURNING *
			""",
			item_id,
			str(context.entity_id),
			conn=conn,
		)
		if record is None:
			existing = await self.get(kind, item_id, conn=conn)
			if existing is None:
				raise NotFoundError(f"{spec.label} not found.")
			return existing
		return _row_to_item(spec, record)

	async def add_view(
		self,
		kind: ContentKind,
		item_id: UUID,
		user_id: UUID,
	) -> tuple[models.ContentItem, bool]:
		spec = resolve_kind(kind)
		record = await self._fetchrow(
			f"""
			UPDATE {spec.table}
			SET views = COALESCE(views, '[]'::jsonb)
				|| jsonb_build_array(jsonb_build_object('user', $2::text, 'date', to_jsonb(NOW())))
			WHERE id=$1
				AND NOT COALESCE(views, '[]'::jsonb) @> jsonb_build_array(jsonb_build_object('user', $2::text))
			RETURNING *
			""",
			item_id,
			str(user_id),
		)
		if record is not None:
			return _row_to_item(spec, record), True
		existing = await self.get(kind, item_id)
		if existing is None:
			raise NotFoundError(f"{spec.label} not found.")
		return existing, False

	# --- Feed operations -------------------------------------------------

	async def count_published(self, kind: ContentKind, context: OwnerContext) -> int:
		spec = resolve_kind(kind)
		pool = await get_pool()
		async with pool.acquire() as conn:
			value = await conn.fetchval(
				f"""
				SELECT COUNT(*) FROM {spec.table}
				WHERE {_CONTEXT_COLUMNS[context.entity_type]}=$1
					AND published_status='published' AND is_deleted = FALSE
				""",
				context.entity_id,
			)
		return int(value or 0)

	async def list_published_page(
		self,
		kind: ContentKind,
		context: OwnerContext,
		*,
		offset: int,
		limit: int,
	) -> list[models.FeedRow]:
		spec = resolve_kind(kind)
		significance = f"c.{spec.significance_column}" if spec.significance_column else "NULL"
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				f"""
				SELECT c.id, c.{spec.title_column} AS title, {significance} AS significance, c.files,
					c.club_id, c.node_id, c.created_by, c.published_by, c.published_status, c.created_at,
					u.display_name AS creator_name, u.email AS creator_email,
					COALESCE(jsonb_array_length(c.relevant), 0) AS relevant_count,
					COALESCE(jsonb_array_length(c.irrelevant), 0) AS irrelevant_count,
					COALESCE(jsonb_array_length(c.views), 0) AS views_count
				FROM {spec.table} c
				LEFT JOIN app_user u ON u.id = c.created_by
				WHERE c.{_CONTEXT_COLUMNS[context.entity_type]}=$1
					AND c.published_status='published' AND c.is_deleted = FALSE
				ORDER BY c.created_at DESC
				OFFSET $2 LIMIT $3
				""",
				context.entity_id,
				offset,
				limit,
			)
		result: list[models.FeedRow] = []
		for row in rows:
			data = dict(row)
			if not isinstance(data.get("files"), list):
				data["files"] = []
			data["type"] = spec.kind
			result.append(models.FeedRow.model_validate(data))
		return result

	# --- Comment operations ----------------------------------------------

	async def create_comment(
		self,
		*,
		entity: models.EntityRef,
		author_id: UUID,
		content: str,
		parent_id: Optional[UUID],
	) -> models.Comment:
		record = await self._fetchrow(
			"""
			INSERT INTO comment (id, entity_kind, entity_id, author_id, parent_id, content)
			VALUES ($1, $2, $3, $4, $5, $6)
			RETURNING *
			""",
			uuid4(),
			entity.kind.value,
			entity.id,
			author_id,
			parent_id,
			content,
		)
		assert record is not None
		return models.Comment.model_validate(dict(record))

	async def get_comment(self, comment_id: UUID) -> models.Comment | None:
		record = await self._fetchrow("SELECT * FROM comment WHERE id=$1", comment_id)
		return models.Comment.model_validate(dict(record)) if record else None

	async def list_comments(self, entity: models.EntityRef) -> list[models.Comment]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT * FROM comment
				WHERE entity_kind=$1 AND entity_id=$2
				ORDER BY created_at ASC, id ASC
				""",
				entity.kind.value,
				entity.id,
			)
		return [models.Comment.model_validate(dict(row)) for row in rows]

	# --- Bookmark operations ---------------------------------------------

	async def _folders_with_posts(
		self, conn: asyncpg.Connection, folder_rows: list[asyncpg.Record]
	) -> list[models.BookmarkFolder]:
		if not folder_rows:
			return []
		entry_rows = await conn.fetch(
			"""
			SELECT folder_id, entity_kind, entity_id, created_at FROM bookmark
			WHERE folder_id = ANY($1::uuid[])
			ORDER BY created_at ASC
			""",
			[row["id"] for row in folder_rows],
		)
		posts: dict[UUID, list[models.BookmarkEntry]] = {row["id"]: [] for row in folder_rows}
		for row in entry_rows:
			posts[row["folder_id"]].append(
				models.BookmarkEntry(
					entity=models.EntityRef(kind=row["entity_kind"], id=row["entity_id"]),
					created_at=row["created_at"],
				)
			)
		return [models.BookmarkFolder(**dict(row), posts=posts[row["id"]]) for row in folder_rows]

	async def create_bookmark_folder(self, user_id: UUID, title: str) -> models.BookmarkFolder:
		record = await self._fetchrow(
			"INSERT INTO bookmark_folder (id, user_id, title) VALUES ($1, $2, $3) RETURNING *",
			uuid4(),
			user_id,
			title,
		)
		assert record is not None
		return models.BookmarkFolder(**dict(record))

	async def get_bookmark_folder(self, folder_id: UUID, user_id: UUID) -> models.BookmarkFolder | None:
		"""Return the folder only when ``user_id`` owns it."""
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"SELECT * FROM bookmark_folder WHERE id=$1 AND user_id=$2",
				folder_id,
				user_id,
			)
			folders = await self._folders_with_posts(conn, rows)
		return folders[0] if folders else None

	async def list_bookmark_folders(self, user_id: UUID) -> list[models.BookmarkFolder]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"SELECT * FROM bookmark_folder WHERE user_id=$1 ORDER BY created_at ASC, id ASC",
				user_id,
			)
			return await self._folders_with_posts(conn, rows)

	async def add_bookmark(self, folder_id: UUID, entity: models.EntityRef) -> bool:
		"""Insert the entry unless the folder already holds it; return whether a row was added."""
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				added = await conn.fetchval(
					"""
					INSERT INTO bookmark (folder_id, entity_kind, entity_id) VALUES ($1, $2, $3)
					ON CONFLICT DO NOTHING
					RETURNING TRUE
					""",
					folder_id,
					entity.kind.value,
					entity.id,
				)
				if added:
					await conn.execute("UPDATE bookmark_folder SET updated_at = NOW() WHERE id=$1", folder_id)
		return bool(added)

	async def remove_bookmark(self, folder_id: UUID, entity: models.EntityRef) -> bool:
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				removed = await conn.fetchval(
					"""
					DELETE FROM bookmark
					WHERE folder_id=$1 AND entity_kind=$2 AND entity_id=$3
					RETURNING TRUE
					""",
					folder_id,
					entity.kind.value,
					entity.id,
				)
				if removed:
					await conn.execute("UPDATE bookmark_folder SET updated_at = NOW() WHERE id=$1", folder_id)
		return bool(removed)
