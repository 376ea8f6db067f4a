"""Read access to club and node memberships."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

import asyncpg

from agora.content.domain import models
from agora.content.domain.models import EntityType
from agora.infra.postgres import get_pool


@dataclass(frozen=True, slots=True)
class _MemberTable:
	members: str
	entities: str
	key: str


# Clubs and nodes are separate tables; callers must say which one they mean.
_TABLES: dict[EntityType, _MemberTable] = {
	EntityType.CLUB: _MemberTable(members="club_member", entities="club", key="club_id"),
	EntityType.NODE: _MemberTable(members="node_member", entities="node", key="node_id"),
}


class MembershipDirectory:
	"""Thin data-access layer for memberships."""

	@staticmethod
	def _to_membership(entity_type: EntityType, key: str, record: asyncpg.Record) -> models.Membership:
		data = dict(record)
		data["entity_id"] = data.pop(key)
		data["entity_type"] = entity_type
		return models.Membership.model_validate(data)

	async def find_membership(
		self,
		entity_type: EntityType,
		entity_id: UUID,
		user_id: UUID,
		*,
		conn: asyncpg.Connection | None = None,
	) -> models.Membership | None:
		table = _TABLES[EntityType(entity_type)]
		query = f"""
			SELECT {table.key}, user_id, role, status, created_at, updated_at
			FROM {table.members}
			WHERE {table.key}=$1 AND user_id=$2
		"""
		if conn is None:
			pool = await get_pool()
			async with pool.acquire() as pooled:
				record = await pooled.fetchrow(query, entity_id, user_id)
		else:
			record = await conn.fetchrow(query, entity_id, user_id)
		if record is None:
			return None
		return self._to_membership(EntityType(entity_type), table.key, record)

	async def list_user_memberships(
		self,
		user_id: UUID,
		entity_type: EntityType,
		*,
		status: str = "MEMBER",
	) -> list[models.MembershipWithEntity]:
		table = _TABLES[EntityType(entity_type)]
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				f"""
				SELECT m.{table.key}, m.user_id, m.role, m.status, m.created_at, m.updated_at,
					e.name, e.profile_image_url AS image
				FROM {table.members} m
				JOIN {table.entities} e ON e.id = m.{table.key}
				WHERE m.user_id=$1 AND m.status=$2
				ORDER BY e.name
				""",
				user_id,
				status,
			)
		result: list[models.MembershipWithEntity] = []
		for row in rows:
			data = dict(row)
			data["entity_id"] = data.pop(table.key)
			data["entity_type"] = EntityType(entity_type)
			result.append(models.MembershipWithEntity.model_validate(data))
		return result
