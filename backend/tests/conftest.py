import copy
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

os.environ.setdefault("SECRET_KEY", "test-secret-key-with-enough-length-for-hs256")
os.environ.setdefault("ENV", "dev")

from agora.content.domain import models
from agora.content.domain.exceptions import NotFoundError, UpstreamError, ValidationError
from agora.content.domain.kinds import resolve_kind
from agora.content.domain.models import ContentKind, EntityType, OwnerContext, PublishedStatus
from agora.infra import postgres
from agora.main import app
from agora.settings import settings


def _now() -> datetime:
	return datetime.now(timezone.utc)


_REQUIRED_FIELDS = {
	ContentKind.DEBATE: {"topic": "Should the library open on Sundays?"},
	ContentKind.ISSUE: {"title": "Broken streetlight"},
	ContentKind.RULES_REGULATION: {"title": "Quiet hours"},
	ContentKind.PROJECT: {"title": "Community garden"},
}


class FakeContentStore:
	"""In-memory stand-in for both ContentRepository and MembershipDirectory.

	``run_atomically`` snapshots the items and restores them if the unit of
	work raises, mirroring a database rollback.
	"""

	def __init__(self) -> None:
		self.items: dict[tuple[ContentKind, UUID], models.ContentItem] = {}
		self.memberships: dict[tuple[EntityType, UUID, UUID], models.Membership] = {}
		self.entities: dict[tuple[EntityType, UUID], tuple[str, Optional[str]]] = {}
		self.users: dict[UUID, tuple[str, str]] = {}
		self.comments: list[models.Comment] = []
		self.bookmark_folders: dict[UUID, models.BookmarkFolder] = {}
		self.fail_on_create: Optional[Exception] = None
		self.transactions = 0

	# --- seeding ---------------------------------------------------------

	def add_member(
		self,
		entity_type: EntityType,
		entity_id: UUID,
		user_id: UUID,
		*,
		role: str = "member",
		status: str = "MEMBER",
		name: str | None = None,
	) -> models.Membership:
		membership = models.Membership(
			entity_type=entity_type,
			entity_id=entity_id,
			user_id=user_id,
			role=role,
			status=status,
			created_at=_now(),
			updated_at=_now(),
		)
		self.memberships[(entity_type, entity_id, user_id)] = membership
		self.entities.setdefault((entity_type, entity_id), (name or f"{entity_type.value}-{entity_id.hex[:6]}", None))
		return membership

	def seed(self, kind: ContentKind, **overrides: Any) -> models.ContentItem:
		spec = resolve_kind(kind)
		now = _now()
		data: dict[str, Any] = {
			"id": uuid4(),
			"created_by": uuid4(),
			"published_status": PublishedStatus.PUBLISHED,
			"relevant": [],
			"irrelevant": [],
			"created_at": now,
			"updated_at": now,
			**_REQUIRED_FIELDS[spec.kind],
		}
		data.update(overrides)
		item = spec.model.model_validate(data)
		self.items[(spec.kind, item.id)] = item
		return item

	# --- repository surface ----------------------------------------------

	async def run_atomically(self, work):
		self.transactions += 1
		snapshot = copy.deepcopy(self.items)
		try:
			return await work(None)
		except Exception:
			self.items = snapshot
			raise

	async def get(self, kind: ContentKind, item_id: UUID, *, conn=None) -> models.ContentItem | None:
		return self.items.get((ContentKind(kind), item_id))

	async def create(self, kind: ContentKind, payload: dict[str, Any], *, conn=None) -> models.ContentItem:
		if self.fail_on_create is not None:
			raise self.fail_on_create
		spec = resolve_kind(kind)
		unknown = set(payload) - set(spec.columns)
		if unknown:
			raise ValidationError(f"Unknown fields: {sorted(unknown)}")
		now = _now()
		data = {**payload, "id": uuid4(), "created_at": now, "updated_at": now}
		item = spec.model.model_validate(data)
		self.items[(spec.kind, item.id)] = item
		return item

	async def find_many(
		self,
		kind: ContentKind,
		*,
		context: OwnerContext | None = None,
		include_proposed_to: bool = False,
		status: PublishedStatus | None = None,
	) -> list[models.ContentItem]:
		result = []
		for (item_kind, _), item in self.items.items():
			if item_kind != ContentKind(kind):
				continue
			if context is not None:
				owned = item.owner_context == context
				proposed = include_proposed_to and item.proposed_context == context
				if not (owned or proposed):
					continue
			if status is not None and item.published_status != status:
				continue
			if item.is_deleted:
				continue
			result.append(item)
		result.sort(key=lambda item: item.created_at, reverse=True)
		return result

	async def update_fields(self, kind: ContentKind, item_id: UUID, fields: dict[str, Any], *, conn=None):
		spec = resolve_kind(kind)
		item = self.items.get((spec.kind, item_id))
		if item is None:
			raise NotFoundError(f"{spec.label} not found.")
		data = item.model_dump()
		data.update(fields)
		data["updated_at"] = _now()
		updated = spec.model.model_validate(data)
		self.items[(spec.kind, item_id)] = updated
		return updated

	async def add_adoption_entry(self, kind: ContentKind, item_id: UUID, context: OwnerContext, *, conn=None):
		spec = resolve_kind(kind)
		item = self.items.get((spec.kind, item_id))
		if item is None:
			raise NotFoundError(f"{spec.label} not found.")
		if context.entity_id in item.adopted_entity_ids(context.entity_type):
			return item
		if context.entity_type is EntityType.CLUB:
			entries = [*item.adopted_clubs, models.AdoptedClub(club=context.entity_id, date=_now())]
			return await self.update_fields(spec.kind, item_id, {"adopted_clubs": entries})
		entries = [*item.adopted_nodes, models.AdoptedNode(node=context.entity_id, date=_now())]
		return await self.update_fields(spec.kind, item_id, {"adopted_nodes": entries})

	async def add_view(self, kind: ContentKind, item_id: UUID, user_id: UUID):
		spec = resolve_kind(kind)
		item = self.items.get((spec.kind, item_id))
		if item is None:
			raise NotFoundError(f"{spec.label} not found.")
		if any(entry.user == user_id for entry in item.views):
			return item, False
		views = [*item.views, models.UserStamp(user=user_id, date=_now())]
		return await self.update_fields(spec.kind, item_id, {"views": views}), True

	def _published_in(self, kind: ContentKind, context: OwnerContext) -> list[models.ContentItem]:
		items = [
			item
			for (item_kind, _), item in self.items.items()
			if item_kind == kind
			and item.owner_context == context
			and item.published_status is PublishedStatus.PUBLISHED
			and not item.is_deleted
		]
		items.sort(key=lambda item: item.created_at, reverse=True)
		return items

	async def count_published(self, kind: ContentKind, context: OwnerContext) -> int:
		return len(self._published_in(kind, context))

	async def list_published_page(self, kind: ContentKind, context: OwnerContext, *, offset: int, limit: int):
		spec = resolve_kind(kind)
		rows = []
		for item in self._published_in(spec.kind, context)[offset : offset + limit]:
			name, email = self.users.get(item.created_by, (None, None))
			rows.append(
				models.FeedRow(
					id=item.id,
					type=spec.kind,
					title=getattr(item, spec.title_column),
					significance=getattr(item, "significance", None),
					files=item.files,
					club_id=item.club_id,
					node_id=item.node_id,
					created_by=item.created_by,
					creator_name=name,
					creator_email=email,
					published_by=item.published_by,
					published_status=item.published_status,
					relevant_count=len(item.relevant or []),
					irrelevant_count=len(item.irrelevant or []),
					views_count=len(item.views),
					created_at=item.created_at,
				)
			)
		return rows

	async def create_comment(self, *, entity, author_id, content, parent_id):
		now = _now()
		comment = models.Comment(
			id=uuid4(),
			entity_kind=entity.kind,
			entity_id=entity.id,
			author_id=author_id,
			parent_id=parent_id,
			content=content,
			created_at=now,
			updated_at=now,
		)
		self.comments.append(comment)
		return comment

	async def get_comment(self, comment_id: UUID):
		return next((comment for comment in self.comments if comment.id == comment_id), None)

	async def list_comments(self, entity):
		return sorted(
			(comment for comment in self.comments if comment.entity == entity),
			key=lambda comment: comment.created_at,
		)

	# --- bookmark surface ------------------------------------------------

	async def create_bookmark_folder(self, user_id: UUID, title: str) -> models.BookmarkFolder:
		now = _now()
		folder = models.BookmarkFolder(id=uuid4(), user_id=user_id, title=title, created_at=now, updated_at=now)
		self.bookmark_folders[folder.id] = folder
		return folder

	async def get_bookmark_folder(self, folder_id: UUID, user_id: UUID) -> models.BookmarkFolder | None:
		folder = self.bookmark_folders.get(folder_id)
		if folder is None or folder.user_id != user_id:
			return None
		return folder

	async def list_bookmark_folders(self, user_id: UUID) -> list[models.BookmarkFolder]:
		folders = [folder for folder in self.bookmark_folders.values() if folder.user_id == user_id]
		return sorted(folders, key=lambda folder: folder.created_at)

	async def add_bookmark(self, folder_id: UUID, entity: models.EntityRef) -> bool:
		folder = self.bookmark_folders[folder_id]
		if folder.contains(entity):
			return False
		posts = [*folder.posts, models.BookmarkEntry(entity=entity, created_at=_now())]
		self.bookmark_folders[folder_id] = folder.model_copy(update={"posts": posts, "updated_at": _now()})
		return True

	async def remove_bookmark(self, folder_id: UUID, entity: models.EntityRef) -> bool:
		folder = self.bookmark_folders[folder_id]
		if not folder.contains(entity):
			return False
		posts = [entry for entry in folder.posts if entry.entity != entity]
		self.bookmark_folders[folder_id] = folder.model_copy(update={"posts": posts, "updated_at": _now()})
		return True

	# --- membership surface ----------------------------------------------

	async def find_membership(self, entity_type: EntityType, entity_id: UUID, user_id: UUID, *, conn=None):
		return self.memberships.get((EntityType(entity_type), entity_id, user_id))

	async def list_user_memberships(self, user_id: UUID, entity_type: EntityType, *, status: str = "MEMBER"):
		result = []
		for (kind, entity_id, member_id), membership in self.memberships.items():
			if kind != entity_type or member_id != user_id or membership.status != status:
				continue
			name, image = self.entities[(kind, entity_id)]
			result.append(models.MembershipWithEntity(**membership.model_dump(), name=name, image=image))
		result.sort(key=lambda entry: entry.name)
		return result


class FakeUploads:
	def __init__(self) -> None:
		self.calls: list[tuple[int, str]] = []
		self.fail = False

	async def upload_many(self, files, context_tag: str) -> list[models.FileObject]:
		self.calls.append((len(files), context_tag))
		if self.fail and files:
			raise UpstreamError("Upload failed, please try again later.")
		return [
			models.FileObject(
				url=f"https://files.test/{context_tag}/{idx}-{item.filename}",
				original_name=item.filename,
				mimetype=item.mimetype,
				size=item.declared_size,
			)
			for idx, item in enumerate(files)
		]


class RecordingEmitter:
	def __init__(self) -> None:
		self.events: list[tuple[models.EntityRef, str, dict]] = []

	async def __call__(self, entity: models.EntityRef, event: str, payload: dict) -> None:
		self.events.append((entity, event, payload))


@pytest.fixture
def store() -> FakeContentStore:
	return FakeContentStore()


@pytest.fixture
def fake_uploads() -> FakeUploads:
	return FakeUploads()


@pytest.fixture
def emitter() -> RecordingEmitter:
	return RecordingEmitter()


@pytest.fixture(autouse=True)
def patch_postgres(monkeypatch):
	async def _noop():
		return None

	monkeypatch.setattr(postgres, "init_pool", _noop)
	monkeypatch.setattr(postgres, "close_pool", _noop)


@pytest.fixture(autouse=True)
def force_test_settings():
	"""API tests authenticate via X-User-Id, which is only accepted in dev mode."""
	original_env = settings.environment
	settings.environment = "dev"
	try:
		yield
	finally:
		settings.environment = original_env


@pytest_asyncio.fixture
async def api_client():
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client
