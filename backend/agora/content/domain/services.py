"""Service layer for the content creation, adoption and publication workflow."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Mapping, Optional, Sequence, TypeVar
from uuid import UUID

import asyncpg

from agora.content.domain import models, policies
from agora.content.domain import membership_repo as membership_module
from agora.content.domain import repo as repo_module
from agora.content.domain.exceptions import (
	ContentError,
	NotFoundError,
	TransactionError,
	UnauthorizedError,
	ValidationError,
)
from agora.content.domain.kinds import resolve_kind
from agora.content.domain.models import ContentKind, EntityType, OwnerContext, PublishedStatus
from agora.content.infra import uploads as uploads_module
from agora.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

T = TypeVar("T")

_STATUS_MESSAGES = {
	PublishedStatus.DRAFT: "{label} saved as draft successfully.",
	PublishedStatus.PROPOSED: "{label} proposed successfully.",
	PublishedStatus.PUBLISHED: "{label} published successfully.",
}

# Regenerated for every adopted clone.
_CLONE_EXCLUDED = frozenset({"id", "created_at", "updated_at"})


def _now() -> datetime:
	return datetime.now(timezone.utc)


def _context_columns(context: OwnerContext | None) -> dict[str, Any]:
	return {
		"club_id": context.entity_id if context and context.entity_type is EntityType.CLUB else None,
		"node_id": context.entity_id if context and context.entity_type is EntityType.NODE else None,
	}


def _initial_status(role: str | None, requested: PublishedStatus | None) -> PublishedStatus:
	if policies.can_auto_publish(role):
		if requested is PublishedStatus.DRAFT:
			return PublishedStatus.DRAFT
		return PublishedStatus.PUBLISHED
	return PublishedStatus.PROPOSED


class ContentWorkflowService:
	"""Creates, adopts, publishes and reviews content in clubs and nodes."""

	def __init__(
		self,
		repository: repo_module.ContentRepository | None = None,
		memberships: membership_module.MembershipDirectory | None = None,
		uploads: uploads_module.UploadService | None = None,
	) -> None:
		self.repo = repository or repo_module.ContentRepository()
		self.memberships = memberships or membership_module.MembershipDirectory()
		self.uploads = uploads or uploads_module.UploadService()

	# ------------------------------------------------------------------
	# Helpers

	async def _atomically(
		self,
		work: Callable[[asyncpg.Connection], Awaitable[T]],
		*,
		operation: str,
		kind: ContentKind,
	) -> T:
		"""Run ``work`` in one transaction; storage failures become TransactionError."""
		try:
			return await self.repo.run_atomically(work)
		except ContentError:
			raise
		except Exception as exc:
			logger.error(
				"content_transaction_failed",
				extra={"operation": operation, "kind": kind.value, "error": repr(exc)},
			)
			raise TransactionError() from exc

	async def _require_item(
		self,
		kind: ContentKind,
		item_id: UUID,
		*,
		conn: asyncpg.Connection | None = None,
	) -> models.ContentItem:
		item = await self.repo.get(kind, item_id, conn=conn)
		if item is None or item.is_deleted:
			raise NotFoundError(f"{resolve_kind(kind).label} not found.")
		return item

	# ------------------------------------------------------------------
	# Creation

	async def create_content(
		self,
		kind: ContentKind,
		user_id: UUID,
		*,
		club: UUID | None,
		node: UUID | None,
		fields: Mapping[str, Any],
		requested_status: PublishedStatus | None = None,
		files: Sequence[uploads_module.UploadedFile] = (),
	) -> tuple[models.ContentItem, str]:
		spec = resolve_kind(kind)
		context = policies.owner_context_from(club, node)
		membership = await self.memberships.find_membership(context.entity_type, context.entity_id, user_id)
		membership = policies.require_membership(membership, context)

		file_objects = await self.uploads.upload_many(files, context.entity_type.value)

		status = _initial_status(membership.role, requested_status)
		published = status is PublishedStatus.PUBLISHED
		payload: dict[str, Any] = {
			**fields,
			**_context_columns(context),
			"created_by": user_id,
			"published_status": status,
			"published_by": user_id if published else None,
			"published_date": _now() if published else None,
			"files": file_objects,
			"relevant": [],
			"irrelevant": [],
			"views": [],
		}
		item = await self.repo.create(spec.kind, payload)
		obs_metrics.inc_content_created(spec.kind.value, status.value)
		logger.info(
			"content_created",
			extra={"kind": spec.kind.value, "item_id": str(item.id), "status": status.value},
		)
		return item, _STATUS_MESSAGES[status].format(label=spec.label)

	# ------------------------------------------------------------------
	# Adoption

	async def adopt(
		self,
		kind: ContentKind,
		parent_id: UUID,
		target: OwnerContext,
		user_id: UUID,
	) -> tuple[models.ContentItem, str]:
		spec = resolve_kind(kind)

		async def _work(conn: asyncpg.Connection) -> tuple[models.ContentItem, bool]:
			membership = await self.memberships.find_membership(
				target.entity_type, target.entity_id, user_id, conn=conn
			)
			membership = policies.require_membership(membership, target)
			authorized = policies.can_adopt_directly(membership.role)
			parent = await self._require_item(spec.kind, parent_id, conn=conn)

			now = _now()
			payload = parent.model_dump(exclude=set(_CLONE_EXCLUDED))
			payload.update(
				created_by=user_id,
				adopted_from=parent.id,
				adopted_date=now,
				views=[],
				adopted_clubs=[],
				adopted_nodes=[],
				is_deleted=False,
			)
			if authorized:
				payload.update(
					**_context_columns(target),
					proposed_entity_type=None,
					proposed_entity_id=None,
					published_status=PublishedStatus.PUBLISHED,
					published_by=user_id,
					published_date=now,
				)
				await self.repo.add_adoption_entry(spec.kind, parent.id, target, conn=conn)
			else:
				payload.update(
					**_context_columns(None),
					proposed_entity_type=target.entity_type,
					proposed_entity_id=target.entity_id,
					published_status=PublishedStatus.PROPOSED,
					published_by=None,
					published_date=None,
				)
			child = await self.repo.create(spec.kind, payload, conn=conn)
			return child, authorized

		try:
			child, authorized = await self._atomically(_work, operation="adopt", kind=spec.kind)
		except ContentError:
			obs_metrics.inc_content_adoption(spec.kind.value, "failed")
			raise
		outcome = "published" if authorized else "proposed"
		obs_metrics.inc_content_adoption(spec.kind.value, outcome)
		logger.info(
			"content_adopted",
			extra={
				"kind": spec.kind.value,
				"item_id": str(child.id),
				"parent_id": str(parent_id),
				"target_type": target.entity_type.value,
				"target_id": str(target.entity_id),
				"outcome": outcome,
			},
		)
		if authorized:
			return child, f"{spec.label} adopted and published successfully"
		return child, f"{spec.label} adoption proposed for review"

	async def list_non_adopted(
		self,
		kind: ContentKind,
		user_id: UUID,
		item_id: UUID,
	) -> models.NonAdoptedEntities:
		spec = resolve_kind(kind)
		item = await self._require_item(spec.kind, item_id)
		clubs, nodes = await asyncio.gather(
			self.memberships.list_user_memberships(user_id, EntityType.CLUB),
			self.memberships.list_user_memberships(user_id, EntityType.NODE),
		)
		# The owning entity is never offered as an adoption target.
		adopted_clubs = item.adopted_entity_ids(EntityType.CLUB) | {item.club_id}
		adopted_nodes = item.adopted_entity_ids(EntityType.NODE) | {item.node_id}
		return models.NonAdoptedEntities(
			non_adopted_clubs=[entry for entry in clubs if entry.entity_id not in adopted_clubs],
			non_adopted_nodes=[entry for entry in nodes if entry.entity_id not in adopted_nodes],
		)

	# ------------------------------------------------------------------
	# Publication and review

	async def publish(
		self,
		kind: ContentKind,
		item_id: UUID,
		user_id: UUID,
		*,
		entity_type: EntityType,
		entity_id: UUID,
	) -> models.ContentItem:
		spec = resolve_kind(kind)
		context = OwnerContext(entity_type=entity_type, entity_id=entity_id)
		item = await self._require_item(spec.kind, item_id)
		if not item.belongs_to(context):
			raise UnauthorizedError(
				f"{spec.label} does not belong to the specified {entity_type.value}."
			)
		membership = await self.memberships.find_membership(entity_type, entity_id, user_id)
		policies.require_publisher(membership)
		updated = await self.repo.update_fields(
			spec.kind,
			item.id,
			{
				"published_status": PublishedStatus.PUBLISHED,
				"published_by": user_id,
				"published_date": _now(),
			},
		)
		obs_metrics.inc_content_published(spec.kind.value, "publish")
		logger.info("content_published", extra={"kind": spec.kind.value, "item_id": str(item.id)})
		return updated

	async def list_proposed(
		self,
		kind: ContentKind,
		context: OwnerContext,
		user_id: UUID,
	) -> list[models.ContentItem]:
		spec = resolve_kind(kind)
		membership = await self.memberships.find_membership(context.entity_type, context.entity_id, user_id)
		policies.require_reviewer(membership, context)
		return await self.repo.find_many(
			spec.kind,
			context=context,
			include_proposed_to=True,
			status=PublishedStatus.PROPOSED,
		)

	async def accept_proposed(
		self,
		kind: ContentKind,
		item_id: UUID,
		user_id: UUID,
	) -> models.ContentItem:
		spec = resolve_kind(kind)

		async def _work(conn: asyncpg.Connection) -> models.ContentItem:
			item = await self._require_item(spec.kind, item_id, conn=conn)
			context = self._review_context(item)
			membership = await self.memberships.find_membership(
				context.entity_type, context.entity_id, user_id, conn=conn
			)
			policies.require_reviewer(membership, context)
			fields: dict[str, Any] = {
				"published_status": PublishedStatus.PUBLISHED,
				"published_by": user_id,
				"published_date": _now(),
			}
			if item.owner_context is None:
				fields.update(_context_columns(context), proposed_entity_type=None, proposed_entity_id=None)
			updated = await self.repo.update_fields(spec.kind, item.id, fields, conn=conn)
			if item.adopted_from is not None:
				await self.repo.add_adoption_entry(spec.kind, item.adopted_from, context, conn=conn)
			return updated

		updated = await self._atomically(_work, operation="accept_proposed", kind=spec.kind)
		obs_metrics.inc_content_published(spec.kind.value, "accept")
		logger.info("content_proposal_accepted", extra={"kind": spec.kind.value, "item_id": str(item_id)})
		return updated

	async def reject_proposed(
		self,
		kind: ContentKind,
		item_id: UUID,
		user_id: UUID,
	) -> models.ContentItem:
		spec = resolve_kind(kind)
		if not spec.supports(PublishedStatus.REJECTED):
			raise ValidationError(f"{spec.label} proposals cannot be rejected.")
		item = await self._require_item(spec.kind, item_id)
		context = self._review_context(item)
		membership = await self.memberships.find_membership(context.entity_type, context.entity_id, user_id)
		policies.require_reviewer(membership, context)
		updated = await self.repo.update_fields(
			spec.kind, item.id, {"published_status": PublishedStatus.REJECTED}
		)
		logger.info("content_proposal_rejected", extra={"kind": spec.kind.value, "item_id": str(item.id)})
		return updated

	@staticmethod
	def _review_context(item: models.ContentItem) -> OwnerContext:
		if item.published_status is not PublishedStatus.PROPOSED:
			raise ValidationError("Only proposed content can be reviewed.")
		context: Optional[OwnerContext] = item.owner_context or item.proposed_context
		if context is None:
			raise ValidationError("Proposed content has no club or node to review it.")
		return context

	async def get_content(self, kind: ContentKind, item_id: UUID) -> models.ContentItem:
		return await self._require_item(resolve_kind(kind).kind, item_id)
