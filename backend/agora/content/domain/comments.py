"""Comments on content items with realtime fan-out."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional
from uuid import UUID

from agora.content.domain import models
from agora.content.domain import repo as repo_module
from agora.content.domain.exceptions import NotFoundError, ValidationError
from agora.content.domain.kinds import resolve_kind
from agora.content.sockets import server as socket_server
from agora.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

COMMENT_ADDED = "commentAdded"
MAX_COMMENT_LENGTH = 10000

Emitter = Callable[[models.EntityRef, str, dict], Awaitable[None]]


def comment_payload(comment: models.Comment) -> dict:
	return {
		"id": str(comment.id),
		"entityType": comment.entity_kind.value,
		"entityId": str(comment.entity_id),
		"authorId": str(comment.author_id),
		"parentId": str(comment.parent_id) if comment.parent_id else None,
		"content": comment.content,
		"createdAt": comment.created_at.isoformat(),
	}


class CommentService:
	def __init__(
		self,
		repository: repo_module.ContentRepository | None = None,
		emit: Emitter | None = None,
	) -> None:
		self.repo = repository or repo_module.ContentRepository()
		self.emit = emit or socket_server.emit_comment

	async def _require_entity(self, entity: models.EntityRef) -> None:
		spec = resolve_kind(entity.kind)
		item = await self.repo.get(spec.kind, entity.id)
		if item is None or item.is_deleted:
			raise NotFoundError(f"{spec.label} not found.")

	async def create_comment(
		self,
		user_id: UUID,
		entity: models.EntityRef,
		content: str,
		parent_id: Optional[UUID] = None,
	) -> models.Comment:
		text = (content or "").strip()
		if not text:
			raise ValidationError("Comment content is required.")
		if len(text) > MAX_COMMENT_LENGTH:
			raise ValidationError(f"Comment content is limited to {MAX_COMMENT_LENGTH} characters.")
		await self._require_entity(entity)
		if parent_id is not None:
			parent = await self.repo.get_comment(parent_id)
			if parent is None or parent.entity != entity:
				raise NotFoundError("Parent comment not found.")
		comment = await self.repo.create_comment(
			entity=entity,
			author_id=user_id,
			content=text,
			parent_id=parent_id,
		)
		obs_metrics.inc_comment_created(entity.kind.value)
		logger.info(
			"comment_created",
			extra={"comment_id": str(comment.id), "entity_kind": entity.kind.value, "entity_id": str(entity.id)},
		)
		# The relay logs its own failures; a lost event never fails the write.
		await self.emit(entity, COMMENT_ADDED, comment_payload(comment))
		return comment

	async def list_comments(self, entity: models.EntityRef) -> list[models.Comment]:
		await self._require_entity(entity)
		return await self.repo.list_comments(entity)
