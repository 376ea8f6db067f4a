"""Per-user relevancy votes and view tracking on content items."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from uuid import UUID

from agora.content.domain import models
from agora.content.domain import repo as repo_module
from agora.content.domain.exceptions import NotFoundError, ValidationError
from agora.content.domain.kinds import resolve_kind
from agora.content.domain.models import ContentKind
from agora.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)


class RelevancyAction(str, Enum):
	LIKE = "like"
	DISLIKE = "dislike"


def _without(entries: list[models.UserStamp], user_id: UUID) -> list[models.UserStamp]:
	return [entry for entry in entries if entry.user != user_id]


class RelevancyLedger:
	"""Keeps ``relevant`` and ``irrelevant`` mutually exclusive per user."""

	def __init__(self, repository: repo_module.ContentRepository | None = None) -> None:
		self.repo = repository or repo_module.ContentRepository()

	async def set_relevancy(
		self,
		kind: ContentKind | str,
		item_id: UUID,
		user_id: UUID,
		action: RelevancyAction | str,
	) -> models.ContentItem:
		"""Toggle the user's vote.

		The opposite list always loses the user; the target list gains the user
		unless they were already there, in which case the vote is withdrawn.
		Both lists are written in one single-row update.
		"""
		spec = resolve_kind(kind)
		try:
			action = RelevancyAction(action)
		except ValueError as exc:
			raise ValidationError("Action must be 'like' or 'dislike'.") from exc
		item = await self.repo.get(spec.kind, item_id)
		if item is None or item.is_deleted:
			raise NotFoundError(f"{spec.label} not found.")

		# Legacy rows may carry null lists.
		relevant = list(item.relevant or [])
		irrelevant = list(item.irrelevant or [])
		if action is RelevancyAction.LIKE:
			target, opposite = relevant, irrelevant
		else:
			target, opposite = irrelevant, relevant
		opposite = _without(opposite, user_id)
		already = any(entry.user == user_id for entry in target)
		if already:
			target = _without(target, user_id)
		else:
			target = [*target, models.UserStamp(user=user_id, date=datetime.now(timezone.utc))]
		if action is RelevancyAction.LIKE:
			relevant, irrelevant = target, opposite
		else:
			relevant, irrelevant = opposite, target

		updated = await self.repo.update_fields(
			spec.kind, item.id, {"relevant": relevant, "irrelevant": irrelevant}
		)
		result = "removed" if already else "added"
		obs_metrics.inc_relevancy_toggle(spec.kind.value, action.value, result)
		logger.info(
			"relevancy_toggled",
			extra={"kind": spec.kind.value, "item_id": str(item.id), "action": action.value, "result": result},
		)
		return updated

	async def record_view(
		self,
		kind: ContentKind | str,
		item_id: UUID,
		user_id: UUID,
	) -> tuple[models.ContentItem, bool]:
		"""Record the first view by ``user_id``; returns ``(item, already_viewed)``."""
		spec = resolve_kind(kind)
		item, added = await self.repo.add_view(spec.kind, item_id, user_id)
		return item, not added
