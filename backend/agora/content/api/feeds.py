"""Club and node feed routes."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query

from agora.content.api._errors import to_http_error
from agora.content.domain.models import EntityType, OwnerContext
from agora.content.services.feed import FeedAggregator, FeedPage
from agora.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["content:feeds"])
_feed = FeedAggregator()


@router.get("/feeds/{entity_type}/{entity_id}", response_model=FeedPage)
async def context_feed_endpoint(
	entity_type: EntityType,
	entity_id: UUID,
	page: int = Query(default=1),
	limit: int | None = Query(default=None),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> FeedPage:
	try:
		context = OwnerContext(entity_type=entity_type, entity_id=entity_id)
		return await _feed.get_feed(context, page=page, limit=limit)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc
