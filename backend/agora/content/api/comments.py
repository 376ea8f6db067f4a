"""Comment routes for content items."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends

from agora.content.api._errors import to_http_error
from agora.content.domain.comments import CommentService
from agora.content.domain.models import ContentKind, EntityRef
from agora.content.schemas import dto
from agora.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["content:comments"])
_service = CommentService()


@router.get("/comments/{kind}/{item_id}", response_model=dto.CommentListResponse)
async def list_comments_endpoint(
	kind: ContentKind,
	item_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.CommentListResponse:
	try:
		comments = await _service.list_comments(EntityRef(kind=kind, id=item_id))
		return dto.CommentListResponse(items=[dto.CommentResponse.from_comment(c) for c in comments])
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/comments/{kind}/{item_id}", response_model=dto.CommentResponse, status_code=201)
async def create_comment_endpoint(
	kind: ContentKind,
	item_id: UUID,
	payload: dto.CommentCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.CommentResponse:
	try:
		comment = await _service.create_comment(
			auth_user.id,
			EntityRef(kind=kind, id=item_id),
			payload.content,
			parent_id=payload.parent_id,
		)
		return dto.CommentResponse.from_comment(comment)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc
