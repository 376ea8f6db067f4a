"""Bookmark folder routes."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends

from agora.content.api._errors import to_http_error
from agora.content.domain.bookmarks import BookmarkService
from agora.content.domain.models import ContentKind, EntityRef
from agora.content.schemas import dto
from agora.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["content:bookmarks"])
_service = BookmarkService()


@router.post("/bookmarks", response_model=dto.BookmarkFolderResponse, status_code=201)
async def create_folder_endpoint(
	payload: dto.BookmarkFolderCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.BookmarkFolderResponse:
	try:
		folder = await _service.create_folder(auth_user.id, payload.title)
		return dto.BookmarkFolderResponse(message="Folder created successfully", data=folder)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/bookmarks", response_model=dto.BookmarkFolderListResponse)
async def list_folders_endpoint(
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.BookmarkFolderListResponse:
	try:
		return dto.BookmarkFolderListResponse(items=await _service.list_folders(auth_user.id))
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.put("/bookmarks/{folder_id}/{kind}/{item_id}", response_model=dto.BookmarkFolderResponse)
async def add_bookmark_endpoint(
	folder_id: UUID,
	kind: ContentKind,
	item_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.BookmarkFolderResponse:
	try:
		folder, message = await _service.add_to_folder(auth_user.id, folder_id, EntityRef(kind=kind, id=item_id))
		return dto.BookmarkFolderResponse(message=message, data=folder)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.delete("/bookmarks/{folder_id}/{kind}/{item_id}", response_model=dto.BookmarkFolderResponse)
async def remove_bookmark_endpoint(
	folder_id: UUID,
	kind: ContentKind,
	item_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.BookmarkFolderResponse:
	try:
		folder = await _service.remove_from_folder(auth_user.id, folder_id, EntityRef(kind=kind, id=item_id))
		return dto.BookmarkFolderResponse(data=folder)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc
