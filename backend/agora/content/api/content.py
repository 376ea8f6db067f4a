"""Content routes: creation, adoption, publication, review and relevancy."""

from __future__ import annotations

from typing import List
from uuid import UUID

import pydantic
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from agora.content.api._errors import to_http_error
from agora.content.domain import policies
from agora.content.domain.exceptions import ValidationError
from agora.content.domain.models import ContentKind, EntityType, OwnerContext
from agora.content.domain.relevancy import RelevancyLedger
from agora.content.domain.services import ContentWorkflowService
from agora.content.infra.uploads import UploadedFile
from agora.content.schemas import dto
from agora.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["content"])
_service = ContentWorkflowService()
_ledger = RelevancyLedger()


def _parse_create_request(kind: ContentKind, data: str) -> dto.ContentCreateBase:
	try:
		return dto.CREATE_REQUESTS[kind].model_validate_json(data)
	except pydantic.ValidationError as exc:
		first = exc.errors()[0]
		location = ".".join(str(part) for part in first.get("loc", ())) or "data"
		raise ValidationError(f"{location}: {first.get('msg', 'invalid value')}") from exc


async def _read_files(files: List[UploadFile]) -> list[UploadedFile]:
	result: list[UploadedFile] = []
	for upload in files:
		content = await upload.read()
		result.append(
			UploadedFile(
				content=content,
				filename=upload.filename or "file",
				mimetype=upload.content_type or "application/octet-stream",
				size=upload.size,
			)
		)
	return result


@router.post("/content/{kind}", response_model=dto.ContentResponse, status_code=201)
async def create_content_endpoint(
	kind: ContentKind,
	data: str = Form(...),
	files: List[UploadFile] = File(default=[]),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ContentResponse:
	try:
		request = _parse_create_request(kind, data)
		item, message = await _service.create_content(
			kind,
			auth_user.id,
			club=request.club,
			node=request.node,
			fields=request.content_fields(),
			requested_status=request.published_status,
			files=await _read_files(files),
		)
		return dto.ContentResponse.from_item(item, message)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/content/{kind}/proposed", response_model=dto.ContentListResponse)
async def list_proposed_endpoint(
	kind: ContentKind,
	entity_type: EntityType = Query(...),
	entity_id: UUID = Query(...),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ContentListResponse:
	try:
		context = OwnerContext(entity_type=entity_type, entity_id=entity_id)
		items = await _service.list_proposed(kind, context, auth_user.id)
		return dto.ContentListResponse.from_items(items)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/content/{kind}/{item_id}", response_model=dto.ContentResponse)
async def get_content_endpoint(
	kind: ContentKind,
	item_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ContentResponse:
	try:
		return dto.ContentResponse.from_item(await _service.get_content(kind, item_id))
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/content/{kind}/{item_id}/adopt", response_model=dto.ContentResponse, status_code=201)
async def adopt_content_endpoint(
	kind: ContentKind,
	item_id: UUID,
	payload: dto.AdoptRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ContentResponse:
	try:
		target = policies.owner_context_from(payload.club, payload.node)
		item, message = await _service.adopt(kind, item_id, target, auth_user.id)
		return dto.ContentResponse.from_item(item, message)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.put("/content/{kind}/{item_id}/publish", response_model=dto.ContentResponse)
async def publish_content_endpoint(
	kind: ContentKind,
	item_id: UUID,
	payload: dto.PublishRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ContentResponse:
	try:
		item = await _service.publish(
			kind,
			item_id,
			auth_user.id,
			entity_type=payload.entity_type,
			entity_id=payload.entity_id,
		)
		return dto.ContentResponse.from_item(item, "Published successfully")
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/content/{kind}/{item_id}/non-adopted", response_model=None)
async def list_non_adopted_endpoint(
	kind: ContentKind,
	item_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dict:
	try:
		result = await _service.list_non_adopted(kind, auth_user.id, item_id)
		return result.model_dump(mode="json")
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/content/{kind}/{item_id}/accept", response_model=dto.ContentResponse)
async def accept_proposed_endpoint(
	kind: ContentKind,
	item_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ContentResponse:
	try:
		item = await _service.accept_proposed(kind, item_id, auth_user.id)
		return dto.ContentResponse.from_item(item, "Proposal accepted")
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/content/{kind}/{item_id}/reject", response_model=dto.ContentResponse)
async def reject_proposed_endpoint(
	kind: ContentKind,
	item_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ContentResponse:
	try:
		item = await _service.reject_proposed(kind, item_id, auth_user.id)
		return dto.ContentResponse.from_item(item, "Proposal rejected")
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.put("/content/{kind}/{item_id}/relevancy", response_model=dto.ContentResponse)
async def set_relevancy_endpoint(
	kind: ContentKind,
	item_id: UUID,
	payload: dto.RelevancyRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ContentResponse:
	try:
		item = await _ledger.set_relevancy(kind, item_id, auth_user.id, payload.action)
		return dto.ContentResponse.from_item(item)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/content/{kind}/{item_id}/view", response_model=dto.ViewResponse)
async def record_view_endpoint(
	kind: ContentKind,
	item_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ViewResponse:
	try:
		item, already_viewed = await _ledger.record_view(kind, item_id, auth_user.id)
		return dto.ViewResponse(already_viewed=already_viewed, views_count=len(item.views))
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc
