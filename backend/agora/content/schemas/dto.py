"""Pydantic schemas for the content API."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from agora.content.domain import models
from agora.content.domain.models import ContentKind, EntityType, PublishedStatus
from agora.content.domain.relevancy import RelevancyAction


class ContextSelector(BaseModel):
	"""Names the owning club or node. Exactly one must be set."""

	club: Optional[UUID] = None
	node: Optional[UUID] = None


class ContentCreateBase(ContextSelector):
	published_status: Optional[PublishedStatus] = None

	model_config = ConfigDict(extra="forbid")

	def content_fields(self) -> Dict[str, Any]:
		return self.model_dump(exclude={"club", "node", "published_status"}, by_alias=True)


class DebateCreateRequest(ContentCreateBase):
	topic: str = Field(..., min_length=1, max_length=300)
	significance: Optional[str] = Field(default=None, max_length=4000)
	target_audience: Optional[str] = None
	tags: List[str] = Field(default_factory=list, max_length=20)
	opening_date: Optional[datetime] = None
	closing_date: Optional[datetime] = None
	opening_comments_for: Optional[str] = None
	opening_comments_against: Optional[str] = None
	starting_comment: Optional[str] = None
	is_public: bool = False


class IssueCreateRequest(ContentCreateBase):
	title: str = Field(..., min_length=1, max_length=300)
	issue_type: Optional[str] = None
	where_or_who: Optional[str] = None
	deadline: Optional[datetime] = None
	reason_of_deadline: Optional[str] = None
	significance: Optional[str] = Field(default=None, max_length=4000)
	description: Optional[str] = None
	is_public: bool = False
	is_anonymous: bool = False


class RulesRegulationCreateRequest(ContentCreateBase):
	title: str = Field(..., min_length=1, max_length=300)
	description: Optional[str] = None
	category: Optional[str] = None
	significance: Optional[str] = Field(default=None, max_length=4000)
	tags: List[str] = Field(default_factory=list, max_length=20)
	is_public: bool = False
	domain: Optional[str] = None


class ProjectBudget(BaseModel):
	from_: Optional[float] = Field(default=None, alias="from", ge=0)
	to: Optional[float] = Field(default=None, ge=0)
	currency: Optional[str] = Field(default=None, max_length=8)

	model_config = ConfigDict(populate_by_name=True)


class ProjectCreateRequest(ContentCreateBase):
	title: str = Field(..., min_length=1, max_length=300)
	region: Optional[str] = None
	budget: Optional[ProjectBudget] = None
	deadline: Optional[datetime] = None
	significance: Optional[str] = Field(default=None, max_length=4000)
	solution: Optional[str] = None
	about_promoters: Optional[str] = None
	funding_details: Optional[str] = None
	key_takeaways: Optional[str] = None
	risks_and_challenges: Optional[str] = None


CREATE_REQUESTS: Dict[ContentKind, type[ContentCreateBase]] = {
	ContentKind.DEBATE: DebateCreateRequest,
	ContentKind.ISSUE: IssueCreateRequest,
	ContentKind.RULES_REGULATION: RulesRegulationCreateRequest,
	ContentKind.PROJECT: ProjectCreateRequest,
}


class AdoptRequest(ContextSelector):
	pass


class PublishRequest(BaseModel):
	entity_type: EntityType
	entity_id: UUID


class RelevancyRequest(BaseModel):
	action: RelevancyAction


class CommentCreateRequest(BaseModel):
	content: str = Field(..., min_length=1, max_length=10000)
	parent_id: Optional[UUID] = None


class ContentResponse(BaseModel):
	message: Optional[str] = None
	data: Dict[str, Any]

	@classmethod
	def from_item(cls, item: models.ContentItem, message: str | None = None) -> "ContentResponse":
		payload = item.model_dump(mode="json")
		payload["kind"] = item.kind.value
		payload["proposed_context"] = (
			item.proposed_context.model_dump(mode="json") if item.proposed_context else None
		)
		return cls(message=message, data=payload)


class ContentListResponse(BaseModel):
	items: List[Dict[str, Any]]

	@classmethod
	def from_items(cls, items: List[models.ContentItem]) -> "ContentListResponse":
		return cls(items=[ContentResponse.from_item(item).data for item in items])


class ViewResponse(BaseModel):
	already_viewed: bool
	views_count: int


class CommentResponse(BaseModel):
	id: UUID
	entity_type: ContentKind
	entity_id: UUID
	author_id: UUID
	parent_id: Optional[UUID] = None
	content: str
	created_at: datetime

	@classmethod
	def from_comment(cls, comment: models.Comment) -> "CommentResponse":
		return cls(
			id=comment.id,
			entity_type=comment.entity_kind,
			entity_id=comment.entity_id,
			author_id=comment.author_id,
			parent_id=comment.parent_id,
			content=comment.content,
			created_at=comment.created_at,
		)


class CommentListResponse(BaseModel):
	items: List[CommentResponse]


class BookmarkFolderCreateRequest(BaseModel):
	title: str = Field(..., min_length=1, max_length=120)


class BookmarkFolderResponse(BaseModel):
	message: Optional[str] = None
	data: models.BookmarkFolder


class BookmarkFolderListResponse(BaseModel):
	items: List[models.BookmarkFolder]
