"""Domain models for club/node content and memberships."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ContentKind(str, Enum):
	DEBATE = "debate"
	ISSUE = "issue"
	RULES_REGULATION = "rules_regulation"
	PROJECT = "project"


class EntityType(str, Enum):
	CLUB = "club"
	NODE = "node"


class PublishedStatus(str, Enum):
	DRAFT = "draft"
	PROPOSED = "proposed"
	PUBLISHED = "published"
	OLDER_VERSION = "olderversion"
	REJECTED = "rejected"
	ARCHIVED = "archived"


BASIC_STATUSES = frozenset({PublishedStatus.DRAFT, PublishedStatus.PROPOSED, PublishedStatus.PUBLISHED})
VERSIONED_STATUSES = BASIC_STATUSES | {
	PublishedStatus.OLDER_VERSION,
	PublishedStatus.REJECTED,
	PublishedStatus.ARCHIVED,
}


class OwnerContext(BaseModel):
	"""A club or node that content belongs to or is proposed to."""

	entity_type: EntityType
	entity_id: UUID

	model_config = ConfigDict(frozen=True)


class EntityRef(BaseModel):
	"""Tagged reference to one content item of any kind."""

	kind: ContentKind
	id: UUID

	model_config = ConfigDict(frozen=True)


class UserStamp(BaseModel):
	"""A user id with the time they acted (relevancy vote, view)."""

	user: UUID
	date: datetime


class AdoptedClub(BaseModel):
	club: UUID
	date: datetime


class AdoptedNode(BaseModel):
	node: UUID
	date: datetime


class FileObject(BaseModel):
	url: str
	original_name: str
	mimetype: str
	size: int


class ContentItem(BaseModel):
	"""Fields shared by debates, issues, rules-regulations and projects."""

	kind: ClassVar[ContentKind]

	id: UUID
	club_id: Optional[UUID] = None
	node_id: Optional[UUID] = None
	proposed_entity_type: Optional[EntityType] = None
	proposed_entity_id: Optional[UUID] = None
	created_by: UUID
	published_status: PublishedStatus
	published_by: Optional[UUID] = None
	published_date: Optional[datetime] = None
	adopted_from: Optional[UUID] = None
	adopted_date: Optional[datetime] = None
	adopted_clubs: list[AdoptedClub] = Field(default_factory=list)
	adopted_nodes: list[AdoptedNode] = Field(default_factory=list)
	relevant: Optional[list[UserStamp]] = None
	irrelevant: Optional[list[UserStamp]] = None
	views: list[UserStamp] = Field(default_factory=list)
	files: list[FileObject] = Field(default_factory=list)
	is_deleted: bool = False
	created_at: datetime
	updated_at: datetime

	model_config = ConfigDict(from_attributes=True)

	@property
	def owner_context(self) -> OwnerContext | None:
		if self.club_id is not None:
			return OwnerContext(entity_type=EntityType.CLUB, entity_id=self.club_id)
		if self.node_id is not None:
			return OwnerContext(entity_type=EntityType.NODE, entity_id=self.node_id)
		return None

	@property
	def proposed_context(self) -> OwnerContext | None:
		if self.proposed_entity_type is None or self.proposed_entity_id is None:
			return None
		return OwnerContext(entity_type=self.proposed_entity_type, entity_id=self.proposed_entity_id)

	def belongs_to(self, context: OwnerContext) -> bool:
		return self.owner_context == context

	def adopted_entity_ids(self, entity_type: EntityType) -> set[UUID]:
		if entity_type is EntityType.CLUB:
			return {entry.club for entry in self.adopted_clubs}
		return {entry.node for entry in self.adopted_nodes}


class Debate(ContentItem):
	kind: ClassVar[ContentKind] = ContentKind.DEBATE

	topic: str
	significance: Optional[str] = None
	target_audience: Optional[str] = None
	tags: list[str] = Field(default_factory=list)
	opening_date: Optional[datetime] = None
	closing_date: Optional[datetime] = None
	opening_comments_for: Optional[str] = None
	opening_comments_against: Optional[str] = None
	starting_comment: Optional[str] = None
	is_public: bool = False


class Issue(ContentItem):
	kind: ClassVar[ContentKind] = ContentKind.ISSUE

	title: str
	issue_type: Optional[str] = None
	where_or_who: Optional[str] = None
	deadline: Optional[datetime] = None
	reason_of_deadline: Optional[str] = None
	significance: Optional[str] = None
	description: Optional[str] = None
	is_public: bool = False
	is_anonymous: bool = False


class RulesRegulation(ContentItem):
	kind: ClassVar[ContentKind] = ContentKind.RULES_REGULATION

	title: str
	description: Optional[str] = None
	category: Optional[str] = None
	significance: Optional[str] = None
	tags: list[str] = Field(default_factory=list)
	is_public: bool = False
	domain: Optional[str] = None
	version: int = 1


class Project(ContentItem):
	kind: ClassVar[ContentKind] = ContentKind.PROJECT

	title: str
	region: Optional[str] = None
	budget: Optional[dict[str, Any]] = None
	deadline: Optional[datetime] = None
	significance: Optional[str] = None
	solution: Optional[str] = None
	about_promoters: Optional[str] = None
	funding_details: Optional[str] = None
	key_takeaways: Optional[str] = None
	risks_and_challenges: Optional[str] = None


class Membership(BaseModel):
	"""Role and status binding a user to a club or node."""

	entity_type: EntityType
	entity_id: UUID
	user_id: UUID
	role: str
	status: str
	created_at: Optional[datetime] = None
	updated_at: Optional[datetime] = None

	model_config = ConfigDict(from_attributes=True)

	@property
	def context(self) -> OwnerContext:
		return OwnerContext(entity_type=self.entity_type, entity_id=self.entity_id)


class MembershipWithEntity(Membership):
	"""Membership joined with the club/node display fields."""

	name: str
	image: Optional[str] = None


class Comment(BaseModel):
	id: UUID
	entity_kind: ContentKind
	entity_id: UUID
	author_id: UUID
	parent_id: Optional[UUID] = None
	content: str
	created_at: datetime
	updated_at: datetime

	model_config = ConfigDict(from_attributes=True)

	@property
	def entity(self) -> EntityRef:
		return EntityRef(kind=self.entity_kind, id=self.entity_id)


class BookmarkEntry(BaseModel):
	entity: EntityRef
	created_at: datetime


class BookmarkFolder(BaseModel):
	"""A named per-user collection of bookmarked content."""

	id: UUID
	user_id: UUID
	title: str
	posts: list[BookmarkEntry] = Field(default_factory=list)
	created_at: datetime
	updated_at: datetime

	def contains(self, entity: EntityRef) -> bool:
		return any(entry.entity == entity for entry in self.posts)


class FeedRow(BaseModel):
	"""A content row normalised across kinds for the context feed."""

	id: UUID
	type: ContentKind
	title: str
	significance: Optional[str] = None
	files: list[FileObject] = Field(default_factory=list)
	club_id: Optional[UUID] = None
	node_id: Optional[UUID] = None
	created_by: UUID
	creator_name: Optional[str] = None
	creator_email: Optional[str] = None
	published_by: Optional[UUID] = None
	published_status: PublishedStatus
	relevant_count: int = 0
	irrelevant_count: int = 0
	views_count: int = 0
	created_at: datetime

	model_config = ConfigDict(from_attributes=True)


class NonAdoptedEntities(BaseModel):
	"""The caller's clubs and nodes that have not yet adopted an item."""

	non_adopted_clubs: list[MembershipWithEntity] = Field(default_factory=list)
	non_adopted_nodes: list[MembershipWithEntity] = Field(default_factory=list)
