"""Authorization and input policies for content workflows."""

from __future__ import annotations

from uuid import UUID

from agora.content.domain import models
from agora.content.domain.exceptions import (
	NotAMemberError,
	UnauthorizedError,
	ValidationError,
)
from agora.content.domain.models import EntityType, OwnerContext

ROLES = ("admin", "moderator", "member")
MEMBER_STATUSES = ("REQUESTED", "ACCEPTED", "REJECTED", "BLOCKED", "MEMBER")

_PRIVILEGED_ROLES = frozenset({"admin", "moderator"})


def can_auto_publish(role: str | None) -> bool:
	"""Creating content publishes immediately for admins and moderators."""
	return role in _PRIVILEGED_ROLES


def can_adopt_directly(role: str | None) -> bool:
	return role in _PRIVILEGED_ROLES


def can_publish(role: str | None) -> bool:
	"""Publishing an existing item is reserved for admins.

	Stricter than ``can_auto_publish``: moderators may publish their own new
	content but may not publish someone else's proposal this way.
	"""
	return role == "admin"


def can_review_proposals(role: str | None) -> bool:
	return role in _PRIVILEGED_ROLES


def require_membership(membership: models.Membership | None, context: OwnerContext) -> models.Membership:
	if membership is None:
		raise NotAMemberError(f"User is not a member of the specified {context.entity_type.value}.")
	return membership


def require_publisher(membership: models.Membership | None) -> models.Membership:
	if membership is None or membership.status != "MEMBER" or not can_publish(membership.role):
		raise UnauthorizedError("You are not authorized to publish this content.")
	return membership


def require_reviewer(membership: models.Membership | None, context: OwnerContext) -> models.Membership:
	if membership is None or not can_review_proposals(membership.role):
		raise UnauthorizedError(
			f"You do not have permission to review proposals for this {context.entity_type.value}."
		)
	return membership


def owner_context_from(club: UUID | None, node: UUID | None) -> OwnerContext:
	"""Build the owner context from a payload that names exactly one of club/node."""
	if club is None and node is None:
		raise ValidationError("Either club or node must be provided.")
	if club is not None and node is not None:
		raise ValidationError("Provide only one of club or node, not both.")
	if club is not None:
		return OwnerContext(entity_type=EntityType.CLUB, entity_id=club)
	return OwnerContext(entity_type=EntityType.NODE, entity_id=node)


def ensure_page(page: int, limit: int, *, max_limit: int) -> None:
	if page < 1:
		raise ValidationError("page must be at least 1.")
	if limit < 1 or limit > max_limit:
		raise ValidationError(f"limit must be between 1 and {max_limit}.")
