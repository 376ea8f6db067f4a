"""Dispatch table from content kind to storage and presentation details."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from agora.content.domain import models
from agora.content.domain.exceptions import NotFoundError
from agora.content.domain.models import ContentKind, PublishedStatus

# Columns written as JSONB; values are dumped in JSON mode before binding.
JSON_COLUMNS = frozenset(
	{"adopted_clubs", "adopted_nodes", "relevant", "irrelevant", "views", "files", "budget"}
)


@dataclass(frozen=True, slots=True)
class KindSpec:
	kind: ContentKind
	table: str
	label: str
	model: type[models.ContentItem]
	statuses: frozenset[PublishedStatus]
	title_column: str
	significance_column: Optional[str]
	in_feed: bool

	@property
	def columns(self) -> tuple[str, ...]:
		return tuple(self.model.model_fields)

	def supports(self, status: PublishedStatus) -> bool:
		return status in self.statuses


KINDS: dict[ContentKind, KindSpec] = {
	ContentKind.DEBATE: KindSpec(
		kind=ContentKind.DEBATE,
		table="debate",
		label="Debate",
		model=models.Debate,
		statuses=models.BASIC_STATUSES,
		title_column="topic",
		significance_column="significance",
		in_feed=True,
	),
	ContentKind.ISSUE: KindSpec(
		kind=ContentKind.ISSUE,
		table="issue",
		label="Issue",
		model=models.Issue,
		statuses=models.BASIC_STATUSES,
		title_column="title",
		significance_column="significance",
		in_feed=True,
	),
	ContentKind.RULES_REGULATION: KindSpec(
		kind=ContentKind.RULES_REGULATION,
		table="rules_regulation",
		label="Rules and regulations",
		model=models.RulesRegulation,
		statuses=models.VERSIONED_STATUSES,
		title_column="title",
		significance_column="significance",
		in_feed=False,
	),
	ContentKind.PROJECT: KindSpec(
		kind=ContentKind.PROJECT,
		table="project",
		label="Project",
		model=models.Project,
		statuses=models.VERSIONED_STATUSES,
		title_column="title",
		significance_column="significance",
		in_feed=True,
	),
}

FEED_KINDS: tuple[ContentKind, ...] = tuple(kind for kind, spec in KINDS.items() if spec.in_feed)


def resolve_kind(value: ContentKind | str) -> KindSpec:
	"""Return the kind descriptor for ``value`` or raise NotFoundError for an unknown kind."""
	try:
		kind = ContentKind(value)
	except ValueError as exc:
		raise NotFoundError("Unknown content kind.") from exc
	return KINDS[kind]
