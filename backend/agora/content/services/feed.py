"""Merged club/node feed across debates, issues and projects."""

from __future__ import annotations

import asyncio
import time

from pydantic import BaseModel

from agora.content.domain import models, policies, repo
from agora.content.domain.kinds import FEED_KINDS
from agora.obs import metrics as obs_metrics
from agora.settings import settings


class FeedPage(BaseModel):
    items: list[models.FeedRow]
    total: int
    page: int
    limit: int
    has_more: bool


class FeedAggregator:
    """Builds a context feed from per-kind count and page queries."""

    def __init__(self, repository: repo.ContentRepository | None = None) -> None:
        self.repo = repository or repo.ContentRepository()

    async def get_feed(
        self,
        context: models.OwnerContext,
        *,
        page: int = 1,
        limit: int | None = None,
    ) -> FeedPage:
        """Return one page of the context feed.

        Every kind is paged with the same offset and limit on its own, then the
        union is sorted newest first and cut to ``limit``. Items can therefore
        be skipped or repeated across pages when kinds interleave unevenly.
        """
        limit = settings.feed_default_limit if limit is None else limit
        policies.ensure_page(page, limit, max_limit=settings.feed_max_limit)
        offset = (page - 1) * limit
        started = time.perf_counter()

        counts = [self.repo.count_published(kind, context) for kind in FEED_KINDS]
        pages = [
            self.repo.list_published_page(kind, context, offset=offset, limit=limit) for kind in FEED_KINDS
        ]
        results = await asyncio.gather(*counts, *pages)
        total = sum(results[: len(FEED_KINDS)])
        rows = [row for chunk in results[len(FEED_KINDS):] for row in chunk]
        rows.sort(key=lambda row: row.created_at, reverse=True)

        obs_metrics.observe_feed(context.entity_type.value, time.perf_counter() - started)
        return FeedPage(
            items=rows[:limit],
            total=total,
            page=page,
            limit=limit,
            has_more=offset + limit < total,
        )
