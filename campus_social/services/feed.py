"""
Feed aggregator: merges visible events, albums and posts into one
recency-ranked, paginated stream.

On each request it:

1.  Loads candidates for every feed type concurrently (bounded by a
    timeout; a slow type fails the whole feed instead of dropping out).
2.  Keeps only what the viewer may see.
3.  Merges by ``created_at`` descending, breaking ties by type priority
    (event > album > post) and then id, so paging is deterministic.
4.  Slices the requested page and attaches like/comment stats for it.

Totals are computed after filtering.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from campus_social import config
from campus_social.domain import (
    FEED_ENTITY_TYPES,
    ContentItem,
    EntityType,
    InteractionStats,
    PaginatedResult,
    Viewer,
)
from campus_social.errors import FeedUnavailable, NotFound
from campus_social.repositories.base import ContentRepository
from campus_social.services.visibility import is_visible, require_visible

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 20
MAX_LIMIT = 100

_TYPE_PRIORITY: dict[EntityType, int] = {t: i for i, t in enumerate(FEED_ENTITY_TYPES)}


@dataclass(frozen=True)
class FeedItem:
    item: ContentItem
    stats: InteractionStats


def clamp_pagination(page: int | None, limit: int | None) -> tuple[int, int]:
    """Normalise raw query values: page ≥ 1, 1 ≤ limit ≤ 100 (default 20)."""
    page = max(1, page or 1)
    limit = min(MAX_LIMIT, max(1, limit or DEFAULT_LIMIT))
    return page, limit


def _sort_key(item: ContentItem) -> tuple[float, int, str]:
    return (-item.created_at.timestamp(), _TYPE_PRIORITY.get(item.type, len(_TYPE_PRIORITY)), item.id)


def merge_by_recency(streams: list[list[ContentItem]]) -> list[ContentItem]:
    return sorted((item for stream in streams for item in stream), key=_sort_key)


class FeedAggregator:
    def __init__(
        self,
        content: ContentRepository,
        *,
        timeout: float = config.FEED_QUERY_TIMEOUT_SECONDS,
    ) -> None:
        self._content = content
        self._timeout = timeout

    async def _load_candidates(self) -> list[list[ContentItem]]:
        try:
            return await asyncio.wait_for(
                asyncio.gather(*(self._content.list_recent(t) for t in FEED_ENTITY_TYPES)),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            logger.error("Feed candidate queries exceeded %.1fs", self._timeout)
            raise FeedUnavailable() from None

    async def build_feed(self, viewer: Viewer, page: int, limit: int) -> PaginatedResult[FeedItem]:
        page, limit = clamp_pagination(page, limit)
        streams = await self._load_candidates()

        visible = [
            [item for item in stream if is_visible(viewer, item)]
            for stream in streams
        ]
        merged = merge_by_recency(visible)

        offset = (page - 1) * limit
        window = merged[offset:offset + limit]
        stats = await self._content.interaction_stats([i.ref for i in window], viewer.account_id)

        logger.debug(
            "Feed for %s: %d visible of %d candidates, page %d",
            viewer.account_id, len(merged), sum(len(s) for s in streams), page,
        )
        return PaginatedResult(
            items=[FeedItem(item=i, stats=stats.get(i.ref, InteractionStats())) for i in window],
            page=page,
            limit=limit,
            total=len(merged),
        )

    async def get_item(self, viewer: Viewer, entity_type: EntityType, entity_id: str) -> FeedItem:
        """Single entity of any type, after the same visibility check the feed applies."""
        item = await self._content.find(entity_type, entity_id)
        if item is None:
            raise NotFound(f"{entity_type.value} not found")
        require_visible(viewer, item)

        stats = await self._content.interaction_stats([item.ref], viewer.account_id)
        return FeedItem(item=item, stats=stats.get(item.ref, InteractionStats()))
