"""
Feed endpoints (authenticated) – group-filtered, recency-ranked content.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from campus_social.dependencies import CurrentViewer, PaginationParams, get_feed_aggregator
from campus_social.domain import EntityType
from campus_social.models import ErrorResponse, FeedItemOut, FeedResponse, PaginationMeta
from campus_social.services.feed import FeedAggregator, FeedItem

router = APIRouter(prefix="/feed", tags=["feed"])

Aggregator = Annotated[FeedAggregator, Depends(get_feed_aggregator)]


def _to_out(entry: FeedItem) -> FeedItemOut:
    item = entry.item
    return FeedItemOut(
        type=item.type,
        id=item.id,
        created_at=item.created_at,
        creator_id=item.creator_id,
        groups=sorted(item.group_ids),
        data=item.data,
        likes_count=entry.stats.likes_count,
        comments_count=entry.stats.comments_count,
        liked=entry.stats.liked,
    )


@router.get(
    "",
    response_model=FeedResponse,
    operation_id="getFeed",
    summary="Events, albums and posts visible to the caller, newest first",
    responses={401: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def get_feed(
    viewer: CurrentViewer,
    aggregator: Aggregator,
    pagination: PaginationParams = Depends(PaginationParams),
) -> FeedResponse:
    result = await aggregator.build_feed(viewer, pagination.page, pagination.limit)
    return FeedResponse(
        items=[_to_out(entry) for entry in result.items],
        pagination=PaginationMeta(
            page=result.page,
            limit=result.limit,
            total=result.total,
            total_pages=result.total_pages,
        ),
    )


@router.get(
    "/{entity_type}/{entity_id}",
    response_model=FeedItemOut,
    operation_id="getFeedItem",
    summary="A single event, album, post or album media item",
    responses={
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)
async def get_feed_item(
    entity_type: EntityType,
    entity_id: str,
    viewer: CurrentViewer,
    aggregator: Aggregator,
) -> FeedItemOut:
    return _to_out(await aggregator.get_item(viewer, entity_type, entity_id))
