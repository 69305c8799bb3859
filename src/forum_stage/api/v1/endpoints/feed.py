# src/forum_stage/api/v1/endpoints/feed.py
"""Ranked feed endpoints for the forum API.

A storage failure while assembling a feed yields an empty, ``degraded``
response with a retry hint instead of an error.
"""

import logging

from fastapi import APIRouter, Query, Response
from sqlalchemy.exc import SQLAlchemyError

from forum_stage.core.settings import settings
from forum_stage.schemas.feed import FeedResponse, SavedFeedResponse, SavedPostResponse
from forum_stage.schemas.post import PostResponse
from forum_stage.services import feeds
from forum_stage.services.ranking import DEFAULT_STRATEGY, STRATEGY_NEW, ranked_posts, validate_strategy

from ..dependencies import SessionDep, ViewerDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/feed", tags=["feed"])

LimitQuery = Query(settings.feed_default_limit, ge=1, le=settings.feed_max_limit)


def _degraded(response: Response) -> int:
    retry_after = settings.feed_retry_after_seconds
    response.headers["Retry-After"] = str(retry_after)
    return retry_after


@router.get("/", response_model=FeedResponse)
async def get_feed(
    viewer: ViewerDep,
    db: SessionDep,
    response: Response,
    community_id: int | None = None,
    strategy: str = DEFAULT_STRATEGY,
    limit: int = LimitQuery,
) -> FeedResponse:
    """Ranked posts, optionally restricted to one community."""
    validate_strategy(strategy)
    try:
        posts = ranked_posts(db, viewer, strategy, community_id=community_id, limit=limit)
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Feed query failed; serving degraded feed", exc_info=True)
        return FeedResponse(items=[], strategy=strategy, degraded=True, retry_after=_degraded(response))
    return FeedResponse(
        items=[PostResponse.for_viewer(post, viewer) for post in posts],
        strategy=strategy,
    )


@router.get("/following", response_model=FeedResponse)
async def get_following_feed(
    viewer: ViewerDep,
    db: SessionDep,
    response: Response,
    strategy: str = STRATEGY_NEW,
    limit: int = LimitQuery,
) -> FeedResponse:
    """Posts by users the caller follows."""
    validate_strategy(strategy)
    try:
        posts = feeds.following_feed(db, viewer, strategy, limit)
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Following feed query failed; serving degraded feed", exc_info=True)
        return FeedResponse(items=[], strategy=strategy, degraded=True, retry_after=_degraded(response))
    return FeedResponse(
        items=[PostResponse.for_viewer(post, viewer) for post in posts],
        strategy=strategy,
    )


@router.get("/saved", response_model=SavedFeedResponse)
async def get_saved_feed(
    viewer: ViewerDep,
    db: SessionDep,
    response: Response,
    limit: int = LimitQuery,
) -> SavedFeedResponse:
    """Bookmarked posts, most recently saved first."""
    try:
        entries = feeds.saved_feed(db, viewer, limit)
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Saved feed query failed; serving degraded feed", exc_info=True)
        return SavedFeedResponse(items=[], degraded=True, retry_after=_degraded(response))
    return SavedFeedResponse(
        items=[
            SavedPostResponse(post=PostResponse.for_viewer(entry.post, viewer), saved_at=entry.saved_at)
            for entry in entries
        ]
    )
