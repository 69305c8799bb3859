# src/forum_stage/services/ranking.py
"""Ranking strategies and viewer-aware visibility for content listings."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Final, TypeVar

from sqlalchemy import Select, and_, or_, select
from sqlalchemy.orm import Session

from forum_stage.core.settings import settings
from forum_stage.db.time import as_utc, utcnow
from forum_stage.models import Comment, ContentItem, Post
from forum_stage.services.bans import shadowbanned_authors
from forum_stage.services.errors import ValidationError
from forum_stage.services.identity import Viewer

logger = logging.getLogger(__name__)

STRATEGY_NEW: Final = "new"
STRATEGY_TOP: Final = "top"
STRATEGY_HOT: Final = "hot"
STRATEGIES: Final = (STRATEGY_NEW, STRATEGY_TOP, STRATEGY_HOT)
DEFAULT_STRATEGY: Final = STRATEGY_HOT

ItemT = TypeVar("ItemT", bound=ContentItem)


def validate_strategy(strategy: str) -> str:
    """Return ``strategy`` if known, else raise ValidationError."""
    if strategy not in STRATEGIES:
        raise ValidationError(
            f"Unknown ranking strategy {strategy!r}; expected one of {', '.join(STRATEGIES)}"
        )
    return strategy


def age_hours(item: ContentItem, now: datetime) -> float:
    """Return the item's age in hours at ``now``; never negative."""
    delta = as_utc(now) - as_utc(item.created_at)
    return max(delta.total_seconds() / 3600.0, 0.0)


def hot_score(item: ContentItem, now: datetime | None = None) -> float:
    """Time-decayed popularity: ``net / (age_hours + 2) ** 1.5``."""
    moment = now or utcnow()
    base = age_hours(item, moment) + settings.hot_age_offset_hours
    return item.net_score / (base ** settings.hot_gravity)


def _strategy_key(strategy: str, now: datetime):
    if strategy == STRATEGY_NEW:
        return lambda item: -as_utc(item.created_at).timestamp()
    if strategy == STRATEGY_TOP:
        return lambda item: -item.net_score
    return lambda item: -hot_score(item, now)


def rank(
    items: Iterable[ItemT],
    strategy: str = DEFAULT_STRATEGY,
    now: datetime | None = None,
) -> list[ItemT]:
    """Order ``items`` under ``strategy`` with pinned items first.

    Pure function of its inputs. Items without a ``pinned`` attribute
    (comments) are treated as unpinned. Ties go to the newer item; items
    created at the same moment keep their input order.
    """
    validate_strategy(strategy)
    moment = now or utcnow()
    key = _strategy_key(strategy, moment)
    return sorted(
        items,
        key=lambda item: (
            not getattr(item, "pinned", False),
            key(item),
            -as_utc(item.created_at).timestamp(),
        ),
    )


def is_visible_to(
    item: ContentItem,
    viewer: Viewer,
    shadowbanned: frozenset[str] = frozenset(),
) -> bool:
    """Return True if ``viewer`` may see ``item`` in a listing.

    Soft-deleted, shadowbanned and unapproved items stay visible only to
    their author and to moderators.
    """
    hidden = (
        item.deleted
        or item.shadowbanned
        or (item.author_id is not None and item.author_id in shadowbanned)
        or not getattr(item, "approved", True)
    )
    if not hidden:
        return True
    return viewer.sees_hidden_content_of(item.author_id)


def visible_posts_query(viewer: Viewer, now: datetime | None = None) -> Select[tuple[Post]]:
    """SELECT of posts visible to ``viewer``, filtered before ranking."""
    stmt = select(Post).order_by(Post.created_at.desc(), Post.id.desc())
    if viewer.is_moderator:
        return stmt
    public = (
        Post.deleted.is_(False),
        Post.shadowbanned.is_(False),
        Post.approved.is_(True),
        or_(Post.author_id.is_(None), Post.author_id.not_in(shadowbanned_authors(now))),
    )
    if viewer.user_id is None:
        return stmt.where(*public)
    # Authors keep seeing their own hidden posts.
    return stmt.where(or_(and_(*public), Post.author_id == viewer.user_id))


def visible_comments_query(
    post_id: int, viewer: Viewer, now: datetime | None = None
) -> Select[tuple[Comment]]:
    """SELECT of a post's comments visible to ``viewer``, newest first."""
    stmt = select(Comment).where(Comment.post_id == post_id, Comment.deleted.is_(False))
    if not viewer.is_moderator:
        public = and_(
            Comment.shadowbanned.is_(False),
            or_(
                Comment.author_id.is_(None),
                Comment.author_id.not_in(shadowbanned_authors(now)),
            ),
        )
        if viewer.user_id is None:
            stmt = stmt.where(public)
        else:
            stmt = stmt.where(or_(public, Comment.author_id == viewer.user_id))
    return stmt.order_by(Comment.created_at.desc(), Comment.id.desc())


def ranked_posts(
    db: Session,
    viewer: Viewer,
    strategy: str = DEFAULT_STRATEGY,
    *,
    community_id: int | None = None,
    author_ids: Sequence[str] | None = None,
    limit: int | None = None,
    now: datetime | None = None,
    include_deleted: bool = True,
) -> list[Post]:
    """Load visible posts and rank them.

    ``author_ids`` restricts the candidate set (follow feeds); an empty
    sequence yields an empty result without querying. With
    ``include_deleted=False`` soft-deleted posts are dropped even for
    moderators and authors.
    """
    validate_strategy(strategy)
    if author_ids is not None and not author_ids:
        return []
    moment = now or utcnow()
    stmt = visible_posts_query(viewer, moment)
    if community_id is not None:
        stmt = stmt.where(Post.community_id == community_id)
    if author_ids is not None:
        stmt = stmt.where(Post.author_id.in_(list(author_ids)))
    if not include_deleted:
        stmt = stmt.where(Post.deleted.is_(False))
    posts = list(db.execute(stmt).scalars())
    ranked = rank(posts, strategy, moment)
    if limit is not None:
        ranked = ranked[:limit]
    logger.debug("Ranked %d posts with strategy %s", len(ranked), strategy)
    return ranked
