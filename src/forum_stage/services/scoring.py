# src/forum_stage/services/scoring.py
"""Score aggregation over the vote ledger."""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from forum_stage.models import (
    KIND_COMMENT,
    KIND_POST,
    Comment,
    Community,
    ContentItem,
    Post,
    Vote,
)
from forum_stage.services.errors import NotFoundError, ValidationError

_MODELS: dict[str, type[Post] | type[Comment]] = {
    KIND_POST: Post,
    KIND_COMMENT: Comment,
}


def model_for_kind(target_kind: str) -> type[Post] | type[Comment]:
    """Return the ORM class for a content kind."""
    try:
        return _MODELS[target_kind]
    except KeyError as err:
        raise ValidationError(f"Unknown target kind: {target_kind!r}") from err


def net_score(item: ContentItem) -> int:
    """Return upvotes minus downvotes for an item."""
    return (item.upvotes or 0) - (item.downvotes or 0)


def count_ledger(db: Session, target_kind: str, target_id: int) -> tuple[int, int]:
    """Count live ledger rows for a target as (upvotes, downvotes)."""
    rows = db.execute(
        select(Vote.direction, func.count())
        .where(Vote.target_kind == target_kind, Vote.target_id == target_id)
        .group_by(Vote.direction)
    ).all()
    counts = {direction: total for direction, total in rows}
    return counts.get(1, 0), counts.get(-1, 0)


def recompute_counters(
    db: Session,
    target_kind: str,
    target_id: int,
    item: ContentItem | None = None,
) -> ContentItem:
    """Reconcile an item's denormalized vote counters with the ledger.

    Runs inside the caller's transaction; the caller commits. Pending ledger
    changes are flushed first so the count sees them.
    """
    if item is None:
        item = db.get(model_for_kind(target_kind), target_id)
        if item is None:
            raise NotFoundError(f"{target_kind.capitalize()} not found")
    db.flush()
    item.upvotes, item.downvotes = count_ledger(db, target_kind, target_id)
    return item


def recompute_comment_count(db: Session, post_id: int) -> int:
    """Reconcile ``Post.comment_count`` with its live comments."""
    post = db.get(Post, post_id)
    if post is None:
        raise NotFoundError("Post not found")
    db.flush()
    post.comment_count = db.execute(
        select(func.count())
        .select_from(Comment)
        .where(Comment.post_id == post_id, Comment.deleted.is_(False))
    ).scalar_one()
    return post.comment_count


def recompute_post_count(db: Session, community_id: int | None) -> int | None:
    """Reconcile ``Community.post_count`` with its live posts."""
    if community_id is None:
        return None
    community = db.get(Community, community_id)
    if community is None:
        return None
    db.flush()
    community.post_count = db.execute(
        select(func.count())
        .select_from(Post)
        .where(Post.community_id == community_id, Post.deleted.is_(False))
    ).scalar_one()
    return community.post_count
