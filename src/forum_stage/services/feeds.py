# src/forum_stage/services/feeds.py
"""Personal feeds built from bookmark and follow edges."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from forum_stage.models import Follow, Post, SavedPost, User
from forum_stage.services.errors import (
    AuthenticationRequiredError,
    NotFoundError,
    ValidationError,
)
from forum_stage.services.identity import Viewer
from forum_stage.services.ranking import (
    STRATEGY_NEW,
    ranked_posts,
    visible_posts_query,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SavedEntry:
    """A bookmarked post together with when it was saved."""

    post: Post
    saved_at: datetime


def _require_identity(viewer: Viewer) -> str:
    if viewer.user_id is None:
        raise AuthenticationRequiredError("Sign in to use personal feeds")
    return viewer.user_id


def followed_ids(db: Session, viewer: Viewer) -> list[str]:
    """Return the ids of users ``viewer`` follows."""
    user_id = _require_identity(viewer)
    return list(
        db.execute(select(Follow.following_id).where(Follow.follower_id == user_id)).scalars()
    )


def following_feed(
    db: Session,
    viewer: Viewer,
    strategy: str = STRATEGY_NEW,
    limit: int | None = None,
) -> list[Post]:
    """Visible, non-deleted posts by followed authors, ranked; empty when nobody is followed."""
    authors = followed_ids(db, viewer)
    return ranked_posts(
        db, viewer, strategy, author_ids=authors, limit=limit, include_deleted=False
    )


def saved_feed(db: Session, viewer: Viewer, limit: int | None = None) -> list[SavedEntry]:
    """Bookmarked posts ordered by when they were saved, most recent first."""
    user_id = _require_identity(viewer)
    visible = visible_posts_query(viewer).subquery()
    stmt = (
        select(Post, SavedPost.created_at)
        .join(SavedPost, SavedPost.post_id == Post.id)
        .where(
            SavedPost.user_id == user_id,
            Post.id.in_(select(visible.c.id)),
            Post.deleted.is_(False),
        )
        .order_by(SavedPost.created_at.desc(), SavedPost.id.desc())
    )
    if limit is not None:
        stmt = stmt.limit(limit)
    return [SavedEntry(post=post, saved_at=saved_at) for post, saved_at in db.execute(stmt)]


def save_post(db: Session, viewer: Viewer, post_id: int) -> bool:
    """Bookmark a post. Returns False if it was already saved."""
    user_id = _require_identity(viewer)
    if db.get(Post, post_id) is None:
        raise NotFoundError("Post not found")
    try:
        db.add(SavedPost(user_id=user_id, post_id=post_id))
        db.commit()
    except IntegrityError:
        db.rollback()
        return False
    return True


def unsave_post(db: Session, viewer: Viewer, post_id: int) -> bool:
    """Remove a bookmark. Returns False if there was none."""
    user_id = _require_identity(viewer)
    removed = db.execute(
        delete(SavedPost).where(SavedPost.user_id == user_id, SavedPost.post_id == post_id)
    ).rowcount
    db.commit()
    return bool(removed)


def follow_user(db: Session, viewer: Viewer, target_user_id: str) -> bool:
    """Follow another user. Returns False if already following."""
    user_id = _require_identity(viewer)
    if target_user_id == user_id:
        raise ValidationError("You cannot follow yourself")
    if db.get(User, target_user_id) is None:
        raise NotFoundError("User not found")
    try:
        db.add(Follow(follower_id=user_id, following_id=target_user_id))
        db.commit()
    except IntegrityError:
        db.rollback()
        return False
    logger.debug("%s now follows %s", user_id, target_user_id)
    return True


def unfollow_user(db: Session, viewer: Viewer, target_user_id: str) -> bool:
    """Stop following a user. Returns False if not following."""
    user_id = _require_identity(viewer)
    removed = db.execute(
        delete(Follow).where(
            Follow.follower_id == user_id, Follow.following_id == target_user_id
        )
    ).rowcount
    db.commit()
    return bool(removed)
