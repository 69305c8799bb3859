# src/forum_stage/services/content.py
"""Creation, lookup and author-side deletion of posts and comments."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from forum_stage.models import Comment, Community, Post
from forum_stage.models.moderation import QUEUE_SOURCE_POLICY
from forum_stage.services.bans import ensure_not_banned, is_shadowbanned
from forum_stage.services.comment_tree import CommentNode, build_comment_tree
from forum_stage.services.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from forum_stage.services.identity import Viewer
from forum_stage.services.moderation import ModerationService
from forum_stage.services.ranking import is_visible_to, visible_comments_query
from forum_stage.services.scoring import recompute_comment_count, recompute_post_count

logger = logging.getLogger(__name__)


def _author_fields(db: Session, viewer: Viewer, anonymous: bool) -> dict[str, object]:
    if viewer.is_anonymous and not viewer.guest_id:
        raise ValidationError("Anonymous authors must supply a guest identifier")
    return {
        "author_id": viewer.user_id,
        "author_identifier": None if viewer.user_id else viewer.guest_id,
        "is_anonymous": anonymous or viewer.is_anonymous,
        "shadowbanned": is_shadowbanned(db, viewer.user_id),
    }


class ContentService:
    """Posts and comments as seen through a viewer's capabilities."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def get_post(self, viewer: Viewer, post_id: int) -> Post:
        """Return a single post, or NotFoundError if hidden from the viewer."""
        post = self.db.get(Post, post_id)
        if post is None:
            raise NotFoundError("Post not found")
        shadowbanned = (
            frozenset({post.author_id})
            if post.author_id and is_shadowbanned(self.db, post.author_id)
            else frozenset()
        )
        if not is_visible_to(post, viewer, shadowbanned):
            raise NotFoundError("Post not found")
        return post

    def create_post(
        self,
        viewer: Viewer,
        *,
        title: str,
        content: str,
        community_id: int | None = None,
        tags: list[str] | None = None,
        anonymous: bool = False,
    ) -> Post:
        """Publish a post, queueing it first when the community requires approval."""
        db = self.db
        ensure_not_banned(db, viewer)
        community: Community | None = None
        if community_id is not None:
            community = db.get(Community, community_id)
            if community is None or not community.is_active:
                raise NotFoundError("Community not found")

        post = Post(
            community_id=community_id,
            title=title,
            content=content,
            tags=list(tags or []),
            **_author_fields(db, viewer, anonymous),
        )
        try:
            db.add(post)
            db.flush()
            if community is not None and community.requires_approval and not viewer.is_moderator:
                ModerationService(db).enqueue_post(
                    post.id,
                    QUEUE_SOURCE_POLICY,
                    "Community requires approval",
                    commit=False,
                )
            recompute_post_count(db, community_id)
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(post)
        logger.info("Post %s created in community %s", post.id, community_id)
        return post

    def delete_post(self, viewer: Viewer, post_id: int) -> None:
        """Soft-delete a post; allowed for its author and for moderators."""
        db = self.db
        post = db.get(Post, post_id)
        if post is None or post.deleted:
            raise NotFoundError("Post not found")
        if not viewer.is_moderator and (viewer.is_anonymous or post.author_id != viewer.user_id):
            raise AuthorizationError("You can only delete your own posts")
        post.deleted = True
        recompute_post_count(db, post.community_id)
        db.commit()
        logger.info("Post %s deleted by %s", post_id, viewer.user_id)

    def create_comment(
        self,
        viewer: Viewer,
        post_id: int,
        *,
        content: str,
        parent_comment_id: int | None = None,
        anonymous: bool = False,
    ) -> Comment:
        """Reply to a post or to another comment of the same post."""
        db = self.db
        ensure_not_banned(db, viewer)
        post = self.get_post(viewer, post_id)
        if post.deleted:
            raise NotFoundError("Post not found")
        if post.locked:
            raise ConflictError("Post is locked; new comments are not accepted")

        if parent_comment_id is not None:
            parent = db.get(Comment, parent_comment_id)
            if parent is None or parent.deleted:
                raise NotFoundError("Parent comment not found")
            if parent.post_id != post_id:
                raise ValidationError("Parent comment belongs to a different post")

        comment = Comment(
            post_id=post_id,
            parent_comment_id=parent_comment_id,
            content=content,
            **_author_fields(db, viewer, anonymous),
        )
        try:
            db.add(comment)
            recompute_comment_count(db, post_id)
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(comment)
        logger.info("Comment %s created on post %s", comment.id, post_id)
        return comment

    def delete_comment(self, viewer: Viewer, comment_id: int) -> None:
        """Soft-delete a comment; allowed for its author and for moderators."""
        db = self.db
        comment = db.get(Comment, comment_id)
        if comment is None or comment.deleted:
            raise NotFoundError("Comment not found")
        if not viewer.is_moderator and (
            viewer.is_anonymous or comment.author_id != viewer.user_id
        ):
            raise AuthorizationError("You can only delete your own comments")
        comment.deleted = True
        recompute_comment_count(db, comment.post_id)
        db.commit()
        logger.info("Comment %s deleted by %s", comment_id, viewer.user_id)

    def comment_tree(self, viewer: Viewer, post_id: int) -> list[CommentNode[Comment]]:
        """Return the visible comments of a post as a reply tree."""
        self.get_post(viewer, post_id)
        rows = self.db.execute(visible_comments_query(post_id, viewer)).scalars()
        return build_comment_tree(rows)

