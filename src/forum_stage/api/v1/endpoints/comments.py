# src/forum_stage/api/v1/endpoints/comments.py
"""Comment thread endpoints for the forum API."""

from typing import Any

from fastapi import APIRouter, Response, status

from forum_stage.core.settings import settings
from forum_stage.models import KIND_COMMENT
from forum_stage.schemas.comment import CommentCreate, CommentNodeResponse, CommentResponse
from forum_stage.services.change_feed import ChangeEvent, ViewCache, change_feed
from forum_stage.services.content import ContentService
from forum_stage.services.identity import Viewer

from ..dependencies import SessionDep, ViewerDep

router = APIRouter(tags=["comments"])

# Public (signed-out) projection of each post's comment tree, keyed by post id.
comment_tree_cache = ViewCache(ttl_seconds=settings.comment_tree_cache_ttl_seconds)


def _vote_keys(change: ChangeEvent) -> list[int] | None:
    # The vote row names the comment, not its post.
    return None if change.row.get("target_kind") == KIND_COMMENT else []


comment_tree_cache.invalidate_on(change_feed, "comment", lambda change: [change.row.get("post_id")])
comment_tree_cache.invalidate_on(change_feed, "post", lambda change: [change.row_id])
comment_tree_cache.invalidate_on(change_feed, "vote", _vote_keys)
comment_tree_cache.invalidate_on(change_feed, "ban", lambda change: None)


def _uses_public_projection(viewer: Viewer) -> bool:
    return settings.comment_tree_cache_enabled and viewer.is_anonymous and not viewer.is_moderator


@router.get("/posts/{post_id}/comments", response_model=list[CommentNodeResponse])
async def get_comment_tree(post_id: int, viewer: ViewerDep, db: SessionDep) -> list[Any]:
    """Return the visible comments of a post nested by reply."""

    def _compute() -> list[dict[str, Any]]:
        roots = ContentService(db).comment_tree(viewer, post_id)
        return [CommentNodeResponse.from_node(node, viewer).model_dump() for node in roots]

    if _uses_public_projection(viewer):
        return comment_tree_cache.get_or_compute(post_id, _compute)
    return _compute()


@router.post(
    "/posts/{post_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_comment(
    post_id: int,
    comment_data: CommentCreate,
    viewer: ViewerDep,
    db: SessionDep,
) -> CommentResponse:
    """Reply to a post or to one of its comments."""
    comment = ContentService(db).create_comment(
        viewer,
        post_id,
        content=comment_data.content,
        parent_comment_id=comment_data.parent_comment_id,
        anonymous=comment_data.anonymous,
    )
    return CommentResponse.for_viewer(comment, viewer)


@router.delete("/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def delete_comment(comment_id: int, viewer: ViewerDep, db: SessionDep) -> Response:
    """Soft-delete a comment authored by the caller."""
    ContentService(db).delete_comment(viewer, comment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
