# src/forum_stage/api/v1/endpoints/posts.py
"""Post-related endpoints for the forum API."""

from fastapi import APIRouter, Response, status

from forum_stage.schemas.post import PostCreate, PostResponse
from forum_stage.services import feeds
from forum_stage.services.content import ContentService

from ..dependencies import SessionDep, ViewerDep

router = APIRouter(prefix="/posts", tags=["posts"])


@router.post("/", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    post_data: PostCreate,
    viewer: ViewerDep,
    db: SessionDep,
) -> PostResponse:
    """Publish a post; it waits for review in communities that require approval."""
    post = ContentService(db).create_post(
        viewer,
        title=post_data.title,
        content=post_data.content,
        community_id=post_data.community_id,
        tags=post_data.tags,
        anonymous=post_data.anonymous,
    )
    return PostResponse.for_viewer(post, viewer)


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(post_id: int, viewer: ViewerDep, db: SessionDep) -> PostResponse:
    """Get a single post visible to the caller."""
    post = ContentService(db).get_post(viewer, post_id)
    return PostResponse.for_viewer(post, viewer)


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def delete_post(post_id: int, viewer: ViewerDep, db: SessionDep) -> Response:
    """Soft-delete a post authored by the caller."""
    ContentService(db).delete_post(viewer, post_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{post_id}/save")
async def save_post(post_id: int, viewer: ViewerDep, db: SessionDep) -> dict[str, str]:
    """Bookmark a post."""
    created = feeds.save_post(db, viewer, post_id)
    return {"status": "saved" if created else "already_saved"}


@router.delete("/{post_id}/save", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def unsave_post(post_id: int, viewer: ViewerDep, db: SessionDep) -> Response:
    """Remove a bookmark."""
    feeds.unsave_post(db, viewer, post_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
