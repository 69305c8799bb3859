# src/forum_stage/api/v1/endpoints/users.py
"""Follow graph endpoints for the forum API."""

from fastapi import APIRouter, Response, status

from forum_stage.services import feeds

from ..dependencies import SessionDep, ViewerDep

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/{user_id}/follow")
async def follow_user(user_id: str, viewer: ViewerDep, db: SessionDep) -> dict[str, str]:
    """Follow another user."""
    created = feeds.follow_user(db, viewer, user_id)
    return {"status": "following" if created else "already_following"}


@router.delete("/{user_id}/follow", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def unfollow_user(user_id: str, viewer: ViewerDep, db: SessionDep) -> Response:
    """Stop following a user."""
    feeds.unfollow_user(db, viewer, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
