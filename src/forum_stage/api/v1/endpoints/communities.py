# src/forum_stage/api/v1/endpoints/communities.py
"""Community listing, creation and membership endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Response, status
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from forum_stage.models import Community, CommunityMember
from forum_stage.schemas.community import CommunityCreate, CommunityResponse
from forum_stage.services.errors import (
    AuthenticationRequiredError,
    ConflictError,
    NotFoundError,
)
from forum_stage.services.identity import Viewer
from forum_stage.services.moderation import require_moderator

from ..dependencies import SessionDep, ViewerDep

router = APIRouter(prefix="/communities", tags=["communities"])


def _member_id(viewer: Viewer) -> str:
    if viewer.user_id is None:
        raise AuthenticationRequiredError("Sign in to join communities")
    return viewer.user_id


def _active_community(db: Session, community_id: int) -> Community:
    community = db.get(Community, community_id)
    if community is None or not community.is_active:
        raise NotFoundError("Community not found")
    return community


def _sync_member_count(db: Session, community: Community) -> None:
    db.flush()
    community.member_count = db.execute(
        select(func.count()).select_from(CommunityMember).where(
            CommunityMember.community_id == community.id
        )
    ).scalar_one()


@router.get("/", response_model=list[CommunityResponse])
async def list_communities(db: SessionDep) -> list[Community]:
    """Active communities ordered by name."""
    stmt = select(Community).where(Community.is_active.is_(True)).order_by(Community.name)
    return list(db.execute(stmt).scalars())


@router.get("/{slug}", response_model=CommunityResponse)
async def get_community(slug: str, db: SessionDep) -> Community:
    community = db.execute(
        select(Community).where(Community.slug == slug, Community.is_active.is_(True))
    ).scalar_one_or_none()
    if community is None:
        raise NotFoundError("Community not found")
    return community


@router.post("/", response_model=CommunityResponse, status_code=status.HTTP_201_CREATED)
async def create_community(
    payload: CommunityCreate,
    viewer: ViewerDep,
    db: SessionDep,
) -> Community:
    """Create a community. Moderators only."""
    require_moderator(viewer)
    taken = db.execute(select(Community.id).where(Community.slug == payload.slug)).first()
    if taken is not None:
        raise ConflictError("Community slug already exists")

    community = Community(**payload.model_dump())
    db.add(community)
    db.commit()
    db.refresh(community)
    return community


@router.post("/{community_id}/join", status_code=status.HTTP_201_CREATED)
async def join_community(community_id: int, viewer: ViewerDep, db: SessionDep) -> dict[str, str]:
    user_id = _member_id(viewer)
    community = _active_community(db, community_id)
    if db.get(CommunityMember, (community_id, user_id)) is not None:
        raise ConflictError("Already a member of this community")

    db.add(CommunityMember(community_id=community_id, user_id=user_id))
    _sync_member_count(db, community)
    db.commit()
    return {"status": "joined"}


@router.delete(
    "/{community_id}/join",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
async def leave_community(community_id: int, viewer: ViewerDep, db: SessionDep) -> Response:
    user_id = _member_id(viewer)
    community = _active_community(db, community_id)
    membership = db.get(CommunityMember, (community_id, user_id))
    if membership is None:
        raise NotFoundError("Not a member of this community")

    db.delete(membership)
    _sync_member_count(db, community)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
