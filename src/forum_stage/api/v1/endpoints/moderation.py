# src/forum_stage/api/v1/endpoints/moderation.py
"""Moderator endpoints: report triage, the review queue, bans and post flags."""

from fastapi import APIRouter, Query, Response, status

from forum_stage.models import Ban, ModerationQueueItem, Report
from forum_stage.schemas.moderation import (
    BanCreate,
    BanResponse,
    QueueItemCreate,
    QueueItemResponse,
    ReportResponse,
    ResolveReportRequest,
    ReviewRequest,
)
from forum_stage.schemas.post import PostFlagRequest, PostResponse
from forum_stage.services.moderation import ModerationService

from ..dependencies import SessionDep, ViewerDep

router = APIRouter(prefix="/moderation", tags=["moderation"])


@router.get("/reports", response_model=list[ReportResponse])
async def list_reports(
    viewer: ViewerDep,
    db: SessionDep,
    status_filter: str | None = Query("pending", alias="status"),
    limit: int = Query(50, ge=1, le=200),
) -> list[Report]:
    """List reports, pending ones by default."""
    return ModerationService(db).list_reports(viewer, status_filter, limit)


@router.post("/reports/{report_id}/resolve", response_model=ReportResponse)
async def resolve_report(
    report_id: int,
    request: ResolveReportRequest,
    viewer: ViewerDep,
    db: SessionDep,
) -> Report:
    """Resolve a pending report by deleting or keeping its target."""
    return ModerationService(db).resolve_report(viewer, report_id, request.action)


@router.get("/queue", response_model=list[QueueItemResponse])
async def list_queue(
    viewer: ViewerDep,
    db: SessionDep,
    status_filter: str | None = Query("pending", alias="status"),
    limit: int = Query(50, ge=1, le=200),
) -> list[ModerationQueueItem]:
    """List moderation queue entries, pending ones by default."""
    return ModerationService(db).list_queue(viewer, status_filter, limit)


@router.post("/queue", response_model=QueueItemResponse, status_code=status.HTTP_201_CREATED)
async def flag_post(
    request: QueueItemCreate,
    viewer: ViewerDep,
    db: SessionDep,
) -> ModerationQueueItem:
    """Hold a published post for review."""
    return ModerationService(db).flag_post(viewer, request.post_id, request.reason)


@router.post("/queue/{queue_id}/review", response_model=QueueItemResponse)
async def review_queue_item(
    queue_id: int,
    request: ReviewRequest,
    viewer: ViewerDep,
    db: SessionDep,
) -> ModerationQueueItem:
    """Approve or reject a queued post."""
    return ModerationService(db).review_queue_item(viewer, queue_id, request.decision)


@router.get("/bans", response_model=list[BanResponse])
async def list_bans(
    viewer: ViewerDep,
    db: SessionDep,
    limit: int = Query(50, ge=1, le=200),
) -> list[Ban]:
    """List the most recent bans."""
    return ModerationService(db).list_bans(viewer, limit)


@router.post("/bans", response_model=BanResponse, status_code=status.HTTP_201_CREATED)
async def create_ban(request: BanCreate, viewer: ViewerDep, db: SessionDep) -> Ban:
    """Ban a user id or an IP address, optionally as a shadowban."""
    return ModerationService(db).set_ban(
        viewer,
        reason=request.reason,
        user_id=request.user_id,
        ip_address=request.ip_address,
        is_shadowban=request.is_shadowban,
        is_permanent=request.is_permanent,
        expires_at=request.expires_at,
        community_id=request.community_id,
    )


@router.delete("/bans/{ban_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def lift_ban(ban_id: int, viewer: ViewerDep, db: SessionDep) -> Response:
    """Lift a ban."""
    ModerationService(db).lift_ban(viewer, ban_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/posts/{post_id}/flags", response_model=PostResponse)
async def toggle_post_flag(
    post_id: int,
    request: PostFlagRequest,
    viewer: ViewerDep,
    db: SessionDep,
) -> PostResponse:
    """Pin, lock or delete a post (or undo it)."""
    post = ModerationService(db).toggle_post_flag(viewer, post_id, request.flag, request.value)
    return PostResponse.for_viewer(post, viewer)
