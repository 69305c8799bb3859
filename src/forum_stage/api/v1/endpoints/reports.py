# src/forum_stage/api/v1/endpoints/reports.py
"""Report filing for the forum API."""

from fastapi import APIRouter, status

from forum_stage.models import Report
from forum_stage.schemas.moderation import ReportCreate, ReportResponse
from forum_stage.services.moderation import ModerationService

from ..dependencies import SessionDep, ViewerDep

router = APIRouter(prefix="/reports", tags=["reports"])


@router.post("/", response_model=ReportResponse, status_code=status.HTTP_201_CREATED)
async def file_report(report_data: ReportCreate, viewer: ViewerDep, db: SessionDep) -> Report:
    """Report a post or comment; anonymous callers may report too."""
    return ModerationService(db).report(
        viewer,
        report_data.target_kind,
        report_data.target_id,
        report_data.reason,
        report_data.description,
    )
