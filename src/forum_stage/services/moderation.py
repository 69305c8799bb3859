# src/forum_stage/services/moderation.py
"""Moderation pipeline: reports, the review queue, bans and post flags."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Final

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from forum_stage.core.settings import settings
from forum_stage.db.time import utcnow
from forum_stage.models import (
    CONTENT_KINDS,
    KIND_COMMENT,
    Ban,
    Comment,
    ModerationQueueItem,
    Post,
    Report,
)
from forum_stage.models.moderation import (
    QUEUE_STATUS_APPROVED,
    QUEUE_STATUS_PENDING,
    QUEUE_STATUS_REJECTED,
    REPORT_REASONS,
    REPORT_RESOLUTION_DELETED,
    REPORT_RESOLUTION_KEPT,
    REPORT_STATUS_PENDING,
    REPORT_STATUS_RESOLVED,
)
from forum_stage.services.bans import active_ban_clause
from forum_stage.services.errors import (
    AuthenticationRequiredError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from forum_stage.services.identity import Viewer
from forum_stage.services.scoring import (
    model_for_kind,
    recompute_comment_count,
    recompute_post_count,
)

logger = logging.getLogger(__name__)

REPORT_ACTION_DELETE: Final = "delete"
REPORT_ACTION_KEEP: Final = "keep"
REPORT_ACTIONS: Final = {
    REPORT_ACTION_DELETE: REPORT_RESOLUTION_DELETED,
    REPORT_ACTION_KEEP: REPORT_RESOLUTION_KEPT,
}

QUEUE_DECISIONS: Final = {
    "approve": QUEUE_STATUS_APPROVED,
    "reject": QUEUE_STATUS_REJECTED,
}

POST_FLAGS: Final = {
    "pin": "pinned",
    "lock": "locked",
    "delete": "deleted",
}


def require_moderator(viewer: Viewer) -> str:
    """Return the moderator's user id or raise AuthorizationError."""
    user_id = viewer.user_id
    if user_id is None:
        raise AuthenticationRequiredError("Moderator sign-in required")
    if not viewer.is_moderator:
        raise AuthorizationError("Moderator privileges required")
    return user_id


class ModerationService:
    """Service handling moderation logic and state transitions.

    Every state-machine transition is a compare-and-swap on ``status``; a
    call against a row that already left ``pending`` changes nothing and
    raises ConflictError.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    # --- Reports ------------------------------------------------------------------
    def report(
        self,
        viewer: Viewer,
        target_kind: str,
        target_id: int,
        reason: str,
        description: str | None = None,
    ) -> Report:
        """File a report against a post or comment; open to anonymous callers."""
        if target_kind not in CONTENT_KINDS:
            raise ValidationError(f"Unknown target kind: {target_kind!r}")
        if reason not in REPORT_REASONS:
            raise ValidationError(f"Unknown report reason: {reason!r}")

        if self.db.get(model_for_kind(target_kind), target_id) is None:
            raise NotFoundError(f"{target_kind.capitalize()} not found")

        report = Report(
            reporter_id=viewer.user_id,
            reporter_identifier=None if viewer.user_id else viewer.guest_id,
            target_kind=target_kind,
            target_id=target_id,
            reason=reason,
            description=description,
            status=REPORT_STATUS_PENDING,
        )
        self.db.add(report)
        self.db.commit()
        self.db.refresh(report)
        logger.info("Report %s filed against %s %s", report.id, target_kind, target_id)
        return report

    def list_reports(
        self,
        viewer: Viewer,
        status: str | None = REPORT_STATUS_PENDING,
        limit: int = 50,
    ) -> list[Report]:
        """Return reports newest first, optionally filtered by status."""
        require_moderator(viewer)
        stmt = select(Report)
        if status is not None:
            stmt = stmt.where(Report.status == status)
        stmt = stmt.order_by(Report.created_at.desc(), Report.id.desc()).limit(limit)
        return list(self.db.execute(stmt).scalars())

    def resolve_report(self, viewer: Viewer, report_id: int, action: str) -> Report:
        """Resolve a pending report, soft-deleting the target for ``delete``.

        The status change and the soft delete commit together.
        """
        reviewer_id = require_moderator(viewer)
        resolution = REPORT_ACTIONS.get(action)
        if resolution is None:
            raise ValidationError("Report action must be 'delete' or 'keep'")

        db = self.db
        try:
            swapped = db.execute(
                update(Report)
                .where(Report.id == report_id, Report.status == REPORT_STATUS_PENDING)
                .values(
                    status=REPORT_STATUS_RESOLVED,
                    resolution=resolution,
                    reviewed_by=reviewer_id,
                    reviewed_at=utcnow(),
                )
            ).rowcount
            if swapped != 1:
                self._raise_transition_failure(Report, report_id, "Report already resolved")

            if action == REPORT_ACTION_DELETE:
                report = self._get_or_404(Report, report_id)
                self._soft_delete(report.target_kind, report.target_id)
            db.commit()
        except Exception:
            db.rollback()
            raise

        report = self._get_or_404(Report, report_id)
        logger.info("Report %s resolved by %s (%s)", report_id, reviewer_id, resolution)
        return report

    # --- Moderation queue ---------------------------------------------------------
    def enqueue_post(
        self,
        post_id: int,
        flagged_by: str,
        reason: str | None = None,
        *,
        commit: bool = True,
    ) -> ModerationQueueItem:
        """Hold a post for review; it stays hidden from the public until approved."""
        post = self.db.get(Post, post_id)
        if post is None:
            raise NotFoundError("Post not found")
        post.approved = False
        item = ModerationQueueItem(
            post_id=post_id,
            flagged_by=flagged_by,
            reason=reason,
            status=QUEUE_STATUS_PENDING,
        )
        self.db.add(item)
        if commit:
            self.db.commit()
            self.db.refresh(item)
        else:
            self.db.flush()
        logger.info("Post %s queued for review by %s", post_id, flagged_by)
        return item

    def flag_post(self, viewer: Viewer, post_id: int, reason: str | None) -> ModerationQueueItem:
        """Moderator entry point for placing a published post in the queue."""
        moderator_id = require_moderator(viewer)
        pending = self.db.execute(
            select(ModerationQueueItem.id).where(
                ModerationQueueItem.post_id == post_id,
                ModerationQueueItem.status == QUEUE_STATUS_PENDING,
            )
        ).first()
        if pending is not None:
            raise ConflictError("Post is already awaiting review")
        return self.enqueue_post(post_id, moderator_id, reason)

    def list_queue(
        self,
        viewer: Viewer,
        status: str | None = QUEUE_STATUS_PENDING,
        limit: int = 50,
    ) -> list[ModerationQueueItem]:
        """Return queue entries newest first, optionally filtered by status."""
        require_moderator(viewer)
        stmt = select(ModerationQueueItem)
        if status is not None:
            stmt = stmt.where(ModerationQueueItem.status == status)
        stmt = stmt.order_by(
            ModerationQueueItem.created_at.desc(), ModerationQueueItem.id.desc()
        ).limit(limit)
        return list(self.db.execute(stmt).scalars())

    def review_queue_item(
        self,
        viewer: Viewer,
        queue_id: int,
        decision: str,
    ) -> ModerationQueueItem:
        """Approve (publish) or reject (soft-delete) a queued post."""
        reviewer_id = require_moderator(viewer)
        new_status = QUEUE_DECISIONS.get(decision)
        if new_status is None:
            raise ValidationError("Queue decision must be 'approve' or 'reject'")

        db = self.db
        try:
            swapped = db.execute(
                update(ModerationQueueItem)
                .where(
                    ModerationQueueItem.id == queue_id,
                    ModerationQueueItem.status == QUEUE_STATUS_PENDING,
                )
                .values(status=new_status, reviewed_by=reviewer_id, reviewed_at=utcnow())
            ).rowcount
            if swapped != 1:
                self._raise_transition_failure(
                    ModerationQueueItem, queue_id, "Queue item already reviewed"
                )

            item = self._get_or_404(ModerationQueueItem, queue_id)
            post = db.get(Post, item.post_id)
            if post is not None:
                if new_status == QUEUE_STATUS_APPROVED:
                    post.approved = True
                else:
                    post.deleted = True
                    recompute_post_count(db, post.community_id)
            db.commit()
        except Exception:
            db.rollback()
            raise

        item = self._get_or_404(ModerationQueueItem, queue_id)
        logger.info("Queue item %s %s by %s", queue_id, new_status, reviewer_id)
        return item

    # --- Bans ---------------------------------------------------------------------
    def set_ban(
        self,
        viewer: Viewer,
        *,
        reason: str,
        user_id: str | None = None,
        ip_address: str | None = None,
        is_shadowban: bool = False,
        is_permanent: bool = False,
        expires_at: datetime | None = None,
        community_id: int | None = None,
    ) -> Ban:
        """Create a standing ban against a user id or an IP address.

        Non-permanent bans without an explicit expiry last
        ``BAN_DEFAULT_DURATION_DAYS``. A shadowban also flags the subject's
        existing content as shadowbanned.
        """
        moderator_id = require_moderator(viewer)
        if (user_id is None) == (ip_address is None):
            raise ValidationError("A ban needs exactly one of user_id or ip_address")
        if not reason or not reason.strip():
            raise ValidationError("A ban needs a reason")
        if user_id is not None and user_id == moderator_id:
            raise ValidationError("Moderators cannot ban themselves")

        if is_permanent:
            expires_at = None
        elif expires_at is None:
            expires_at = utcnow() + timedelta(days=settings.ban_default_duration_days)

        ban = Ban(
            user_id=user_id,
            ip_address=ip_address,
            community_id=community_id,
            is_shadowban=is_shadowban,
            is_permanent=is_permanent,
            expires_at=expires_at,
            reason=reason.strip(),
            banned_by=moderator_id,
        )
        db = self.db
        try:
            db.add(ban)
            if is_shadowban and user_id is not None:
                self._set_content_shadowban(user_id, True)
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(ban)
        logger.info(
            "Ban %s created by %s (subject=%s shadow=%s permanent=%s)",
            ban.id,
            moderator_id,
            user_id or ip_address,
            is_shadowban,
            is_permanent,
        )
        return ban

    def list_bans(self, viewer: Viewer, limit: int = 50) -> list[Ban]:
        """Return the most recent bans."""
        require_moderator(viewer)
        stmt = select(Ban).order_by(Ban.created_at.desc(), Ban.id.desc()).limit(limit)
        return list(self.db.execute(stmt).scalars())

    def lift_ban(self, viewer: Viewer, ban_id: int) -> None:
        """Remove a ban record, clearing content flags once no shadowban remains."""
        require_moderator(viewer)
        db = self.db
        ban = db.get(Ban, ban_id)
        if ban is None:
            raise NotFoundError("Ban not found")
        try:
            user_id = ban.user_id
            was_shadowban = ban.is_shadowban
            db.delete(ban)
            db.flush()
            if was_shadowban and user_id is not None:
                still_shadowbanned = db.execute(
                    select(Ban.id)
                    .where(
                        Ban.user_id == user_id,
                        Ban.is_shadowban.is_(True),
                        active_ban_clause(),
                    )
                    .limit(1)
                ).first()
                if still_shadowbanned is None:
                    self._set_content_shadowban(user_id, False)
            db.commit()
        except Exception:
            db.rollback()
            raise
        logger.info("Ban %s lifted", ban_id)

    # --- Post flags ---------------------------------------------------------------
    def toggle_post_flag(
        self,
        viewer: Viewer,
        post_id: int,
        flag: str,
        value: bool | None = None,
    ) -> Post:
        """Flip ``pin``/``lock``/``delete`` on a post, or set it to ``value``."""
        require_moderator(viewer)
        attribute = POST_FLAGS.get(flag)
        if attribute is None:
            raise ValidationError(f"Unknown post flag {flag!r}; expected pin, lock or delete")

        db = self.db
        post = db.get(Post, post_id)
        if post is None:
            raise NotFoundError("Post not found")
        new_value = (not getattr(post, attribute)) if value is None else value
        try:
            setattr(post, attribute, new_value)
            if attribute == "deleted":
                recompute_post_count(db, post.community_id)
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(post)
        logger.info("Post %s %s=%s by %s", post_id, attribute, new_value, viewer.user_id)
        return post

    # --- Helpers ------------------------------------------------------------------
    def _get_or_404(self, model: Any, row_id: int) -> Any:
        row = self.db.get(model, row_id)
        if row is None:
            raise NotFoundError(f"{model.__name__} not found")
        return row

    def _raise_transition_failure(self, model: Any, row_id: int, message: str) -> None:
        if self.db.get(model, row_id) is None:
            raise NotFoundError(f"{model.__name__} not found")
        logger.warning("Rejected transition on %s %s: %s", model.__name__, row_id, message)
        raise ConflictError(message)

    def _soft_delete(self, target_kind: str, target_id: int) -> None:
        target = self.db.get(model_for_kind(target_kind), target_id)
        if target is None:
            return
        target.deleted = True
        if target_kind == KIND_COMMENT:
            recompute_comment_count(self.db, target.post_id)
        else:
            recompute_post_count(self.db, target.community_id)

    def _set_content_shadowban(self, user_id: str, flagged: bool) -> None:
        for model in (Post, Comment):
            self.db.execute(
                update(model)
                .where(model.author_id == user_id)
                .values(shadowbanned=flagged)
            )
