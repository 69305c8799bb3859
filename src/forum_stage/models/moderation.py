# src/forum_stage/models/moderation.py
"""Models tracking reports, the moderation queue and bans."""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from forum_stage.db.session import Base
from forum_stage.db.time import utcnow

REPORT_STATUS_PENDING = "pending"
REPORT_STATUS_RESOLVED = "resolved"

REPORT_RESOLUTION_DELETED = "deleted"
REPORT_RESOLUTION_KEPT = "kept"

REPORT_REASONS = (
    "spam",
    "harassment",
    "inappropriate",
    "misinformation",
    "violence",
    "other",
)

QUEUE_STATUS_PENDING = "pending"
QUEUE_STATUS_APPROVED = "approved"
QUEUE_STATUS_REJECTED = "rejected"

# Non-moderator sources that may place a post in the queue.
QUEUE_SOURCE_POLICY = "policy"
QUEUE_SOURCE_AUTO = "auto"


class Report(Base):
    """User-submitted report against a published post or comment.

    pending -> resolved is the only transition; resolved is terminal.
    """

    __tablename__ = "report"
    __table_args__ = (
        Index("ix_report_status", "status"),
        Index("ix_report_target", "target_kind", "target_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    reporter_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    # Guest token for anonymous reporters.
    reporter_identifier: Mapped[str | None] = mapped_column(String(64), nullable=True)
    target_kind: Mapped[str] = mapped_column(String(16), nullable=False)
    target_id: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(String(32), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=REPORT_STATUS_PENDING
    )
    resolution: Mapped[str | None] = mapped_column(String(16), nullable=True)
    reviewed_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class ModerationQueueItem(Base):
    """Review lane entry gating a post's visibility.

    pending -> approved | rejected; both outcomes are terminal.
    """

    __tablename__ = "moderation_queue"
    __table_args__ = (Index("ix_moderation_queue_status", "status"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("post.id", ondelete="CASCADE"),
        nullable=False,
    )
    flagged_by: Mapped[str] = mapped_column(String(64), nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=QUEUE_STATUS_PENDING
    )
    reviewed_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class Ban(Base):
    """Standing ban record against a user id or an IP address."""

    __tablename__ = "ban"
    __table_args__ = (
        CheckConstraint(
            "(user_id IS NOT NULL) <> (ip_address IS NOT NULL)",
            name="ck_ban_single_subject",
        ),
        Index("ix_ban_user_id", "user_id"),
        Index("ix_ban_ip_address", "ip_address"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    community_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("community.id"),
        nullable=True,
    )
    is_shadowban: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_permanent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    banned_by: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
