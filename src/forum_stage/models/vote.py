# src/forum_stage/models/vote.py
"""Models capturing voting interactions on posts and comments."""

from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    SmallInteger,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from forum_stage.db.session import Base
from forum_stage.db.time import utcnow


class Vote(Base):
    """Signed edge from a voter to a content item.

    At most one row exists per (voter, target); retraction deletes the row
    rather than storing a neutral direction.
    """

    __tablename__ = "vote"
    __table_args__ = (
        CheckConstraint("direction IN (1, -1)", name="ck_vote_direction"),
        CheckConstraint("target_kind IN ('post', 'comment')", name="ck_vote_target_kind"),
        UniqueConstraint("voter_id", "target_kind", "target_id", name="uq_vote_voter_target"),
        Index("ix_vote_target", "target_kind", "target_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    voter_id: Mapped[str] = mapped_column(String(64), nullable=False)
    target_kind: Mapped[str] = mapped_column(String(16), nullable=False)
    target_id: Mapped[int] = mapped_column(Integer, nullable=False)

    # 1 = upvote, -1 = downvote.
    direction: Mapped[int] = mapped_column(SmallInteger, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, onupdate=utcnow
    )
