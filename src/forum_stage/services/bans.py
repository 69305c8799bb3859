# src/forum_stage/services/bans.py
"""Queries answering "is this subject banned right now"."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import ColumnElement, Select, or_, select
from sqlalchemy.orm import Session

from forum_stage.db.time import utcnow
from forum_stage.models import Ban
from forum_stage.services.errors import AuthorizationError
from forum_stage.services.identity import Viewer


def active_ban_clause(now: datetime | None = None) -> ColumnElement[bool]:
    """SQL predicate matching bans that are in force at ``now``."""
    moment = now or utcnow()
    return or_(
        Ban.is_permanent.is_(True),
        Ban.expires_at.is_(None),
        Ban.expires_at > moment,
    )


def shadowbanned_authors(now: datetime | None = None) -> Select[tuple[str | None]]:
    """Subquery of user ids currently under a shadowban."""
    return select(Ban.user_id).where(
        Ban.is_shadowban.is_(True),
        Ban.user_id.is_not(None),
        active_ban_clause(now),
    )


def is_shadowbanned(db: Session, user_id: str | None, now: datetime | None = None) -> bool:
    """Return True if ``user_id`` holds an active shadowban."""
    if user_id is None:
        return False
    stmt = shadowbanned_authors(now).where(Ban.user_id == user_id).limit(1)
    return db.execute(stmt).first() is not None


def ensure_not_banned(db: Session, viewer: Viewer, now: datetime | None = None) -> None:
    """Raise AuthorizationError if the caller is under an active full ban.

    Shadowbanned callers may keep acting; their output is hidden instead.
    """
    subjects = []
    if viewer.user_id is not None:
        subjects.append(Ban.user_id == viewer.user_id)
    if viewer.ip_address:
        subjects.append(Ban.ip_address == viewer.ip_address)
    if not subjects:
        return

    ban = db.execute(
        select(Ban.id)
        .where(
            Ban.is_shadowban.is_(False),
            or_(*subjects),
            active_ban_clause(now),
        )
        .limit(1)
    ).first()
    if ban is not None:
        raise AuthorizationError("You are banned from participating in the forum")
