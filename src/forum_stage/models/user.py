# src/forum_stage/models/user.py
"""SQLAlchemy models for identities and their role grants."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from forum_stage.db.session import Base
from forum_stage.db.time import utcnow

ROLE_ADMIN = "admin"
ROLE_SUPER_ADMIN = "super_admin"
ROLE_GLOBAL_MOD = "global_mod"
ROLE_FORUM_MOD = "forum_mod"
ROLE_UNIVERSITY_MOD = "university_mod"
ROLE_EDITOR = "editor"
ROLE_DEVELOPER = "developer"

ALL_ROLES = frozenset({
    ROLE_ADMIN,
    ROLE_SUPER_ADMIN,
    ROLE_GLOBAL_MOD,
    ROLE_FORUM_MOD,
    ROLE_UNIVERSITY_MOD,
    ROLE_EDITOR,
    ROLE_DEVELOPER,
})

# Roles that carry forum moderation capability.
MODERATOR_ROLES = frozenset({ROLE_ADMIN, ROLE_SUPER_ADMIN, ROLE_GLOBAL_MOD, ROLE_FORUM_MOD})


class User(Base):
    """Identity known to the forum, keyed by the identity provider's user id."""

    __tablename__ = "user_account"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    username: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    display_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    roles: Mapped[list[UserRole]] = relationship(
        "UserRole",
        back_populates="user",
        cascade="all, delete-orphan",
    )

    @property
    def is_moderator(self) -> bool:
        """Return True if any granted role carries moderation capability."""
        return any(grant.role in MODERATOR_ROLES for grant in self.roles)


class UserRole(Base):
    """Role grant for a user; one row per (user, role)."""

    __tablename__ = "user_role"
    __table_args__ = (UniqueConstraint("user_id", "role", name="uq_user_role"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("user_account.id", ondelete="CASCADE"),
        nullable=False,
    )
    role: Mapped[str] = mapped_column(String(32), nullable=False)

    user: Mapped[User] = relationship("User", back_populates="roles")
