# src/forum_stage/services/identity.py
"""Caller identity as seen by the forum services."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Viewer:
    """Opaque capability bundle supplied by the identity provider.

    ``user_id`` is None for anonymous callers. ``guest_id`` is the client's
    guest token, recorded for anonymous reports and posts.
    """

    user_id: str | None = None
    is_moderator: bool = False
    ip_address: str | None = None
    guest_id: str | None = None

    @property
    def is_anonymous(self) -> bool:
        return self.user_id is None

    def sees_hidden_content_of(self, author_id: str | None) -> bool:
        """Return True if hidden items by ``author_id`` stay visible to this viewer."""
        if self.is_moderator:
            return True
        return self.user_id is not None and self.user_id == author_id


ANONYMOUS = Viewer()
