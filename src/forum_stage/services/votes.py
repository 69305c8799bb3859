# src/forum_stage/services/votes.py
"""Vote ledger: one signed vote per (voter, target)."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from forum_stage.models import CONTENT_KINDS, Vote
from forum_stage.services.bans import ensure_not_banned
from forum_stage.services.errors import (
    AuthenticationRequiredError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from forum_stage.services.identity import Viewer
from forum_stage.services.scoring import model_for_kind, recompute_counters

logger = logging.getLogger(__name__)

VOTE_DIRECTIONS = (1, -1)


@dataclass(frozen=True, slots=True)
class VoteOutcome:
    """Result of a ledger mutation.

    ``direction`` is the caller's vote after the call (0 once retracted) and
    ``delta`` is the change applied to the target's net score.
    """

    target_kind: str
    target_id: int
    direction: int
    delta: int
    upvotes: int
    downvotes: int

    @property
    def net_score(self) -> int:
        return self.upvotes - self.downvotes


def _validate(viewer: Viewer, target_kind: str, direction: int) -> None:
    if viewer.is_anonymous:
        raise AuthenticationRequiredError("Anonymous users cannot vote")
    if target_kind not in CONTENT_KINDS:
        raise ValidationError(f"Unknown target kind: {target_kind!r}")
    if direction not in VOTE_DIRECTIONS:
        raise ValidationError("Vote direction must be 1 or -1")


class VoteLedger:
    """Applies vote, flip and retraction as one atomic unit per target."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def cast_vote(
        self,
        viewer: Viewer,
        target_id: int,
        target_kind: str,
        direction: int,
    ) -> VoteOutcome:
        """Cast, flip or retract the caller's vote on a target.

        Raises:
            AuthenticationRequiredError: The caller is anonymous.
            ValidationError: Unknown kind or direction.
            NotFoundError: The target is missing or soft-deleted.
            AuthorizationError: The caller is under an active full ban.
            ConflictError: A concurrent first vote by the same voter won the race.
        """
        _validate(viewer, target_kind, direction)
        db = self.db
        model = model_for_kind(target_kind)

        try:
            # Lock the target row so concurrent votes on it serialize.
            target = db.execute(
                select(model)
                .where(model.id == target_id, model.deleted.is_(False))
                .with_for_update()
            ).scalar_one_or_none()
            if target is None:
                raise NotFoundError(f"{target_kind.capitalize()} not found")
            ensure_not_banned(db, viewer)

            existing = db.execute(
                select(Vote).where(
                    Vote.voter_id == viewer.user_id,
                    Vote.target_kind == target_kind,
                    Vote.target_id == target_id,
                )
            ).scalar_one_or_none()

            if existing is None:
                db.add(
                    Vote(
                        voter_id=viewer.user_id,
                        target_kind=target_kind,
                        target_id=target_id,
                        direction=direction,
                    )
                )
                delta, current = direction, direction
            elif existing.direction == direction:
                db.delete(existing)
                delta, current = -direction, 0
            else:
                existing.direction = direction
                delta, current = 2 * direction, direction

            recompute_counters(db, target_kind, target_id, item=target)
            outcome = VoteOutcome(
                target_kind=target_kind,
                target_id=target_id,
                direction=current,
                delta=delta,
                upvotes=target.upvotes,
                downvotes=target.downvotes,
            )
            db.commit()
        except IntegrityError as err:
            db.rollback()
            logger.warning(
                "Vote race on %s %s by %s", target_kind, target_id, viewer.user_id
            )
            raise ConflictError("Vote was modified concurrently; refresh and retry") from err
        except Exception:
            db.rollback()
            raise

        logger.info(
            "Vote on %s %s by %s: direction=%d delta=%d",
            target_kind,
            target_id,
            viewer.user_id,
            outcome.direction,
            outcome.delta,
        )
        return outcome

    def get_vote(self, viewer: Viewer, target_kind: str, target_id: int) -> int:
        """Return the caller's current direction on a target (0 when none)."""
        if viewer.is_anonymous:
            return 0
        direction = self.db.execute(
            select(Vote.direction).where(
                Vote.voter_id == viewer.user_id,
                Vote.target_kind == target_kind,
                Vote.target_id == target_id,
            )
        ).scalar_one_or_none()
        return direction or 0
