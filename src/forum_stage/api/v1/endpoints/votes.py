# src/forum_stage/api/v1/endpoints/votes.py
"""Vote-related endpoints for the forum API."""

from fastapi import APIRouter

from forum_stage.schemas.vote import VoteCreate, VoteResponse
from forum_stage.services.scoring import model_for_kind
from forum_stage.services.votes import VoteLedger

from ..dependencies import SessionDep, ViewerDep

router = APIRouter(prefix="/votes", tags=["votes"])


@router.post("/", response_model=VoteResponse)
async def cast_vote(vote_data: VoteCreate, viewer: ViewerDep, db: SessionDep) -> VoteResponse:
    """Cast, flip or retract a vote.

    Repeating the current direction retracts the vote; the opposite
    direction flips it.
    """
    outcome = VoteLedger(db).cast_vote(
        viewer,
        vote_data.target_id,
        vote_data.target_kind,
        vote_data.direction,
    )
    return VoteResponse(
        target_kind=outcome.target_kind,
        target_id=outcome.target_id,
        direction=outcome.direction,
        delta=outcome.delta,
        upvotes=outcome.upvotes,
        downvotes=outcome.downvotes,
        net_score=outcome.net_score,
    )


@router.get("/{target_kind}/{target_id}/my-vote")
async def get_my_vote(
    target_kind: str,
    target_id: int,
    viewer: ViewerDep,
    db: SessionDep,
) -> dict[str, int]:
    """Get the caller's current vote on a post or comment (0 when none)."""
    model_for_kind(target_kind)
    return {"direction": VoteLedger(db).get_vote(viewer, target_kind, target_id)}
