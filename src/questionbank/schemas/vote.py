"""Pydantic schemas for vote endpoints."""

from pydantic import Field

from questionbank.models.vote import VoteType
from questionbank.schemas.common import CamelModel
from questionbank.schemas.question import VoteTallyResponse


class VoteRequest(CamelModel):
    """Request model for submitting a vote."""

    vote_type: VoteType = Field(..., description='Either "up" or "down"')


class VoteResponse(CamelModel):
    """Response model for the ledger state after a vote."""

    votes: VoteTallyResponse
    user_vote: VoteType | None = Field(
        None, description="The caller's vote after the toggle"
    )
