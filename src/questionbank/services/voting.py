"""Vote ledger service implementing toggle voting."""

from dataclasses import dataclass

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from questionbank.auth import Identity
from questionbank.db import transaction
from questionbank.exceptions import DomainValidationError, NotFoundError
from questionbank.models.history import ChangeType
from questionbank.models.vote import VoteType
from questionbank.repositories.history import QuestionHistoryRepository
from questionbank.repositories.question import QuestionRepository
from questionbank.repositories.vote import VoteAction, VoteRepository, VoteTally
from questionbank.services.scoring import ScoringService


@dataclass
class VoteResult:
    """Ledger state for a (question, user) pair after a vote submission."""

    question_id: int
    votes: VoteTally
    user_vote: VoteType | None
    action: VoteAction | None


def describe_vote(action: VoteAction, vote_type: VoteType) -> str:
    """Render the history text for a ledger transition."""
    if action is VoteAction.REMOVED:
        return f"User removed {vote_type}vote"
    if action is VoteAction.CHANGED:
        return f"User changed vote to {vote_type}vote"
    return f"User {vote_type}voted on question"


def parse_vote_type(vote_type: VoteType | str) -> VoteType:
    """Convert a raw vote type or raise DomainValidationError."""
    try:
        return VoteType(vote_type)
    except ValueError:
        raise DomainValidationError(
            'Invalid vote type. Must be "up" or "down"', field="voteType"
        ) from None


class VoteService:
    """Apply vote transitions and trigger score and reputation refresh.

    States per (question, user): none, up, down. Submitting the stored
    type returns to none, the opposite type flips, and any type from none
    creates the vote.
    """

    def __init__(self, scoring_service: ScoringService | None = None) -> None:
        self.scoring_service = scoring_service or ScoringService()

    async def submit_vote(
        self,
        session: AsyncSession,
        question_id: int,
        identity: Identity,
        vote_type: VoteType | str,
    ) -> VoteResult:
        """Toggle the caller's vote on a question.

        The ledger write and its ``vote`` history entry commit together.
        Score and reputation are refreshed afterwards as separate units, so
        a failure there leaves the vote in place and a stale score until
        the next sweep.

        Raises:
            DomainValidationError: Invalid vote type or self-vote.
            NotFoundError: Question absent or in another company.
        """
        vote_type = parse_vote_type(vote_type)

        question = await QuestionRepository.get_by_id_and_company_id(
            session, question_id, identity.company_id
        )
        if question is None:
            raise NotFoundError(resource="Question", resource_id=question_id)
        author_id = question.created_by
        if author_id == identity.id:
            raise DomainValidationError(
                "You cannot vote on your own question", field="voteType"
            )

        action: VoteAction | None
        try:
            async with transaction(session):
                action = await VoteRepository.toggle(
                    session, question_id, identity.id, vote_type
                )
                await QuestionHistoryRepository.append(
                    session,
                    question_id=question_id,
                    changed_by=identity.id,
                    change_type=ChangeType.VOTE,
                    change_details=describe_vote(action, vote_type),
                )
        except IntegrityError:
            # A concurrent request from the same user created the vote first.
            logger.warning(
                "Concurrent duplicate vote discarded",
                question_id=question_id,
                user_id=identity.id,
            )
            action = None
        else:
            logger.info(
                "Vote recorded",
                question_id=question_id,
                user_id=identity.id,
                vote_type=vote_type,
                action=action,
            )
            await self.scoring_service.refresh_after_vote(
                session, question_id, author_id
            )

        return VoteResult(
            question_id=question_id,
            votes=await VoteRepository.get_tally(session, question_id),
            user_vote=await VoteRepository.get_user_vote(
                session, question_id, identity.id
            ),
            action=action,
        )
