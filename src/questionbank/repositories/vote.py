"""Repository for the question vote ledger."""

from dataclasses import dataclass
from enum import StrEnum

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from questionbank.models.vote import Vote, VoteType


class VoteAction(StrEnum):
    """Transition applied to a (question, user) ledger entry."""

    ADDED = "added"
    REMOVED = "removed"
    CHANGED = "changed"


@dataclass
class VoteTally:
    """Up and down vote counts for a question."""

    up: int = 0
    down: int = 0


class VoteRepository:
    """Handle vote ledger persistence operations."""

    @staticmethod
    async def toggle(
        session: AsyncSession,
        question_id: int,
        user_id: int,
        vote_type: VoteType,
    ) -> VoteAction:
        """Apply one toggle transition keyed on the (question, user) constraint.

        Same type as the stored vote removes it, the opposite type flips it
        in place, and no stored vote inserts one. A concurrent insert for the
        same pair surfaces as ``IntegrityError`` from the final flush.
        """
        removed = await session.execute(
            delete(Vote).where(
                Vote.question_id == question_id,
                Vote.user_id == user_id,
                Vote.vote_type == vote_type,
            )
        )
        if removed.rowcount:
            return VoteAction.REMOVED

        flipped = await session.execute(
            update(Vote)
            .where(
                Vote.question_id == question_id,
                Vote.user_id == user_id,
                Vote.vote_type != vote_type,
            )
            .values(vote_type=vote_type, created_at=func.now())
            .execution_options(synchronize_session=False)
        )
        if flipped.rowcount:
            return VoteAction.CHANGED

        session.add(Vote(question_id=question_id, user_id=user_id, vote_type=vote_type))
        await session.flush()
        return VoteAction.ADDED

    @staticmethod
    async def get_user_vote(
        session: AsyncSession,
        question_id: int,
        user_id: int,
    ) -> VoteType | None:
        """Return the user's current vote on a question, if any."""
        result = await session.execute(
            select(Vote.vote_type).where(
                Vote.question_id == question_id,
                Vote.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def get_user_votes(
        session: AsyncSession,
        question_ids: list[int],
        user_id: int,
    ) -> dict[int, VoteType]:
        """Map question ids to the user's vote on each voted question."""
        if not question_ids:
            return {}
        result = await session.execute(
            select(Vote.question_id, Vote.vote_type).where(
                Vote.question_id.in_(question_ids),
                Vote.user_id == user_id,
            )
        )
        return {question_id: vote_type for question_id, vote_type in result.all()}

    @staticmethod
    async def get_tallies(
        session: AsyncSession,
        question_ids: list[int],
    ) -> dict[int, VoteTally]:
        """Count up and down votes for each of the given questions."""
        if not question_ids:
            return {}
        result = await session.execute(
            select(
                Vote.question_id,
                func.sum(case((Vote.vote_type == VoteType.UP, 1), else_=0)),
                func.sum(case((Vote.vote_type == VoteType.DOWN, 1), else_=0)),
            )
            .where(Vote.question_id.in_(question_ids))
            .group_by(Vote.question_id)
        )
        tallies = {question_id: VoteTally() for question_id in question_ids}
        for question_id, up, down in result.all():
            tallies[question_id] = VoteTally(up=int(up or 0), down=int(down or 0))
        return tallies

    @staticmethod
    async def get_tally(session: AsyncSession, question_id: int) -> VoteTally:
        """Count up and down votes for one question."""
        tallies = await VoteRepository.get_tallies(session, [question_id])
        return tallies[question_id]

    @staticmethod
    async def delete_for_question(session: AsyncSession, question_id: int) -> None:
        """Remove every vote cast on a question."""
        await session.execute(delete(Vote).where(Vote.question_id == question_id))
        await session.flush()
