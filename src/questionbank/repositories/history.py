"""Repository for the question history log."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from questionbank.models.history import ChangeType, QuestionHistory
from questionbank.models.user import User


class QuestionHistoryRepository:
    """Append and read question lifecycle events."""

    @staticmethod
    async def append(
        session: AsyncSession,
        question_id: int,
        changed_by: int,
        change_type: ChangeType,
        change_details: str,
    ) -> QuestionHistory:
        """Record a lifecycle event for a question."""
        entry = QuestionHistory(
            question_id=question_id,
            changed_by=changed_by,
            change_type=change_type,
            change_details=change_details,
        )
        session.add(entry)
        await session.flush()
        await session.refresh(entry)
        return entry

    @staticmethod
    async def list_for_question(
        session: AsyncSession,
        question_id: int,
    ) -> list[tuple[QuestionHistory, str | None]]:
        """Return a question's events, newest first, with the actor's name."""
        result = await session.execute(
            select(QuestionHistory, User.name)
            .outerjoin(User, User.id == QuestionHistory.changed_by)
            .where(QuestionHistory.question_id == question_id)
            .order_by(QuestionHistory.created_at.desc(), QuestionHistory.id.desc())
        )
        return [(row[0], row[1]) for row in result.all()]
