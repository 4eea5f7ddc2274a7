"""Repository for question database operations."""

from typing import Any

from sqlalchemy import Row, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from questionbank.models.activity import QuestionAttempt, QuestionView
from questionbank.models.question import Question, QuestionCategory, QuestionStatus
from questionbank.models.user import User
from questionbank.models.vote import Vote, VoteType

SORTABLE_FIELDS = {
    "created_at": Question.created_at,
    "score": Question.score,
    "status": Question.status,
}


class QuestionRepository:
    """Handle question persistence operations."""

    @staticmethod
    async def create(
        session: AsyncSession,
        content: str,
        options: list[str],
        correct_answers: list[int],
        created_by: int,
        company_id: int,
    ) -> Question:
        """Insert a new question awaiting review."""
        question = Question(
            content=content,
            options=options,
            correct_answers=correct_answers,
            created_by=created_by,
            company_id=company_id,
            status=QuestionStatus.PENDING_REVIEW,
        )
        session.add(question)
        await session.flush()
        await session.refresh(question)
        return question

    @staticmethod
    async def get_by_id_and_company_id(
        session: AsyncSession,
        question_id: int,
        company_id: int,
    ) -> Question | None:
        """Retrieve a question by id scoped to a company."""
        result = await session.execute(
            select(Question).where(
                Question.id == question_id,
                Question.company_id == company_id,
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def get_with_author_name(
        session: AsyncSession,
        question_id: int,
        company_id: int,
    ) -> tuple[Question, str | None] | None:
        """Retrieve a company-scoped question together with its author's name."""
        result = await session.execute(
            select(Question, User.name)
            .outerjoin(User, User.id == Question.created_by)
            .where(
                Question.id == question_id,
                Question.company_id == company_id,
            )
        )
        row = result.one_or_none()
        if row is None:
            return None
        return row[0], row[1]

    @staticmethod
    async def update_fields(
        session: AsyncSession,
        question: Question,
        values: dict[str, Any],
    ) -> Question:
        """Apply changed column values to a loaded question."""
        for field, value in values.items():
            setattr(question, field, value)
        await session.flush()
        await session.refresh(question)
        return question

    @staticmethod
    async def update_status(
        session: AsyncSession,
        question_id: int,
        status: QuestionStatus,
    ) -> None:
        """Transition a question to a new lifecycle status."""
        await session.execute(
            update(Question).where(Question.id == question_id).values(status=status)
        )
        await session.flush()

    @staticmethod
    async def delete(session: AsyncSession, question_id: int) -> None:
        """Delete a question row."""
        await session.execute(delete(Question).where(Question.id == question_id))
        await session.flush()

    @staticmethod
    async def get_score_inputs(
        session: AsyncSession,
        question_id: int,
    ) -> Row | None:
        """Aggregate the current vote, attempt, and view counts for a question."""
        upvotes = (
            select(func.count(Vote.id))
            .where(Vote.question_id == Question.id, Vote.vote_type == VoteType.UP)
            .scalar_subquery()
        )
        downvotes = (
            select(func.count(Vote.id))
            .where(Vote.question_id == Question.id, Vote.vote_type == VoteType.DOWN)
            .scalar_subquery()
        )
        total_attempts = (
            select(func.count(QuestionAttempt.id))
            .where(QuestionAttempt.question_id == Question.id)
            .scalar_subquery()
        )
        correct_attempts = (
            select(func.count(QuestionAttempt.id))
            .where(
                QuestionAttempt.question_id == Question.id,
                QuestionAttempt.is_correct.is_(True),
            )
            .scalar_subquery()
        )
        view_count = (
            select(func.count(QuestionView.id))
            .where(QuestionView.question_id == Question.id)
            .scalar_subquery()
        )
        result = await session.execute(
            select(
                Question.created_at.label("created_at"),
                func.coalesce(User.reputation, 0).label("author_reputation"),
                upvotes.label("upvotes"),
                downvotes.label("downvotes"),
                total_attempts.label("total_attempts"),
                correct_attempts.label("correct_attempts"),
                view_count.label("view_count"),
            )
            .outerjoin(User, User.id == Question.created_by)
            .where(Question.id == question_id)
        )
        return result.one_or_none()

    @staticmethod
    async def update_score(
        session: AsyncSession,
        question_id: int,
        score: float,
    ) -> None:
        """Persist a recomputed score without touching ``updated_at``."""
        await session.execute(
            update(Question)
            .where(Question.id == question_id)
            .values(score=score, updated_at=Question.updated_at)
        )
        await session.flush()

    @staticmethod
    async def get_active_scores_by_author(
        session: AsyncSession,
        author_id: int,
    ) -> list[float]:
        """Return the scores of an author's active questions."""
        result = await session.execute(
            select(Question.score).where(
                Question.created_by == author_id,
                Question.status == QuestionStatus.ACTIVE,
            )
        )
        return [score or 0.0 for score in result.scalars().all()]

    @staticmethod
    async def get_active_ids(session: AsyncSession) -> list[int]:
        """Return ids of all active questions across companies."""
        result = await session.execute(
            select(Question.id)
            .where(Question.status == QuestionStatus.ACTIVE)
            .order_by(Question.id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_active_author_ids(session: AsyncSession) -> list[int]:
        """Return ids of every user who authored at least one active question."""
        result = await session.execute(
            select(Question.created_by)
            .where(Question.status == QuestionStatus.ACTIVE)
            .distinct()
            .order_by(Question.created_by)
        )
        return list(result.scalars().all())

    @staticmethod
    async def list_page(
        session: AsyncSession,
        company_id: int,
        offset: int,
        limit: int,
        status: QuestionStatus | None = None,
        category_id: int | None = None,
        search: str | None = None,
        sort_by: str = "created_at",
        sort_order: str = "DESC",
    ) -> tuple[list[tuple[Question, str | None]], int]:
        """Return one page of filtered questions with author names, plus the total."""
        conditions = [Question.company_id == company_id]
        if status is not None:
            conditions.append(Question.status == status)
        if category_id is not None:
            conditions.append(
                select(QuestionCategory.id)
                .where(
                    QuestionCategory.question_id == Question.id,
                    QuestionCategory.category_id == category_id,
                )
                .exists()
            )
        if search:
            conditions.append(
                func.lower(Question.content).contains(search.lower(), autoescape=True)
            )

        sort_column = SORTABLE_FIELDS[sort_by]
        if sort_order == "ASC":
            ordering = (sort_column.asc(), Question.id.asc())
        else:
            ordering = (sort_column.desc(), Question.id.desc())

        total = await session.scalar(
            select(func.count(Question.id)).where(*conditions)
        )
        result = await session.execute(
            select(Question, User.name)
            .outerjoin(User, User.id == Question.created_by)
            .where(*conditions)
            .order_by(*ordering)
            .offset(offset)
            .limit(limit)
        )
        rows = [(row[0], row[1]) for row in result.all()]
        return rows, total or 0
