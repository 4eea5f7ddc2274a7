"""Question score and author reputation computation.

The score is recomputed from aggregate state every time, never maintained
incrementally:

    vote_score     = U * UP_MULT + D * DOWN_MULT
    accuracy_score = 0                                   if T == 0
                   = (C/T) * ANSWER + (1 - C/T) * INCORRECT  otherwise
    raw            = BASE + vote_score * VOTE + R * AUTHOR_REP
                     + V * VIEW + accuracy_score
    score          = max(0, raw - log10(age_days + 1) * TIME_DECAY)

Reputation is ``round(clamp(mean(active scores) * 10, 0, 100))``.
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from questionbank.db import transaction
from questionbank.exceptions import NotFoundError
from questionbank.repositories.question import QuestionRepository
from questionbank.repositories.user import UserRepository

SECONDS_PER_DAY = 86400


@dataclass(frozen=True)
class ScoreWeights:
    """Fixed weights of the scoring formula."""

    base: float = 1.0
    vote: float = 1.0
    upvote_multiplier: float = 1.0
    downvote_multiplier: float = -1.5
    author_reputation: float = 0.2
    view: float = 0.001
    answer: float = 0.5
    incorrect: float = -0.2
    time_decay: float = 0.01


SCORE_WEIGHTS = ScoreWeights()


@dataclass(frozen=True)
class ScoreInputs:
    """Aggregate state a question's score is derived from."""

    upvotes: int
    downvotes: int
    author_reputation: float
    total_attempts: int
    correct_attempts: int
    view_count: int
    created_at: datetime


@dataclass
class SweepResult:
    """Outcome of one batch recomputation pass."""

    questions_total: int = 0
    questions_updated: int = 0
    questions_failed: int = 0
    authors_updated: int = 0
    authors_failed: int = 0


def age_in_days(created_at: datetime, now: datetime | None = None) -> float:
    """Return the non-negative age of a timestamp in days.

    Naive timestamps are taken to be UTC.
    """
    now = now or datetime.now(UTC)
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=UTC)
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    return max(0.0, (now - created_at).total_seconds() / SECONDS_PER_DAY)


def calculate_score(
    inputs: ScoreInputs,
    now: datetime | None = None,
    weights: ScoreWeights = SCORE_WEIGHTS,
) -> float:
    """Compute a question's score. Always >= 0."""
    vote_score = (
        inputs.upvotes * weights.upvote_multiplier
        + inputs.downvotes * weights.downvote_multiplier
    )

    accuracy_score = 0.0
    if inputs.total_attempts > 0:
        accuracy = inputs.correct_attempts / inputs.total_attempts
        accuracy_score = accuracy * weights.answer + (1 - accuracy) * weights.incorrect

    raw_score = (
        weights.base
        + vote_score * weights.vote
        + inputs.author_reputation * weights.author_reputation
        + inputs.view_count * weights.view
        + accuracy_score
    )

    decay = math.log10(age_in_days(inputs.created_at, now) + 1) * weights.time_decay
    return max(0.0, raw_score - decay)


def calculate_reputation(scores: Sequence[float]) -> int | None:
    """Compute a 0-100 reputation from active question scores.

    Returns None when there are no scores, meaning "leave unchanged".
    """
    if not scores:
        return None
    average = sum(scores) / len(scores)
    return round(min(100.0, max(0.0, average * 10)))


class ScoringService:
    """Recompute and persist question scores and author reputations."""

    def __init__(self, weights: ScoreWeights = SCORE_WEIGHTS) -> None:
        self.weights = weights

    async def recompute_question_score(
        self,
        session: AsyncSession,
        question_id: int,
    ) -> float:
        """Recompute one question's score and persist it atomically.

        Raises:
            NotFoundError: If the question does not exist.
        """
        # Reads share the unit so a failed read never leaves the session aborted.
        async with transaction(session):
            row = await QuestionRepository.get_score_inputs(session, question_id)
            if row is None:
                raise NotFoundError(resource="Question", resource_id=question_id)

            inputs = ScoreInputs(
                upvotes=row.upvotes or 0,
                downvotes=row.downvotes or 0,
                author_reputation=row.author_reputation or 0,
                total_attempts=row.total_attempts or 0,
                correct_attempts=row.correct_attempts or 0,
                view_count=row.view_count or 0,
                created_at=row.created_at,
            )
            score = calculate_score(inputs, weights=self.weights)
            await QuestionRepository.update_score(session, question_id, score)

        logger.info(
            "Updated question score",
            question_id=question_id,
            score=round(score, 2),
        )
        return score

    async def update_author_reputation(
        self,
        session: AsyncSession,
        author_id: int,
    ) -> int | None:
        """Recompute an author's reputation from their active questions.

        Authors without active questions keep their current reputation and
        None is returned.
        """
        async with transaction(session):
            scores = await QuestionRepository.get_active_scores_by_author(
                session, author_id
            )
            reputation = calculate_reputation(scores)
            if reputation is not None:
                await UserRepository.update_reputation(session, author_id, reputation)

        if reputation is None:
            logger.debug(
                "No active questions, reputation unchanged",
                user_id=author_id,
            )
            return None

        logger.info(
            "Updated user reputation",
            user_id=author_id,
            reputation=reputation,
        )
        return reputation

    async def refresh_after_vote(
        self,
        session: AsyncSession,
        question_id: int,
        author_id: int,
    ) -> None:
        """Bring score and reputation up to date after a committed vote.

        Runs after the vote's own transaction. Failures are logged and left
        for the periodic sweep to correct.
        """
        try:
            await self.recompute_question_score(session, question_id)
        except Exception as exc:
            logger.error(
                "Score recomputation after vote failed",
                question_id=question_id,
                error=f"{type(exc).__name__}: {exc}",
            )

        try:
            await self.update_author_reputation(session, author_id)
        except Exception as exc:
            logger.error(
                "Reputation update after vote failed",
                user_id=author_id,
                error=f"{type(exc).__name__}: {exc}",
            )

    async def recompute_all(
        self,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> SweepResult:
        """Re-score every active question, then refresh their authors.

        Each question and each author is its own unit of work in its own
        session, so an interrupted sweep keeps everything already done.
        A failing item is logged and skipped.
        """
        result = SweepResult()
        logger.info("Starting batch update of question scores")

        async with session_factory() as session:
            question_ids = await QuestionRepository.get_active_ids(session)
        result.questions_total = len(question_ids)

        for question_id in question_ids:
            try:
                async with session_factory() as session:
                    await self.recompute_question_score(session, question_id)
                result.questions_updated += 1
            except Exception as exc:
                result.questions_failed += 1
                logger.error(
                    "Error processing question in sweep",
                    question_id=question_id,
                    error=f"{type(exc).__name__}: {exc}",
                )

        async with session_factory() as session:
            author_ids = await QuestionRepository.get_active_author_ids(session)

        for author_id in author_ids:
            try:
                async with session_factory() as session:
                    await self.update_author_reputation(session, author_id)
                result.authors_updated += 1
            except Exception as exc:
                result.authors_failed += 1
                logger.error(
                    "Error updating reputation in sweep",
                    user_id=author_id,
                    error=f"{type(exc).__name__}: {exc}",
                )

        logger.info(
            "Completed batch update of question scores",
            total=result.questions_total,
            updated=result.questions_updated,
            failed=result.questions_failed,
            authors_updated=result.authors_updated,
        )
        return result
