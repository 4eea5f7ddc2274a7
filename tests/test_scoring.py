"""Tests for question scoring and author reputation."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select, update
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from questionbank.exceptions import NotFoundError
from questionbank.models import (
    Question,
    QuestionAttempt,
    QuestionStatus,
    QuestionView,
    User,
    Vote,
    VoteType,
)
from questionbank.repositories.question import QuestionRepository
from questionbank.repositories.user import UserRepository
from questionbank.services.scoring import (
    ScoreInputs,
    ScoringService,
    age_in_days,
    calculate_reputation,
    calculate_score,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def make_inputs(**overrides) -> ScoreInputs:
    """Build score inputs for a fresh question with no activity."""
    values = {
        "upvotes": 0,
        "downvotes": 0,
        "author_reputation": 0,
        "total_attempts": 0,
        "correct_attempts": 0,
        "view_count": 0,
        "created_at": NOW,
    }
    values.update(overrides)
    return ScoreInputs(**values)


async def read_score(session: AsyncSession, question_id: int) -> float:
    return await session.scalar(select(Question.score).where(Question.id == question_id))


class TestCalculateScore:
    """Tests for the pure scoring formula."""

    def test_votes_and_reputation(self) -> None:
        """Verify vote and author reputation weights."""
        inputs = make_inputs(upvotes=3, downvotes=1, author_reputation=50)

        assert calculate_score(inputs, now=NOW) == pytest.approx(12.5)

    def test_fresh_question_scores_base(self) -> None:
        """Verify a question with no activity scores the base weight."""
        assert calculate_score(make_inputs(), now=NOW) == pytest.approx(1.0)

    def test_time_decay(self) -> None:
        """Verify a nine-day-old question loses log10(10) * 0.01."""
        inputs = make_inputs(created_at=NOW - timedelta(days=9))

        assert calculate_score(inputs, now=NOW) == pytest.approx(0.99)

    def test_score_clamped_at_zero(self) -> None:
        """Verify heavy downvoting never produces a negative score."""
        inputs = make_inputs(downvotes=2)

        assert calculate_score(inputs, now=NOW) == 0.0

    def test_accuracy_term(self) -> None:
        """Verify correct and incorrect attempt weights."""
        inputs = make_inputs(total_attempts=4, correct_attempts=3)

        assert calculate_score(inputs, now=NOW) == pytest.approx(1.325)

    def test_accuracy_ignored_without_attempts(self) -> None:
        """Verify zero attempts contributes nothing."""
        inputs = make_inputs(total_attempts=0, correct_attempts=0)

        assert calculate_score(inputs, now=NOW) == pytest.approx(1.0)

    def test_views(self) -> None:
        """Verify each view adds a small weight."""
        inputs = make_inputs(view_count=1000)

        assert calculate_score(inputs, now=NOW) == pytest.approx(2.0)


class TestAgeInDays:
    """Tests for question age computation."""

    def test_naive_timestamp_treated_as_utc(self) -> None:
        """Verify naive database timestamps are read as UTC."""
        created = (NOW - timedelta(days=2)).replace(tzinfo=None)

        assert age_in_days(created, NOW) == pytest.approx(2.0)

    def test_future_timestamp_clamped(self) -> None:
        """Verify clock skew never yields a negative age."""
        assert age_in_days(NOW + timedelta(hours=1), NOW) == 0.0


class TestCalculateReputation:
    """Tests for the reputation formula."""

    def test_average_scaled(self) -> None:
        """Verify reputation is ten times the mean score."""
        assert calculate_reputation([1.0, 2.0]) == 15

    def test_clamped_to_range(self) -> None:
        """Verify reputation stays within 0 and 100."""
        assert calculate_reputation([25.0, 30.0]) == 100
        assert calculate_reputation([0.0]) == 0

    def test_rounded(self) -> None:
        """Verify fractional reputations are rounded."""
        assert calculate_reputation([1.26]) == 13

    def test_no_scores_means_unchanged(self) -> None:
        """Verify an author without active questions gets None."""
        assert calculate_reputation([]) is None


class TestRecomputeQuestionScore:
    """Tests for persisting a recomputed score."""

    async def test_recompute_from_aggregates(
        self, test_session: AsyncSession, tenant, make_question
    ) -> None:
        """Verify the stored score reflects votes and author reputation."""
        question = await make_question()
        await UserRepository.update_reputation(test_session, tenant.author.id, 50)
        for identity in (tenant.voter, tenant.second_voter, tenant.reviewer):
            test_session.add(
                Vote(question_id=question.id, user_id=identity.id, vote_type=VoteType.UP)
            )
        test_session.add(
            Vote(question_id=question.id, user_id=tenant.admin.id, vote_type=VoteType.DOWN)
        )
        await test_session.commit()

        score = await ScoringService().recompute_question_score(test_session, question.id)

        assert score == pytest.approx(12.5, abs=1e-3)
        assert await read_score(test_session, question.id) == pytest.approx(score)

    async def test_recompute_counts_attempts_and_views(
        self, test_session: AsyncSession, tenant, make_question
    ) -> None:
        """Verify attempt accuracy and views feed the score."""
        question = await make_question()
        test_session.add_all(
            [
                QuestionAttempt(question_id=question.id, user_id=tenant.voter.id, is_correct=True),
                QuestionAttempt(question_id=question.id, user_id=tenant.reviewer.id, is_correct=False),
                QuestionView(question_id=question.id, user_id=tenant.voter.id),
            ]
        )
        await test_session.commit()

        score = await ScoringService().recompute_question_score(test_session, question.id)

        # 1 + (0.5 * 0.5 + 0.5 * -0.2) + 0.001
        assert score == pytest.approx(1.151, abs=1e-3)

    async def test_recompute_missing_question(self, test_session: AsyncSession) -> None:
        """Verify recomputing an unknown question raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await ScoringService().recompute_question_score(test_session, 999)

    async def test_recompute_keeps_updated_at(
        self, test_session: AsyncSession, make_question
    ) -> None:
        """Verify a score refresh is not treated as a content edit."""
        question = await make_question()
        before = await test_session.scalar(
            select(Question.updated_at).where(Question.id == question.id)
        )

        await ScoringService().recompute_question_score(test_session, question.id)

        after = await test_session.scalar(
            select(Question.updated_at).where(Question.id == question.id)
        )
        assert after == before


class TestUpdateAuthorReputation:
    """Tests for persisting author reputation."""

    async def test_reputation_from_active_questions(
        self, test_session: AsyncSession, tenant, make_question
    ) -> None:
        """Verify only active questions contribute to reputation."""
        first = await make_question(status=QuestionStatus.ACTIVE)
        second = await make_question(status=QuestionStatus.ACTIVE)
        pending = await make_question()
        for question, score in ((first, 1.0), (second, 2.0), (pending, 9.0)):
            await QuestionRepository.update_score(test_session, question.id, score)
        await test_session.commit()

        reputation = await ScoringService().update_author_reputation(
            test_session, tenant.author.id
        )

        assert reputation == 15
        assert await UserRepository.get_reputation(test_session, tenant.author.id) == 15

    async def test_no_active_questions_leaves_reputation(
        self, test_session: AsyncSession, tenant, make_question
    ) -> None:
        """Verify an author without active questions keeps their reputation."""
        await make_question()
        await test_session.execute(
            update(User).where(User.id == tenant.author.id).values(reputation=42)
        )
        await test_session.commit()

        reputation = await ScoringService().update_author_reputation(
            test_session, tenant.author.id
        )

        assert reputation is None
        assert await UserRepository.get_reputation(test_session, tenant.author.id) == 42


class TestRefreshAfterVote:
    """Tests for the post-vote refresh."""

    async def test_failures_are_logged_not_raised(self) -> None:
        """Verify a failing recompute does not stop the reputation update."""
        service = ScoringService()
        service.recompute_question_score = AsyncMock(side_effect=RuntimeError("db down"))
        update_reputation = AsyncMock(return_value=None)
        service.update_author_reputation = update_reputation

        await service.refresh_after_vote(AsyncMock(), question_id=1, author_id=2)

        update_reputation.assert_awaited_once()


class TestRecomputeAll:
    """Tests for the batch sweep."""

    async def test_sweep_updates_active_questions_and_authors(
        self, test_session: AsyncSession, session_factory, tenant, make_question
    ) -> None:
        """Verify every active question is rescored and its author refreshed."""
        first = await make_question(status=QuestionStatus.ACTIVE)
        second = await make_question(status=QuestionStatus.ACTIVE)
        pending = await make_question()
        test_session.add(
            Vote(question_id=first.id, user_id=tenant.voter.id, vote_type=VoteType.UP)
        )
        await test_session.commit()

        result = await ScoringService().recompute_all(session_factory)

        assert result.questions_total == 2
        assert result.questions_updated == 2
        assert result.questions_failed == 0
        assert result.authors_updated == 1
        assert await read_score(test_session, first.id) == pytest.approx(2.0, abs=1e-3)
        assert await read_score(test_session, second.id) == pytest.approx(1.0, abs=1e-3)
        assert await read_score(test_session, pending.id) == 0.0
        assert await UserRepository.get_reputation(test_session, tenant.author.id) == 15

    async def test_sweep_continues_past_failure(
        self, test_session: AsyncSession, session_factory, make_question
    ) -> None:
        """Verify one failing question is counted and the rest still update."""
        broken = await make_question(status=QuestionStatus.ACTIVE)
        healthy = await make_question(status=QuestionStatus.ACTIVE)
        await test_session.commit()
        original = QuestionRepository.get_score_inputs

        async def flaky_inputs(session, question_id):
            if question_id == broken.id:
                raise RuntimeError("corrupt row")
            return await original(session, question_id)

        with patch.object(
            QuestionRepository,
            "get_score_inputs",
            AsyncMock(side_effect=flaky_inputs),
        ):
            result = await ScoringService().recompute_all(session_factory)

        assert result.questions_updated == 1
        assert result.questions_failed == 1
        assert await read_score(test_session, healthy.id) == pytest.approx(1.0, abs=1e-3)
        assert await read_score(test_session, broken.id) == 0.0


class TestFailedReads:
    """Tests for database errors raised while reading scoring inputs."""

    @staticmethod
    def timed_out(statement: str) -> OperationalError:
        return OperationalError(
            statement, {}, Exception("canceling statement due to statement timeout")
        )

    async def test_score_read_failure_rolls_back(
        self, test_session: AsyncSession, make_question
    ) -> None:
        """Verify a failed score read leaves no transaction open on the session."""
        question = await make_question()
        question_id = question.id

        async def failing_read(session, _question_id):
            await session.execute(select(Question.id))
            raise self.timed_out("SELECT questions")

        with (
            patch.object(
                QuestionRepository,
                "get_score_inputs",
                AsyncMock(side_effect=failing_read),
            ),
            pytest.raises(OperationalError),
        ):
            await ScoringService().recompute_question_score(test_session, question_id)

        assert not test_session.in_transaction()

    async def test_reputation_read_failure_rolls_back(
        self, test_session: AsyncSession, tenant
    ) -> None:
        """Verify a failed reputation read leaves no transaction open on the session."""

        async def failing_read(session, _author_id):
            await session.execute(select(Question.id))
            raise self.timed_out("SELECT questions.score")

        with (
            patch.object(
                QuestionRepository,
                "get_active_scores_by_author",
                AsyncMock(side_effect=failing_read),
            ),
            pytest.raises(OperationalError),
        ):
            await ScoringService().update_author_reputation(
                test_session, tenant.author.id
            )

        assert not test_session.in_transaction()
