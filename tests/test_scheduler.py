"""Tests for the periodic score recompute scheduler."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

from questionbank.services.scheduler import ScoreRecomputeScheduler
from questionbank.services.scoring import ScoringService, SweepResult


def make_scheduler(**kwargs) -> tuple[ScoreRecomputeScheduler, MagicMock]:
    scoring = MagicMock(spec=ScoringService)
    scoring.recompute_all = AsyncMock(return_value=SweepResult())
    defaults = {
        "scoring_service": scoring,
        "session_factory": MagicMock(),
        "interval_seconds": 0.01,
        "run_on_start": True,
    }
    defaults.update(kwargs)
    return ScoreRecomputeScheduler(**defaults), scoring


class TestScoreRecomputeScheduler:
    """Tests for scheduler lifecycle."""

    async def test_start_and_stop(self) -> None:
        """Verify the loop sweeps repeatedly until stopped."""
        scheduler, scoring = make_scheduler()

        scheduler.start()
        assert scheduler.is_running
        await asyncio.sleep(0.05)
        await scheduler.stop()

        assert not scheduler.is_running
        assert scoring.recompute_all.await_count >= 2

    async def test_startup_sweep_optional(self) -> None:
        """Verify no sweep runs before the first interval when disabled."""
        scheduler, scoring = make_scheduler(interval_seconds=60, run_on_start=False)

        scheduler.start()
        await asyncio.sleep(0.01)
        await scheduler.stop()

        scoring.recompute_all.assert_not_awaited()

    async def test_start_is_idempotent(self) -> None:
        """Verify a second start does not spawn another loop."""
        scheduler, _ = make_scheduler(interval_seconds=60)

        scheduler.start()
        task = scheduler._task
        scheduler.start()

        assert scheduler._task is task
        await scheduler.stop()

    async def test_stop_without_start(self) -> None:
        """Verify stopping an idle scheduler is a no-op."""
        scheduler, _ = make_scheduler()

        await scheduler.stop()

        assert not scheduler.is_running

    async def test_failed_sweep_keeps_loop_alive(self) -> None:
        """Verify a sweep error is logged and the next tick still runs."""
        scheduler, scoring = make_scheduler()
        scoring.recompute_all.side_effect = [RuntimeError("db down")] + [SweepResult()] * 100

        scheduler.start()
        await asyncio.sleep(0.05)
        running = scheduler.is_running
        await scheduler.stop()

        assert running
        assert scoring.recompute_all.await_count >= 2

    async def test_run_once_passes_session_factory(self) -> None:
        """Verify a single sweep uses the configured session factory."""
        factory = MagicMock()
        scheduler, scoring = make_scheduler(session_factory=factory)

        await scheduler.run_once()

        scoring.recompute_all.assert_awaited_once_with(factory)
