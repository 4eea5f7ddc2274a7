"""Periodic background recomputation of question scores."""

import asyncio
import contextlib

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from questionbank.config import settings
from questionbank.db import async_session_factory
from questionbank.services.scoring import ScoringService


class ScoreRecomputeScheduler:
    """Own a cancellable task that sweeps active question scores on an interval.

    Started and stopped by the application lifespan.
    """

    def __init__(
        self,
        scoring_service: ScoringService | None = None,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        interval_seconds: float | None = None,
        run_on_start: bool | None = None,
    ) -> None:
        self.scoring_service = scoring_service or ScoringService()
        self.session_factory = session_factory
        self.interval_seconds = (
            interval_seconds
            if interval_seconds is not None
            else settings.score_recompute_interval_seconds
        )
        self.run_on_start = (
            run_on_start
            if run_on_start is not None
            else settings.score_recompute_on_startup
        )
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        """Check if the background loop is active."""
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedule the background loop on the running event loop."""
        if self.is_running:
            return
        self._task = asyncio.create_task(self._run(), name="score-recompute")
        logger.info(
            "Score recompute scheduler started",
            interval_seconds=self.interval_seconds,
        )

    async def stop(self) -> None:
        """Cancel the loop and wait until it has exited."""
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Score recompute scheduler stopped")

    async def run_once(self) -> None:
        """Run a single sweep, logging instead of raising on failure."""
        factory = self.session_factory or async_session_factory
        try:
            await self.scoring_service.recompute_all(factory)
        except Exception as exc:
            logger.error(
                "Scheduled score update failed",
                error=f"{type(exc).__name__}: {exc}",
            )

    async def _run(self) -> None:
        if self.run_on_start:
            await self.run_once()
        while True:
            await asyncio.sleep(self.interval_seconds)
            await self.run_once()
