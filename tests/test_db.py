"""Tests for unit-of-work scoping."""

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from questionbank.db import transaction
from questionbank.models import Company


async def count_companies(session: AsyncSession) -> int:
    return await session.scalar(select(func.count()).select_from(Company))


class TestTransaction:
    """Tests for the transaction context manager."""

    async def test_commits_on_success(self, test_session: AsyncSession, session_factory) -> None:
        """Verify statements are visible to other sessions after the block."""
        async with transaction(test_session):
            test_session.add(Company(name="Initech"))

        async with session_factory() as other:
            assert await count_companies(other) == 1

    async def test_rolls_back_on_error(self, test_session: AsyncSession) -> None:
        """Verify every statement in a failed block is discarded."""
        with pytest.raises(ValueError, match="abort"):
            async with transaction(test_session):
                test_session.add(Company(name="Initech"))
                await test_session.flush()
                test_session.add(Company(name="Umbrella"))
                await test_session.flush()
                raise ValueError("abort")

        assert await count_companies(test_session) == 0
