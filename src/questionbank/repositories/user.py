"""Repository for the author attributes owned by this service."""

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from questionbank.models.user import User


class UserRepository:
    """Handle user reputation persistence."""

    @staticmethod
    async def get_reputation(session: AsyncSession, user_id: int) -> int | None:
        """Return a user's reputation, or None if the user does not exist."""
        result = await session.execute(
            select(User.reputation).where(User.id == user_id)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def update_reputation(
        session: AsyncSession,
        user_id: int,
        reputation: int,
    ) -> None:
        """Persist a recomputed reputation."""
        await session.execute(
            update(User).where(User.id == user_id).values(reputation=reputation)
        )
        await session.flush()
