"""Vote model for the per-user question vote ledger."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Enum, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from questionbank.models.base import Base, enum_values

if TYPE_CHECKING:
    from questionbank.models.question import Question


class VoteType(StrEnum):
    """Direction of a vote."""

    UP = "up"
    DOWN = "down"


class Vote(Base):
    """A single user's vote on a question."""

    __tablename__ = "votes"
    # At most one vote per (question, user); the store enforces it.
    __table_args__ = (
        UniqueConstraint("question_id", "user_id", name="uq_votes_question_user"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    question_id: Mapped[int] = mapped_column(
        ForeignKey("questions.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    vote_type: Mapped[VoteType] = mapped_column(
        Enum(VoteType, values_callable=enum_values), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    question: Mapped[Question] = relationship("Question", back_populates="votes")
