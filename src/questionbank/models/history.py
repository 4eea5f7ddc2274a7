"""Question history model for the append-only lifecycle log."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Enum, ForeignKey, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from questionbank.models.base import Base, enum_values

if TYPE_CHECKING:
    from questionbank.models.question import Question


class ChangeType(StrEnum):
    """Kind of lifecycle event recorded for a question."""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    STATUS_CHANGED = "status_changed"
    VOTE = "vote"


class QuestionHistory(Base):
    """A business event recorded against a question. Never updated."""

    __tablename__ = "question_history"

    id: Mapped[int] = mapped_column(primary_key=True)
    question_id: Mapped[int] = mapped_column(
        ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    changed_by: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    change_type: Mapped[ChangeType] = mapped_column(
        Enum(ChangeType, values_callable=enum_values), nullable=False
    )
    change_details: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    question: Mapped[Question] = relationship("Question", back_populates="history")
