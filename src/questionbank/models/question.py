"""Question model and its category association."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING

from sqlalchemy import (
    JSON,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from questionbank.models.base import Base, enum_values

if TYPE_CHECKING:
    from questionbank.models.history import QuestionHistory
    from questionbank.models.vote import Vote


class QuestionStatus(StrEnum):
    """Lifecycle status of a question."""

    PENDING_REVIEW = "pending_review"
    ACTIVE = "active"
    INACTIVE = "inactive"


class Question(Base):
    """A multiple-choice quiz question owned by a company."""

    __tablename__ = "questions"

    id: Mapped[int] = mapped_column(primary_key=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    options: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    correct_answers: Mapped[list[int]] = mapped_column(JSON, nullable=False)
    score: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    status: Mapped[QuestionStatus] = mapped_column(
        Enum(QuestionStatus, values_callable=enum_values),
        default=QuestionStatus.PENDING_REVIEW,
        nullable=False,
    )
    created_by: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    company_id: Mapped[int] = mapped_column(
        ForeignKey("companies.id"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # Relationships
    category_links: Mapped[list[QuestionCategory]] = relationship(
        "QuestionCategory",
        back_populates="question",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    votes: Mapped[list[Vote]] = relationship(
        "Vote",
        back_populates="question",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    history: Mapped[list[QuestionHistory]] = relationship(
        "QuestionHistory",
        back_populates="question",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class QuestionCategory(Base):
    """Association of a question with a category (and optional subcategory)."""

    __tablename__ = "question_categories"
    __table_args__ = (
        UniqueConstraint(
            "question_id",
            "category_id",
            "subcategory_id",
            name="uq_question_categories_link",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    question_id: Mapped[int] = mapped_column(
        ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    category_id: Mapped[int] = mapped_column(
        ForeignKey("categories.id", ondelete="CASCADE"), nullable=False
    )
    subcategory_id: Mapped[int | None] = mapped_column(
        ForeignKey("categories.id", ondelete="CASCADE")
    )

    question: Mapped[Question] = relationship(
        "Question", back_populates="category_links"
    )
