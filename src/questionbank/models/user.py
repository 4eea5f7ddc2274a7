"""User model for company employees."""

from datetime import datetime
from enum import StrEnum

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from questionbank.models.base import Base, enum_values


class Role(StrEnum):
    """Employee roles issued by the auth collaborator."""

    ADMIN = "admin"
    COMPANY_ADMIN = "company_admin"
    QUESTION_WRITER = "question_writer"
    REVIEWER = "reviewer"


class User(Base):
    """An employee who authors, votes on, and reviews questions.

    ``reputation`` is derived from the scores of the user's active
    questions and is only ever written by the reputation updater.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    role: Mapped[Role] = mapped_column(
        Enum(Role, values_callable=enum_values), nullable=False
    )
    company_id: Mapped[int | None] = mapped_column(
        ForeignKey("companies.id", ondelete="CASCADE")
    )
    reputation: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
