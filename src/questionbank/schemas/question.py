"""Pydantic schemas for question endpoints."""

from datetime import datetime
from typing import Literal

from pydantic import Field

from questionbank.config import settings
from questionbank.models.history import ChangeType
from questionbank.models.question import QuestionStatus
from questionbank.models.vote import VoteType
from questionbank.schemas.common import CamelModel
from questionbank.services.questions import (
    HistoryRecord,
    QuestionDetail,
    QuestionPage,
    QuestionRecord,
)


class QuestionCreateRequest(CamelModel):
    """Request model for authoring a question."""

    content: str = Field(
        ...,
        min_length=settings.question_content_min_length,
        max_length=settings.question_content_max_length,
        description="Question text",
    )
    options: list[str] = Field(
        ...,
        min_length=settings.question_min_options,
        max_length=settings.question_max_options,
        description="Answer options in display order",
    )
    correct_answers: list[int] = Field(
        ...,
        min_length=1,
        description="Indices into options of the correct answers",
    )
    categories: list[int] = Field(
        default_factory=list,
        description="Category ids owned by the caller's company",
    )


class QuestionUpdateRequest(CamelModel):
    """Request model for a partial question update."""

    content: str | None = Field(
        None,
        min_length=settings.question_content_min_length,
        max_length=settings.question_content_max_length,
    )
    options: list[str] | None = Field(
        None,
        min_length=settings.question_min_options,
        max_length=settings.question_max_options,
    )
    correct_answers: list[int] | None = Field(None, min_length=1)
    categories: list[int] | None = Field(
        None,
        description="Replaces all category links; an empty list clears them",
    )
    status: QuestionStatus | None = Field(
        None,
        description="Honored for admins only",
    )


class InvalidateRequest(CamelModel):
    """Request model for invalidating a question."""

    reason: str = Field(
        ...,
        min_length=1,
        max_length=settings.invalidation_reason_max_length,
        description="Why the question is being taken out of circulation",
    )


class VoteTallyResponse(CamelModel):
    """Up and down vote counts."""

    up: int = Field(0, description="Number of upvotes")
    down: int = Field(0, description="Number of downvotes")


class QuestionResponse(CamelModel):
    """Response model for a question."""

    id: int = Field(..., description="Question ID")
    content: str = Field(..., description="Question text")
    options: list[str] = Field(..., description="Answer options")
    correct_answers: list[int] = Field(..., description="Correct option indices")
    status: QuestionStatus = Field(..., description="Lifecycle status")
    score: float = Field(..., description="Derived ranking score")
    created_by: int = Field(..., description="Author user ID")
    company_id: int = Field(..., description="Owning company ID")
    author_name: str | None = Field(None, description="Author display name")
    categories: list[str] = Field(default_factory=list, description="Category names")
    votes: VoteTallyResponse = Field(default_factory=VoteTallyResponse)
    user_vote: VoteType | None = Field(None, description="The caller's vote")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")

    @classmethod
    def from_record(cls, record: QuestionRecord) -> "QuestionResponse":
        """Build the response from a service projection."""
        question = record.question
        return cls(
            id=question.id,
            content=question.content,
            options=question.options,
            correct_answers=question.correct_answers,
            status=question.status,
            score=question.score,
            created_by=question.created_by,
            company_id=question.company_id,
            author_name=record.author_name,
            categories=record.categories,
            votes=VoteTallyResponse(up=record.votes.up, down=record.votes.down),
            user_vote=record.user_vote,
            created_at=question.created_at,
            updated_at=question.updated_at,
        )


class HistoryEntryResponse(CamelModel):
    """Response model for a question history entry."""

    id: int
    change_type: ChangeType
    change_details: str | None = None
    changed_by: int
    changed_by_name: str | None = None
    created_at: datetime

    @classmethod
    def from_record(cls, record: HistoryRecord) -> "HistoryEntryResponse":
        """Build the response from a history projection."""
        entry = record.entry
        return cls(
            id=entry.id,
            change_type=entry.change_type,
            change_details=entry.change_details,
            changed_by=entry.changed_by,
            changed_by_name=record.changed_by_name,
            created_at=entry.created_at,
        )


class QuestionDetailResponse(QuestionResponse):
    """Response model for a single question with its history."""

    history: list[HistoryEntryResponse] = Field(default_factory=list)

    @classmethod
    def from_detail(cls, detail: QuestionDetail) -> "QuestionDetailResponse":
        """Build the response from a detail projection."""
        base = QuestionResponse.from_record(detail.record)
        return cls(
            **base.model_dump(),
            history=[HistoryEntryResponse.from_record(h) for h in detail.history],
        )


class PaginationResponse(CamelModel):
    """Pagination metadata."""

    total: int
    page: int
    limit: int
    total_pages: int


class QuestionListResponse(CamelModel):
    """Response model for a page of questions."""

    questions: list[QuestionResponse]
    pagination: PaginationResponse

    @classmethod
    def from_page(cls, page: QuestionPage) -> "QuestionListResponse":
        """Build the response from a service page."""
        return cls(
            questions=[QuestionResponse.from_record(item) for item in page.items],
            pagination=PaginationResponse(
                total=page.total,
                page=page.page,
                limit=page.limit,
                total_pages=page.total_pages,
            ),
        )


class InvalidateResponse(CamelModel):
    """Response model for an invalidated question."""

    question_id: int
    status: QuestionStatus


SortField = Literal["created_at", "score", "status"]
SortOrder = Literal["ASC", "DESC"]
