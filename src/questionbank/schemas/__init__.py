"""Pydantic schemas for the question bank API."""

from questionbank.schemas.common import (
    CamelModel,
    ErrorResponse,
    ErrorResponseWithDetails,
    HealthResponse,
)
from questionbank.schemas.question import (
    InvalidateRequest,
    InvalidateResponse,
    QuestionCreateRequest,
    QuestionDetailResponse,
    QuestionListResponse,
    QuestionResponse,
    QuestionUpdateRequest,
)
from questionbank.schemas.vote import VoteRequest, VoteResponse

__all__ = [
    "CamelModel",
    "ErrorResponse",
    "ErrorResponseWithDetails",
    "HealthResponse",
    "InvalidateRequest",
    "InvalidateResponse",
    "QuestionCreateRequest",
    "QuestionDetailResponse",
    "QuestionListResponse",
    "QuestionResponse",
    "QuestionUpdateRequest",
    "VoteRequest",
    "VoteResponse",
]
