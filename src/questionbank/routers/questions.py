"""Question lifecycle and voting endpoints."""

from fastapi import APIRouter, Depends, Query, Response, status
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from questionbank.auth import AUTHOR_ROLES, Identity, get_current_identity, require_roles
from questionbank.config import settings
from questionbank.db import get_db
from questionbank.models.question import QuestionStatus
from questionbank.schemas.common import ErrorResponse, ErrorResponseWithDetails
from questionbank.schemas.question import (
    InvalidateRequest,
    InvalidateResponse,
    QuestionCreateRequest,
    QuestionDetailResponse,
    QuestionListResponse,
    QuestionResponse,
    QuestionUpdateRequest,
    SortField,
    SortOrder,
    VoteTallyResponse,
)
from questionbank.schemas.vote import VoteRequest, VoteResponse
from questionbank.services.questions import QuestionChanges, QuestionService
from questionbank.services.voting import VoteService

router = APIRouter(
    prefix="/questions",
    tags=["Questions"],
    responses={
        400: {"model": ErrorResponseWithDetails, "description": "Invalid input"},
        401: {"model": ErrorResponse, "description": "Missing or invalid identity"},
        403: {"model": ErrorResponse, "description": "Not permitted"},
        404: {"model": ErrorResponse, "description": "Question not found"},
    },
)


@router.post(
    "",
    response_model=QuestionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a question",
    description="Author a question. New questions start in pending_review.",
)
async def create_question(
    request: QuestionCreateRequest,
    identity: Identity = Depends(require_roles(AUTHOR_ROLES)),
    session: AsyncSession = Depends(get_db),
) -> QuestionResponse:
    """Create a question with its category links."""
    record = await QuestionService().create_question(
        session,
        identity,
        content=request.content,
        options=request.options,
        correct_answers=request.correct_answers,
        category_ids=request.categories,
    )
    return QuestionResponse.from_record(record)


@router.get(
    "",
    response_model=QuestionListResponse,
    summary="List questions",
    description="Filter, sort, and paginate the caller's company questions.",
)
async def list_questions(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    question_status: QuestionStatus | None = Query(None, alias="status"),
    category: int | None = Query(None),
    search: str | None = Query(None, max_length=settings.search_max_length),
    sort_by: SortField = Query("created_at", alias="sortBy"),
    sort_order: SortOrder = Query("DESC", alias="sortOrder"),
    identity: Identity = Depends(get_current_identity),
    session: AsyncSession = Depends(get_db),
) -> QuestionListResponse:
    """Return one page of questions."""
    result = await QuestionService().list_questions(
        session,
        identity,
        page=page,
        limit=limit,
        status=question_status,
        category_id=category,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return QuestionListResponse.from_page(result)


@router.get(
    "/{question_id}",
    response_model=QuestionDetailResponse,
    summary="Get a question",
    description="Return a question with vote tally, the caller's vote, and history.",
)
async def get_question(
    question_id: int,
    identity: Identity = Depends(get_current_identity),
    session: AsyncSession = Depends(get_db),
) -> QuestionDetailResponse:
    """Return a single question."""
    detail = await QuestionService().get_question(session, question_id, identity)
    return QuestionDetailResponse.from_detail(detail)


@router.put(
    "/{question_id}",
    response_model=QuestionResponse,
    summary="Update a question",
    description="Partially update a question. Status changes are honored for admins.",
)
async def update_question(
    question_id: int,
    request: QuestionUpdateRequest,
    identity: Identity = Depends(get_current_identity),
    session: AsyncSession = Depends(get_db),
) -> QuestionResponse:
    """Apply a partial update."""
    record = await QuestionService().update_question(
        session,
        question_id,
        identity,
        QuestionChanges(
            content=request.content,
            options=request.options,
            correct_answers=request.correct_answers,
            category_ids=request.categories,
            status=request.status,
        ),
    )
    return QuestionResponse.from_record(record)


@router.delete(
    "/{question_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a question",
)
async def delete_question(
    question_id: int,
    identity: Identity = Depends(get_current_identity),
    session: AsyncSession = Depends(get_db),
) -> Response:
    """Delete a question with its votes and category links."""
    await QuestionService().delete_question(session, question_id, identity)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{question_id}/vote",
    response_model=VoteResponse,
    summary="Vote on a question",
    description=(
        "Toggle the caller's vote: the same type again removes it, "
        "the opposite type flips it."
    ),
)
async def vote_on_question(
    question_id: int,
    request: VoteRequest,
    identity: Identity = Depends(get_current_identity),
    session: AsyncSession = Depends(get_db),
) -> VoteResponse:
    """Submit a vote."""
    result = await VoteService().submit_vote(
        session, question_id, identity, request.vote_type
    )
    return VoteResponse(
        votes=VoteTallyResponse(up=result.votes.up, down=result.votes.down),
        user_vote=result.user_vote,
    )


@router.post(
    "/{question_id}/invalidate",
    response_model=InvalidateResponse,
    summary="Invalidate a question",
    description="Mark a question inactive. Admins and reviewers only.",
)
async def invalidate_question(
    question_id: int,
    request: InvalidateRequest,
    identity: Identity = Depends(get_current_identity),
    session: AsyncSession = Depends(get_db),
) -> InvalidateResponse:
    """Take a question out of circulation with a recorded reason."""
    new_status = await QuestionService().invalidate_question(
        session, question_id, identity, request.reason
    )
    logger.info(
        "Invalidation completed",
        question_id=question_id,
        user_id=identity.id,
    )
    return InvalidateResponse(question_id=question_id, status=new_status)
