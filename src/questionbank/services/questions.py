"""Question lifecycle service: validation, authorization, and persistence."""

import math
from dataclasses import dataclass, field
from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from questionbank.auth import REVIEWER_ROLES, Identity
from questionbank.config import settings
from questionbank.db import transaction
from questionbank.exceptions import DomainValidationError, ForbiddenError, NotFoundError
from questionbank.models.history import ChangeType, QuestionHistory
from questionbank.models.question import Question, QuestionStatus
from questionbank.models.vote import VoteType
from questionbank.repositories.category import QuestionCategoryRepository
from questionbank.repositories.history import QuestionHistoryRepository
from questionbank.repositories.question import SORTABLE_FIELDS, QuestionRepository
from questionbank.repositories.vote import VoteRepository, VoteTally

SORT_ORDERS = ("ASC", "DESC")


@dataclass
class QuestionRecord:
    """A question projected with its display attributes."""

    question: Question
    author_name: str | None = None
    categories: list[str] = field(default_factory=list)
    votes: VoteTally = field(default_factory=VoteTally)
    user_vote: VoteType | None = None


@dataclass
class HistoryRecord:
    """A history entry with the acting user's name."""

    entry: QuestionHistory
    changed_by_name: str | None = None


@dataclass
class QuestionDetail:
    """A question record with its lifecycle history, newest first."""

    record: QuestionRecord
    history: list[HistoryRecord] = field(default_factory=list)


@dataclass
class QuestionPage:
    """One page of question records."""

    items: list[QuestionRecord]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        """Number of pages at the current page size."""
        return math.ceil(self.total / self.limit) if self.limit else 0


@dataclass
class QuestionChanges:
    """Fields supplied to an update; None means "not supplied"."""

    content: str | None = None
    options: list[str] | None = None
    correct_answers: list[int] | None = None
    category_ids: list[int] | None = None
    status: QuestionStatus | str | None = None


def validate_content(content: Any) -> str:
    """Return trimmed question text or raise DomainValidationError."""
    if not isinstance(content, str) or not content.strip():
        raise DomainValidationError("Content is required", field="content")
    content = content.strip()
    if not (
        settings.question_content_min_length
        <= len(content)
        <= settings.question_content_max_length
    ):
        raise DomainValidationError(
            f"Content must be between {settings.question_content_min_length} "
            f"and {settings.question_content_max_length} characters",
            field="content",
        )
    return content


def validate_options(options: Any) -> list[str]:
    """Return trimmed option strings or raise DomainValidationError."""
    if not isinstance(options, list) or len(options) < settings.question_min_options:
        raise DomainValidationError(
            f"At least {settings.question_min_options} options are required",
            field="options",
        )
    if len(options) > settings.question_max_options:
        raise DomainValidationError(
            f"At most {settings.question_max_options} options are allowed",
            field="options",
        )

    cleaned = []
    for option in options:
        if not isinstance(option, str) or not option.strip():
            raise DomainValidationError("Option cannot be empty", field="options")
        if len(option.strip()) > settings.option_max_length:
            raise DomainValidationError(
                f"Option must be at most {settings.option_max_length} characters",
                field="options",
            )
        cleaned.append(option.strip())
    return cleaned


def validate_correct_answers(correct_answers: Any, option_count: int) -> list[int]:
    """Check every correct answer indexes an existing option.

    Duplicate indices are collapsed, keeping first-seen order.
    """
    if not isinstance(correct_answers, list) or not correct_answers:
        raise DomainValidationError(
            "At least one correct answer is required",
            field="correctAnswers",
        )

    indices: list[int] = []
    for index in correct_answers:
        if isinstance(index, bool) or not isinstance(index, int):
            raise DomainValidationError(
                "Correct answer must be a valid option index",
                field="correctAnswers",
            )
        if not 0 <= index < option_count:
            raise DomainValidationError(
                f"Correct answer index {index} is out of range",
                field="correctAnswers",
                details={"option_count": option_count},
            )
        if index not in indices:
            indices.append(index)
    return indices


def parse_status(status: QuestionStatus | str) -> QuestionStatus:
    """Convert a raw status value or raise DomainValidationError."""
    try:
        return QuestionStatus(status)
    except ValueError:
        raise DomainValidationError(
            f"Invalid status value: {status}", field="status"
        ) from None


class QuestionService:
    """Own question records, their category links, and lifecycle history."""

    async def create_question(
        self,
        session: AsyncSession,
        identity: Identity,
        content: str,
        options: list[str],
        correct_answers: list[int],
        category_ids: list[int] | None = None,
    ) -> QuestionRecord:
        """Create a question in ``pending_review`` with its categories.

        The question row, category links, and ``created`` history entry
        are written as one unit of work.
        """
        content = validate_content(content)
        options = validate_options(options)
        correct_answers = validate_correct_answers(correct_answers, len(options))

        async with transaction(session):
            question = await QuestionRepository.create(
                session,
                content=content,
                options=options,
                correct_answers=correct_answers,
                created_by=identity.id,
                company_id=identity.company_id,
            )
            await QuestionCategoryRepository.insert_bulk(
                session, question.id, identity.company_id, category_ids or []
            )
            await QuestionHistoryRepository.append(
                session,
                question_id=question.id,
                changed_by=identity.id,
                change_type=ChangeType.CREATED,
                change_details="Question created",
            )

        logger.info(
            "Question created",
            question_id=question.id,
            user_id=identity.id,
            company_id=identity.company_id,
        )
        return await self._load_record(session, question.id, identity)

    async def update_question(
        self,
        session: AsyncSession,
        question_id: int,
        identity: Identity,
        changes: QuestionChanges,
    ) -> QuestionRecord:
        """Apply a partial update by the author or an admin.

        Only admins may change ``status``; a status sent by anyone else is
        ignored. A supplied category list replaces all existing links.
        """
        question = await self._get_owned_question(session, question_id, identity)
        if not identity.can_modify(question.created_by):
            raise ForbiddenError("Not authorized to update this question")

        values: dict[str, Any] = {}
        if changes.content is not None:
            content = validate_content(changes.content)
            if content != question.content:
                values["content"] = content

        if changes.options is not None or changes.correct_answers is not None:
            options = (
                validate_options(changes.options)
                if changes.options is not None
                else list(question.options)
            )
            correct_answers = validate_correct_answers(
                changes.correct_answers
                if changes.correct_answers is not None
                else list(question.correct_answers),
                len(options),
            )
            if options != question.options:
                values["options"] = options
            if correct_answers != question.correct_answers:
                values["correct_answers"] = correct_answers

        if changes.status is not None:
            status = parse_status(changes.status)
            if not identity.is_admin:
                logger.info(
                    "Ignoring status change from non-admin",
                    question_id=question_id,
                    user_id=identity.id,
                )
            elif status != question.status:
                values["status"] = status

        async with transaction(session):
            changed_fields = list(values)
            if values:
                await QuestionRepository.update_fields(session, question, values)

            if changes.category_ids is not None:
                current_ids = await QuestionCategoryRepository.get_category_ids(
                    session, question_id
                )
                await QuestionCategoryRepository.replace(
                    session, question_id, identity.company_id, changes.category_ids
                )
                if set(changes.category_ids) != current_ids:
                    changed_fields.append("categories")

            if changed_fields:
                await QuestionHistoryRepository.append(
                    session,
                    question_id=question_id,
                    changed_by=identity.id,
                    change_type=ChangeType.UPDATED,
                    change_details=f"Question updated: {', '.join(changed_fields)}",
                )

        logger.info(
            "Question updated",
            question_id=question_id,
            user_id=identity.id,
            changed_fields=changed_fields,
        )
        return await self._load_record(session, question_id, identity)

    async def delete_question(
        self,
        session: AsyncSession,
        question_id: int,
        identity: Identity,
    ) -> None:
        """Delete a question and everything it owns, as the author or an admin."""
        question = await self._get_owned_question(session, question_id, identity)
        if not identity.can_modify(question.created_by):
            raise ForbiddenError("Not authorized to delete this question")

        async with transaction(session):
            await QuestionHistoryRepository.append(
                session,
                question_id=question_id,
                changed_by=identity.id,
                change_type=ChangeType.DELETED,
                change_details="Question deleted",
            )
            await VoteRepository.delete_for_question(session, question_id)
            await QuestionCategoryRepository.delete_for_question(session, question_id)
            await QuestionRepository.delete(session, question_id)

        logger.info("Question deleted", question_id=question_id, user_id=identity.id)

    async def invalidate_question(
        self,
        session: AsyncSession,
        question_id: int,
        identity: Identity,
        reason: str | None,
    ) -> QuestionStatus:
        """Mark a question inactive for quality-control reasons."""
        reason = (reason or "").strip()
        if not reason:
            raise DomainValidationError(
                "Reason is required for invalidation", field="reason"
            )
        if len(reason) > settings.invalidation_reason_max_length:
            raise DomainValidationError(
                f"Reason must be at most "
                f"{settings.invalidation_reason_max_length} characters",
                field="reason",
            )
        if identity.role not in REVIEWER_ROLES:
            raise ForbiddenError("Not authorized to invalidate questions")

        await self._get_owned_question(session, question_id, identity)

        async with transaction(session):
            await QuestionRepository.update_status(
                session, question_id, QuestionStatus.INACTIVE
            )
            await QuestionHistoryRepository.append(
                session,
                question_id=question_id,
                changed_by=identity.id,
                change_type=ChangeType.STATUS_CHANGED,
                change_details=f"Question marked as invalid. Reason: {reason}",
            )

        logger.info(
            "Question invalidated",
            question_id=question_id,
            user_id=identity.id,
        )
        return QuestionStatus.INACTIVE

    async def get_question(
        self,
        session: AsyncSession,
        question_id: int,
        identity: Identity | None = None,
        company_id: int | None = None,
    ) -> QuestionDetail:
        """Return a company-scoped question with votes and history.

        ``company_id`` defaults to the identity's company.
        """
        record = await self._load_record(session, question_id, identity, company_id)
        history = await QuestionHistoryRepository.list_for_question(
            session, question_id
        )
        return QuestionDetail(
            record=record,
            history=[HistoryRecord(entry, name) for entry, name in history],
        )

    async def list_questions(
        self,
        session: AsyncSession,
        identity: Identity,
        page: int = 1,
        limit: int | None = None,
        status: QuestionStatus | str | None = None,
        category_id: int | None = None,
        search: str | None = None,
        sort_by: str = "created_at",
        sort_order: str = "DESC",
    ) -> QuestionPage:
        """Return a filtered, sorted page of the caller's company questions."""
        limit = settings.default_page_size if limit is None else limit
        if page < 1:
            raise DomainValidationError("Page must be a positive integer", field="page")
        if not 1 <= limit <= settings.max_page_size:
            raise DomainValidationError(
                f"Limit must be between 1 and {settings.max_page_size}",
                field="limit",
            )
        if sort_by not in SORTABLE_FIELDS:
            raise DomainValidationError(
                f"Invalid sort field: {sort_by}", field="sortBy"
            )
        sort_order = sort_order.upper()
        if sort_order not in SORT_ORDERS:
            raise DomainValidationError(
                f"Invalid sort order: {sort_order}", field="sortOrder"
            )
        if search is not None:
            search = search.strip()
            if len(search) > settings.search_max_length:
                raise DomainValidationError(
                    "Search query is too long", field="search"
                )

        rows, total = await QuestionRepository.list_page(
            session,
            company_id=identity.company_id,
            offset=(page - 1) * limit,
            limit=limit,
            status=parse_status(status) if status is not None else None,
            category_id=category_id,
            search=search or None,
            sort_by=sort_by,
            sort_order=sort_order,
        )
        items = await self._build_records(session, rows, identity)
        return QuestionPage(items=items, total=total, page=page, limit=limit)

    async def _get_owned_question(
        self,
        session: AsyncSession,
        question_id: int,
        identity: Identity,
    ) -> Question:
        question = await QuestionRepository.get_by_id_and_company_id(
            session, question_id, identity.company_id
        )
        if question is None:
            raise NotFoundError(resource="Question", resource_id=question_id)
        return question

    async def _load_record(
        self,
        session: AsyncSession,
        question_id: int,
        identity: Identity | None,
        company_id: int | None = None,
    ) -> QuestionRecord:
        if company_id is None:
            if identity is None:
                raise DomainValidationError("A company scope is required")
            company_id = identity.company_id

        row = await QuestionRepository.get_with_author_name(
            session, question_id, company_id
        )
        if row is None:
            raise NotFoundError(resource="Question", resource_id=question_id)
        records = await self._build_records(session, [row], identity)
        return records[0]

    async def _build_records(
        self,
        session: AsyncSession,
        rows: list[tuple[Question, str | None]],
        identity: Identity | None,
    ) -> list[QuestionRecord]:
        question_ids = [question.id for question, _ in rows]
        categories = await QuestionCategoryRepository.get_names_by_question_ids(
            session, question_ids
        )
        tallies = await VoteRepository.get_tallies(session, question_ids)
        user_votes = (
            await VoteRepository.get_user_votes(session, question_ids, identity.id)
            if identity is not None
            else {}
        )
        return [
            QuestionRecord(
                question=question,
                author_name=author_name,
                categories=categories.get(question.id, []),
                votes=tallies.get(question.id, VoteTally()),
                user_vote=user_votes.get(question.id),
            )
            for question, author_name in rows
        ]
