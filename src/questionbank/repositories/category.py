"""Repository for question-category associations."""

from sqlalchemy import delete, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from questionbank.config import settings
from questionbank.exceptions import DomainValidationError
from questionbank.models.category import Category
from questionbank.models.question import QuestionCategory


class QuestionCategoryRepository:
    """Handle question-category association persistence."""

    @staticmethod
    def build_links(question_id: int, category_ids: list[int]) -> list[dict[str, int | None]]:
        """Build parameter rows for a batch insert of category links.

        Duplicate ids are collapsed, keeping first-seen order.

        Raises:
            DomainValidationError: If more ids than allowed are supplied
                or an id is not an integer.
        """
        unique_ids: list[int] = []
        for category_id in category_ids:
            if not isinstance(category_id, int) or isinstance(category_id, bool):
                raise DomainValidationError(
                    f"Invalid category id: {category_id!r}",
                    field="categories",
                )
            if category_id not in unique_ids:
                unique_ids.append(category_id)

        if len(unique_ids) > settings.max_categories_per_question:
            raise DomainValidationError(
                f"At most {settings.max_categories_per_question} categories "
                "may be assigned to a question",
                field="categories",
            )

        return [
            {
                "question_id": question_id,
                "category_id": category_id,
                "subcategory_id": None,
            }
            for category_id in unique_ids
        ]

    @staticmethod
    async def insert_bulk(
        session: AsyncSession,
        question_id: int,
        company_id: int,
        category_ids: list[int],
    ) -> None:
        """Link a question to categories owned by its company.

        Raises:
            DomainValidationError: If any id does not name a category of
                ``company_id``.
        """
        links = QuestionCategoryRepository.build_links(question_id, category_ids)
        if not links:
            return

        requested = {link["category_id"] for link in links}
        result = await session.execute(
            select(Category.id).where(
                Category.id.in_(requested),
                Category.company_id == company_id,
            )
        )
        unknown = requested - set(result.scalars().all())
        if unknown:
            raise DomainValidationError(
                "Unknown category ids for this company",
                field="categories",
                details={"category_ids": sorted(unknown)},
            )

        await session.execute(insert(QuestionCategory), links)
        await session.flush()

    @staticmethod
    async def delete_for_question(session: AsyncSession, question_id: int) -> None:
        """Remove every category link of a question."""
        await session.execute(
            delete(QuestionCategory).where(QuestionCategory.question_id == question_id)
        )
        await session.flush()

    @staticmethod
    async def replace(
        session: AsyncSession,
        question_id: int,
        company_id: int,
        category_ids: list[int],
    ) -> None:
        """Replace all category links of a question; an empty list clears them."""
        await QuestionCategoryRepository.delete_for_question(session, question_id)
        await QuestionCategoryRepository.insert_bulk(
            session, question_id, company_id, category_ids
        )

    @staticmethod
    async def get_category_ids(session: AsyncSession, question_id: int) -> set[int]:
        """Return the ids of categories currently linked to a question."""
        result = await session.execute(
            select(QuestionCategory.category_id).where(
                QuestionCategory.question_id == question_id
            )
        )
        return set(result.scalars().all())

    @staticmethod
    async def get_names_by_question_ids(
        session: AsyncSession,
        question_ids: list[int],
    ) -> dict[int, list[str]]:
        """Map each question id to the sorted names of its linked categories."""
        if not question_ids:
            return {}
        result = await session.execute(
            select(QuestionCategory.question_id, Category.name)
            .join(Category, Category.id == QuestionCategory.category_id)
            .where(QuestionCategory.question_id.in_(question_ids))
            .distinct()
            .order_by(QuestionCategory.question_id, Category.name)
        )
        names: dict[int, list[str]] = {question_id: [] for question_id in question_ids}
        for question_id, name in result.all():
            names[question_id].append(name)
        return names
