"""Shared database fixtures for question bank tests."""

from dataclasses import dataclass

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from questionbank.auth import Identity
from questionbank.models import (
    Base,
    Category,
    Company,
    Question,
    QuestionStatus,
    Role,
    User,
)
from questionbank.services.questions import QuestionService

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


def _enable_foreign_keys(dbapi_connection, _connection_record) -> None:
    """SQLite only enforces foreign keys (and cascades) when asked to."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@dataclass
class Tenant:
    """Seeded companies, employees, and categories."""

    company_id: int
    other_company_id: int
    author: Identity
    voter: Identity
    second_voter: Identity
    admin: Identity
    reviewer: Identity
    outsider: Identity
    python_category_id: int
    database_category_id: int
    other_company_category_id: int


@pytest.fixture
async def test_engine():
    """Create an async SQLite engine for testing."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)
    event.listen(engine.sync_engine, "connect", _enable_foreign_keys)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    """Create the session factory."""
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def test_session(session_factory):
    """Create a test session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def tenant(test_session: AsyncSession) -> Tenant:
    """Seed two companies with employees and categories."""
    acme = Company(name="Acme")
    globex = Company(name="Globex")
    test_session.add_all([acme, globex])
    await test_session.flush()

    def employee(name: str, role: Role, company: Company) -> User:
        return User(
            name=name,
            email=f"{name.lower()}@{company.name.lower()}.test",
            role=role,
            company_id=company.id,
        )

    author = employee("Ada", Role.QUESTION_WRITER, acme)
    voter = employee("Brian", Role.QUESTION_WRITER, acme)
    second_voter = employee("Carla", Role.REVIEWER, acme)
    admin = employee("Dana", Role.COMPANY_ADMIN, acme)
    reviewer = employee("Eli", Role.REVIEWER, acme)
    outsider = employee("Finn", Role.COMPANY_ADMIN, globex)
    test_session.add_all([author, voter, second_voter, admin, reviewer, outsider])

    python = Category(name="Python", company_id=acme.id)
    databases = Category(name="Databases", company_id=acme.id)
    secrets = Category(name="Secrets", company_id=globex.id)
    test_session.add_all([python, databases, secrets])
    await test_session.commit()

    def identity(user: User) -> Identity:
        return Identity(id=user.id, role=user.role, company_id=user.company_id)

    return Tenant(
        company_id=acme.id,
        other_company_id=globex.id,
        author=identity(author),
        voter=identity(voter),
        second_voter=identity(second_voter),
        admin=identity(admin),
        reviewer=identity(reviewer),
        outsider=identity(outsider),
        python_category_id=python.id,
        database_category_id=databases.id,
        other_company_category_id=secrets.id,
    )


@pytest.fixture
def make_question(test_session: AsyncSession, tenant: Tenant):
    """Return a coroutine that creates a question through the service."""

    async def _make(
        content: str = "Which keyword defines a function in Python?",
        author: Identity | None = None,
        categories: list[int] | None = None,
        status: QuestionStatus | None = None,
    ) -> Question:
        record = await QuestionService().create_question(
            test_session,
            author or tenant.author,
            content=content,
            options=["def", "func", "lambda", "fn"],
            correct_answers=[0],
            category_ids=categories,
        )
        question = record.question
        if status is not None:
            question.status = status
            await test_session.commit()
        return question

    return _make
