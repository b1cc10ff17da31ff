"""Shared test fixtures for backend tests."""

import os

# Point the app at SQLite before anything imports caseflow.config
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENVIRONMENT"] = "test"

from typing import AsyncGenerator, Awaitable, Callable

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from caseflow.database import Base
from caseflow.main import app
from caseflow.api.deps import get_db
from caseflow.auth.jwt import create_access_token
from caseflow.auth.passwords import hash_password
from caseflow.models import Case, Document, User

TEST_PASSWORD = "Passw0rd!"


@pytest.fixture(scope="session")
def password_hash() -> str:
    """bcrypt is slow; hash the shared test password once."""
    return hash_password(TEST_PASSWORD)


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    await engine.dispose()


UserFactory = Callable[..., Awaitable[User]]


@pytest_asyncio.fixture
async def make_user(db_session: AsyncSession, password_hash: str) -> UserFactory:
    counter = {"n": 0}

    async def _make(role: str = "applicant", first_name: str | None = None) -> User:
        counter["n"] += 1
        user = User(
            email=f"{role}{counter['n']}@caseflow.test",
            password_hash=password_hash,
            first_name=first_name or role.capitalize(),
            last_name=f"User{counter['n']}",
            role=role,
        )
        db_session.add(user)
        await db_session.flush()
        return user

    return _make


@pytest_asyncio.fixture
async def applicant(make_user: UserFactory) -> User:
    return await make_user("applicant", "Amira")


@pytest_asyncio.fixture
async def other_applicant(make_user: UserFactory) -> User:
    return await make_user("applicant", "Bogdan")


@pytest_asyncio.fixture
async def agent(make_user: UserFactory) -> User:
    return await make_user("agent", "Chen")


@pytest_asyncio.fixture
async def other_agent(make_user: UserFactory) -> User:
    return await make_user("agent", "Dana")


@pytest_asyncio.fixture
async def expert(make_user: UserFactory) -> User:
    return await make_user("expert", "Eli")


@pytest_asyncio.fixture
async def admin(make_user: UserFactory) -> User:
    return await make_user("admin", "Farah")


CaseFactory = Callable[..., Awaitable[Case]]


@pytest_asyncio.fixture
async def make_case(db_session: AsyncSession) -> CaseFactory:
    """Insert a case directly in any status, bypassing the workflow."""

    async def _make(applicant: User, status: str = "draft", agent: User | None = None) -> Case:
        case = Case(
            title="Skilled worker visa",
            visa_type="work",
            applicant_id=applicant.id,
            agent_id=agent.id if agent else None,
            status=status,
        )
        db_session.add(case)
        await db_session.commit()
        return case

    return _make


@pytest_asyncio.fixture
async def assigned_case(make_case: CaseFactory, applicant: User, agent: User) -> Case:
    return await make_case(applicant, "submitted", agent)


@pytest_asyncio.fixture
async def document(db_session: AsyncSession, assigned_case: Case, applicant: User) -> Document:
    doc = Document(
        case_id=assigned_case.id,
        uploaded_by=applicant.id,
        name="passport.pdf",
        document_type="passport",
    )
    db_session.add(doc)
    await db_session.commit()
    return doc


# ── HTTP ─────────────────────────────────────────────────────────────────────

def auth_header(user: User) -> dict:
    """Authorization header with a valid JWT for ``user``."""
    token = create_access_token(user.id, user.email, user.role)
    return {"Authorization": f"Bearer {token}"}


def _override_db(session: AsyncSession):
    async def _get_db():
        yield session
    return _get_db


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Unauthenticated client bound to the test session; pass headers per request."""
    app.dependency_overrides[get_db] = _override_db(db_session)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def headers_for() -> Callable[[User], dict]:
    return auth_header
