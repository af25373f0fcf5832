"""
Pytest configuration and fixtures for the backend tests.
"""
import os
import tempfile

# Settings are read at import time; give them test values first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ADMIN_LOGIN_SECRET", "test-admin-secret")
os.environ.setdefault("AUTO_CREATE_TABLES", "false")
os.environ.setdefault("LOG_LEVEL", "INFO")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="employee-voice-logs-"))

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from faker import Faker
from httpx import ASGITransport, AsyncClient
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from main import app
from db.base import initialize_database
from db.models.auth_token import AuthToken
from db.models.user import User as UserModel
from db.session import get_db_session
from schemas.user_schema import User
from services.token_service import TokenService
from services.token_store import TokenStore, to_db_time

# Initialize Faker for test data generation
fake = Faker()

TEST_DATABASE_URL = "sqlite+aiosqlite://"


def _memory_engine():
    return create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )


@pytest_asyncio.fixture
async def test_engine():
    """Fresh in-memory database with all tables."""
    engine = _memory_engine()
    await initialize_database(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def bare_engine():
    """In-memory database without any tables (token table missing)."""
    engine = _memory_engine()
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(bind=test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def token_store(session_factory) -> TokenStore:
    return TokenStore(session_factory)


@pytest_asyncio.fixture
async def token_service(token_store) -> TokenService:
    service = TokenService(token_store)
    await service.initialize()
    return service


@pytest_asyncio.fixture
async def degraded_service(bare_engine) -> TokenService:
    factory = async_sessionmaker(bind=bare_engine, class_=AsyncSession, expire_on_commit=False)
    service = TokenService(TokenStore(factory))
    await service.initialize()
    return service


@pytest_asyncio.fixture
async def async_client(session_factory, token_service) -> AsyncGenerator[AsyncClient, None]:
    """Async test client bound to the test database and token service."""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_get_db
    app.state.token_service = token_service

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    del app.state.token_service


@pytest.fixture
def make_user(session_factory):
    """Insert a user row and return it as a schema object."""
    async def _make(role: str = "member", name: str = None, national_id: str = None) -> User:
        async with session_factory() as session:
            row = UserModel(
                name=name or fake.name(),
                national_id=national_id or fake.numerify("############"),
                role=role,
            )
            session.add(row)
            await session.commit()
            await session.refresh(row)
            return User.model_validate(row)
    return _make


@pytest.fixture
def expire_token(session_factory):
    """Move a token's expiry into the past."""
    async def _expire(token: str, ago: timedelta = timedelta(hours=1)) -> None:
        past = datetime.now(timezone.utc) - ago
        async with session_factory() as session:
            await session.execute(
                update(AuthToken).where(AuthToken.token == token).values(expires_at=to_db_time(past))
            )
            await session.commit()
    return _expire


@pytest.fixture
def sample_identity():
    """A member identity as handed to create_token."""
    return {"user_id": fake.uuid4(), "role": "member", "name": fake.name()}
