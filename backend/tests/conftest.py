"""Pytest configuration and fixtures."""

import os

# Configure settings for all tests BEFORE any route_picker imports
# This must be done before route_picker.core.config loads settings
os.environ["DEBUG"] = "true"
os.environ["SECRET_DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["AUTH_DOMAIN"] = "test.auth.local"
os.environ["AUTH_API_AUDIENCE"] = "route-picker-test"
os.environ["OTEL_ENABLED"] = "false"

import uuid
from collections.abc import AsyncGenerator, Generator
from datetime import UTC, datetime
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from route_picker.core.auth import clear_jwks_cache, set_mock_jwks
from route_picker.core.database import build_engine, get_db
from route_picker.core.session import SessionContext
from route_picker.main import app
from route_picker.models import Base, Route, RouteGroup, Trip, User
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from tests.fixtures.otel import otel_enabled_provider, reset_tracer_provider  # noqa: F401
from tests.helpers.jwt_helpers import MockJWTGenerator


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine]:
    """
    Fresh in-memory SQLite database per test.

    The schema is created from the model metadata; StaticPool keeps the
    single in-memory connection shared by every session of the test.

    Yields:
        Async engine bound to the test database
    """
    engine = build_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory for the test database, configured like the application's."""
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession]:
    """
    Session used by tests for setup and assertions.

    Requests served through async_client get sessions of their own, so a
    rollback inside a request never expires objects held by the test.

    Yields:
        Async SQLAlchemy session
    """
    async with session_factory() as session:
        yield session


@pytest.fixture
async def async_client(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncClient]:
    """
    Async HTTP client wired to the test database.

    Yields:
        Async HTTP client with ASGI transport
    """

    async def override_get_db() -> AsyncGenerator[AsyncSession]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            yield client
    finally:
        app.dependency_overrides.clear()


# Auth fixtures


@pytest.fixture(scope="session", autouse=True)
def setup_mock_jwks() -> None:
    """
    Initialize mock JWKS for DEBUG mode JWT verification.

    Runs once per test session so tokens from MockJWTGenerator verify.
    """
    set_mock_jwks(MockJWTGenerator.get_mock_jwks())


@pytest.fixture
def reset_jwks_cache() -> Generator[None]:
    """Reset the JWKS cache before and after the test."""
    clear_jwks_cache()
    yield
    clear_jwks_cache()


async def _create_user(db: AsyncSession, prefix: str) -> User:
    suffix = uuid.uuid4().hex[:8]
    user = User(id=f"oauth|{prefix}_{suffix}", email=f"{prefix}_{suffix}@example.com", name=prefix)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Persisted user with a unique id and email."""
    return await _create_user(db_session, "test_user")


@pytest.fixture
async def another_user(db_session: AsyncSession) -> User:
    """Second persisted user for cross-user scenarios."""
    return await _create_user(db_session, "another_user")


@pytest.fixture
def session_for_user(test_user: User) -> SessionContext:
    """Session context of test_user."""
    return SessionContext(user_id=test_user.id, email=test_user.email)


@pytest.fixture
def another_session(another_user: User) -> SessionContext:
    """Session context of another_user."""
    return SessionContext(user_id=another_user.id, email=another_user.email)


@pytest.fixture
def auth_headers_for_user(test_user: User) -> dict[str, str]:
    """Authorization headers carrying a token for test_user."""
    token = MockJWTGenerator.generate(test_user.id, email=test_user.email)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers_for_another_user(another_user: User) -> dict[str, str]:
    """Authorization headers carrying a token for another_user."""
    token = MockJWTGenerator.generate(another_user.id, email=another_user.email)
    return {"Authorization": f"Bearer {token}"}


# Data factories


@pytest.fixture
def make_group(db_session: AsyncSession) -> Any:  # noqa: ANN401
    """Factory persisting a route group."""

    async def _make(user: User, name: str = "Morning options", created_at: datetime | None = None) -> RouteGroup:
        group = RouteGroup(name=name, user_id=user.id)
        if created_at is not None:
            group.created_at = created_at
        db_session.add(group)
        await db_session.commit()
        await db_session.refresh(group)
        return group

    return _make


@pytest.fixture
def make_route(db_session: AsyncSession) -> Any:  # noqa: ANN401
    """Factory persisting a route, optionally inside a group."""

    async def _make(
        user: User,
        name: str = "Via the park",
        group: RouteGroup | None = None,
        created_at: datetime | None = None,
    ) -> Route:
        route = Route(name=name, user_id=user.id, route_group_id=group.id if group else None)
        if created_at is not None:
            route.created_at = created_at
        db_session.add(route)
        await db_session.commit()
        await db_session.refresh(route)
        return route

    return _make


@pytest.fixture
def make_trip(db_session: AsyncSession) -> Any:  # noqa: ANN401
    """Factory persisting a trip on a route."""

    async def _make(
        route: Route,
        start_time: datetime | None = None,
        end_time: datetime | None = None,
        **documents: Any,
    ) -> Trip:
        trip = Trip(
            route_id=route.id,
            start_time=start_time or datetime.now(UTC),
            end_time=end_time,
            **documents,
        )
        db_session.add(trip)
        await db_session.commit()
        await db_session.refresh(trip)
        return trip

    return _make
