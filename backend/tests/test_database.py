"""Tests for database configuration and session management."""

from pathlib import Path

import pytest
from route_picker.core.database import build_engine, get_db, get_engine, get_session_factory
from route_picker.models import Route, User
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession
from sqlalchemy.pool import StaticPool


class TestDatabaseConfiguration:
    """Tests for database configuration."""

    def test_engine_configuration(self) -> None:
        """Test that the engine follows the configured URL."""
        engine = get_engine()
        assert engine.url.drivername == "sqlite+aiosqlite"
        assert get_engine() is engine

    def test_session_maker_configuration(self) -> None:
        """Test that session maker is properly configured."""
        session_factory = get_session_factory()
        assert session_factory.kw["expire_on_commit"] is False
        assert session_factory.kw["autocommit"] is False
        assert session_factory.kw["autoflush"] is False


class TestBuildEngine:
    """Tests for build_engine."""

    def test_in_memory_sqlite_shares_one_connection(self) -> None:
        engine = build_engine("sqlite+aiosqlite:///:memory:")
        assert isinstance(engine.pool, StaticPool)

    def test_file_sqlite_is_pooled_normally(self, tmp_path: Path) -> None:
        engine = build_engine(f"sqlite+aiosqlite:///{tmp_path}/routes.db")
        assert not isinstance(engine.pool, StaticPool)

    @pytest.mark.asyncio
    async def test_sqlite_enforces_foreign_keys(self, db_engine: AsyncEngine) -> None:
        """A route cannot point at a user that does not exist."""
        async with AsyncSession(db_engine) as session:
            session.add(Route(name="Orphan", user_id="oauth|missing"))
            with pytest.raises(IntegrityError):
                await session.commit()

    @pytest.mark.asyncio
    async def test_user_with_routes_cannot_be_deleted(self, db_engine: AsyncEngine) -> None:
        async with AsyncSession(db_engine) as session:
            session.add(User(id="oauth|owner", email="owner@example.com"))
            await session.flush()
            session.add(Route(name="Kept", user_id="oauth|owner"))
            await session.commit()

            with pytest.raises(IntegrityError):
                await session.execute(text("DELETE FROM user WHERE id = 'oauth|owner'"))


class TestGetDb:
    """Tests for get_db dependency."""

    @pytest.mark.asyncio
    async def test_get_db_yields_active_session(self) -> None:
        """Test that get_db yields a valid session."""
        async for session in get_db():
            assert isinstance(session, AsyncSession)
            assert session.is_active
            break

    @pytest.mark.asyncio
    async def test_get_db_session_can_query(self) -> None:
        """Test that sessions from get_db can execute queries."""
        async for session in get_db():
            result = await session.execute(text("SELECT 1"))
            assert result.scalar() == 1
            break
