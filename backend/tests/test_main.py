"""Tests for main application."""

from collections.abc import Generator
from pathlib import Path

import pytest
from httpx import AsyncClient
from route_picker import __version__
from route_picker import main as main_module
from route_picker.core.config import settings
from route_picker.core.database import build_engine
from route_picker.main import _check_alembic_migrations
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection

ALEMBIC_INI = Path(__file__).resolve().parents[1] / "alembic.ini"


@pytest.fixture
def sync_conn() -> Generator[Connection]:
    """Connection to an empty in-memory SQLite database."""
    engine = create_engine("sqlite://")
    with engine.connect() as conn:
        yield conn
    engine.dispose()


def _stamp(conn: Connection, revision: str) -> None:
    conn.execute(text("CREATE TABLE alembic_version (version_num VARCHAR(32) NOT NULL PRIMARY KEY)"))
    conn.execute(text("INSERT INTO alembic_version (version_num) VALUES (:rev)"), {"rev": revision})


class TestEndpoints:
    """Tests for the unversioned endpoints."""

    @pytest.mark.asyncio
    async def test_root(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/")

        assert response.status_code == 200
        assert response.json() == {"message": "Route Picker API", "version": __version__}

    @pytest.mark.asyncio
    async def test_health(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    @pytest.mark.asyncio
    async def test_ready(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/ready")

        assert response.status_code == 200
        assert response.json() == {"status": "ready", "database": "ok"}

    @pytest.mark.asyncio
    async def test_not_ready_when_database_unreachable(
        self, async_client: AsyncClient, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        unreachable = build_engine(f"sqlite+aiosqlite:///{tmp_path}/missing/dir/routes.db")
        monkeypatch.setattr(main_module, "get_engine", lambda: unreachable)

        response = await async_client.get("/ready")

        assert response.status_code == 200
        assert response.json() == {"status": "not_ready", "database": "unavailable"}

    @pytest.mark.asyncio
    async def test_request_id_header_is_returned(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/health", headers={"X-Request-ID": "req-123"})

        assert response.headers["x-request-id"] == "req-123"


class TestCheckAlembicMigrations:
    """Tests for the startup migration check."""

    def test_skipped_without_alembic_ini(
        self, sync_conn: Connection, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        monkeypatch.setattr(settings, "ALEMBIC_INI_PATH", str(tmp_path / "absent.ini"))

        assert _check_alembic_migrations(sync_conn) is None

    def test_uninitialized_database(self, sync_conn: Connection, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings, "ALEMBIC_INI_PATH", str(ALEMBIC_INI))

        with pytest.raises(RuntimeError, match="has not been initialized"):
            _check_alembic_migrations(sync_conn)

    def test_outdated_database(self, sync_conn: Connection, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings, "ALEMBIC_INI_PATH", str(ALEMBIC_INI))
        _stamp(sync_conn, "0000")

        with pytest.raises(RuntimeError, match="Database migration required"):
            _check_alembic_migrations(sync_conn)

    def test_database_at_head(self, sync_conn: Connection, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings, "ALEMBIC_INI_PATH", str(ALEMBIC_INI))
        _stamp(sync_conn, "0001")

        assert _check_alembic_migrations(sync_conn) == "0001"
