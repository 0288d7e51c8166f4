"""Main FastAPI application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

import structlog
from alembic import script
from alembic.config import Config
from alembic.runtime import migration
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from opentelemetry import trace
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from route_picker import __version__
from route_picker.api import actions, auth, page
from route_picker.core.config import settings
from route_picker.core.database import get_engine
from route_picker.core.logging import configure_logging
from route_picker.core.telemetry import (
    get_tracer_provider,
    set_logger_provider,
    shutdown_logger_provider,
    shutdown_tracer_provider,
)
from route_picker.middleware import AccessLoggingMiddleware
from route_picker.schemas.health import HealthResponse, ReadinessResponse, RootResponse

# Configure logging at module level so Uvicorn startup logs go through structlog pipeline
configure_logging(log_level=settings.LOG_LEVEL, log_format=settings.LOG_FORMAT)

logger = structlog.get_logger(__name__)


def _check_alembic_migrations(sync_conn: Connection) -> str | None:
    """
    Return the database's Alembic revision, insisting it is the script head.

    Without an alembic.ini (e.g. an installed wheel) the head is unknown and
    the check only reports the current revision.

    Raises:
        RuntimeError: If the schema was never migrated or is behind the head
    """
    current_rev = migration.MigrationContext.configure(sync_conn).get_current_revision()

    ini_path = Path(settings.ALEMBIC_INI_PATH)
    if not ini_path.exists():
        logger.warning("alembic_ini_not_found", path=str(ini_path), action="skipping migration validation")
        return current_rev

    head_rev = script.ScriptDirectory.from_config(Config(str(ini_path))).get_current_head()
    if current_rev is None:
        msg = "Database has not been initialized! Please run: alembic upgrade head"
        raise RuntimeError(msg)
    if current_rev != head_rev:
        msg = (
            f"Database migration required! At revision {current_rev}, expected {head_rev}. "
            "Please run: alembic upgrade head"
        )
        raise RuntimeError(msg)
    return current_rev


def _start_telemetry() -> None:
    # Providers are created here, after uvicorn forks, so each worker owns its exporter threads
    if settings.OTEL_ENABLED and (provider := get_tracer_provider()):
        trace.set_tracer_provider(provider)
        set_logger_provider()
        logger.info("otel_providers_initialized")


def _stop_telemetry() -> None:
    if settings.OTEL_ENABLED:
        shutdown_tracer_provider()
        shutdown_logger_provider()


async def _validate_database() -> None:
    """Fail startup unless the database answers and sits at the Alembic head."""
    try:
        async with get_engine().begin() as conn:
            await conn.execute(text("SELECT 1"))
            current_rev = await conn.run_sync(_check_alembic_migrations)
    except RuntimeError as e:
        logger.error("migration_validation_failed", error=str(e))
        raise
    except (SQLAlchemyError, OSError) as e:
        logger.error("database_unavailable_at_startup", error=str(e))
        raise
    logger.info("database_migration_valid", revision=current_rev)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Start telemetry, check the schema (skipped in debug mode) and clean up on shutdown."""
    _start_telemetry()

    if settings.DEBUG:
        # Debug and test databases are built from the models, not migrations
        logger.info("debug_mode_startup", message="skipping database validation")
    else:
        await _validate_database()
    logger.info("startup_complete")

    try:
        yield
    finally:
        logger.info("shutdown_starting")
        _stop_telemetry()
        await get_engine().dispose()
        logger.info("shutdown_complete")


app = FastAPI(
    title="Route Picker API",
    description="Commute route and trip logger",
    version=__version__,
    lifespan=lifespan,
)

# Instrumentor wraps the ASGI app; the TracerProvider is set later in lifespan
if settings.OTEL_ENABLED:
    FastAPIInstrumentor().instrument_app(
        app,
        excluded_urls=",".join(settings.OTEL_EXCLUDED_URLS),
    )
    logger.info("otel_fastapi_instrumented", excluded_urls=settings.OTEL_EXCLUDED_URLS)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Access logging middleware (replaces uvicorn.access logs with structlog)
app.add_middleware(AccessLoggingMiddleware)

app.include_router(auth.router, prefix=settings.API_V1_PREFIX)
app.include_router(page.router, prefix=settings.API_V1_PREFIX)
app.include_router(actions.router, prefix=settings.API_V1_PREFIX)


@app.get("/", response_model=RootResponse)
async def root() -> RootResponse:
    """Root endpoint."""
    return RootResponse(message="Route Picker API", version=__version__)


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="healthy")


@app.get("/ready", response_model=ReadinessResponse)
async def readiness_check() -> ReadinessResponse:
    """Readiness check endpoint - verify the database answers."""
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        logger.warning("readiness_check_failed", error=str(e))
        return ReadinessResponse(status="not_ready", database="unavailable")
    return ReadinessResponse(status="ready", database="ok")
