"""Alembic environment for the route picker schema."""

import logging
from collections.abc import Collection, Mapping
from logging.config import fileConfig
from typing import Any

from alembic import context
from alembic.runtime.migration import MigrationContext, MigrationInfo
from route_picker.core.config import settings
from route_picker.core.utils import convert_async_db_url_to_sync
from route_picker.models import Base  # This will import all models
from sqlalchemy import engine_from_config, pool

logger = logging.getLogger("alembic.env")

config = context.config

# Migrations run on sync drivers
database_url = convert_async_db_url_to_sync(settings.DATABASE_URL)
config.set_main_option("sqlalchemy.url", database_url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

# SQLite cannot ALTER most constraints in place
render_as_batch = database_url.startswith("sqlite")


def run_migrations_offline() -> None:
    """Emit the migration SQL for the configured URL without connecting."""
    context.configure(
        url=database_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=render_as_batch,
    )

    with context.begin_transaction():
        context.run_migrations()


def _log_plan(current_rev: str | None, head_rev: str | None) -> None:
    if current_rev == head_rev:
        logger.info(f"Database already at target revision: {head_rev or 'base'}")
    elif current_rev is None:
        logger.info(f"Initializing database to revision: {head_rev}")
    else:
        logger.info(f"Upgrading database from {current_rev} to {head_rev}")


def run_migrations_online() -> None:
    """Connect and apply pending migrations, logging each applied revision."""
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        applied: list[str] = []

        def on_version_apply(
            ctx: MigrationContext,
            step: MigrationInfo,
            heads: Collection[Any],
            run_args: Mapping[str, Any],
        ) -> None:
            applied.append(step.up_revision_id)
            logger.info(f"Applying migration {step.up_revision_id}")

        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            on_version_apply=on_version_apply,
            render_as_batch=render_as_batch,
            compare_type=True,
        )

        current_rev = context.get_context().get_current_revision()
        head_rev = context.script.get_current_head()
        _log_plan(current_rev, head_rev)

        with context.begin_transaction():
            context.run_migrations()

        if applied:
            logger.info(f"Applied {len(applied)} migration(s). Database now at revision: {head_rev}")


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
