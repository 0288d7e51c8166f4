"""Core utility functions."""

from urllib.parse import urlparse, urlunparse


def convert_async_db_url_to_sync(database_url: str) -> str:
    """
    Convert an async database URL to a sync database URL for Alembic.

    postgresql+asyncpg:// becomes postgresql+psycopg:// and
    sqlite+aiosqlite:// becomes plain sqlite://.

    Args:
        database_url: The async database URL

    Returns:
        The sync database URL
    """
    parsed_url = urlparse(database_url)
    if "+asyncpg" in parsed_url.scheme:
        sync_scheme = parsed_url.scheme.replace("+asyncpg", "+psycopg")
        return urlunparse(parsed_url._replace(scheme=sync_scheme))
    if "+aiosqlite" in parsed_url.scheme:
        return database_url.replace("+aiosqlite", "", 1)
    return database_url
