"""Async PostgreSQL engine for the hookline repositories."""

from __future__ import annotations

import os

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from hookline.config.models import DatabaseConfig
from hookline.db.exceptions import ConfigurationError

ASYNC_SCHEME = "postgresql+asyncpg://"
_SYNC_SCHEME = "postgresql://"
MIGRATION_SCHEME = "postgresql+psycopg2://"


def resolve_database_url(database_url: str | None = None) -> str:
    """Return an asyncpg URL from the argument, falling back to HOOKLINE_DATABASE_URL.

    Raises:
        ConfigurationError: URL missing or not PostgreSQL.
    """
    raw = (database_url or os.environ.get("HOOKLINE_DATABASE_URL") or "").strip()
    if not raw:
        raise ConfigurationError("Database URL not set. Set HOOKLINE_DATABASE_URL or pass database_url.")
    if raw.startswith(ASYNC_SCHEME):
        return raw
    if raw.startswith(_SYNC_SCHEME):
        return ASYNC_SCHEME + raw[len(_SYNC_SCHEME) :]
    raise ConfigurationError("Database URL must be PostgreSQL (postgresql:// or postgresql+asyncpg://).")


def create_engine(database_url: str | None = None, *, config: DatabaseConfig | None = None) -> AsyncEngine:
    """Create the async engine; an explicit URL wins over config.url."""
    cfg = config or DatabaseConfig()
    return create_async_engine(
        resolve_database_url(database_url or cfg.url),
        pool_size=cfg.pool_size,
        max_overflow=cfg.max_overflow,
        pool_pre_ping=True,
        echo=cfg.echo,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory handed to the SQL repositories; one session per operation."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


def resolve_migration_url(database_url: str | None = None) -> str:
    """Return the psycopg2 URL Alembic migrates with.

    An explicit URL (the ``sqlalchemy.url`` option that ``hookline db migrate``
    sets) wins over HOOKLINE_DATABASE_URL, same as resolve_database_url.
    """
    raw = (database_url or os.environ.get("HOOKLINE_DATABASE_URL") or "").strip()
    if raw.startswith(MIGRATION_SCHEME):
        return raw
    url = resolve_database_url(raw or None)
    return MIGRATION_SCHEME + url[len(ASYNC_SCHEME) :]
