"""Alembic environment for the hookline schema, migrating over psycopg2."""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection

from hookline.db import Base, ConfigurationError, resolve_migration_url

# Import models so their tables are attached to Base.metadata for Alembic
from hookline.triggers.webhook.persistence.models import (  # noqa: F401
    ConnectionModel,
    EventRuleModel,
    ExternalSourceModel,
    WorkflowModel,
)

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _get_sync_url() -> str:
    # `hookline db migrate --database-url` writes sqlalchemy.url; it wins over the env var.
    try:
        return resolve_migration_url(config.get_main_option("sqlalchemy.url"))
    except ConfigurationError as exc:
        raise RuntimeError(f"Cannot run migrations: {exc}") from exc


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode (SQL only, no DB connection)."""
    context.configure(
        url=_get_sync_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    context.configure(connection=connection, target_metadata=target_metadata)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode (connect to DB)."""
    connectable = context.config.attributes.get("connection", None)
    if connectable is None:
        from sqlalchemy import create_engine

        connectable = create_engine(_get_sync_url(), poolclass=pool.NullPool)
    with connectable.connect() as connection:
        do_run_migrations(connection)


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
