"""hookline db: create tables and run Alembic migrations."""

from __future__ import annotations

import asyncio

import typer
from alembic import command
from alembic.config import Config

from hookline.db import Base, ConfigurationError, create_engine, resolve_database_url

db_app = typer.Typer(
    name="db",
    help="Database operations: create, migrate.",
)

_DATABASE_URL_HELP = "Database URL (default: HOOKLINE_DATABASE_URL)."


async def _create_all(database_url: str) -> None:
    import hookline.triggers.webhook.persistence.models  # noqa: F401

    engine = create_engine(database_url)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    finally:
        await engine.dispose()


def _database_url_or_exit(database_url: str) -> str:
    try:
        return resolve_database_url(database_url or None)
    except ConfigurationError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(2) from exc


@db_app.command("create")
def create_command(
    database_url: str = typer.Option("", "--database-url", help=_DATABASE_URL_HELP),
) -> None:
    """Create the registration tables straight from the ORM metadata."""
    asyncio.run(_create_all(_database_url_or_exit(database_url)))
    typer.echo("Tables created.")


@db_app.command("migrate")
def migrate_command(
    target: str = typer.Option("head", "--target", "-t", help="Revision to upgrade to (default: head)."),
    database_url: str = typer.Option("", "--database-url", help=_DATABASE_URL_HELP),
    config_file: str = typer.Option("alembic.ini", "--config", help="Alembic ini file."),
) -> None:
    """Upgrade the schema with Alembic."""
    revision = target.strip()
    if not revision:
        typer.echo("Error: --target must be a non-empty revision string.", err=True)
        raise typer.Exit(2)
    alembic_cfg = Config(config_file)
    alembic_cfg.set_main_option("sqlalchemy.url", _database_url_or_exit(database_url))
    command.upgrade(alembic_cfg, revision)
    typer.echo(f"Migrated to {revision}.")
