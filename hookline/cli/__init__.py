"""CLI tools: hookline sign, hookline source-key, hookline serve, hookline db."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import typer

from hookline.cli.db import db_app

app = typer.Typer(
    name="hookline",
    help="hookline: webhook ingestion and trigger registration.",
)
app.add_typer(db_app, name="db")


@app.command("sign")
def sign_command(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="File holding the exact request body."),
    secret: str = typer.Option(..., "--secret", help="Shared webhook secret."),
    prefix: str = typer.Option("", "--prefix", help="Prefix such as 'sha256='."),
) -> None:
    """Print the HMAC-SHA256 signature a provider would send for FILE."""
    from hookline.triggers.webhook.signature import compute_signature

    typer.echo(f"{prefix}{compute_signature(secret, file.read_bytes())}")


@app.command("source-key")
def source_key_command(
    service: str = typer.Argument(..., help="Service identifier, e.g. github."),
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON source document."),
) -> None:
    """Print the external source key derived from a source document."""
    from hookline.triggers.webhook.errors import InvalidSource
    from hookline.triggers.webhook.integrations import default_registry
    from hookline.triggers.webhook.registration import ProviderApiClient

    try:
        source: Any = json.loads(file.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        typer.echo(f"Error: {file} is not valid JSON: {exc}", err=True)
        raise typer.Exit(2) from exc
    integration = default_registry(ProviderApiClient()).get(service)
    try:
        key = service if integration is None else integration.key_for_source(source)
    except InvalidSource as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(2) from exc
    typer.echo(key)


@app.command("serve")
def serve_command(
    config: str = typer.Option("", "--config", help="Path to hookline.yaml."),
    host: str = typer.Option("", "--host", help="Bind host (default from config)."),
    port: int = typer.Option(0, "--port", help="Bind port (default from config)."),
) -> None:
    """Run the webhook gateway with uvicorn."""
    import uvicorn

    from hookline.config import ConfigLoadError, YAMLConfigLoader, load_config
    from hookline.db import create_engine, create_session_factory
    from hookline.triggers.webhook.main import build_webhook_application
    from hookline.triggers.webhook.security import configure_logging

    try:
        cfg = load_config(YAMLConfigLoader.resolve_path(config or None))
    except ConfigLoadError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(2) from exc
    configure_logging(cfg.log_level)

    session_factory = None
    database_url = cfg.database.url or os.environ.get("HOOKLINE_DATABASE_URL", "")
    if database_url.strip():
        session_factory = create_session_factory(create_engine(database_url, config=cfg.database))
    else:
        typer.echo("No database URL configured; using in-memory repositories.", err=True)

    application = build_webhook_application(cfg, session_factory=session_factory)
    uvicorn.run(
        application.build_http_app(),
        host=host or cfg.http.host,
        port=port or cfg.http.port,
        log_level=cfg.log_level.lower(),
    )


def main() -> None:
    """Console entry point."""
    app()


if __name__ == "__main__":
    main()
