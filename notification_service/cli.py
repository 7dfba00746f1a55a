"""Management commands for the notification service."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from functools import wraps
import json
from pathlib import Path
from typing import Any

from alembic import command
from alembic.config import Config
import click

from notification_service.core.settings import (
    get_app_settings,
    get_notification_settings,
    get_provider_settings,
    get_rabbit_settings,
)
from notification_service.infra.logging import setup_logging


def async_command(func: Callable[..., Awaitable[Any]]) -> Callable[..., Any]:
    """Run an async Click command body on a fresh event loop."""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        return asyncio.run(func(*args, **kwargs))

    return wrapper


def success(message: str) -> None:
    click.secho(f"✓ {message}", fg="green")


def info(message: str) -> None:
    click.secho(f"ℹ {message}", fg="blue")


@click.group()
@click.version_option(version="1.0.0", prog_name="notification-service")
def cli() -> None:
    """Notification service management commands.

    \b
    Quick Start:
      notification-service db upgrade     # Apply schema migrations
      notification-service init-db        # Create missing tables, seed templates
      notification-service retry-pending  # Run one retry sweep
      notification-service serve          # Run the HTTP API and consumers
    """


@cli.command()
@click.option("--host", default="0.0.0.0", show_default=True, help="Host to bind")
@click.option("--port", default=8000, type=int, show_default=True, help="Port to bind")
@click.option("--reload/--no-reload", default=False, help="Enable auto-reload on code changes")
def serve(host: str, port: int, reload: bool) -> None:
    """Run the API server, inbound consumer and scheduler."""
    import uvicorn

    info(f"Server will run at: http://{host}:{port}")
    info(f"Environment: {get_app_settings().environment}")
    uvicorn.run("notification_service.app.main:app", host=host, port=port, reload=reload)


@cli.command("init-db")
@async_command
async def init_db() -> None:
    """Create missing tables and seed the default templates."""
    from notification_service.features.notifications.repository import SqlTemplateRepository
    from notification_service.features.notifications.templates import seed_default_templates
    from notification_service.infra.database import close_database, get_session_factory, init_database

    try:
        await init_database()
        counts = await seed_default_templates(SqlTemplateRepository(get_session_factory()))
    finally:
        await close_database()
    success(f"Database ready: {counts['inserted']} templates inserted, {counts['skipped']} already present")


@cli.command("retry-pending")
@async_command
async def retry_pending() -> None:
    """Run one retry sweep over notifications that are due."""
    from notification_service.features.notifications.container import build_container
    from notification_service.infra.database import close_database, get_session_factory, init_database
    from notification_service.infra.messaging import (
        BrokerEventPublisher,
        NullEventPublisher,
        create_broker,
        start_broker,
        stop_broker,
    )

    rabbit_settings = get_rabbit_settings()
    await init_database()
    broker = create_broker(rabbit_settings)
    try:
        if broker is not None:
            await start_broker(broker, rabbit_settings)
            publisher: Any = BrokerEventPublisher(broker, rabbit_settings)
        else:
            publisher = NullEventPublisher()
        container = build_container(
            session_factory=get_session_factory(),
            event_publisher=publisher,
            notification_settings=get_notification_settings(),
            provider_settings=get_provider_settings(),
            rabbit_settings=rabbit_settings,
        )
        summary = await container.poller.run_once()
    finally:
        await stop_broker(broker)
        await close_database()

    click.echo(json.dumps({"found": summary.found, "errors": summary.errors, "reasons": dict(summary.reasons)}))


def _alembic_config() -> Config:
    """Alembic config for the source checkout; the URL is resolved in env.py."""
    project_root = Path(__file__).resolve().parent.parent
    ini_path = project_root / "alembic.ini"
    if not ini_path.exists():
        raise click.ClickException(f"alembic.ini not found at {ini_path}")
    config = Config(str(ini_path))
    config.set_main_option("script_location", str(project_root / "alembic"))
    # Logging is already configured by main()
    config.attributes["configure_logger"] = False
    return config


@cli.group()
def db() -> None:
    """Schema migrations (Alembic)."""


@db.command()
@click.option("--revision", default="head", show_default=True, help="Target revision")
@click.option("--sql/--no-sql", default=False, help="Print SQL instead of executing it")
@async_command
async def upgrade(revision: str, sql: bool) -> None:
    """Apply migrations up to REVISION."""
    info(f"Upgrading database to: {revision}")
    # env.py runs its own event loop, so the command goes to a worker thread
    await asyncio.to_thread(command.upgrade, _alembic_config(), revision, sql=sql)
    if not sql:
        success("Database upgraded")


@db.command()
@click.option("--steps", default=1, type=int, show_default=True, help="Migrations to roll back (0 = all)")
@click.confirmation_option(prompt="Roll back notification tables?")
@async_command
async def downgrade(steps: int) -> None:
    """Roll back the last STEPS migrations."""
    target = f"-{steps}" if steps > 0 else "base"
    await asyncio.to_thread(command.downgrade, _alembic_config(), target)
    success(f"Database downgraded to {target}")


def main() -> None:
    """Entry point for CLI."""
    setup_logging()
    cli(obj={})


if __name__ == "__main__":
    main()
