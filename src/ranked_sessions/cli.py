"""Command-line entrypoints for scheduled maintenance runs."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as package_version
from typing import Annotated

import typer

from ranked_sessions.app_logging import configure_logging
from ranked_sessions.containers import AppContainer, build_container
from ranked_sessions.errors import AppError

logger = logging.getLogger(__name__)

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="Ranked sessions maintenance commands.",
)

_container_factory = build_container


def _parse_now(value: str | None) -> datetime | None:
    if value is None:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as exc:
        raise typer.BadParameter(
            "--now must be an ISO-8601 timestamp", param_hint="--now"
        ) from exc
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


@app.command()
def lifecycle(
    now: Annotated[
        str | None,
        typer.Option(help="Evaluate thresholds as of this ISO-8601 time."),
    ] = None,
) -> None:
    """Run one session lifecycle sweep and log the counts."""
    configure_logging()
    container: AppContainer = _container_factory()
    try:
        result = container.lifecycle_service.process_lifecycle(_parse_now(now))
    except AppError as exc:
        logger.error(
            "Session lifecycle maintenance failed: %s %s", exc.code, exc.metadata
        )
        raise typer.Exit(code=1) from exc
    logger.info("Session lifecycle maintenance completed: %s", result.as_dict())


@app.command()
def version() -> None:
    """Print the installed package version."""
    try:
        typer.echo(package_version("ranked-sessions"))
    except PackageNotFoundError:
        typer.echo("unknown")


if __name__ == "__main__":
    app()
