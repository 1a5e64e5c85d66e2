"""
Main CLI application using Typer.

Registers the command groups and the ``serve`` command, which runs the HTTP
API together with the reconciliation loop.
"""

from __future__ import annotations

import typer

from ..infra.logging import configure_logging
from ..infra.settings import settings
from .commands import schedule, streams

app = typer.Typer(help="ytlive operator CLI")

app.add_typer(streams.app, name="streams", help="Inspect persisted stream records")
app.add_typer(schedule.app, name="schedule", help="Evaluate stop schedules")


@app.command("serve")
def serve(
    host: str = typer.Option(None, "--host", help="Bind address (default: YTLIVE_HOST)"),
    port: int = typer.Option(None, "--port", help="Bind port (default: YTLIVE_PORT)"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Use the in-memory broadcaster instead of ffmpeg"),
    persist: bool = typer.Option(None, "--persist/--no-persist", help="Mirror streams to the database"),
):
    """Run the HTTP API and the reconciliation loop."""
    from ..runtime.context import build_runtime
    from ..web.server import run_server

    runtime = build_runtime(settings, dry_run=dry_run, persist=persist)
    run_server(host or settings.host, port or settings.port, runtime)


@app.callback()
def main(
    log_level: str = typer.Option(None, "--log-level", help="Override YTLIVE_LOG_LEVEL"),
    log_format: str = typer.Option(None, "--log-format", help="json or console (overrides YTLIVE_LOG_FORMAT)"),
):
    """ytlive - YouTube live-stream job manager."""
    configure_logging(log_level, log_format)


def cli():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    cli()
