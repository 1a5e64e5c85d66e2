from __future__ import annotations

import json

import typer

from ...infra.db import get_engine
from ...infra.settings import settings
from ...infra.stream_repository import StreamRepository

app = typer.Typer(name="streams", help="Stream record operations")


def _duration_text(seconds: int | None) -> str:
    if seconds is None:
        return "-"
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


@app.command("list")
def list_streams(
    db_url: str = typer.Option(None, "--db", help="Database URL (default: YTLIVE_DATABASE_URL)"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """List persisted streams as last saved."""
    try:
        repository = StreamRepository(get_engine(db_url or settings.database_url))
        repository.create_schema()
        records = repository.load_all()
    except Exception as e:
        typer.echo(f"Error listing streams: {e}", err=True)
        raise typer.Exit(1)

    if json_output:
        payload = {
            "status": "ok",
            "total": len(records),
            "streams": [r.to_dict() for r in records],
        }
        typer.echo(json.dumps(payload, indent=2))
        return

    if not records:
        typer.echo("No streams found")
        return
    typer.echo("Streams:")
    for r in records:
        elapsed = r.elapsed_seconds if r.elapsed_seconds is not None else r.last_elapsed_seconds
        typer.echo(f"  ID: {r.id}")
        typer.echo(f"  Name: {r.name}")
        typer.echo(f"  Status: {r.status.value}")
        typer.echo(f"  Schedule: {r.schedule.type.value}")
        typer.echo(f"  Elapsed: {_duration_text(elapsed)}")
        if r.last_error:
            typer.echo(f"  Last error: {r.last_error}")
        typer.echo("")
    typer.echo(f"Total: {len(records)} streams")
