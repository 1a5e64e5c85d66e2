from __future__ import annotations

import json
from datetime import datetime, timezone

import typer

from ...domain.schedule import ScheduleConfig
from ...domain.types import ScheduleType
from ...infra.exceptions import ValidationError
from ...runtime.clock import MasterClock
from ...runtime.schedule_evaluator import evaluate, resolve_timezone, validate_schedule

app = typer.Typer(name="schedule", help="Stop schedule operations")


def _parse_instant(value: str, option: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise typer.BadParameter(f"invalid ISO timestamp {value!r}", param_hint=option) from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@app.command("check")
def check_schedule(
    schedule_type: ScheduleType = typer.Option(..., "--type", help="duration or absolute"),
    hours: int = typer.Option(0, "--hours", help="Duration hours"),
    minutes: int = typer.Option(0, "--minutes", help="Duration minutes"),
    seconds: int = typer.Option(0, "--seconds", help="Duration seconds"),
    local_datetime: str = typer.Option(None, "--datetime", help="Absolute stop time, naive ISO (YYYY-MM-DDTHH:MM[:SS])"),
    tz_name: str = typer.Option(None, "--timezone", help="IANA timezone for --datetime"),
    started_at: str = typer.Option(None, "--started-at", help="Session start, ISO (default: now)"),
    now: str = typer.Option(None, "--now", help="Evaluation instant, ISO (default: now)"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Resolve a stop schedule to its deadline and report whether it has expired."""
    clock = MasterClock()
    now_at = _parse_instant(now, "--now") if now else clock.now_utc()
    start_at = _parse_instant(started_at, "--started-at") if started_at else now_at

    if schedule_type == ScheduleType.DURATION:
        schedule = ScheduleConfig.for_duration(hours, minutes, seconds)
    elif schedule_type == ScheduleType.ABSOLUTE:
        schedule = ScheduleConfig.for_absolute(local_datetime or "", tz_name or "")
    else:
        schedule = ScheduleConfig.manual()

    try:
        decision = evaluate(validate_schedule(schedule), start_at, now_at)
    except ValidationError as e:
        if json_output:
            typer.echo(json.dumps({"status": "error", "error": str(e)}, indent=2))
        else:
            typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    result = {
        "status": "ok",
        "schedule": schedule.to_dict(),
        "decision": decision.kind.value,
        "deadline": decision.deadline.isoformat() if decision.deadline else None,
        "remaining_seconds": decision.remaining_seconds,
    }
    if json_output:
        typer.echo(json.dumps(result, indent=2))
        return

    typer.echo(f"Decision: {result['decision']}")
    if decision.deadline is not None:
        typer.echo(f"Deadline (UTC): {result['deadline']}")
        if tz_name and schedule_type == ScheduleType.ABSOLUTE:
            local = decision.deadline.astimezone(resolve_timezone(tz_name))
            typer.echo(f"Deadline ({tz_name}): {local.isoformat()}")
        typer.echo(f"Remaining: {int(decision.remaining_seconds or 0)}s")
