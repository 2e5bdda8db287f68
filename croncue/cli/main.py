"""
croncue CLI entry point.

Commands:
    croncue jobs       — List scheduled jobs
    croncue add        — Schedule a new job
    croncue remove     — Delete a job
    croncue enable     — Re-enable a job
    croncue disable    — Pause a job
    croncue triggers   — Show triggers waiting for delivery
    croncue heartbeat  — Ensure the heartbeat job exists
    croncue config     — Show resolved configuration
    croncue logs       — Show recent logs
    croncue version    — Show version
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from zoneinfo import ZoneInfo

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from croncue.core.config import CronCueConfig
from croncue.core.errors import ConfigError, CronCueError, InvalidScheduleError
from croncue.core.types import ToolResult
from croncue.logging import setup_logging
from croncue.scheduler.cron import CronSchedule
from croncue.scheduler.heartbeat import HEARTBEAT_JOB_ID, ensure_heartbeat_job
from croncue.scheduler.job import Job, format_timestamp
from croncue.scheduler.store import JobStore
from croncue.scheduler.trigger import Trigger
from croncue.tools.schedule import ScheduleTool

app = typer.Typer(
    name="croncue",
    help="croncue — durable cron jobs that prompt agent sessions.",
    add_completion=False,
)

console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    data_dir: Path = typer.Option(None, "--data-dir", "-d", help="Override the data directory"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug output"),
) -> None:
    """Manage scheduled jobs and the trigger queue."""
    ctx.obj = {"data_dir": data_dir, "verbose": verbose}


def _load_config(ctx: typer.Context) -> CronCueConfig:
    data_dir = (ctx.obj or {}).get("data_dir")
    overrides = {"scheduler": {"data_dir": str(data_dir)}} if data_dir else None
    try:
        config = CronCueConfig.load(overrides)
    except ConfigError as e:
        console.print(f"[red]{escape(e.message)}[/red]")
        raise typer.Exit(1)

    if (ctx.obj or {}).get("verbose"):
        setup_logging(
            log_dir=Path(config.logging.log_dir).expanduser(),
            console_level=logging.DEBUG,
        )
    return config


def _open_store(config: CronCueConfig) -> JobStore:
    return JobStore(config.scheduler.data_path / "jobs")


def _next_run(job: Job, now: datetime) -> str:
    if not job.enabled:
        return "-"
    try:
        return CronSchedule(job.schedule).next_fire_time(now).strftime("%Y-%m-%d %H:%M %Z")
    except InvalidScheduleError:
        return "[red]invalid schedule[/red]"


def _report(result: ToolResult) -> None:
    if not result.success:
        console.print(f"[red]{escape(result.text)}[/red]")
        raise typer.Exit(1)
    console.print(result.output, markup=False)


@app.command()
def jobs(ctx: typer.Context) -> None:
    """List scheduled jobs."""
    config = _load_config(ctx)
    store = _open_store(config)
    all_jobs = store.list()
    if not all_jobs:
        console.print("[dim]No scheduled jobs.[/dim]")
        raise typer.Exit(0)

    table = Table(title="Scheduled jobs", border_style="cyan")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name")
    table.add_column("Schedule", no_wrap=True)
    table.add_column("Target")
    table.add_column("Status")
    table.add_column("Next run", no_wrap=True)
    table.add_column("Last fired", style="dim")
    tz = config.scheduler.timezone
    now = datetime.now(ZoneInfo(tz)) if tz else datetime.now().astimezone()
    for job in sorted(all_jobs, key=lambda j: j.id):
        status = "[green]enabled[/green]" if job.enabled else "[yellow]disabled[/yellow]"
        if job.oneshot:
            status += " [dim](oneshot)[/dim]"
        last = format_timestamp(job.last_fired_at) if job.last_fired_at else "never"
        table.add_row(
            job.id, escape(job.name), job.schedule, job.target or "—", status,
            _next_run(job, now), last,
        )
    console.print(table)


@app.command()
def add(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Job name; the id is derived from it"),
    cron: str = typer.Argument(..., help="Cron expression, e.g. '0 9 * * 1-5'"),
    prompt: str = typer.Argument(..., help="Prompt sent when the job fires"),
    target: str = typer.Option(None, "--target", "-t", help="Target session id (default: tui)"),
    oneshot: bool = typer.Option(False, "--oneshot", help="Delete after the first delivery"),
) -> None:
    """Schedule a new job."""
    tool = ScheduleTool(_open_store(_load_config(ctx)))
    _report(
        tool.execute(
            {
                "action": "add",
                "name": name,
                "cron": cron,
                "prompt": prompt,
                "target": target,
                "oneshot": oneshot,
            }
        )
    )


@app.command()
def remove(ctx: typer.Context, job_id: str = typer.Argument(..., help="Job id")) -> None:
    """Delete a job."""
    tool = ScheduleTool(_open_store(_load_config(ctx)))
    _report(tool.execute({"action": "remove", "id": job_id}))


@app.command()
def enable(ctx: typer.Context, job_id: str = typer.Argument(..., help="Job id")) -> None:
    """Re-enable a paused job."""
    tool = ScheduleTool(_open_store(_load_config(ctx)))
    _report(tool.execute({"action": "enable", "id": job_id}))


@app.command()
def disable(ctx: typer.Context, job_id: str = typer.Argument(..., help="Job id")) -> None:
    """Pause a job without deleting it."""
    tool = ScheduleTool(_open_store(_load_config(ctx)))
    _report(tool.execute({"action": "disable", "id": job_id}))


@app.command()
def triggers(ctx: typer.Context) -> None:
    """Show triggers waiting for delivery."""
    triggers_dir = _load_config(ctx).scheduler.data_path / "triggers"
    files = sorted(triggers_dir.glob("[!.]*.json")) if triggers_dir.exists() else []
    if not files:
        console.print("[dim]No pending triggers.[/dim]")
        raise typer.Exit(0)

    table = Table(title="Pending triggers", border_style="cyan")
    table.add_column("File", style="dim", no_wrap=True)
    table.add_column("Job", style="cyan")
    table.add_column("Target")
    table.add_column("Fired at")
    for path in files:
        try:
            trigger = Trigger.from_json(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            table.add_row(path.name, "[red]unreadable[/red]", "", escape(str(e)))
            continue
        table.add_row(path.name, trigger.job_id, trigger.target or "(default)", trigger.fired_at_iso)
    console.print(table)


@app.command()
def heartbeat(
    ctx: typer.Context,
    cron: str = typer.Option(None, "--cron", help="Cron expression (default from config)"),
    target: str = typer.Option(None, "--target", "-t", help="Target session id"),
    file: str = typer.Option(None, "--file", "-f", help="Heartbeat file path"),
) -> None:
    """Ensure the heartbeat job exists."""
    config = _load_config(ctx)
    store = _open_store(config)
    existed = store.get(HEARTBEAT_JOB_ID) is not None
    hb = config.heartbeat
    try:
        job = ensure_heartbeat_job(
            store,
            cron=cron or hb.cron,
            target=target or hb.target,
            heartbeat_file=file or hb.file,
        )
    except CronCueError as e:
        console.print(f"[red]{escape(e.message)}[/red]")
        raise typer.Exit(1)
    label = "Heartbeat job already exists" if existed else "Created heartbeat job"
    console.print(f"{label}: {job.schedule} → {job.target} ({job.heartbeat_file})", markup=False)


@app.command()
def version() -> None:
    """Show croncue version."""
    from croncue import __version__
    console.print(f"croncue v{__version__}")


@app.command()
def logs(
    ctx: typer.Context,
    lines: int = typer.Option(50, "--lines", "-n", help="Number of lines to show"),
    events: bool = typer.Option(False, "--events", "-e", help="Show events log instead"),
) -> None:
    """Show recent logs."""
    log_dir = Path(_load_config(ctx).logging.log_dir).expanduser()
    if not log_dir.exists():
        console.print("[dim]No logs found.[/dim]")
        raise typer.Exit(0)

    # Today's file
    date_str = datetime.now().strftime("%Y%m%d")
    if events:
        log_file = log_dir / f"events_{date_str}.jsonl"
    else:
        log_file = log_dir / f"croncue_{date_str}.log"

    if not log_file.exists():
        console.print(f"[dim]No log file for today: {log_file}[/dim]")
        raise typer.Exit(0)

    with open(log_file, "r", encoding="utf-8") as f:
        all_lines = f.readlines()
    for line in all_lines[-lines:]:
        console.print(line.rstrip(), markup=False)


@app.command()
def config(ctx: typer.Context) -> None:
    """Show current configuration."""
    resolved = _load_config(ctx)
    config_path = resolved.get_home() / "config.toml"

    console.print(Panel("[bold]croncue Configuration[/bold]", border_style="cyan"))
    console.print()

    console.print(f"[bold]Config file:[/bold] {config_path}")
    if not config_path.exists():
        console.print("[dim]Not found, using defaults and environment[/dim]")
    console.print()

    console.print(
        Panel(
            escape(json.dumps(resolved.model_dump(), indent=2)),
            title="resolved",
            border_style="dim",
        )
    )


if __name__ == "__main__":
    app()
