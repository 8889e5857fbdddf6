"""Main CLI application using Click framework."""

import asyncio
import functools
import json
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

import click
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from rich.console import Console
from rich.table import Table

from ..config import (
    ConfigError,
    ConfigLoader,
    create_example_config,
    get_settings,
)
from ..monitor import AvailabilityMonitor, RunSummary
from ..storage import JsonStateStore, SiteStatus, StorageError
from ..utils.logging import get_structured_logger, setup_logging
from .types import CLIContext, CommandResult

console = Console()
logger = get_structured_logger(__name__)

STATUS_STYLES = {
    SiteStatus.AVAILABLE: "green",
    SiteStatus.UNAVAILABLE: "dim",
    SiteStatus.ERROR: "red",
}


def async_command(f):
    """Decorator to run async functions in Click commands."""

    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return asyncio.run(f(*args, **kwargs))
        except KeyboardInterrupt:
            console.print("❌ Operation cancelled by user", style="red")
            sys.exit(1)
        except (ConfigError, StorageError) as e:
            console.print(f"❌ {type(e).__name__}: {str(e)}", style="red")
            logger.error("CLI command failed", error=str(e))
            sys.exit(1)

    return wrapper


def handle_result(result: CommandResult, ctx: CLIContext) -> None:
    """Handle command result output."""
    if result.success:
        if result.message:
            console.print(f"✅ {result.message}", style="green")
    else:
        console.print(f"❌ {result.message}", style="red")

    if result.data and ctx.verbose:
        console.print_json(data=result.data)

    if not result.success:
        sys.exit(result.exit_code)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--json-logs", is_flag=True, help="Emit logs as JSON lines")
@click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Path to sites.yml",
)
@click.option(
    "--status-file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Path to the status JSON file",
)
@click.pass_context
def cli(
    ctx,
    verbose: bool,
    json_logs: bool,
    config_file: Optional[Path],
    status_file: Optional[Path],
) -> None:
    """Aki watcher - notifies when reservation slots or products show up."""
    settings = get_settings()
    setup_logging(
        log_level="DEBUG" if verbose else settings.log_level,
        json_logs=json_logs or settings.json_logs,
    )
    ctx.obj = CLIContext(
        settings=settings,
        config_file=config_file,
        status_file=status_file,
        verbose=verbose,
    )


@cli.command()
@click.option("--dry-run", is_flag=True, help="Do not notify or save state")
@click.option("--json", "as_json", is_flag=True, help="Print the run summary as JSON")
@click.pass_obj
@async_command
async def check(ctx: CLIContext, dry_run: bool, as_json: bool) -> None:
    """Check every enabled site once."""
    monitor = AvailabilityMonitor(
        settings=ctx.settings,
        config_file=ctx.config_file,
        status_file=ctx.status_file,
        dry_run=dry_run,
    )
    summary = await monitor.run()

    if as_json:
        click.echo(json.dumps(summary.to_dict(), ensure_ascii=False, indent=2))
        return

    print_summary(summary)
    handle_result(
        CommandResult(
            success=True,
            message=(
                f"Checked {len(summary.outcomes)} site(s), "
                f"{summary.notified_count} notified, {summary.error_count} error(s)"
            ),
            data=summary.to_dict(),
        ),
        ctx,
    )


@cli.command()
@click.option("--schedule", help="Cron expression, defaults to the configured schedule")
@click.pass_obj
@async_command
async def watch(ctx: CLIContext, schedule: Optional[str]) -> None:
    """Keep running and check on a cron schedule."""
    schedule = schedule or ctx.settings.schedule
    tz = ctx.settings.tz
    try:
        trigger = CronTrigger.from_crontab(schedule, timezone=tz)
    except ValueError as e:
        raise ConfigError(f"Invalid schedule {schedule!r}: {e}") from e

    # Fail fast on a broken config before the scheduler starts
    ConfigLoader(ctx.config_file).load()

    async def scheduled_run() -> None:
        monitor = AvailabilityMonitor(
            settings=ctx.settings,
            config_file=ctx.config_file,
            status_file=ctx.status_file,
        )
        try:
            await monitor.run()
        except (ConfigError, StorageError) as e:
            logger.error("Scheduled run failed", error=str(e))

    scheduler = AsyncIOScheduler(timezone=tz)
    scheduler.add_job(
        scheduled_run,
        trigger=trigger,
        id="akiwatch-check",
        max_instances=1,
        coalesce=True,
        next_run_time=datetime.now(tz),
    )
    scheduler.start()
    console.print(f"👀 Watching with schedule '{schedule}' (Ctrl+C to stop)")

    try:
        await asyncio.Event().wait()
    finally:
        scheduler.shutdown(wait=False)


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Print the raw status document")
@click.pass_obj
def status(ctx: CLIContext, as_json: bool) -> None:
    """Show the persisted status of every site."""
    if not ctx.status_file.exists():
        handle_result(
            CommandResult(
                success=False, message=f"No status file at {ctx.status_file}"
            ),
            ctx,
        )
        return

    data = JsonStateStore(ctx.status_file).load()

    if as_json:
        click.echo(data.to_json())
        return

    table = Table(title=f"Status (updated {_fmt(data.last_updated)})")
    table.add_column("Site", style="cyan")
    table.add_column("Status")
    table.add_column("Last checked")
    table.add_column("Last notified")
    table.add_column("Notified products", justify="right")
    table.add_column("Error", style="red")

    for site in data.sites:
        table.add_row(
            site.name,
            f"[{STATUS_STYLES[site.status]}]{site.status.value}[/]",
            _fmt(site.last_checked),
            _fmt(site.last_notified),
            str(len(site.notified_products or [])),
            site.error_message or "",
        )

    console.print(table)


@cli.command()
@click.pass_obj
def validate(ctx: CLIContext) -> None:
    """Validate the site configuration."""
    issues = ConfigLoader(ctx.config_file).validate_config()
    if issues:
        for issue in issues:
            console.print(f"  • {issue}", style="yellow")
        handle_result(
            CommandResult(
                success=False,
                message=f"{len(issues)} issue(s) in {ctx.config_file}",
                data={"issues": issues},
            ),
            ctx,
        )
        return

    handle_result(
        CommandResult(success=True, message=f"{ctx.config_file} is valid"), ctx
    )


@cli.command()
@click.option("--force", is_flag=True, help="Overwrite an existing file")
@click.pass_obj
def init(ctx: CLIContext, force: bool) -> None:
    """Write an example sites.yml."""
    if ctx.config_file.exists() and not force:
        handle_result(
            CommandResult(
                success=False,
                message=f"{ctx.config_file} already exists (use --force to overwrite)",
            ),
            ctx,
        )
        return

    try:
        create_example_config(ctx.config_file)
    except ConfigError as e:
        handle_result(CommandResult(success=False, message=str(e)), ctx)
        return

    handle_result(
        CommandResult(success=True, message=f"Wrote example config to {ctx.config_file}"),
        ctx,
    )


def print_summary(summary: RunSummary) -> None:
    table = Table(title="Check results")
    table.add_column("Site", style="cyan")
    table.add_column("Status")
    table.add_column("Notified")
    table.add_column("Details")

    for outcome in summary.outcomes:
        details = outcome.error or ", ".join(outcome.items)
        table.add_row(
            outcome.site_name,
            f"[{STATUS_STYLES[outcome.status]}]{outcome.status.value}[/]",
            "yes" if outcome.notified else "no",
            details,
        )

    console.print(table)


def _fmt(value: Optional[datetime]) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S %Z") if value else "-"
