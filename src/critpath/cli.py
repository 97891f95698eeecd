"""Command-line interface for Critpath."""

from __future__ import annotations

import csv
from datetime import date
from pathlib import Path
from typing import Annotated

import typer

from . import context
from .calendar_exceptions import exception_statistics
from .exceptions import CritpathError
from .exchange import ExchangeFormat, export_exceptions, import_exceptions
from .graph import detect_cycles
from .leveling import LevelingPreview, LevelingService, LevelingStatus
from .loader import discover_config, load_project
from .logger import setup_logger
from .models import Project, Task
from .project_config import ProjectConfig
from .scheduler import (
    CriticalPathScheduler,
    ScheduleResult,
    SchedulingConfig,
    TerminalAnchor,
    critical_path,
    critical_path_stats,
    float_status,
    float_summary,
)

app = typer.Typer(
    name="critpath",
    help="Critical-path scheduling with calendars, typed links and resource leveling",
    add_completion=False,
)

exceptions_app = typer.Typer(help="Calendar exception import/export commands")


@app.callback()
def main_callback(
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose",
            "-v",
            help="Verbosity level: 0=silent (default), 1=show changes, 2=show all checks, 3=debug",
            min=0,
            max=3,
        ),
    ] = 0,
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to project config file (default: critpath_config.yaml)",
        ),
    ] = None,
) -> None:
    """Global options for critpath commands."""
    setup_logger(verbose)
    context.set_config_path(config)


def _parse_date_option(date_str: str | None, option_name: str) -> date | None:
    """Parse a YYYY-MM-DD CLI option, exiting with an error if malformed."""
    if date_str is None:
        return None

    try:
        return date.fromisoformat(date_str)
    except ValueError:
        typer.echo(
            f"Error: Invalid {option_name} '{date_str}'. Use YYYY-MM-DD format.",
            err=True,
        )
        raise typer.Exit(1) from None


def _load_config(file: Path) -> ProjectConfig:
    try:
        config = discover_config(file)
    except (FileNotFoundError, ValueError) as e:
        typer.echo(f"Error: Invalid config: {e}", err=True)
        raise typer.Exit(1) from e
    return config or ProjectConfig()


def _load(file: Path, *, check_cycles: bool = True) -> tuple[Project, ProjectConfig]:
    config = _load_config(file)
    try:
        project = load_project(file, config, check_cycles=check_cycles)
    except CritpathError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e
    return project, config


def _scheduling_config(
    config: ProjectConfig,
    start: date | None,
    terminal_anchor: TerminalAnchor | None,
    finish_anchored_free_float: bool,
) -> SchedulingConfig:
    """Project config with CLI overrides applied."""
    updates: dict[str, object] = {}
    if start is not None:
        updates["project_start"] = start
    if terminal_anchor is not None:
        updates["terminal_anchor"] = terminal_anchor
    if finish_anchored_free_float:
        updates["finish_anchored_free_float"] = True
    return config.scheduler.model_copy(update=updates)


def _run_schedule(
    project: Project, config: ProjectConfig, scheduling_config: SchedulingConfig
) -> ScheduleResult:
    scheduler = CriticalPathScheduler(config.calendar, config.calendars, scheduling_config)
    try:
        result = scheduler.schedule(project.tasks, project.links)
    except CritpathError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    if not result.success:
        typer.echo("Scheduling failed:", err=True)
        for error in result.errors:
            typer.echo(f"  - {error.message}", err=True)
        raise typer.Exit(1)
    return result


def _fmt(value: date | None) -> str:
    return value.isoformat() if value else "-"


def _display_task_table(tasks: list[Task]) -> None:
    """Display one row of computed dates per task."""
    typer.echo(
        f"{'Task':<20} {'ES':<10} {'EF':<10} {'LS':<10} {'LF':<10} {'TF':>3} {'FF':>3}  Status"
    )
    typer.echo("-" * 80)
    for task in tasks:
        label = task.id if not task.name else f"{task.name} ({task.id})"
        typer.echo(
            f"{label[:20]:<20} {_fmt(task.earliest_start):<10} {_fmt(task.earliest_finish):<10} "
            f"{_fmt(task.latest_start):<10} {_fmt(task.latest_finish):<10} "
            f"{task.total_float if task.total_float is not None else '-':>3} "
            f"{task.free_float if task.free_float is not None else '-':>3}  {float_status(task)}"
        )


def _display_schedule_results(
    project: Project, result: ScheduleResult, config: ProjectConfig
) -> None:
    """Display schedule results to stdout."""
    typer.echo("Schedule Results")
    typer.echo("=" * 80)
    typer.echo("")
    _display_task_table(result.tasks)
    typer.echo("")

    stats = critical_path_stats(result.tasks)
    typer.echo(
        f"Critical tasks: {stats.critical_count} of {stats.total_count} ({stats.percentage}%)"
    )
    if stats.start and stats.finish:
        typer.echo(
            f"Critical path span: {_fmt(stats.start)} to {_fmt(stats.finish)} "
            f"({stats.duration_days} calendar days)"
        )
    for chain in critical_path(result.tasks, project.links, config.calendar, config.calendars):
        typer.echo(f"  {' -> '.join(chain)}")

    summary = float_summary(result.tasks)
    typer.echo(
        f"Float: {summary.critical_tasks} critical, {summary.low_float_tasks} low, "
        f"{summary.good_float_tasks} good (average total {summary.average_total_float}, "
        f"average free {summary.average_free_float})"
    )


def _export_schedule_csv(result: ScheduleResult, output_path: Path) -> None:
    """Export computed dates to CSV."""
    with output_path.open("w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(
            [
                "task_id",
                "task_name",
                "earliest_start",
                "earliest_finish",
                "latest_start",
                "latest_finish",
                "total_float",
                "free_float",
                "critical",
            ]
        )
        for task in result.tasks:
            writer.writerow(
                [
                    task.id,
                    task.name,
                    _fmt(task.earliest_start),
                    _fmt(task.earliest_finish),
                    _fmt(task.latest_start),
                    _fmt(task.latest_finish),
                    task.total_float,
                    task.free_float,
                    "yes" if task.is_critical else "no",
                ]
            )


def _display_warnings(warnings: list[str]) -> None:
    if warnings:
        typer.echo("\nWarnings:", err=True)
        for warning in warnings:
            typer.echo(f"  - {warning}", err=True)


@app.command()
def schedule(  # noqa: PLR0913 - CLI command needs multiple options
    file: Annotated[Path, typer.Argument(help="Path to the project YAML file")] = Path(
        "project.yaml"
    ),
    start: Annotated[
        str | None,
        typer.Option("--start", "-s", help="Project start date (YYYY-MM-DD). Defaults to today"),
    ] = None,
    terminal_anchor: Annotated[
        TerminalAnchor | None,
        typer.Option("--terminal-anchor", help="Latest finish of tasks without successors"),
    ] = None,
    finish_anchored_free_float: Annotated[
        bool,
        typer.Option(
            "--finish-anchored-free-float",
            help="Measure FF/SF free float against the successor's finish",
        ),
    ] = False,
    output_csv: Annotated[
        Path | None,
        typer.Option("--output-csv", help="Export computed dates to a CSV file"),
    ] = None,
) -> None:
    """Compute earliest/latest dates, float and the critical path."""
    parsed_start = _parse_date_option(start, "start date")
    project, config = _load(file)
    scheduling_config = _scheduling_config(
        config, parsed_start, terminal_anchor, finish_anchored_free_float
    )
    result = _run_schedule(project, config, scheduling_config)

    if output_csv:
        _export_schedule_csv(result, output_csv)
        typer.echo(f"Schedule exported to {output_csv}")
    else:
        _display_schedule_results(project, result, config)
    _display_warnings(result.warnings)


def _display_leveling_preview(preview: LevelingPreview) -> None:
    typer.echo("Leveling Preview")
    typer.echo("=" * 80)
    typer.echo(preview.message)
    typer.echo(f"Status: {preview.status.value}")
    if preview.conflicts:
        typer.echo("\nConflicts (most severe first):")
        for conflict in preview.conflicts:
            typer.echo(f"  {conflict}")
    if preview.proposed_shifts:
        typer.echo("\nProposed shifts:")
        for shift in preview.proposed_shifts:
            typer.echo(
                f"  {shift.task_id}: {shift.current_start.isoformat()} -> "
                f"{shift.shifted_start.isoformat()} (+{shift.shift_days} working days, "
                f"relieves {shift.resource_id} on {shift.conflict_date.isoformat()})"
            )
    if preview.unresolved:
        typer.echo("\nUnresolved conflicts:")
        for conflict in preview.unresolved:
            typer.echo(f"  {conflict}")


@app.command()
def level(
    file: Annotated[Path, typer.Argument(help="Path to the project YAML file")] = Path(
        "project.yaml"
    ),
    start: Annotated[
        str | None,
        typer.Option("--start", "-s", help="Project start date (YYYY-MM-DD). Defaults to today"),
    ] = None,
    max_shift: Annotated[
        int | None,
        typer.Option("--max-shift", help="Maximum shift per task in working days", min=0),
    ] = None,
    apply: Annotated[
        bool,
        typer.Option("--apply", help="Apply the proposed shifts and show the new schedule"),
    ] = False,
) -> None:
    """Preview (and optionally apply) resource leveling shifts."""
    parsed_start = _parse_date_option(start, "start date")
    project, config = _load(file)
    scheduling_config = _scheduling_config(config, parsed_start, None, False)
    if max_shift is not None:
        scheduling_config = scheduling_config.model_copy(
            update={
                "leveling": scheduling_config.leveling.model_copy(
                    update={"max_shift_days": max_shift}
                )
            }
        )
    result = _run_schedule(project, config, scheduling_config)

    if not config.resources.resources:
        typer.echo("Warning: no resources configured; nothing to level", err=True)

    service = LevelingService(
        config.resources.resources, config.calendar, config.calendars, scheduling_config
    )
    stats = service.stats(result.tasks)
    typer.echo(
        f"{stats.total_conflicts} conflict(s), "
        f"total over-allocation {stats.total_over_allocation:g}, "
        f"{stats.shiftable_tasks} shiftable task(s)"
    )

    if not apply:
        _display_leveling_preview(service.preview(result.tasks, project.links))
        return

    outcome = service.level(result.tasks, project.links)
    _display_leveling_preview(outcome.preview)
    typer.echo("")
    typer.echo(outcome.application.message)
    for error in outcome.application.errors:
        typer.echo(f"  - {error}", err=True)
    if outcome.preview.status is not LevelingStatus.NO_CONFLICTS and outcome.schedule.success:
        typer.echo("")
        _display_task_table(outcome.schedule.tasks)


@app.command()
def cycles(
    file: Annotated[Path, typer.Argument(help="Path to the project YAML file")] = Path(
        "project.yaml"
    ),
) -> None:
    """Report dependency cycles (exit code 1 if any)."""
    project, _ = _load(file, check_cycles=False)
    found = detect_cycles(project.links)
    if not found:
        typer.echo("No dependency cycles found")
        return
    typer.echo(f"Found {len(found)} dependency cycle(s):")
    for cycle in found:
        typer.echo(f"  {' -> '.join(cycle)}")
    raise typer.Exit(1)


def _format_for(path: Path, explicit: ExchangeFormat | None) -> ExchangeFormat:
    if explicit is not None:
        return explicit
    try:
        return ExchangeFormat.from_path(path)
    except ValueError as e:
        typer.echo(f"Error: {e}. Use --format to choose json, csv or ics.", err=True)
        raise typer.Exit(1) from e


def _write_output(text: str, output: Path | None) -> None:
    if output:
        output.write_text(text, encoding="utf-8")
        typer.echo(f"Exceptions written to {output}")
    else:
        typer.echo(text)


@exceptions_app.command("export")
def export_command(
    file: Annotated[
        Path, typer.Argument(help="Project YAML file used to locate the config")
    ] = Path("project.yaml"),
    calendar_id: Annotated[
        str | None,
        typer.Option("--calendar", help="Named calendar to export (default: project calendar)"),
    ] = None,
    fmt: Annotated[
        ExchangeFormat | None,
        typer.Option("--format", "-f", help="Output format (default: from --output, else json)"),
    ] = None,
    output: Annotated[Path | None, typer.Option("--output", "-o", help="Output file path")] = None,
) -> None:
    """Export a calendar's exceptions as JSON, CSV or iCalendar."""
    config = _load_config(file)
    calendar = config.calendar
    if calendar_id is not None:
        if calendar_id not in config.calendars:
            typer.echo(f"Error: Unknown calendar '{calendar_id}'", err=True)
            raise typer.Exit(1)
        calendar = config.calendars[calendar_id]

    if fmt is None:
        fmt = _format_for(output, None) if output else ExchangeFormat.JSON
    _write_output(export_exceptions(calendar.exceptions, fmt), output)


@exceptions_app.command("convert")
def convert_command(
    source: Annotated[Path, typer.Argument(help="Exceptions file to read")],
    output: Annotated[Path | None, typer.Option("--output", "-o", help="Output file path")] = None,
    from_format: Annotated[
        ExchangeFormat | None,
        typer.Option("--from", help="Input format (default: from the file extension)"),
    ] = None,
    to_format: Annotated[
        ExchangeFormat | None,
        typer.Option("--to", help="Output format (default: from --output, else json)"),
    ] = None,
) -> None:
    """Convert an exceptions file between JSON, CSV and iCalendar."""
    if not source.exists():
        typer.echo(f"Error: File not found: {source}", err=True)
        raise typer.Exit(1)

    try:
        exceptions = import_exceptions(
            source.read_text(encoding="utf-8"), _format_for(source, from_format)
        )
    except CritpathError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    if to_format is None:
        to_format = _format_for(output, None) if output else ExchangeFormat.JSON
    _write_output(export_exceptions(exceptions, to_format), output)


@exceptions_app.command("stats")
def stats_command(
    source: Annotated[Path, typer.Argument(help="Exceptions file to summarise")],
    from_format: Annotated[
        ExchangeFormat | None,
        typer.Option("--from", help="Input format (default: from the file extension)"),
    ] = None,
) -> None:
    """Summarise an exceptions file by type and month."""
    if not source.exists():
        typer.echo(f"Error: File not found: {source}", err=True)
        raise typer.Exit(1)
    try:
        exceptions = import_exceptions(
            source.read_text(encoding="utf-8"), _format_for(source, from_format)
        )
    except CritpathError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    stats = exception_statistics(exceptions)
    typer.echo(f"Total exceptions: {stats.total}")
    typer.echo(f"Working days: {stats.working_days}, non-working days: {stats.non_working_days}")
    for type_name, count in sorted(stats.by_type.items()):
        typer.echo(f"  {type_name}: {count}")
    for month, count in stats.by_month.items():
        typer.echo(f"  {month}: {count}")


# Register exception subcommands
app.add_typer(exceptions_app, name="exceptions")


def main() -> int:
    """Main entry point."""
    # Typer handles sys.exit() internally
    app()
    return 0


if __name__ == "__main__":
    main()
