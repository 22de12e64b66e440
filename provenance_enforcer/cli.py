"""CLI for the provenance hooks.

Each command is a one-shot process invoked by the agent runtime or CI and
exits with 0 on success and 1 on any fatal condition.
"""

import asyncio
import json
import logging
import os
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any, NoReturn, TypeVar

import click
from rich.console import Console
from rich.table import Table

from provenance_enforcer import telemetry
from provenance_enforcer.artifacts import (
    read_json_or_none,
    recent_json_files,
    write_if_missing,
)
from provenance_enforcer.config import ProvenanceConfig
from provenance_enforcer.diff_gate import run_diff_gate
from provenance_enforcer.errors import ProvenanceError, SchemaValidationError
from provenance_enforcer.schema import bundled_schema_text
from provenance_enforcer.task_end import run_task_end
from provenance_enforcer.task_start import run_task_start
from provenance_enforcer.telemetry import create_metrics, flush_telemetry, setup_telemetry
from provenance_enforcer.validator import run_validation

console = Console()

PREFIX = "[provenance]"

# Log format for diagnostics on stderr
_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

T = TypeVar("T")


def _configure_logging(verbose: bool) -> None:
    level_name = "DEBUG" if verbose else os.getenv("PROVENANCE_LOG_LEVEL", "WARNING")
    level = logging.getLevelName(level_name.upper())
    if not isinstance(level, int):
        level = logging.WARNING
    logging.basicConfig(level=level, format=_LOG_FORMAT, stream=sys.stderr)


def _fail(command: str, message: str, details: list[str] | None = None) -> NoReturn:
    """Print a prefixed diagnostic to stderr and exit with status 1."""
    click.echo(f"{PREFIX} {command} failed: {message}", err=True)
    for line in details or []:
        click.echo(f" - {line}", err=True)
    sys.exit(1)


def _run_hook(command: str, hook: Callable[[ProvenanceConfig], T]) -> T:
    """Build the config, run a hook inside a span, and report fatal errors."""
    config = ProvenanceConfig.from_env()
    tracer, meter = setup_telemetry(config)
    create_metrics(meter)

    with tracer.start_as_current_span(f"provenance.{command}") as span:
        span.set_attribute("task.id", config.task_id)
        try:
            return hook(config)
        except SchemaValidationError as e:
            span.set_attribute("provenance.error", "schema")
            _fail(command, "Provenance schema validation failed", e.errors)
        except ProvenanceError as e:
            span.set_attribute("provenance.error", type(e).__name__)
            _fail(command, str(e))
        except OSError as e:
            span.set_attribute("provenance.error", "io")
            _fail(command, str(e))


@click.group()
@click.version_option(package_name="provenance-enforcer")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Provenance Enforcer - task provenance hooks for AI coding agents."""
    _configure_logging(verbose)
    # Runs on sys.exit too, so failing hooks still export their spans
    ctx.call_on_close(flush_telemetry)


@cli.command("task-start")
def task_start() -> None:
    """Initialize review, decision and risk artifacts for a task."""
    result = _run_hook("task-start", lambda config: asyncio.run(run_task_start(config)))

    click.echo(
        f"{PREFIX} task-start complete taskId={result.review.task_id} "
        f"review={result.review_file}"
    )
    if result.review.open_risks:
        console.print(
            f"[yellow]{len(result.review.open_risks)} open risk(s) from prior tasks[/yellow]"
        )


@cli.command("task-end")
def task_end() -> None:
    """Write the validated task summary and any human-review flag."""
    result = _run_hook("task-end", lambda config: asyncio.run(run_task_end(config)))

    status = result.summary.status
    telemetry.tasks_counter.add(1, {"status": status})
    color = "green" if status == "completed" else "yellow"
    click.echo(
        f"{PREFIX} task-end complete taskId={result.summary.task_id} "
        f"taskArtifact={result.task_file}"
    )
    console.print(f"Status: [bold {color}]{status.upper()}[/bold {color}]")
    if result.flag_file:
        console.print(
            f"[yellow]Human review required:[/yellow] {', '.join(result.flagged_risk_ids)} "
            f"(flag: {result.flag_file})"
        )


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Print the report as JSON")
def validate(as_json: bool) -> None:
    """Validate every persisted task summary."""
    report = _run_hook("validate", lambda config: asyncio.run(run_validation(config)))
    telemetry.validation_errors_counter.add(len(report.errors))

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
        sys.exit(0 if report.passed else 1)

    if not report.artifacts:
        click.echo(f"{PREFIX} no task artifacts found to validate")
        return

    if not report.passed:
        click.echo(f"{PREFIX} validation failed:", err=True)
        for message in report.errors:
            click.echo(f" - {message}", err=True)
        sys.exit(1)

    click.echo(f"{PREFIX} validation passed")


@cli.command("check-pr")
def check_pr() -> None:
    """Require a task summary change alongside substantive changes."""
    result = _run_hook("check-pr", lambda config: run_diff_gate(config, Path.cwd()))
    telemetry.gate_checks_counter.add(1, {"result": result.status})

    if result.status == "no_changes":
        click.echo(f"{PREFIX} no changed files in diff range: {result.diff_range}")
    elif result.status == "non_substantive":
        click.echo(f"{PREFIX} only non-substantive changes detected")
    elif result.status == "failed":
        click.echo(
            f"{PREFIX} failed: substantive changes detected without\n"
            "a changed task provenance artifact in .cursor/provenance/tasks/*.json\n"
            "substantive files:",
            err=True,
        )
        for path in result.substantive_changes:
            click.echo(f" - {path}", err=True)
        sys.exit(1)
    else:
        click.echo(
            f"{PREFIX} check passed with task artifacts: {', '.join(result.task_artifacts)}"
        )


@cli.command()
def init() -> None:
    """Install the bundled task schema into the provenance tree."""

    def hook(config: ProvenanceConfig) -> tuple[ProvenanceConfig, bool]:
        for directory in config.managed_dirs:
            directory.mkdir(parents=True, exist_ok=True)
        return config, write_if_missing(config.schema_file, bundled_schema_text())

    config, installed = _run_hook("init", hook)
    schema_path = config.rel(config.schema_file)
    if installed:
        click.echo(f"{PREFIX} installed schema {schema_path}")
    else:
        click.echo(f"{PREFIX} schema already present at {schema_path}")

    if not config.rule_file.exists():
        console.print(
            f"[yellow]Rule file {config.rel(config.rule_file)} not found; "
            "task-start requires it.[/yellow]"
        )


@cli.command()
@click.option("--limit", "-n", default=10, help="Number of tasks to show")
@click.option(
    "--status",
    type=click.Choice(["completed", "blocked"]),
    default=None,
    help="Filter by task status",
)
def history(limit: int, status: str | None) -> None:
    """Show the most recent task summaries."""
    config = ProvenanceConfig.from_env()

    if not config.tasks_dir.exists():
        console.print("[yellow]No provenance task directory found[/yellow]")
        return

    task_files = asyncio.run(recent_json_files(config.tasks_dir, limit=sys.maxsize))
    rows: list[dict[str, Any]] = []
    for path in task_files:
        summary = read_json_or_none(path)
        if not isinstance(summary, dict):
            continue
        if status is None or summary.get("status") == status:
            rows.append(summary)
        if len(rows) >= limit:
            break

    if not rows:
        console.print("[yellow]No matching task summaries found[/yellow]")
        return

    table = Table(title="Task Provenance History")
    table.add_column("Task")
    table.add_column("Ended")
    table.add_column("Status")
    table.add_column("Open", justify="right")
    table.add_column("High/Critical", justify="right")
    table.add_column("Flag")

    for summary in rows:
        task_id = str(summary.get("taskId", "?"))
        risk_summary = summary.get("riskSummary") or {}
        timestamps = summary.get("timestamps") or {}
        row_status = str(summary.get("status", "-"))
        color = "green" if row_status == "completed" else "yellow"
        table.add_row(
            task_id,
            str(timestamps.get("endedAt") or "-"),
            f"[{color}]{row_status}[/{color}]",
            str(risk_summary.get("open", "-")),
            str(risk_summary.get("highOrCriticalOpen", "-")),
            "yes" if config.flag_file_for(task_id).exists() else "-",
        )

    console.print(table)


def main() -> None:
    """Main entry point for the provenance CLI."""
    cli()


if __name__ == "__main__":
    main()
