"""Run history commands."""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from ..config import Config
from ..models import RunStatus
from ..pipeline import create_archive

console = Console()

runs_app = typer.Typer(no_args_is_help=True)

ConfigOption = typer.Option(None, "--config", "-c", help="Configuration file")


def _load_archive(config_path: Optional[Path]):
    try:
        return create_archive(Config(config_path))
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)


@runs_app.command("list")
def list_runs(
    limit: int = typer.Option(10, "--limit", "-n", help="Number of runs to show"),
    config_path: Optional[Path] = ConfigOption,
) -> None:
    """List the most recent runs."""
    records = _load_archive(config_path).recent(limit)
    if not records:
        console.print("[yellow]No runs archived yet[/yellow]")
        return

    table = Table(title="Recent runs")
    table.add_column("ID", style="cyan")
    table.add_column("Triggered", style="dim")
    table.add_column("Source")
    table.add_column("Mode")
    table.add_column("Status", style="bold")
    table.add_column("Failed stage", style="red")

    for record in records:
        request = record.request
        mode = "build-only" if request.build_only else ("draft" if request.is_draft else "published")
        status = (
            "[green]succeeded[/green]"
            if record.status == RunStatus.SUCCEEDED
            else f"[red]{record.status.value}[/red]"
        )
        table.add_row(
            record.id[:8],
            request.triggered_at.strftime("%Y-%m-%d %H:%M"),
            request.source,
            mode,
            status,
            record.failed_stage or "",
        )

    console.print(table)


@runs_app.command("show")
def show_run(
    run_id: str = typer.Argument(..., help="Run ID or unique prefix"),
    config_path: Optional[Path] = ConfigOption,
) -> None:
    """Show the full record of one run."""
    archive = _load_archive(config_path)
    record = archive.get(run_id)
    if record is None:
        matches = [r for r in archive.recent(100) if r.id.startswith(run_id)]
        if len(matches) != 1:
            console.print(f"[red]Run not found: {run_id}[/red]")
            raise typer.Exit(1)
        record = matches[0]

    console.print_json(record.model_dump_json())
