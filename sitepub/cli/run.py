"""Run command implementation."""

import asyncio
from pathlib import Path
from typing import Optional

import pendulum
import typer
from rich.console import Console

from ..config import Config
from ..db import close_pools, validate_connection
from ..models import RunRequest, RunStatus
from ..models.run import utcnow
from ..pipeline import PipelineOrchestrator

console = Console()


def run_command(
    draft: bool = typer.Option(
        False,
        "--draft/--published",
        help="Include draft content in the build",
    ),
    build_only: bool = typer.Option(
        False,
        "--build-only",
        help="Skip article generation and rebuild the site",
    ),
    trigger_time: Optional[str] = typer.Option(
        None,
        "--time",
        help="Trigger time (ISO 8601) used to derive the publish date. Default: now",
    ),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Configuration file",
    ),
) -> None:
    """Submit one run manually, e.g. to recover from a failed scheduled run."""
    try:
        config = Config(config_path)

        triggered_at = pendulum.parse(trigger_time) if trigger_time else utcnow()
        request = RunRequest(
            triggered_at=triggered_at,
            is_draft=draft,
            build_only=build_only,
            source="manual",
        )

        db_config = config.get_db_config()
        if db_config is not None:
            console.print("[dim]Checking database connection...[/dim]")
            if not validate_connection(db_config):
                console.print("[red]❌ Database connection failed![/red]")
                raise typer.Exit(1)

        orchestrator = PipelineOrchestrator.from_config(config)
        record = asyncio.run(orchestrator.start(request))

    except KeyboardInterrupt:
        console.print("\n[yellow]Run interrupted by user[/yellow]")
        raise typer.Exit(1)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Run failed: {e}[/red]")
        raise typer.Exit(1)
    finally:
        close_pools()

    if record.status != RunStatus.SUCCEEDED:
        raise typer.Exit(1)
