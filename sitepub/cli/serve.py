"""Serve command implementation."""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from ..config import Config
from ..db import close_pools
from ..pipeline import PipelineOrchestrator
from ..triggers import TriggerDispatcher

console = Console()


def serve_command(
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Configuration file",
    ),
    watch_config: bool = typer.Option(
        True,
        "--watch-config/--no-watch-config",
        help="Rebuild when the site configuration object changes",
    ),
) -> None:
    """Run the schedule and change-detection triggers until interrupted."""
    try:
        config = Config(config_path)
        orchestrator = PipelineOrchestrator.from_config(config)
        dispatcher = TriggerDispatcher.from_config(config, orchestrator)
        if not watch_config:
            dispatcher.config_trigger = None
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Cannot start dispatcher: {e}[/red]")
        raise typer.Exit(1)

    try:
        asyncio.run(dispatcher.serve())
    except KeyboardInterrupt:
        console.print("\n[yellow]Dispatcher stopped[/yellow]")
    finally:
        close_pools()

    if dispatcher.dropped:
        console.print(f"[red]{len(dispatcher.dropped)} trigger(s) were dropped[/red]")
        raise typer.Exit(1)
