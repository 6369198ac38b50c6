"""Main CLI application."""

import typer
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()

from .init import init_command
from .run import run_command
from .runs import runs_app
from .serve import serve_command

app = typer.Typer(
    name="sitepub",
    help="Static site publisher - generate, render, build and invalidate",
    no_args_is_help=True,
)

# Register commands
app.command("init")(init_command)
app.command("run")(run_command)
app.command("serve")(serve_command)
app.add_typer(runs_app, name="runs", help="Inspect archived runs")


if __name__ == "__main__":
    app()
