"""Init command implementation."""

from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel

from ..config import ConfigModel, PostgresConfig, save_config
from ..db import init_database, validate_connection

console = Console()

SITE_CONFIG = """\
baseURL: "/"
title: "{site_name}"
defaultContentLanguage: en
languages:
  en:
    weight: 1
  ja:
    weight: 2
"""


def init_command(
    config_dir: Path = typer.Option(
        Path.home() / ".config" / "sitepub",
        "--config-dir",
        "-c",
        help="Configuration directory",
    ),
    workspace: Path = typer.Option(
        Path.home() / "SitePub",
        "--workspace",
        "-w",
        help="Workspace root directory",
    ),
    postgres: bool = typer.Option(
        False,
        "--postgres/--no-postgres",
        help="Archive runs in Postgres instead of JSON files",
    ),
    db_host: str = typer.Option("localhost", "--db-host", help="Postgres host"),
    db_port: int = typer.Option(5432, "--db-port", help="Postgres port"),
    db_name: str = typer.Option("sitepub", "--db-name", help="Database name"),
    db_user: str = typer.Option("sitepub_user", "--db-user", help="Database user"),
) -> None:
    """Initialize publisher configuration, workspace and local site bucket."""
    console.print(Panel.fit("📰 Site Publisher - Initialization", style="bold blue"))

    config_dir.mkdir(parents=True, exist_ok=True)
    config_path = config_dir / "config.yaml"

    config = ConfigModel(
        workspace_root=str(workspace),
        storage={"root": str(workspace / "bucket")},
        postgres=PostgresConfig(
            host=db_host,
            port=db_port,
            database=db_name,
            user=db_user,
            password_env="SITEPUB_DB_PASSWORD",
        ) if postgres else None,
    )

    save_config(config, config_path)
    console.print(f"✅ Created config: {config_path}")

    workspace.mkdir(parents=True, exist_ok=True)
    console.print(f"✅ Created workspace: {workspace}")

    # Seed a minimal site so the first build has something to work with
    bucket = Path(config.storage.root).expanduser()
    (bucket / config.storage.content_path).mkdir(parents=True, exist_ok=True)
    site_config = bucket / config.storage.config_key
    if not site_config.exists():
        site_config.write_text(SITE_CONFIG.format(site_name=config.site.site_name), encoding="utf-8")
        console.print(f"✅ Seeded site configuration: {site_config}")
    else:
        console.print(f"[dim]Keeping existing site configuration: {site_config}[/dim]")

    if config.postgres is not None:
        console.print("\n[bold]Testing database connection...[/bold]")
        db_config = config.postgres.model_dump()

        if not validate_connection(db_config):
            console.print(
                "[red]❌ Database connection failed![/red]\n"
                "Please ensure Postgres is running and credentials are correct.\n"
                f"Set the password via environment variable: "
                f"[bold]export {config.postgres.password_env}=your_password[/bold]"
            )
            raise typer.Exit(1)
        console.print("✅ Database connection successful")

        console.print("\n[bold]Initializing database schema...[/bold]")
        try:
            init_database(db_config)
        except Exception as e:
            console.print(f"[red]❌ Failed to initialize database: {e}[/red]")
            raise typer.Exit(1)
        console.print("✅ Database schema initialized")

    console.print(
        Panel(
            f"[green]✅ Site publisher initialized successfully![/green]\n\n"
            f"Configuration: {config_path}\n"
            f"Workspace: {workspace}\n"
            f"Site bucket: {bucket}\n\n"
            f"Next steps:\n"
            f"1. Set LLM API key: [bold]export OPENAI_API_KEY=your_key[/bold]\n"
            f"2. Add a Hugo theme under [bold]{bucket / config.storage.site_path}[/bold]\n"
            f"3. Run: [bold]sitepub run --draft[/bold] or start triggers with [bold]sitepub serve[/bold]",
            style="green",
        )
    )
