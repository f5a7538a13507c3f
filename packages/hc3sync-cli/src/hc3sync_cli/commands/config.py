from __future__ import annotations

from dataclasses import asdict
from enum import Enum
from pathlib import Path

import typer
from hc3sync_core.config import GLOBAL_CONFIG_PATH, Hc3SyncConfig
from hc3sync_core.errors import ConfigError
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from hc3sync_cli.commands.install import PROJECT_OPTION

console = Console()

config_app = typer.Typer(
    name="config",
    help="View hc3sync configuration",
    invoke_without_command=True,
)


@config_app.callback(invoke_without_command=True)
def config_command(
    ctx: typer.Context,
    project: Path | None = PROJECT_OPTION,
) -> None:
    """Show the effective (merged) configuration."""
    if ctx.invoked_subcommand is not None:
        return

    root = (project or Path.cwd()).expanduser().resolve()
    try:
        config = Hc3SyncConfig.load(root)
    except ConfigError as exc:
        console.print(f"[red]Config error:[/red] {exc}")
        raise typer.Exit(1) from None

    table = Table(title="Effective configuration", show_header=True, header_style="bold cyan")
    table.add_column("Key", style="bold")
    table.add_column("Value")

    for section, values in asdict(config).items():
        for key, value in values.items():
            if isinstance(value, Enum):
                value = value.value
            table.add_row(f"{section}.{key}", str(value))

    console.print(table)


@config_app.command("files")
def config_files(
    project: Path | None = PROJECT_OPTION,
) -> None:
    """Print the raw global and project config files."""
    root = (project or Path.cwd()).expanduser().resolve()
    project_path = root / ".hc3sync" / "config.toml"
    if not project_path.exists():
        project_path = root / "hc3sync.toml"

    shown = False
    for label, path in (("Global", GLOBAL_CONFIG_PATH), ("Project", project_path)):
        if not path.exists():
            continue
        shown = True
        console.print(f"[bold]{label}[/bold] ({path}):")
        console.print(Syntax(path.read_text(), "toml", theme="monokai"))
        console.print()

    if not shown:
        console.print("[yellow]No config files found; using defaults.[/yellow]")
