"""Install commands: passive triggers and explicit (re)install."""
from __future__ import annotations

import asyncio
from enum import Enum
from pathlib import Path

import typer
from hc3sync_core.config import Hc3SyncConfig
from hc3sync_core.errors import ConfigError, Hc3SyncError
from hc3sync_core.logging import setup_logging_from_config
from hc3sync_manifests import InstallReport, ManifestKind, ReconciliationEngine
from rich.console import Console
from rich.table import Table

console = Console()


class KindOption(str, Enum):
    tasks = "tasks"
    launch = "launch"
    all = "all"

    def kinds(self) -> list[ManifestKind]:
        if self is KindOption.all:
            return list(ManifestKind)
        return [ManifestKind(self.value)]


PROJECT_OPTION = typer.Option(
    None,
    "--project",
    "-p",
    help="Project root (defaults to the current directory)",
)
KIND_OPTION = typer.Option(
    KindOption.all,
    "--kind",
    "-k",
    help="Which store to install: tasks, launch or all",
)


def build_engine(project: Path | None) -> ReconciliationEngine:
    """Build an engine for *project* with its layered configuration."""
    root = (project or Path.cwd()).expanduser().resolve()
    try:
        config = Hc3SyncConfig.load(root)
    except ConfigError as exc:
        console.print(f"[red]Config error:[/red] {exc}")
        raise typer.Exit(1) from None
    setup_logging_from_config(config.logging)
    return ReconciliationEngine(root, config)


def _print_reports(reports: list[InstallReport], title: str) -> None:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Kind", style="bold")
    table.add_column("Installed", justify="right")
    table.add_column("Target")
    table.add_column("Note")

    for report in reports:
        if report.error:
            note = f"[red]{report.error}[/red]"
        elif report.skipped_reason is not None:
            note = f"[dim]skipped: {report.skipped_reason.value}[/dim]"
        else:
            note = "-"
        table.add_row(
            report.kind.value,
            str(report.installed),
            str(report.target) if report.target else "-",
            note,
        )
    console.print(table)


def activate_command(project: Path | None = PROJECT_OPTION) -> None:
    """Run the startup trigger (auto-install when eligible)."""
    engine = build_engine(project)

    async def _run() -> list[InstallReport]:
        try:
            return list((await engine.on_startup()).values())
        finally:
            await engine.close()

    _print_reports(asyncio.run(_run()), "Activation")


def notify_command(
    path: Path = typer.Argument(..., help="Path of the newly created file"),
    project: Path | None = PROJECT_OPTION,
) -> None:
    """Run the file-created trigger for PATH."""
    engine = build_engine(project)

    async def _run() -> list[InstallReport]:
        try:
            return list((await engine.on_file_created(path)).values())
        finally:
            await engine.close()

    _print_reports(asyncio.run(_run()), f"New file: {path}")


def _explicit(project: Path | None, kind: KindOption, *, reinstall: bool) -> None:
    engine = build_engine(project)

    async def _run() -> list[InstallReport]:
        reports: list[InstallReport] = []
        try:
            for manifest_kind in kind.kinds():
                if reinstall:
                    reports.append(await engine.reinstall(manifest_kind))
                else:
                    reports.append(await engine.install(manifest_kind))
        finally:
            await engine.close()
        return reports

    try:
        reports = asyncio.run(_run())
    except Hc3SyncError as exc:
        console.print(f"[red]Install failed:[/red] {type(exc).__name__}: {exc}")
        raise typer.Exit(1) from None

    _print_reports(reports, "Reinstall" if reinstall else "Install")
    total = sum(r.installed for r in reports)
    console.print(f"\n[green]{total} entr{'y' if total == 1 else 'ies'} installed.[/green]")


def install_command(
    project: Path | None = PROJECT_OPTION,
    kind: KindOption = KIND_OPTION,
) -> None:
    """Install manifest entries now, ignoring the activation gate."""
    _explicit(project, kind, reinstall=False)


def reinstall_command(
    project: Path | None = PROJECT_OPTION,
    kind: KindOption = KIND_OPTION,
) -> None:
    """Re-read the manifests and install their entries again."""
    _explicit(project, kind, reinstall=True)
