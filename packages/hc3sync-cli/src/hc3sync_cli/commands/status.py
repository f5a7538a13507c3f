"""Read-only commands: gate status and discovered entries."""
from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from hc3sync_manifests import (
    GateDecision,
    LaunchEntry,
    ManifestKind,
    ParseResult,
    ReconciliationEngine,
    TaskEntry,
    command_line,
)
from rich.console import Console
from rich.table import Table

from hc3sync_cli.commands.install import (
    KIND_OPTION,
    PROJECT_OPTION,
    KindOption,
    build_engine,
)

console = Console()


def status_command(project: Path | None = PROJECT_OPTION) -> None:
    """Show what the activation gate would decide for each store."""
    engine = build_engine(project)

    async def _run() -> list[tuple[ManifestKind, GateDecision]]:
        return [(kind, await engine.evaluate(kind)) for kind in ManifestKind]

    table = Table(title="Activation gate", show_header=True, header_style="bold cyan")
    table.add_column("Kind", style="bold")
    table.add_column("Run", justify="center")
    table.add_column("Reason")
    table.add_column("Detail")

    for kind, decision in asyncio.run(_run()):
        table.add_row(
            kind.value,
            "[green]yes[/green]" if decision.run else "no",
            decision.reason.value,
            decision.detail or "-",
        )
    console.print(table)
    console.print(
        f"\n[dim]auto_install={engine.config.install.auto_install} "
        f"policy={engine.config.install.installed_policy.value} "
        f"mode={engine.config.install.mode.value}[/dim]"
    )


def list_command(
    project: Path | None = PROJECT_OPTION,
    kind: KindOption = KIND_OPTION,
) -> None:
    """List the entries discovered in the manifests."""
    engine = build_engine(project)
    found_any = False

    for manifest_kind in kind.kinds():
        entries, result, source = asyncio.run(_discover(engine, manifest_kind))
        if source is None:
            console.print(
                f"[yellow]No {engine.manifest_filename(manifest_kind)} found.[/yellow]"
            )
            continue

        found_any = True
        table = Table(
            title=f"{manifest_kind.value} ({source})",
            show_header=True,
            header_style="bold cyan",
        )
        table.add_column("Name", style="bold")
        table.add_column("Definition")

        for entry in entries:
            if isinstance(entry, TaskEntry):
                table.add_row(entry.label, command_line(entry))
            elif isinstance(entry, LaunchEntry):
                table.add_row(entry.name, f"{entry.type} ({entry.request})")
        console.print(table)

        for diagnostic in result.diagnostics if result else []:
            console.print(f"  [yellow]![/yellow] {diagnostic}")

    if not found_any:
        raise typer.Exit(1)


async def _discover(
    engine: ReconciliationEngine, kind: ManifestKind
) -> tuple[list, ParseResult | None, Path | None]:
    cache = engine.cache(kind)
    entries = await cache.get()
    return entries, cache.last_result, cache.source
