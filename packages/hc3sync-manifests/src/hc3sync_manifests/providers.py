"""Task and launch providers: read-only views over the manifest caches.

Hosts that enumerate available definitions ask these providers directly;
the answer does not depend on whether anything has been installed into
the project's stores.
"""
from __future__ import annotations

import shlex
from typing import TYPE_CHECKING, Any

from hc3sync_core.logging import get_logger

from hc3sync_manifests.types import LaunchEntry, ManifestKind, TaskEntry

if TYPE_CHECKING:
    from hc3sync_manifests.cache import ConfigurationCache

logger = get_logger("manifests.providers")

TASK_TYPE = "hc3emu"
DEFAULT_SCRIPT = "run"
DEFAULT_ARGS = ["${file}"]


def task_from_definition(definition: dict[str, Any]) -> TaskEntry:
    """Build a shell task from a ``{"script": ..., "args": [...]}`` definition."""
    script = str(definition.get("script") or DEFAULT_SCRIPT)
    args = definition.get("args") or []
    return TaskEntry(
        label=f"HC3Emu: {script}",
        command=f"{TASK_TYPE} {script}",
        args=[str(a) for a in args],
    )


def command_line(entry: TaskEntry) -> str:
    """Render the shell command line a host would execute for *entry*.

    Variables such as ``${file}`` are left for the host to substitute.
    """
    parts = [entry.command]
    parts.extend(a if a.startswith("${") else shlex.quote(a) for a in entry.args)
    return " ".join(parts)


class TaskProvider:
    """Offers the discovered tasks, or a default run task when there are none."""

    def __init__(self, cache: ConfigurationCache) -> None:
        if cache.kind is not ManifestKind.TASKS:
            msg = f"TaskProvider needs a tasks cache, got {cache.kind.value}"
            raise ValueError(msg)
        self._cache = cache
        self._tasks: list[TaskEntry] | None = None

    async def provide_tasks(self) -> list[TaskEntry]:
        if self._tasks is None:
            entries = [e for e in await self._cache.get() if isinstance(e, TaskEntry)]
            if not entries:
                entries = [
                    task_from_definition(
                        {"script": DEFAULT_SCRIPT, "args": DEFAULT_ARGS}
                    )
                ]
            self._tasks = entries
        return list(self._tasks)

    def resolve_task(self, definition: dict[str, Any]) -> TaskEntry:
        return task_from_definition(definition)

    def refresh(self) -> None:
        """Forget provided tasks and the underlying cached manifest."""
        self._tasks = None
        self._cache.invalidate()


class LaunchProvider:
    """Offers discovered debug configurations and fills in empty requests."""

    def __init__(self, cache: ConfigurationCache) -> None:
        if cache.kind is not ManifestKind.LAUNCH:
            msg = f"LaunchProvider needs a launch cache, got {cache.kind.value}"
            raise ValueError(msg)
        self._cache = cache

    async def provide_configurations(self) -> list[dict[str, Any]]:
        entries = [e for e in await self._cache.get() if isinstance(e, LaunchEntry)]
        logger.debug("Providing %d launch configuration(s)", len(entries))
        return [e.to_store_dict() for e in entries]

    async def resolve_configuration(self, config: dict[str, Any]) -> dict[str, Any]:
        """Return *config*, or the first discovered one if *config* is empty.

        A configuration is empty when it has no ``type``, ``request`` or
        ``name`` (what a host sends when the user starts debugging with no
        launch.json).
        """
        if config.get("type") or config.get("request") or config.get("name"):
            return config
        configurations = await self.provide_configurations()
        if configurations:
            logger.debug("Using '%s' as the default configuration", configurations[0]["name"])
            return configurations[0]
        return config
