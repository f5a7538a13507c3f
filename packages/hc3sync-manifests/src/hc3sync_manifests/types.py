"""Manifest and store types for the hc3sync-manifests package."""
from __future__ import annotations

import dataclasses
import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union

# Free-form launch option values: str | number | bool | null | list | mapping.
OptionValue = Union[str, int, float, bool, None, list[Any], dict[str, Any]]


@dataclass(frozen=True, slots=True)
class KindSpec:
    """Static description of one manifest/store kind."""

    entries_key: str
    id_field: str
    store_file: str
    store_version: str


class ManifestKind(enum.Enum):
    """The two kinds of manifest the engine reconciles, gated independently."""

    TASKS = "tasks"
    LAUNCH = "launch"

    @property
    def spec(self) -> KindSpec:
        return _KIND_SPECS[self]


_KIND_SPECS: dict[ManifestKind, KindSpec] = {
    ManifestKind.TASKS: KindSpec(
        entries_key="tasks",
        id_field="label",
        store_file="tasks.json",
        store_version="2.0.0",
    ),
    ManifestKind.LAUNCH: KindSpec(
        entries_key="configurations",
        id_field="name",
        store_file="launch.json",
        store_version="0.2.0",
    ),
}


class Trigger(enum.Enum):
    STARTUP = "startup"
    FILE_CREATED = "file-created"


class GateState(enum.Enum):
    NO_WORKSPACE = "no-workspace"
    DISABLED = "disabled"
    ALREADY_INSTALLED = "already-installed"
    NO_TRIGGER_CONTENT = "no-trigger-content"
    ELIGIBLE = "eligible"


@dataclass(frozen=True, slots=True)
class TaskEntry:
    """A shell task declared in a task manifest."""

    label: str
    command: str
    args: list[str] = field(default_factory=list)
    kind: str = "shell"

    @property
    def identifier(self) -> str:
        return self.label

    def with_identifier(self, identifier: str) -> TaskEntry:
        return dataclasses.replace(self, label=identifier)

    def to_store_dict(self, group: str = "build") -> dict[str, Any]:
        """Rewrite to the fixed shell-execution shape of ``tasks.json``."""
        return {
            "label": self.label,
            "type": "shell",
            "command": self.command,
            "args": list(self.args),
            "group": group,
        }


@dataclass(frozen=True, slots=True)
class LaunchEntry:
    """A debug launch configuration; unknown keys are carried in ``options``."""

    name: str
    type: str
    request: str
    options: dict[str, OptionValue] = field(default_factory=dict)

    @property
    def identifier(self) -> str:
        return self.name

    def with_identifier(self, identifier: str) -> LaunchEntry:
        return dataclasses.replace(self, name=identifier)

    def to_store_dict(self, group: str = "build") -> dict[str, Any]:
        # ``group`` only applies to tasks; launch entries pass through.
        return {
            "name": self.name,
            "type": self.type,
            "request": self.request,
            **self.options,
        }


ManifestEntry = Union[TaskEntry, LaunchEntry]


@dataclass(frozen=True, slots=True)
class Manifest:
    """A parsed manifest. Ephemeral: rebuilt on every discovery."""

    kind: ManifestKind
    version: str = ""
    entries: list[ManifestEntry] = field(default_factory=list)
    source_path: Path | None = None


@dataclass(frozen=True, slots=True)
class LocatedManifest:
    """The first readable candidate found by the locator."""

    path: Path
    content: str


@dataclass(frozen=True, slots=True)
class ParseResult:
    """Outcome of parsing manifest text.

    ``parse_failed`` is only set for unparsable syntax; structural and
    per-entry problems leave it ``False`` and are reported through
    ``diagnostics``.
    """

    entries: list[ManifestEntry] = field(default_factory=list)
    version: str = ""
    diagnostics: list[str] = field(default_factory=list)
    parse_failed: bool = False


@dataclass(frozen=True, slots=True)
class GateContext:
    """Inputs for one activation-gate evaluation."""

    kind: ManifestKind
    project_root: Path | None
    trigger: Trigger = Trigger.STARTUP
    created_path: Path | None = None


@dataclass(frozen=True, slots=True)
class GateDecision:
    run: bool
    reason: GateState
    detail: str = ""


@dataclass(frozen=True, slots=True)
class InstallReport:
    """Result of one reconciliation attempt, used for reporting only."""

    kind: ManifestKind
    installed: int = 0
    target: Path | None = None
    skipped_reason: GateState | None = None
    error: str | None = None
