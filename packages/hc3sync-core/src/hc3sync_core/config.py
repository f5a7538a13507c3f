from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from hc3sync_core.errors import ConfigError
from hc3sync_core.types import InstalledPolicy, ReconcileMode

logger = logging.getLogger("hc3sync.config")

GLOBAL_CONFIG_PATH = Path.home() / ".hc3sync" / "config.toml"


def _load_toml(path: Path) -> dict:
    """Load a TOML file, returning empty dict if missing or unreadable."""
    if not path.exists():
        return {}
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError):
        logger.warning("Ignoring unreadable config file %s", path, exc_info=True)
        return {}


def _deep_merge(base: dict, override: dict) -> dict:
    """Merge override into base (1 level deep for TOML sections)."""
    merged = dict(base)
    for key, val in override.items():
        if (
            key in merged
            and isinstance(merged[key], dict)
            and isinstance(val, dict)
        ):
            merged[key] = {**merged[key], **val}
        else:
            merged[key] = val
    return merged


def _enum_value(enum_type: type, raw: Any, key: str) -> Any:
    if isinstance(raw, enum_type):
        return raw
    try:
        return enum_type(str(raw).lower())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_type)
        msg = f"Invalid value for {key!r}: {raw!r} (expected one of: {allowed})"
        raise ConfigError(msg) from None


@dataclass(frozen=True, slots=True)
class InstallConfig:
    auto_install: bool = True
    mode: ReconcileMode = ReconcileMode.MERGE
    installed_policy: InstalledPolicy = InstalledPolicy.EXISTS
    namespace: str = "HC3"
    group: str = "build"


@dataclass(frozen=True, slots=True)
class ManifestsConfig:
    tasks_file: str = "hc3emu2tasks.json"
    launch_file: str = "hc3emu2launch.json"
    search_depth: int = 2  # project root plus two parent directories


@dataclass(frozen=True, slots=True)
class WorkspaceConfig:
    store_dir: str = ".vscode"
    watch_pattern: str = "*.lua"
    probe_limit: int = 5000
    exclude_dirs: list[str] = field(
        default_factory=lambda: [
            ".git", ".hg", ".svn", ".vscode", "node_modules", "__pycache__",
        ]
    )


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    level: str = "INFO"
    json: bool = False


@dataclass(frozen=True, slots=True)
class Hc3SyncConfig:
    """Top-level configuration, parsed from hc3sync.toml."""
    install: InstallConfig = field(default_factory=InstallConfig)
    manifests: ManifestsConfig = field(default_factory=ManifestsConfig)
    workspace: WorkspaceConfig = field(default_factory=WorkspaceConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_toml(
        cls, path: Path | str = "hc3sync.toml"
    ) -> Hc3SyncConfig:
        path = Path(path)
        raw = _load_toml(path)
        return cls._from_raw(raw)

    @classmethod
    def load(
        cls,
        project_dir: Path | str | None = None,
        global_path: Path | None = None,
    ) -> Hc3SyncConfig:
        """Load config with global → project layering.

        Resolution order (later wins):
        1. Built-in defaults
        2. ~/.hc3sync/config.toml (global)
        3. .hc3sync/config.toml or hc3sync.toml (project)
        """
        global_path = GLOBAL_CONFIG_PATH if global_path is None else global_path

        project_dir = (
            Path.cwd() if project_dir is None else Path(project_dir)
        )

        # Project config: .hc3sync/config.toml takes priority
        project_path = project_dir / ".hc3sync" / "config.toml"
        if not project_path.exists():
            project_path = project_dir / "hc3sync.toml"

        global_raw = _load_toml(global_path)
        project_raw = _load_toml(project_path)
        merged = _deep_merge(global_raw, project_raw)

        return cls._from_raw(merged)

    @classmethod
    def _from_raw(cls, raw: dict) -> Hc3SyncConfig:
        """Build Hc3SyncConfig from a raw TOML dict."""

        def _pick(section: Any, dc: type) -> dict:
            if not isinstance(section, dict):
                return {}
            fields = dc.__dataclass_fields__
            return {
                k.replace("-", "_"): v
                for k, v in section.items()
                if k.replace("-", "_") in fields
            }

        install_raw = _pick(raw.get("install", {}), InstallConfig)
        if "mode" in install_raw:
            install_raw["mode"] = _enum_value(
                ReconcileMode, install_raw["mode"], "install.mode"
            )
        if "installed_policy" in install_raw:
            install_raw["installed_policy"] = _enum_value(
                InstalledPolicy,
                install_raw["installed_policy"],
                "install.installed_policy",
            )

        return cls(
            install=InstallConfig(**install_raw),
            manifests=ManifestsConfig(
                **_pick(raw.get("manifests", {}), ManifestsConfig)
            ),
            workspace=WorkspaceConfig(
                **_pick(raw.get("workspace", {}), WorkspaceConfig)
            ),
            logging=LoggingConfig(
                **_pick(raw.get("logging", {}), LoggingConfig)
            ),
        )
