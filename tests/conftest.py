from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
from hc3sync_core.config import Hc3SyncConfig, InstallConfig, ManifestsConfig

TASKS_MANIFEST = "manifest.json"
LAUNCH_MANIFEST = "hc3emu2launch.json"


@pytest.fixture(autouse=True)
def _isolate_global_config(tmp_path_factory, monkeypatch):
    """Never read the developer's real ~/.hc3sync/config.toml."""
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setattr(
        "hc3sync_core.config.GLOBAL_CONFIG_PATH", home / "config.toml"
    )


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A project root two levels below tmp_path, so parent lookups stay inside it."""
    root = tmp_path / "workspace" / "project"
    root.mkdir(parents=True)
    return root


@pytest.fixture
def config() -> Hc3SyncConfig:
    return Hc3SyncConfig(
        manifests=ManifestsConfig(tasks_file=TASKS_MANIFEST, launch_file=LAUNCH_MANIFEST),
    )


@pytest.fixture
def disabled_config() -> Hc3SyncConfig:
    return Hc3SyncConfig(
        install=InstallConfig(auto_install=False),
        manifests=ManifestsConfig(tasks_file=TASKS_MANIFEST, launch_file=LAUNCH_MANIFEST),
    )


@pytest.fixture
def run_task_manifest() -> dict[str, Any]:
    return {
        "version": "1.0",
        "tasks": [
            {
                "label": "HC3:run",
                "type": "shell",
                "command": "hc3emu run",
                "args": ["${file}"],
            }
        ],
    }


@pytest.fixture
def launch_manifest() -> dict[str, Any]:
    return {
        "version": "0.2.0",
        "configurations": [
            {
                "name": "HC3Emu: Current File",
                "type": "luaMobDebug",
                "request": "launch",
                "workingDirectory": "${workspaceFolder}",
                "sourceBasePath": "${workspaceFolder}",
                "listenPort": 8172,
                "stopOnEntry": False,
                "sourceEncoding": "UTF-8",
                "env": {"HC3EMU": "1"},
                "arguments": ["${file}"],
            }
        ],
    }
