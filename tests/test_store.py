"""Tests for the reconciliation store: idempotence, isolation, modes."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from hc3sync_core.errors import StoreWriteError
from hc3sync_core.types import ReconcileMode
from hc3sync_manifests.store import (
    ReconciliationStore,
    has_owned_entries,
    is_owned,
    qualify,
    read_store,
    write_store,
)
from hc3sync_manifests.types import LaunchEntry, ManifestKind, TaskEntry

# ── Helpers ──────────────────────────────────────────────────────────

_RUN = TaskEntry(label="HC3:run", command="hc3emu run", args=["${file}"])
_UPLOAD = TaskEntry(label="HC3:upload", command="hc3emu upload", args=["${file}"])


def _write(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")


def _read(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


def _user_tasks_store() -> dict[str, Any]:
    return {
        "version": "2.0.0",
        "tasks": [
            {"label": "Build", "type": "shell", "command": "make"},
            {"label": "HC3:old", "type": "shell", "command": "stale"},
            {"label": "Lint", "type": "shell", "command": "luacheck ."},
        ],
    }


# ── Ownership ────────────────────────────────────────────────────────


class TestOwnership:
    def test_case_insensitive_substring(self) -> None:
        assert is_owned({"label": "my hc3 task"}, "HC3", ManifestKind.TASKS)
        assert is_owned({"label": "HC3Emu: run"}, "hc3", ManifestKind.TASKS)
        assert not is_owned({"label": "Build"}, "HC3", ManifestKind.TASKS)

    def test_uses_kind_identifier_field(self) -> None:
        assert is_owned({"name": "HC3 debug"}, "HC3", ManifestKind.LAUNCH)
        assert not is_owned({"label": "HC3 debug"}, "HC3", ManifestKind.LAUNCH)

    def test_non_mapping_never_owned(self) -> None:
        assert not is_owned("HC3", "HC3", ManifestKind.TASKS)
        assert not is_owned({"label": 3}, "HC3", ManifestKind.TASKS)

    def test_qualify_prefixes_unowned_identifier(self) -> None:
        entry = TaskEntry(label="run", command="hc3emu run")
        assert qualify(entry, "HC3").label == "HC3: run"
        assert qualify(_RUN, "HC3") is _RUN


# ── Reading ──────────────────────────────────────────────────────────


class TestReadStore:
    def test_missing_file_synthesizes_empty(self, tmp_path: Path) -> None:
        assert read_store(tmp_path / "tasks.json", ManifestKind.TASKS) == {
            "version": "2.0.0",
            "tasks": [],
        }
        assert read_store(tmp_path / "launch.json", ManifestKind.LAUNCH) == {
            "version": "0.2.0",
            "configurations": [],
        }

    def test_unparsable_file_synthesizes_empty(self, tmp_path: Path) -> None:
        path = tmp_path / "tasks.json"
        path.write_text("{{{", encoding="utf-8")
        assert read_store(path, ManifestKind.TASKS)["tasks"] == []

    def test_malformed_container_replaced(self, tmp_path: Path) -> None:
        path = tmp_path / "tasks.json"
        _write(path, {"version": "2.0.0", "tasks": {"not": "a list"}, "extra": 1})

        document = read_store(path, ManifestKind.TASKS)

        assert document["tasks"] == []
        assert document["extra"] == 1

    def test_jsonc_store_is_understood(self, tmp_path: Path) -> None:
        path = tmp_path / "tasks.json"
        path.write_text(
            '{\n  // user notes\n  "version": "2.0.0",\n'
            '  "tasks": [{"label": "Build", "command": "make"},]\n}\n',
            encoding="utf-8",
        )
        assert read_store(path, ManifestKind.TASKS)["tasks"] == [
            {"label": "Build", "command": "make"}
        ]

    def test_has_owned_entries(self, tmp_path: Path) -> None:
        path = tmp_path / "tasks.json"
        _write(path, {"version": "2.0.0", "tasks": [{"label": "Build"}]})
        assert not has_owned_entries(path, "HC3", ManifestKind.TASKS)

        _write(path, _user_tasks_store())
        assert has_owned_entries(path, "HC3", ManifestKind.TASKS)


# ── Reconcile ────────────────────────────────────────────────────────


class TestReconcileMerge:
    @pytest.mark.asyncio
    async def test_creates_store_and_parent_dir(self, tmp_path: Path) -> None:
        target = tmp_path / ".vscode" / "tasks.json"

        count = await ReconciliationStore().reconcile(
            target, [_RUN], "HC3", ManifestKind.TASKS
        )

        assert count == 1
        assert _read(target) == {
            "version": "2.0.0",
            "tasks": [
                {
                    "label": "HC3:run",
                    "type": "shell",
                    "command": "hc3emu run",
                    "args": ["${file}"],
                    "group": "build",
                }
            ],
        }

    @pytest.mark.asyncio
    async def test_idempotent(self, tmp_path: Path) -> None:
        target = tmp_path / "tasks.json"
        _write(target, _user_tasks_store())
        store = ReconciliationStore()

        await store.reconcile(target, [_RUN, _UPLOAD], "HC3", ManifestKind.TASKS)
        once = target.read_text(encoding="utf-8")
        await store.reconcile(target, [_RUN, _UPLOAD], "HC3", ManifestKind.TASKS)
        twice = target.read_text(encoding="utf-8")

        assert once == twice

    @pytest.mark.asyncio
    async def test_opaque_entries_keep_position(self, tmp_path: Path) -> None:
        target = tmp_path / "tasks.json"
        _write(target, _user_tasks_store())
        store = ReconciliationStore()

        for _ in range(3):
            await store.reconcile(target, [_RUN, _UPLOAD], "HC3", ManifestKind.TASKS)

        tasks = _read(target)["tasks"]
        assert tasks[0] == {"label": "Build", "type": "shell", "command": "make"}
        assert tasks[1] == {"label": "Lint", "type": "shell", "command": "luacheck ."}
        assert [t["label"] for t in tasks[2:]] == ["HC3:run", "HC3:upload"]

    @pytest.mark.asyncio
    async def test_last_write_wins_per_namespace(self, tmp_path: Path) -> None:
        target = tmp_path / "tasks.json"
        store = ReconciliationStore()

        await store.reconcile(target, [_RUN, _UPLOAD], "HC3", ManifestKind.TASKS)
        await store.reconcile(target, [_UPLOAD], "HC3", ManifestKind.TASKS)

        assert [t["label"] for t in _read(target)["tasks"]] == ["HC3:upload"]

    @pytest.mark.asyncio
    async def test_unqualified_entries_are_prefixed(self, tmp_path: Path) -> None:
        target = tmp_path / "tasks.json"
        store = ReconciliationStore()
        plain = TaskEntry(label="run", command="hc3emu run")

        await store.reconcile(target, [plain], "HC3", ManifestKind.TASKS)
        await store.reconcile(target, [plain], "HC3", ManifestKind.TASKS)

        assert [t["label"] for t in _read(target)["tasks"]] == ["HC3: run"]

    @pytest.mark.asyncio
    async def test_duplicates_after_qualification_first_wins(self, tmp_path: Path) -> None:
        target = tmp_path / "tasks.json"
        plain = TaskEntry(label="run", command="hc3emu run")
        prefixed = TaskEntry(label="HC3: run", command="hc3emu run --other")

        count = await ReconciliationStore().reconcile(
            target, [plain, prefixed], "HC3", ManifestKind.TASKS
        )

        tasks = _read(target)["tasks"]
        assert count == 1
        assert [(t["label"], t["command"]) for t in tasks] == [("HC3: run", "hc3emu run")]

    @pytest.mark.asyncio
    async def test_launch_entries_round_trip(self, tmp_path: Path) -> None:
        target = tmp_path / "launch.json"
        _write(target, {"version": "0.2.0", "configurations": [
            {"name": "Python", "type": "python", "request": "launch"},
        ]})
        entry = LaunchEntry(
            name="HC3Emu: debug",
            type="luaMobDebug",
            request="launch",
            options={"listenPort": 8172, "env": {"A": "1"}, "arguments": ["${file}"]},
        )

        await ReconciliationStore().reconcile(target, [entry], "HC3", ManifestKind.LAUNCH)

        assert _read(target) == {
            "version": "0.2.0",
            "configurations": [
                {"name": "Python", "type": "python", "request": "launch"},
                {
                    "name": "HC3Emu: debug",
                    "type": "luaMobDebug",
                    "request": "launch",
                    "listenPort": 8172,
                    "env": {"A": "1"},
                    "arguments": ["${file}"],
                },
            ],
        }

    @pytest.mark.asyncio
    async def test_rereads_store_changed_externally(self, tmp_path: Path) -> None:
        target = tmp_path / "tasks.json"
        store = ReconciliationStore()
        await store.reconcile(target, [_RUN], "HC3", ManifestKind.TASKS)

        document = _read(target)
        document["tasks"].insert(0, {"label": "Added later", "command": "x"})
        _write(target, document)
        await store.reconcile(target, [_RUN], "HC3", ManifestKind.TASKS)

        assert [t["label"] for t in _read(target)["tasks"]] == ["Added later", "HC3:run"]

    @pytest.mark.asyncio
    async def test_other_top_level_keys_survive(self, tmp_path: Path) -> None:
        target = tmp_path / "tasks.json"
        _write(target, {"version": "2.0.0", "tasks": [], "inputs": [{"id": "x"}]})

        await ReconciliationStore().reconcile(target, [_RUN], "HC3", ManifestKind.TASKS)

        assert _read(target)["inputs"] == [{"id": "x"}]

    @pytest.mark.asyncio
    async def test_non_mapping_entries_survive(self, tmp_path: Path) -> None:
        target = tmp_path / "tasks.json"
        _write(target, {"version": "2.0.0", "tasks": ["odd", 42]})

        await ReconciliationStore().reconcile(target, [_RUN], "HC3", ManifestKind.TASKS)

        assert _read(target)["tasks"][:2] == ["odd", 42]

    @pytest.mark.asyncio
    async def test_custom_group(self, tmp_path: Path) -> None:
        target = tmp_path / "tasks.json"
        await ReconciliationStore(group="test").reconcile(
            target, [_RUN], "HC3", ManifestKind.TASKS
        )
        assert _read(target)["tasks"][0]["group"] == "test"


class TestReconcileReplace:
    @pytest.mark.asyncio
    async def test_replace_drops_user_entries(self, tmp_path: Path) -> None:
        target = tmp_path / "tasks.json"
        _write(target, _user_tasks_store())

        count = await ReconciliationStore(mode=ReconcileMode.REPLACE).reconcile(
            target, [_RUN], "HC3", ManifestKind.TASKS
        )

        assert count == 1
        assert [t["label"] for t in _read(target)["tasks"]] == ["HC3:run"]

    @pytest.mark.asyncio
    async def test_replace_is_idempotent(self, tmp_path: Path) -> None:
        target = tmp_path / "tasks.json"
        store = ReconciliationStore(mode=ReconcileMode.REPLACE)

        await store.reconcile(target, [_RUN], "HC3", ManifestKind.TASKS)
        once = target.read_text(encoding="utf-8")
        await store.reconcile(target, [_RUN], "HC3", ManifestKind.TASKS)

        assert target.read_text(encoding="utf-8") == once


class TestWriteStore:
    def test_pretty_printed_with_newline(self, tmp_path: Path) -> None:
        target = tmp_path / "nested" / "tasks.json"
        write_store(target, {"version": "2.0.0", "tasks": []})

        text = target.read_text(encoding="utf-8")
        assert text.endswith("\n")
        assert '\n    "version": "2.0.0"' in text
        assert list(target.parent.iterdir()) == [target]

    def test_failure_raises_store_write_error(self, tmp_path: Path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("x", encoding="utf-8")

        with pytest.raises(StoreWriteError, match="Failed to write"):
            write_store(blocker / "tasks.json", {"version": "2.0.0", "tasks": []})

    def test_unencodable_text_raises_store_write_error(self, tmp_path: Path) -> None:
        target = tmp_path / "launch.json"
        document = {"version": "0.2.0", "configurations": [{"name": "\ud800"}]}

        with pytest.raises(StoreWriteError, match="Failed to write"):
            write_store(target, document)

        assert list(tmp_path.iterdir()) == []
