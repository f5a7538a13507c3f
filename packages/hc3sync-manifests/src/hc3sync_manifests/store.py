"""Reconciliation store: namespaced, idempotent merge into tasks/launch JSON."""
from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Any

from hc3sync_core.errors import StoreWriteError
from hc3sync_core.types import ReconcileMode

from hc3sync_manifests.parser import load_json_document

if TYPE_CHECKING:
    from collections.abc import Sequence

    from hc3sync_manifests.types import ManifestEntry, ManifestKind

logger = logging.getLogger("hc3sync.manifests.store")


def empty_store(kind: ManifestKind) -> dict[str, Any]:
    """A fresh store document with the version stamp for *kind*."""
    return {"version": kind.spec.store_version, kind.spec.entries_key: []}


def is_owned(entry: Any, namespace: str, kind: ManifestKind) -> bool:
    """Whether a raw store entry carries the namespace token.

    Non-mapping entries and entries without a string identifier are
    never owned.
    """
    if not isinstance(entry, dict):
        return False
    identifier = entry.get(kind.spec.id_field)
    if not isinstance(identifier, str):
        return False
    return namespace.lower() in identifier.lower()


def qualify(entry: ManifestEntry, namespace: str) -> ManifestEntry:
    """Prefix the identifier with ``"<namespace>: "`` unless it already has the token."""
    if namespace.lower() in entry.identifier.lower():
        return entry
    return entry.with_identifier(f"{namespace}: {entry.identifier}")


def qualify_all(
    entries: Sequence[ManifestEntry], namespace: str
) -> list[ManifestEntry]:
    """Qualify *entries*, keeping the first of any that end up with the same identifier.

    A manifest may list both ``"run"`` and ``"HC3: run"``; after
    qualification they collide and only the first is kept.
    """
    qualified: list[ManifestEntry] = []
    seen: set[str] = set()
    for entry in entries:
        entry = qualify(entry, namespace)
        if entry.identifier in seen:
            logger.warning(
                "Skipping duplicate entry '%s' after namespace qualification",
                entry.identifier,
            )
            continue
        seen.add(entry.identifier)
        qualified.append(entry)
    return qualified


def read_store(path: Path, kind: ManifestKind) -> dict[str, Any]:
    """Read a target store, normalizing anything unusable to an empty store.

    A missing file is the normal case. An unparsable file or one whose
    top level is not an object is logged and replaced by an empty store.
    A missing or malformed entries container is replaced by an empty list.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.debug("No store at %s, starting empty", path)
        return empty_store(kind)
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Cannot read store %s (%s), starting empty", path, exc)
        return empty_store(kind)

    try:
        document = load_json_document(text)
    except json.JSONDecodeError as exc:
        logger.warning("Store %s is not valid JSON (%s), starting empty", path, exc)
        return empty_store(kind)

    if not isinstance(document, dict):
        logger.warning(
            "Store %s top level is %s, not an object; starting empty",
            path,
            type(document).__name__,
        )
        return empty_store(kind)

    entries_key = kind.spec.entries_key
    if not isinstance(document.get(entries_key), list):
        if entries_key in document:
            logger.warning(
                "Store %s has a malformed '%s' container; replacing it",
                path,
                entries_key,
            )
        document[entries_key] = []

    document.setdefault("version", kind.spec.store_version)
    return document


def has_owned_entries(path: Path, namespace: str, kind: ManifestKind) -> bool:
    """Whether the store at *path* holds at least one namespaced entry."""
    document = read_store(path, kind)
    return any(
        is_owned(entry, namespace, kind)
        for entry in document[kind.spec.entries_key]
    )


def write_store(path: Path, document: dict[str, Any]) -> None:
    """Replace the whole file with pretty-printed JSON.

    The content goes to a temporary file in the same directory first and
    is then moved over the target, so readers never see a partial file.

    Raises:
        StoreWriteError: If the directory or file cannot be written.
    """
    tmp_name: str | None = None
    try:
        text = json.dumps(document, indent=4, ensure_ascii=False) + "\n"
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
        )
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(text)
        os.replace(tmp_name, path)
        tmp_name = None
    except (OSError, ValueError) as exc:
        # ValueError covers lone surrogates that cannot be encoded as UTF-8.
        msg = f"Failed to write {path}: {exc}"
        raise StoreWriteError(msg) from exc
    finally:
        if tmp_name is not None:
            Path(tmp_name).unlink(missing_ok=True)


class ReconciliationStore:
    """Merges manifest entries into a target store file.

    In ``MERGE`` mode every existing entry owned by the namespace is
    removed and the new entries are appended after the surviving
    user-authored ones, so repeated runs converge on the latest content
    without duplicates. ``REPLACE`` mode rewrites the entries list to
    contain only the new entries.
    """

    def __init__(
        self,
        mode: ReconcileMode = ReconcileMode.MERGE,
        group: str = "build",
    ) -> None:
        self.mode = mode
        self.group = group

    async def reconcile(
        self,
        target_path: Path,
        entries: Sequence[ManifestEntry],
        namespace: str,
        kind: ManifestKind,
    ) -> int:
        """Read, merge and write *target_path*; return the installed count.

        The store is always re-read from disk. Concurrent writers of the
        same file are not serialized here.

        Raises:
            StoreWriteError: If the result cannot be written.
        """
        return await asyncio.to_thread(
            self._reconcile_sync, Path(target_path), list(entries), namespace, kind
        )

    def merge(
        self,
        document: dict[str, Any],
        entries: Sequence[ManifestEntry],
        namespace: str,
        kind: ManifestKind,
    ) -> dict[str, Any]:
        """Return a new store document with *entries* reconciled in."""
        entries_key = kind.spec.entries_key
        new_items = [
            entry.to_store_dict(self.group)
            for entry in qualify_all(entries, namespace)
        ]

        if self.mode is ReconcileMode.REPLACE:
            kept: list[Any] = []
        else:
            kept = [
                item
                for item in document.get(entries_key, [])
                if not is_owned(item, namespace, kind)
            ]

        merged = dict(document)
        merged.setdefault("version", kind.spec.store_version)
        merged[entries_key] = kept + new_items
        return merged

    def _reconcile_sync(
        self,
        target_path: Path,
        entries: list[ManifestEntry],
        namespace: str,
        kind: ManifestKind,
    ) -> int:
        document = read_store(target_path, kind)
        before = len(document[kind.spec.entries_key])
        qualified = qualify_all(entries, namespace)
        merged = self.merge(document, qualified, namespace, kind)
        write_store(target_path, merged)

        logger.info(
            "Installed %d %s entr%s into %s (%s mode, %d kept of %d)",
            len(qualified),
            kind.value,
            "y" if len(qualified) == 1 else "ies",
            target_path,
            self.mode.value,
            len(merged[kind.spec.entries_key]) - len(qualified),
            before,
            extra={"kind": kind.value, "path": target_path},
        )
        return len(qualified)
