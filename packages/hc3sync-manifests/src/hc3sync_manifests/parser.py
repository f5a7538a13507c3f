"""Manifest parser: JSON text to validated task and launch entries."""
from __future__ import annotations

import json
import logging
import re
from typing import TYPE_CHECKING, Any

from hc3sync_manifests.types import (
    LaunchEntry,
    ManifestEntry,
    ManifestKind,
    ParseResult,
    TaskEntry,
)

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger("hc3sync.manifests.parser")

_VALID_REQUESTS = frozenset({"launch", "attach"})

# Strings are matched first so comment markers inside them are kept.
_JSONC_TOKENS = re.compile(
    r'("(?:\\.|[^"\\])*")|(//[^\n]*)|(/\*.*?\*/)',
    re.DOTALL,
)
_TRAILING_COMMA = re.compile(r'("(?:\\.|[^"\\])*")|,(\s*[}\]])')


def load_json_document(text: str) -> Any:
    """Load JSON, tolerating the comments and trailing commas editors allow.

    Raises:
        json.JSONDecodeError: If the text is not valid even after cleanup.
    """
    without_comments = _JSONC_TOKENS.sub(
        lambda m: m.group(1) if m.group(1) is not None else "", text
    )
    cleaned = _TRAILING_COMMA.sub(
        lambda m: m.group(1) if m.group(1) is not None else m.group(2),
        without_comments,
    )
    return json.loads(cleaned)


def parse(raw: str, kind: ManifestKind) -> list[ManifestEntry]:
    """Parse manifest text and return only the valid entries."""
    return parse_manifest(raw, kind).entries


def parse_manifest(
    raw: str,
    kind: ManifestKind,
    source: Path | None = None,
) -> ParseResult:
    """Parse manifest text into a ParseResult. Never raises for bad content.

    Args:
        raw: The manifest text.
        kind: Which manifest shape to expect.
        source: Where the text came from, used in log messages only.

    Returns:
        A ParseResult. Invalid entries are dropped with a diagnostic;
        unparsable text yields no entries and ``parse_failed=True``.
    """
    where = str(source) if source is not None else f"<{kind.value} manifest>"

    try:
        document = load_json_document(raw)
    except json.JSONDecodeError as exc:
        msg = f"Invalid JSON in {where}: {exc}"
        logger.error(msg)
        return ParseResult(diagnostics=[msg], parse_failed=True)

    entries_key = kind.spec.entries_key
    if not isinstance(document, dict):
        msg = (
            f"Manifest {where} must be a JSON object, "
            f"got {type(document).__name__}"
        )
        logger.warning(msg)
        return ParseResult(diagnostics=[msg])

    version = str(document.get("version", ""))
    declared = document.get(entries_key)
    if not isinstance(declared, list):
        msg = f"Manifest {where} has no '{entries_key}' array"
        logger.warning(msg)
        return ParseResult(version=version, diagnostics=[msg])

    entries: list[ManifestEntry] = []
    diagnostics: list[str] = []
    seen: set[str] = set()

    for index, item in enumerate(declared):
        try:
            entry = _build_entry(item, kind)
        except ValueError as exc:
            msg = f"Skipping {kind.value} entry #{index} in {where}: {exc}"
            logger.warning(msg)
            diagnostics.append(msg)
            continue

        if entry.identifier in seen:
            msg = (
                f"Skipping duplicate {kind.value} entry '{entry.identifier}' "
                f"(#{index}) in {where}"
            )
            logger.warning(msg)
            diagnostics.append(msg)
            continue

        seen.add(entry.identifier)
        entries.append(entry)

    logger.info(
        "Parsed %d %s entr%s from %s",
        len(entries),
        kind.value,
        "y" if len(entries) == 1 else "ies",
        where,
    )
    return ParseResult(entries=entries, version=version, diagnostics=diagnostics)


def _build_entry(item: Any, kind: ManifestKind) -> ManifestEntry:
    if not isinstance(item, dict):
        msg = f"expected an object, got {type(item).__name__}"
        raise ValueError(msg)
    if kind is ManifestKind.TASKS:
        return _build_task(item)
    return _build_launch(item)


def _build_task(item: dict[str, Any]) -> TaskEntry:
    label = _required_str(item, "label")
    command = _required_str(item, "command")

    args = item.get("args", [])
    if not isinstance(args, list):
        msg = f"'args' must be an array in task '{label}'"
        raise ValueError(msg)
    if not all(isinstance(a, str) for a in args):
        msg = f"'args' must contain only strings in task '{label}'"
        raise ValueError(msg)

    return TaskEntry(label=label, command=command, args=list(args))


def _build_launch(item: dict[str, Any]) -> LaunchEntry:
    name = _required_str(item, "name")
    type_ = _required_str(item, "type")
    request = _required_str(item, "request")
    if request not in _VALID_REQUESTS:
        msg = f"'request' must be 'launch' or 'attach' in '{name}', got '{request}'"
        raise ValueError(msg)

    options = {
        key: value
        for key, value in item.items()
        if key not in ("name", "type", "request")
    }
    return LaunchEntry(name=name, type=type_, request=request, options=options)


def _required_str(item: dict[str, Any], key: str) -> str:
    value = item.get(key)
    if not isinstance(value, str) or not value:
        msg = f"missing required field '{key}'"
        raise ValueError(msg)
    return value
