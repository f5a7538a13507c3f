"""hc3sync manifests: discovery, validation, caching and store reconciliation."""
from __future__ import annotations

from hc3sync_manifests.cache import ConfigurationCache
from hc3sync_manifests.engine import ReconciliationEngine
from hc3sync_manifests.gate import ActivationGate, GateSettings
from hc3sync_manifests.locator import ManifestLocator, candidate_paths
from hc3sync_manifests.parser import load_json_document, parse, parse_manifest
from hc3sync_manifests.providers import LaunchProvider, TaskProvider, command_line
from hc3sync_manifests.queue import ReconciliationQueue
from hc3sync_manifests.store import (
    ReconciliationStore,
    has_owned_entries,
    is_owned,
    read_store,
)
from hc3sync_manifests.types import (
    GateContext,
    GateDecision,
    GateState,
    InstallReport,
    LaunchEntry,
    LocatedManifest,
    Manifest,
    ManifestEntry,
    ManifestKind,
    ParseResult,
    TaskEntry,
    Trigger,
)

__all__ = [
    "ActivationGate",
    "ConfigurationCache",
    "GateContext",
    "GateDecision",
    "GateSettings",
    "GateState",
    "InstallReport",
    "LaunchEntry",
    "LaunchProvider",
    "LocatedManifest",
    "Manifest",
    "ManifestEntry",
    "ManifestKind",
    "ManifestLocator",
    "ParseResult",
    "ReconciliationEngine",
    "ReconciliationQueue",
    "ReconciliationStore",
    "TaskEntry",
    "TaskProvider",
    "Trigger",
    "candidate_paths",
    "command_line",
    "has_owned_entries",
    "is_owned",
    "load_json_document",
    "parse",
    "parse_manifest",
    "read_store",
]
