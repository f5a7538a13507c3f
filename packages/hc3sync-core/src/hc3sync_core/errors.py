from __future__ import annotations


class Hc3SyncError(Exception):
    """Base exception for all hc3sync errors."""


# ── Config Errors ────────────────────────────────────────────────────

class ConfigError(Hc3SyncError):
    """Invalid or missing configuration."""


# ── Workspace Errors ─────────────────────────────────────────────────

class WorkspaceError(Hc3SyncError):
    """Base for project-root related errors."""


class NoWorkspaceError(WorkspaceError):
    """No project root is available to resolve relative paths against."""


# ── Manifest Errors ──────────────────────────────────────────────────

class ManifestError(Hc3SyncError):
    """Base for manifest-related errors."""


class ManifestNotFoundError(ManifestError):
    """No manifest found in any candidate location."""


class ManifestParseError(ManifestError):
    """Manifest text could not be parsed."""


class ManifestValidationError(ManifestError):
    """Manifest parsed but yielded no usable entries."""


# ── Store Errors ─────────────────────────────────────────────────────

class StoreError(Hc3SyncError):
    """Base for target store errors."""


class StoreWriteError(StoreError):
    """Target store could not be written."""
