"""hc3sync core: shared config, errors, and logging."""
from __future__ import annotations

from hc3sync_core.config import (
    Hc3SyncConfig,
    InstallConfig,
    LoggingConfig,
    ManifestsConfig,
    WorkspaceConfig,
)
from hc3sync_core.errors import (
    ConfigError,
    Hc3SyncError,
    ManifestError,
    ManifestNotFoundError,
    ManifestParseError,
    ManifestValidationError,
    NoWorkspaceError,
    StoreError,
    StoreWriteError,
    WorkspaceError,
)
from hc3sync_core.logging import get_logger, setup_logging
from hc3sync_core.types import InstalledPolicy, ReconcileMode

__version__ = "0.1.0"

__all__ = [
    # Errors
    "ConfigError",
    # Config
    "Hc3SyncConfig",
    "Hc3SyncError",
    "InstallConfig",
    # Types
    "InstalledPolicy",
    "LoggingConfig",
    "ManifestError",
    "ManifestNotFoundError",
    "ManifestParseError",
    "ManifestValidationError",
    "ManifestsConfig",
    "NoWorkspaceError",
    "ReconcileMode",
    "StoreError",
    "StoreWriteError",
    "WorkspaceConfig",
    "WorkspaceError",
    # Version
    "__version__",
    # Logging
    "get_logger",
    "setup_logging",
]
