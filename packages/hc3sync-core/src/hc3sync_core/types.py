from __future__ import annotations

import enum

# ── Reconciliation Types ─────────────────────────────────────────────

class ReconcileMode(enum.Enum):
    """How new entries are written into an existing target store."""
    MERGE = "merge"
    REPLACE = "replace"


class InstalledPolicy(enum.Enum):
    """What counts as "already installed" when the activation gate runs.

    ``EXISTS`` only checks that the target store file is present.
    ``OWNED_ENTRIES`` also requires at least one entry carrying the
    namespace token, so a store emptied by the user is re-installed.
    """
    EXISTS = "exists"
    OWNED_ENTRIES = "owned-entries"
