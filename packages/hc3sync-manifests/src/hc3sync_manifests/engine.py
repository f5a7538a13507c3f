"""Reconciliation engine: wires gate, cache, store and queue per manifest kind.

Two kinds of entry point exist:

* Passive triggers (:meth:`ReconciliationEngine.on_startup`,
  :meth:`ReconciliationEngine.on_file_created`) consult the activation
  gate and never raise; failures are logged and reported.
* Explicit actions (:meth:`ReconciliationEngine.install`,
  :meth:`ReconciliationEngine.reinstall`) skip the gate and raise so the
  caller can tell the user what went wrong.
"""
from __future__ import annotations

from pathlib import Path

from hc3sync_core.config import Hc3SyncConfig
from hc3sync_core.errors import (
    Hc3SyncError,
    ManifestNotFoundError,
    ManifestParseError,
    ManifestValidationError,
    NoWorkspaceError,
)
from hc3sync_core.logging import get_logger

from hc3sync_manifests.cache import ConfigurationCache
from hc3sync_manifests.gate import ActivationGate, GateSettings
from hc3sync_manifests.locator import ManifestLocator, candidate_paths
from hc3sync_manifests.queue import ReconciliationQueue
from hc3sync_manifests.store import ReconciliationStore
from hc3sync_manifests.types import (
    GateContext,
    GateDecision,
    InstallReport,
    ManifestKind,
    Trigger,
)

logger = get_logger("manifests.engine")


class ReconciliationEngine:
    """Discovers manifests and reconciles them into a project's stores.

    One engine is meant to live for the whole process: it owns the
    per-kind :class:`ConfigurationCache` objects and the queue that
    serializes reconciliation runs.
    """

    def __init__(
        self,
        project_root: Path | str | None,
        config: Hc3SyncConfig | None = None,
        locator: ManifestLocator | None = None,
    ) -> None:
        self.project_root = Path(project_root) if project_root is not None else None
        self.config = config or Hc3SyncConfig()
        self.gate = ActivationGate(GateSettings.from_config(self.config))
        self.store = ReconciliationStore(
            mode=self.config.install.mode,
            group=self.config.install.group,
        )
        self.queue = ReconciliationQueue()
        self._locator = locator or ManifestLocator()
        self._caches: dict[ManifestKind, ConfigurationCache] = {}

    # ── Accessors ────────────────────────────────────────────────────

    def manifest_filename(self, kind: ManifestKind) -> str:
        manifests = self.config.manifests
        return manifests.tasks_file if kind is ManifestKind.TASKS else manifests.launch_file

    def target_path(self, kind: ManifestKind) -> Path:
        root = self._require_root()
        return self.gate.settings.target_path(root, kind)

    def cache(self, kind: ManifestKind) -> ConfigurationCache:
        """The cache for *kind*, created on first use.

        Raises:
            NoWorkspaceError: If the engine has no project root.
        """
        if kind not in self._caches:
            root = self._require_root()
            self._caches[kind] = ConfigurationCache(
                kind,
                root,
                candidate_paths(
                    self.manifest_filename(kind),
                    self.config.manifests.search_depth,
                ),
                locator=self._locator,
            )
        return self._caches[kind]

    async def evaluate(
        self,
        kind: ManifestKind,
        trigger: Trigger = Trigger.STARTUP,
        created_path: Path | None = None,
    ) -> GateDecision:
        return await self.gate.evaluate(
            GateContext(
                kind=kind,
                project_root=self.project_root,
                trigger=trigger,
                created_path=created_path,
            )
        )

    # ── Passive triggers ─────────────────────────────────────────────

    async def on_startup(self) -> dict[ManifestKind, InstallReport]:
        """Run the startup trigger for every kind."""
        return await self._trigger_all(Trigger.STARTUP)

    async def on_file_created(
        self, path: Path | str
    ) -> dict[ManifestKind, InstallReport]:
        """Run the file-created trigger for every kind."""
        return await self._trigger_all(Trigger.FILE_CREATED, Path(path))

    async def _trigger_all(
        self,
        trigger: Trigger,
        created_path: Path | None = None,
    ) -> dict[ManifestKind, InstallReport]:
        reports: dict[ManifestKind, InstallReport] = {}
        for kind in ManifestKind:
            future = self.queue.submit(
                lambda kind=kind: self._auto_install(kind, trigger, created_path)
            )
            reports[kind] = await future
        return reports

    async def _auto_install(
        self,
        kind: ManifestKind,
        trigger: Trigger,
        created_path: Path | None,
    ) -> InstallReport:
        try:
            decision = await self.evaluate(kind, trigger, created_path)
            if not decision.run:
                logger.debug(
                    "Skipping %s auto-install: %s",
                    kind.value,
                    decision.detail or decision.reason.value,
                )
                return InstallReport(kind=kind, skipped_reason=decision.reason)

            entries = await self.cache(kind).get()
            if not entries:
                logger.debug("No %s entries discovered; nothing to install", kind.value)
                return InstallReport(kind=kind)

            target = self.target_path(kind)
            installed = await self.store.reconcile(
                target, entries, self.config.install.namespace, kind
            )
            return InstallReport(kind=kind, installed=installed, target=target)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Auto-install of %s failed: %s",
                kind.value,
                exc,
                exc_info=not isinstance(exc, Hc3SyncError),
                extra={"kind": kind.value, "trigger": trigger.value},
            )
            return InstallReport(kind=kind, error=str(exc))

    # ── Explicit actions ─────────────────────────────────────────────

    async def install(self, kind: ManifestKind) -> InstallReport:
        """Install entries for *kind* now, regardless of the gate.

        Raises:
            NoWorkspaceError: If no project root is set.
            ManifestNotFoundError: If no candidate manifest exists.
            ManifestParseError: If the manifest text is malformed.
            ManifestValidationError: If the manifest has no valid entries;
                the store is left untouched.
            StoreWriteError: If the target store cannot be written.
        """
        self._require_root()
        return await self.queue.submit(lambda: self._install(kind))

    async def reinstall(self, kind: ManifestKind) -> InstallReport:
        """Drop the cached manifest for *kind*, then :meth:`install`."""
        self.cache(kind).invalidate()
        return await self.install(kind)

    async def _install(self, kind: ManifestKind) -> InstallReport:
        cache = self.cache(kind)
        entries = await cache.get()
        result = cache.last_result

        # Failed lookups are not kept, so a fixed manifest is seen next time.
        if cache.source is None:
            cache.invalidate()
            msg = (
                f"No {self.manifest_filename(kind)} found in {self.project_root} "
                "or its parent directories"
            )
            raise ManifestNotFoundError(msg)
        if result is not None and result.parse_failed:
            cache.invalidate()
            raise ManifestParseError("; ".join(result.diagnostics))
        if not entries:
            cache.invalidate()
            detail = "; ".join(result.diagnostics) if result is not None else ""
            msg = f"{cache.source} has no valid {kind.value} entries"
            if detail:
                msg = f"{msg}: {detail}"
            raise ManifestValidationError(msg)

        target = self.target_path(kind)
        installed = await self.store.reconcile(
            target, entries, self.config.install.namespace, kind
        )
        return InstallReport(kind=kind, installed=installed, target=target)

    async def close(self) -> None:
        await self.queue.stop()

    def _require_root(self) -> Path:
        if self.project_root is None:
            msg = "No project folder is open"
            raise NoWorkspaceError(msg)
        return self.project_root
