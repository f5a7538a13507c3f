"""Activation gate: decides whether a trigger should reconcile a store."""
from __future__ import annotations

import asyncio
import fnmatch
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from hc3sync_core.types import InstalledPolicy

from hc3sync_manifests.store import has_owned_entries
from hc3sync_manifests.types import GateDecision, GateState, Trigger

if TYPE_CHECKING:
    from hc3sync_core.config import Hc3SyncConfig

    from hc3sync_manifests.types import GateContext, ManifestKind

logger = logging.getLogger("hc3sync.manifests.gate")


@dataclass(frozen=True, slots=True)
class GateSettings:
    """The subset of configuration the gate reads."""

    enabled: bool = True
    installed_policy: InstalledPolicy = InstalledPolicy.EXISTS
    namespace: str = "HC3"
    store_dir: str = ".vscode"
    watch_pattern: str = "*.lua"
    probe_limit: int = 5000
    exclude_dirs: frozenset[str] = field(
        default_factory=lambda: frozenset({".git", ".vscode", "node_modules"})
    )

    @classmethod
    def from_config(cls, config: Hc3SyncConfig) -> GateSettings:
        return cls(
            enabled=config.install.auto_install,
            installed_policy=config.install.installed_policy,
            namespace=config.install.namespace,
            store_dir=config.workspace.store_dir,
            watch_pattern=config.workspace.watch_pattern,
            probe_limit=config.workspace.probe_limit,
            exclude_dirs=frozenset(config.workspace.exclude_dirs),
        )

    def target_path(self, project_root: Path, kind: ManifestKind) -> Path:
        return project_root / self.store_dir / kind.spec.store_file


def find_first_match(
    root: Path,
    pattern: str,
    exclude_dirs: frozenset[str] = frozenset(),
    limit: int = 5000,
) -> Path | None:
    """Return the first file under *root* whose name matches *pattern*.

    Stops at the first hit. Gives up (returns ``None``) after looking at
    *limit* files so a huge tree cannot stall activation.
    """
    examined = 0
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in exclude_dirs)
        for name in filenames:
            if fnmatch.fnmatch(name, pattern):
                return Path(dirpath) / name
            examined += 1
            if examined >= limit:
                logger.debug(
                    "Probe for %s under %s gave up after %d file(s)",
                    pattern,
                    root,
                    examined,
                )
                return None
    return None


class ActivationGate:
    """Evaluates, per store kind, whether reconciliation should run.

    Nothing is remembered between evaluations: every decision is derived
    from the configuration and the filesystem at that moment, so deleting
    an installed store makes the gate eligible again.
    """

    def __init__(self, settings: GateSettings | None = None) -> None:
        self.settings = settings or GateSettings()

    async def evaluate(self, context: GateContext) -> GateDecision:
        decision = await asyncio.to_thread(self._evaluate_sync, context)
        logger.debug(
            "Gate for %s on %s: run=%s (%s)",
            context.kind.value,
            context.trigger.value,
            decision.run,
            decision.reason.value,
            extra={"kind": context.kind.value, "trigger": context.trigger.value},
        )
        return decision

    def _evaluate_sync(self, context: GateContext) -> GateDecision:
        s = self.settings

        if context.project_root is None:
            return GateDecision(False, GateState.NO_WORKSPACE, "no project root")

        if not s.enabled:
            return GateDecision(False, GateState.DISABLED, "auto-install is off")

        target = s.target_path(context.project_root, context.kind)
        if self._is_installed(target, context.kind):
            return GateDecision(
                False, GateState.ALREADY_INSTALLED, f"{target} already installed"
            )

        trigger_file = self._trigger_file(context)
        if trigger_file is None:
            return GateDecision(
                False,
                GateState.NO_TRIGGER_CONTENT,
                f"no {s.watch_pattern} file under {context.project_root}",
            )

        return GateDecision(True, GateState.ELIGIBLE, f"found {trigger_file}")

    def _is_installed(self, target: Path, kind: ManifestKind) -> bool:
        if not target.is_file():
            return False
        if self.settings.installed_policy is InstalledPolicy.EXISTS:
            return True
        return has_owned_entries(target, self.settings.namespace, kind)

    def _trigger_file(self, context: GateContext) -> Path | None:
        s = self.settings
        created = context.created_path
        if (
            context.trigger is Trigger.FILE_CREATED
            and created is not None
            and fnmatch.fnmatch(created.name, s.watch_pattern)
        ):
            return created
        return find_first_match(
            context.project_root,
            s.watch_pattern,
            exclude_dirs=s.exclude_dirs,
            limit=s.probe_limit,
        )
