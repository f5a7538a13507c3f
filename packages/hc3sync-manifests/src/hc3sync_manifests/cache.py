"""Process-lifetime memo of manifest discovery and parsing."""
from __future__ import annotations

import asyncio
from pathlib import Path, PurePath
from typing import TYPE_CHECKING

from hc3sync_core.logging import get_logger

from hc3sync_manifests.locator import ManifestLocator
from hc3sync_manifests.parser import parse_manifest
from hc3sync_manifests.types import Manifest, ParseResult

if TYPE_CHECKING:
    from hc3sync_manifests.types import ManifestEntry, ManifestKind

logger = get_logger("manifests.cache")


class ConfigurationCache:
    """Memoizes the entries discovered for one manifest kind.

    The first :meth:`get` locates and parses the manifest; later calls
    return the same list until :meth:`invalidate` is called. An empty
    result (no manifest, or nothing valid in it) is cached as well.
    """

    def __init__(
        self,
        kind: ManifestKind,
        base_dir: Path,
        candidates: list[PurePath],
        locator: ManifestLocator | None = None,
    ) -> None:
        self.kind = kind
        self.base_dir = Path(base_dir)
        self.candidates = list(candidates)
        self._locator = locator or ManifestLocator()
        self._entries: list[ManifestEntry] | None = None
        self._result: ParseResult | None = None
        self._source: Path | None = None
        self._lock = asyncio.Lock()

    @property
    def loaded(self) -> bool:
        """Whether discovery has run since construction or the last invalidate."""
        return self._entries is not None

    @property
    def last_result(self) -> ParseResult | None:
        return self._result

    @property
    def manifest(self) -> Manifest | None:
        """The cached entries as a Manifest, or ``None`` before the first get."""
        if self._entries is None or self._result is None:
            return None
        return Manifest(
            kind=self.kind,
            version=self._result.version,
            entries=list(self._entries),
            source_path=self._source,
        )

    @property
    def source(self) -> Path | None:
        """Path of the manifest the cached entries came from, if any."""
        return self._source

    async def get(self) -> list[ManifestEntry]:
        if self._entries is not None:
            return list(self._entries)

        async with self._lock:
            if self._entries is None:
                await self._load()
            return list(self._entries or [])

    def invalidate(self) -> None:
        if self._entries is not None:
            logger.debug("Invalidating %s manifest cache", self.kind.value)
        self._entries = None
        self._result = None
        self._source = None

    async def _load(self) -> None:
        located = await self._locator.locate(self.base_dir, self.candidates)
        if located is None:
            self._result = ParseResult()
            self._source = None
        else:
            self._result = parse_manifest(located.content, self.kind, located.path)
            self._source = located.path
        self._entries = list(self._result.entries)
        logger.info(
            "Cached %d %s entr%s",
            len(self._entries),
            self.kind.value,
            "y" if len(self._entries) == 1 else "ies",
        )
