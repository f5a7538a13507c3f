"""Manifest discovery: first readable candidate path wins."""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path, PurePath

from hc3sync_manifests.types import LocatedManifest

logger = logging.getLogger("hc3sync.manifests.locator")

DEFAULT_SEARCH_DEPTH = 2


def candidate_paths(filename: str, depth: int = DEFAULT_SEARCH_DEPTH) -> list[PurePath]:
    """Build the default candidate list: the project root, then each parent.

    ``candidate_paths("m.json", 2)`` gives ``m.json``, ``../m.json`` and
    ``../../m.json``, in that order of precedence.
    """
    candidates = [PurePath(filename)]
    for level in range(1, max(depth, 0) + 1):
        candidates.append(PurePath(*([".."] * level), filename))
    return candidates


class ManifestLocator:
    """Resolves a manifest from an ordered list of candidate locations."""

    async def locate(
        self,
        base_dir: Path,
        candidates: list[PurePath] | list[str],
    ) -> LocatedManifest | None:
        """Return the first existing, readable candidate, or ``None``.

        A missing candidate is expected and only logged at debug level.
        Any other read failure (permissions, bad encoding) is logged as
        a warning and the candidate is treated as absent.
        """
        for relative in candidates:
            path = Path(base_dir) / relative
            logger.debug("Trying manifest at %s", path)
            try:
                content = await asyncio.to_thread(path.read_text, encoding="utf-8")
            except (FileNotFoundError, NotADirectoryError, IsADirectoryError):
                logger.debug("Manifest not found at %s", path)
                continue
            except (OSError, UnicodeDecodeError) as exc:
                logger.warning("Cannot read manifest at %s: %s", path, exc)
                continue

            logger.info("Found manifest at %s", path)
            return LocatedManifest(path=path, content=content)

        logger.debug(
            "No manifest found under %s (tried %d candidate(s))",
            base_dir,
            len(candidates),
        )
        return None
