"""Resolving include references to files on disk."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from pathlib import Path

from .handling import AmalgamateError

logger = logging.getLogger(__name__)


def _canonicalize(path: Path, what: str) -> Path:
    try:
        return path.resolve(strict=True)
    except OSError as exc:
        raise AmalgamateError(f'{what}: "{path}"') from exc


def _resolve(path: str, search_dirs: Iterable[Path], quoted: bool) -> Path | None:
    left, right = ('"', '"') if quoted else ("<", ">")
    for include_dir in search_dirs:
        candidate = include_dir / path
        logger.debug("Trying to resolve %s%s%s to %s", left, path, right, candidate)
        if candidate.exists() and not candidate.is_dir():
            resolved = _canonicalize(candidate, "Failed to canonicalize path to include")
            logger.debug("Resolved %s%s%s to %s", left, path, right, resolved)
            return resolved
    logger.debug("Failed to resolve %s%s%s", left, path, right)
    return None


class IncludeResolver:
    """Finds the files named by quote and system include statements."""

    def __init__(
        self,
        quote_search_dirs: Iterable[str | os.PathLike[str]],
        system_search_dirs: Iterable[str | os.PathLike[str]],
    ) -> None:
        self.quote_search_dirs = [
            _canonicalize(Path(d), "Failed to canonicalize search path") for d in quote_search_dirs
        ]
        self.system_search_dirs = [
            _canonicalize(Path(d), "Failed to canonicalize search path")
            for d in system_search_dirs
        ]
        logger.debug("Quote search dirs: %s", self.quote_search_dirs)
        logger.debug("System search dirs: %s", self.system_search_dirs)

    def resolve_quote(self, path: str, current_dir: str | os.PathLike[str]) -> Path | None:
        """Find a quote include, looking in ``current_dir`` first; return its canonical path."""
        current = _canonicalize(Path(current_dir), "failed to canonicalize current directory")
        return _resolve(path, [current, *self.quote_search_dirs], quoted=True)

    def resolve_system(self, path: str) -> Path | None:
        """Find a system include in the system search dirs; return its canonical path."""
        return _resolve(path, self.system_search_dirs, quoted=False)