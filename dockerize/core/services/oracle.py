"""
File oracles — the detector's only view of a project.

Detection never touches ``pathlib`` directly; it asks an oracle whether
a path exists or contains a string. ``DirectoryOracle`` answers from the
real filesystem, ``MemoryOracle`` from a dict (tests, previews).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from pathlib import Path, PurePosixPath
from typing import Protocol

logger = logging.getLogger(__name__)


class FileOracle(Protocol):
    """Answers questions about files relative to a project root."""

    def exists(self, path: str) -> bool: ...

    def contains(self, path: str, needle: str) -> bool: ...


def _normalize(path: str) -> str | None:
    """Normalize to a relative POSIX path, or None if it escapes the root."""
    pure = PurePosixPath(path)
    if pure.is_absolute() or ".." in pure.parts:
        return None
    return str(pure)


class DirectoryOracle:
    """Oracle backed by a directory on disk."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def __repr__(self) -> str:
        return f"DirectoryOracle({str(self.root)!r})"

    def _resolve(self, path: str) -> Path | None:
        rel = _normalize(path)
        if rel is None:
            logger.debug("Rejected path outside project root: %s", path)
            return None
        return self.root / rel

    def exists(self, path: str) -> bool:
        target = self._resolve(path)
        return target is not None and target.exists()

    def contains(self, path: str, needle: str) -> bool:
        target = self._resolve(path)
        if target is None or not target.is_file():
            return False
        try:
            content = target.read_text(encoding="utf-8", errors="ignore")
        except OSError as e:
            logger.debug("Cannot read %s: %s", target, e)
            return False
        return needle in content


class MemoryOracle:
    """Oracle backed by an in-memory file map.

    Accepts either a mapping of path to content or a plain iterable of
    paths (files with empty content).
    """

    def __init__(self, files: Mapping[str, str] | Iterable[str] = ()):
        if isinstance(files, Mapping):
            items = files.items()
        else:
            items = ((f, "") for f in files)
        self._files: dict[str, str] = {}
        for path, content in items:
            rel = _normalize(path)
            if rel is None:
                raise ValueError(f"Path must be relative to the project root: {path!r}")
            self._files[rel] = content

    def __repr__(self) -> str:
        return f"MemoryOracle({sorted(self._files)})"

    def exists(self, path: str) -> bool:
        rel = _normalize(path)
        return rel is not None and rel in self._files

    def contains(self, path: str, needle: str) -> bool:
        rel = _normalize(path)
        if rel is None or rel not in self._files:
            return False
        return needle in self._files[rel]
