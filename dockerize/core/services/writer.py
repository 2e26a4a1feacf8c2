"""
Artifact writer — the only place that writes generated files.

Refuses incomplete results before touching the filesystem. Each file is
written atomically (temp file in the same directory, then rename) so a
half-written artifact is never visible, and the temp file is removed on
every failure path. Files whose content and mode already match are left
alone, which makes repeated writes idempotent.
"""

from __future__ import annotations

import logging
import os
import stat
import tempfile
from pathlib import Path

from dockerize.core.errors import ArtifactExists, ArtifactWriteError, IncompleteConfiguration
from dockerize.core.models.result import RenderedArtifact, ResolutionResult, WriteOutcome

logger = logging.getLogger(__name__)

MODE_EXECUTABLE = 0o755
MODE_REGULAR = 0o644


def write_artifacts(
    result: ResolutionResult,
    destination: Path,
    *,
    overwrite: bool = True,
) -> WriteOutcome:
    """Write every artifact of ``result`` under ``destination``.

    Args:
        result: A resolution result.
        destination: Target directory (created if missing).
        overwrite: When False, refuse if any target exists with
            different content.

    Returns:
        WriteOutcome listing written and unchanged paths.

    Raises:
        IncompleteConfiguration: If ``result.unresolved`` is non-empty.
            Nothing is written.
        ArtifactExists: If ``overwrite`` is False and a target differs.
            Nothing is written.
        ArtifactWriteError: If the destination is not a directory or a
            file cannot be written. Files written before the failure stay.
    """
    if result.unresolved:
        raise IncompleteConfiguration(result.unresolved, stack_id=result.stack_id)

    destination = Path(destination)
    if destination.exists() and not destination.is_dir():
        raise ArtifactWriteError(str(destination), "not a directory")

    targets = [(artifact, _target_path(destination, artifact.path)) for artifact in result.artifacts]

    if not overwrite:
        conflicts = [
            str(target) for artifact, target in targets
            if target.exists() and not _is_current(target, artifact)
        ]
        if conflicts:
            raise ArtifactExists(conflicts)

    written: list[str] = []
    unchanged: list[str] = []
    for artifact, target in targets:
        if _is_current(target, artifact):
            logger.debug("Unchanged: %s", target)
            unchanged.append(str(target))
            continue
        try:
            _atomic_write(target, artifact.content, _mode_for(artifact))
        except OSError as e:
            raise ArtifactWriteError(str(target), e.strerror or str(e)) from e
        written.append(str(target))

    logger.info(
        "Wrote %d artifacts to %s (%d unchanged)",
        len(written), destination, len(unchanged),
    )
    return WriteOutcome(
        destination=str(destination),
        written=tuple(written),
        unchanged=tuple(unchanged),
    )


def _target_path(destination: Path, relative: str) -> Path:
    """Join ``relative`` onto ``destination``, refusing escapes."""
    rel = Path(relative)
    if rel.is_absolute() or ".." in rel.parts:
        raise ValueError(f"Artifact path must stay inside the destination: {relative}")
    return destination / rel


def _mode_for(artifact: RenderedArtifact) -> int:
    return MODE_EXECUTABLE if artifact.executable else MODE_REGULAR


def _is_current(target: Path, artifact: RenderedArtifact) -> bool:
    """True when ``target`` already holds exactly this artifact."""
    if not target.is_file():
        return False
    try:
        if target.read_bytes() != artifact.content.encode("utf-8"):
            return False
        return stat.S_IMODE(target.stat().st_mode) == _mode_for(artifact)
    except OSError:
        return False


def _atomic_write(path: Path, content: str, mode: int) -> None:
    """Write ``content`` to ``path`` via temp file + rename."""
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp",
    )
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
            fh.write(content)
            fh.flush()
            os.fsync(fh.fileno())
        os.chmod(tmp, mode)
        os.replace(tmp, path)
        logger.debug("Wrote %s", path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        logger.error("Failed to write %s", path)
        raise
