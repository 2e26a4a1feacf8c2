"""
Detection service — match a project against the stack registry.

Profiles are tried in the registry's explicit order (priority, then id)
and markers in their declared order; the first profile whose markers
all hold wins. The registry guarantees profiles are mutually exclusive,
so order only affects how quickly we get there, never the answer.

Pure logic — no side effects beyond the oracle's reads.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from dockerize.core.config.registry import StackRegistry
from dockerize.core.errors import DetectionFailure
from dockerize.core.models.stack import DetectionMarker, StackProfile
from dockerize.core.services.oracle import FileOracle

logger = logging.getLogger(__name__)


def marker_holds(marker: DetectionMarker, oracle: FileOracle) -> bool:
    """Evaluate a single marker against the oracle."""
    if marker.kind == "exists":
        return oracle.exists(marker.path)
    if marker.kind == "absent":
        return not oracle.exists(marker.path)
    return oracle.contains(marker.path, marker.text)


def profile_matches(profile: StackProfile, oracle: FileOracle) -> bool:
    """True when every marker of ``profile`` holds (short-circuits in order)."""
    return all(marker_holds(m, oracle) for m in profile.detection_markers)


def detect(oracle: FileOracle, registry: StackRegistry) -> StackProfile:
    """Return the profile matching the project behind ``oracle``.

    Raises:
        DetectionFailure: When no profile matches.
    """
    tried: list[str] = []
    for profile in registry.ordered():
        tried.append(profile.id)
        if profile_matches(profile, oracle):
            logger.info("Detected stack: %s", profile.id)
            return profile
        logger.debug("Stack %s did not match", profile.id)

    raise DetectionFailure("no matching stack", tried=tried)


# ── Explain ─────────────────────────────────────────────────────


@dataclass
class StackMatch:
    """Per-marker outcome of one profile, for ``detect --explain``."""

    stack_id: str
    matched: bool = False
    markers: list[tuple[str, bool]] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "stack": self.stack_id,
            "matched": self.matched,
            "markers": [{"marker": m, "holds": ok} for m, ok in self.markers],
        }


def explain(oracle: FileOracle, registry: StackRegistry) -> list[StackMatch]:
    """Evaluate every marker of every profile, without short-circuiting."""
    report: list[StackMatch] = []
    for profile in registry.ordered():
        outcomes = [(m.describe(), marker_holds(m, oracle)) for m in profile.detection_markers]
        report.append(StackMatch(
            stack_id=profile.id,
            matched=all(ok for _, ok in outcomes),
            markers=outcomes,
        ))
    return report
