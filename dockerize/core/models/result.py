"""
Result models — what resolution produces and what writing reports.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class RenderedArtifact(BaseModel):
    """A fully substituted artifact, ready to be written.

    Attributes:
        role:       Template role (build_recipe, manifest, entrypoint, ...).
        path:       Relative path from the destination directory.
        content:    Full file content.
        executable: Write with mode 0755 instead of 0644.
    """

    model_config = ConfigDict(frozen=True)

    role: str
    path: str
    content: str
    executable: bool = False


class ResolutionResult(BaseModel):
    """Output of one resolution run. Immutable.

    ``unresolved`` lists required variables that had neither a value nor a
    default; their placeholders are still present in ``artifacts``.
    """

    model_config = ConfigDict(frozen=True)

    stack_id: str
    artifacts: tuple[RenderedArtifact, ...] = ()
    unresolved: tuple[str, ...] = ()
    values: dict[str, str] = Field(default_factory=dict, repr=False)

    @property
    def complete(self) -> bool:
        return not self.unresolved

    def get(self, role: str) -> RenderedArtifact | None:
        for artifact in self.artifacts:
            if artifact.role == role:
                return artifact
        return None

    def to_dict(self, include_content: bool = False) -> dict:
        artifacts = []
        for a in self.artifacts:
            entry = {"role": a.role, "path": a.path, "executable": a.executable}
            if include_content:
                entry["content"] = a.content
            artifacts.append(entry)
        return {
            "stack": self.stack_id,
            "complete": self.complete,
            "unresolved": list(self.unresolved),
            "artifacts": artifacts,
        }


class WriteOutcome(BaseModel):
    """Absolute paths touched by one write."""

    model_config = ConfigDict(frozen=True)

    destination: str
    written: tuple[str, ...] = ()
    unchanged: tuple[str, ...] = ()

    @property
    def paths(self) -> list[str]:
        return list(self.written) + list(self.unchanged)

    def to_dict(self) -> dict:
        return {
            "destination": self.destination,
            "written": list(self.written),
            "unchanged": list(self.unchanged),
        }
