"""
Dockerize use case — detection, configuration, resolution, writing.

Ties together the registry, the project file, env sources, the
detector, the resolver and the writer. Errors from the taxonomy are
caught here and reported on the result; anything else propagates.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from dockerize.core.config.config_set import build_config_set
from dockerize.core.config.env_file import load_env_file
from dockerize.core.config.loader import load_project
from dockerize.core.config.stack_loader import registry_for
from dockerize.core.errors import ConfigError, DockerizeError, IncompleteConfiguration
from dockerize.core.models.config import ConfigSet
from dockerize.core.models.result import ResolutionResult, WriteOutcome
from dockerize.core.services.detection import detect
from dockerize.core.services.oracle import DirectoryOracle
from dockerize.core.services.resolution import resolve
from dockerize.core.services.writer import write_artifacts

logger = logging.getLogger(__name__)


@dataclass
class DockerizeResult:
    """Result of the dockerize use case."""

    project_dir: Path | None = None
    stack_id: str | None = None
    detected: bool = False
    config_set: ConfigSet | None = None
    resolution: ResolutionResult | None = None
    outcome: WriteOutcome | None = None
    dry_run: bool = False
    error: str | None = None
    error_kind: str | None = None
    missing: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self, include_content: bool = False) -> dict:
        result: dict = {
            "project_dir": str(self.project_dir) if self.project_dir else None,
            "stack": self.stack_id,
            "detected": self.detected,
            "dry_run": self.dry_run,
        }
        if self.error:
            result["error"] = self.error
            result["error_kind"] = self.error_kind
        if self.missing:
            result["missing"] = self.missing
        if self.config_set is not None:
            result["variables"] = self.config_set.to_dict()
        if self.resolution is not None:
            result["resolution"] = self.resolution.to_dict(include_content=include_content)
        if self.outcome is not None:
            result["outcome"] = self.outcome.to_dict()
        return result


def run_dockerize(
    project_dir: Path,
    *,
    stack_id: str | None = None,
    overrides: Mapping[str, str] | None = None,
    environ: Mapping[str, str] | None = None,
    env_files: Sequence[Path] = (),
    output: Path | None = None,
    dry_run: bool = False,
    overwrite: bool = True,
    stacks_dirs: tuple[Path, ...] = (),
) -> DockerizeResult:
    """Generate the container artifacts for one project.

    Args:
        project_dir: The project to dockerize.
        stack_id: Force a stack instead of detecting one.
        overrides: Explicit values (win over dockerize.yml ``values``).
        environ: Environment snapshot; ``None`` means ``os.environ``.
        env_files: Extra env files, read after the project's own.
        output: Destination directory; defaults to dockerize.yml
            ``output`` or the project directory.
        dry_run: Resolve but do not write.
        overwrite: Replace existing files with different content.
        stacks_dirs: Extra stack directories on top of the built-ins.

    Returns:
        DockerizeResult; ``error`` is set on failure.
    """
    result = DockerizeResult(project_dir=Path(project_dir).resolve(), dry_run=dry_run)
    project_root = result.project_dir
    assert project_root is not None

    try:
        if not project_root.is_dir():
            raise ConfigError(f"Project directory not found: {project_root}")

        registry = registry_for(tuple(stacks_dirs))
        project = load_project(project_root)

        # ── Stack ───────────────────────────────────────────────
        forced = stack_id or project.stack
        if forced:
            profile = registry.get(forced)
            logger.info("Using stack %s (explicit)", profile.id)
        else:
            profile = detect(DirectoryOracle(project_root), registry)
            result.detected = True
        result.stack_id = profile.id

        # ── Values ──────────────────────────────────────────────
        env_layer: dict[str, str] = {}
        for name in project.env_files:
            env_layer.update(load_env_file(project_root / name))
        for path in env_files:
            env_layer.update(load_env_file(Path(path)))
        env_layer.update(os.environ if environ is None else environ)

        explicit: dict[str, str] = dict(project.values)
        explicit.update(overrides or {})

        config_set = build_config_set(profile, environ=env_layer, overrides=explicit)
        result.config_set = config_set

        # ── Resolve + write ─────────────────────────────────────
        resolution = resolve(profile.id, config_set, registry)
        result.resolution = resolution

        if dry_run:
            if resolution.unresolved:
                raise IncompleteConfiguration(resolution.unresolved, stack_id=profile.id)
            return result

        if output is not None:
            destination = Path(output)
        elif project.output:
            destination = project_root / project.output
        else:
            destination = project_root

        result.outcome = write_artifacts(resolution, destination, overwrite=overwrite)

    except IncompleteConfiguration as e:
        result.error = str(e)
        result.error_kind = type(e).__name__
        result.missing = list(e.missing)
    except DockerizeError as e:
        logger.debug("dockerize failed: %s", e)
        result.error = str(e)
        result.error_kind = type(e).__name__

    return result
