"""
Project file loader — reads dockerize.yml from the target project.

The file is optional. When present it can pin the stack (skipping
detection), choose the output directory, list env files, and provide
explicit variable values::

    stack: nodejs-pnpm-monorepo
    output: deploy
    env_files:
      - .env.production
    values:
      COOLIFY_FQDN: app.example.com
      PORT: 80
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from dockerize.core.errors import ConfigError
from dockerize.core.models.stack import VARIABLE_NAME_RE

logger = logging.getLogger(__name__)

PROJECT_CONFIG_FILES = ("dockerize.yml", "dockerize.yaml")


class ProjectConfig(BaseModel):
    """Settings from a project's dockerize.yml."""

    stack: str | None = None
    output: str | None = None
    env_files: list[str] = Field(default_factory=list)
    values: dict[str, str] = Field(default_factory=dict)

    @field_validator("values", mode="before")
    @classmethod
    def _stringify_values(cls, v: Any) -> Any:
        if not isinstance(v, dict):
            return v
        out: dict[str, Any] = {}
        for key, value in v.items():
            if not isinstance(key, str) or not VARIABLE_NAME_RE.match(key):
                raise ValueError(f"invalid variable name: {key!r}")
            if isinstance(value, bool):
                value = "true" if value else "false"
            elif isinstance(value, (int, float)):
                value = str(value)
            elif value is None:
                value = ""
            out[key] = value
        return out


def find_project_file(project_dir: Path) -> Path | None:
    """Return the project's dockerize.yml (or .yaml), if any."""
    for name in PROJECT_CONFIG_FILES:
        candidate = project_dir / name
        if candidate.is_file():
            return candidate
    return None


def load_project_config(path: Path) -> ProjectConfig:
    """Load and validate a dockerize.yml.

    Raises:
        ConfigError: If the file is unreadable or invalid.
    """
    logger.debug("Loading project config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        config = ProjectConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid project configuration in {path}: {e}") from e

    logger.info("Loaded project config %s (%d values)", path, len(config.values))
    return config


def load_project(project_dir: Path) -> ProjectConfig:
    """Project config for ``project_dir``, empty when there is no file."""
    path = find_project_file(project_dir)
    if path is None:
        return ProjectConfig()
    return load_project_config(path)
