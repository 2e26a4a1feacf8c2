"""
Stack model — technology knowledge.

A stack says how to recognise a kind of project (detection markers),
which variables it needs, and which artifacts it produces. Definitions
are read from stacks/<id>/stack.yml; after parent resolution each one
becomes a frozen ``StackProfile`` plus its ``TemplateSet``.
"""

from __future__ import annotations

import re
from pathlib import PurePosixPath
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

VARIABLE_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

MarkerKind = Literal["exists", "absent", "contains"]


def _check_relative(path: str) -> str:
    """Reject absolute paths and parent-directory escapes."""
    if not path or not path.strip():
        raise ValueError("path must not be empty")
    pure = PurePosixPath(path)
    if pure.is_absolute() or ".." in pure.parts:
        raise ValueError(f"path must be relative to the project root: {path!r}")
    return str(pure)


class DetectionMarker(BaseModel):
    """One filesystem predicate, relative to the project root.

    YAML accepts a shorthand for each kind::

        - exists: package.json
        - absent: manage.py
        - path: package.json
          contains: '"pm2"'
    """

    model_config = ConfigDict(frozen=True)

    path: str
    kind: MarkerKind = "exists"
    text: str = ""

    @model_validator(mode="before")
    @classmethod
    def _expand_shorthand(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "kind" in data:
            return data
        if "exists" in data:
            return {"path": data["exists"], "kind": "exists"}
        if "absent" in data:
            return {"path": data["absent"], "kind": "absent"}
        if "contains" in data:
            return {"path": data.get("path", ""), "kind": "contains", "text": data["contains"]}
        return data

    @field_validator("path")
    @classmethod
    def _relative_path(cls, v: str) -> str:
        return _check_relative(v)

    @model_validator(mode="after")
    def _contains_needs_text(self) -> "DetectionMarker":
        if self.kind == "contains" and not self.text:
            raise ValueError(f"'contains' marker on {self.path} needs a non-empty text")
        return self

    @property
    def requires_present(self) -> bool:
        """True when the marker only holds if the file exists."""
        return self.kind in ("exists", "contains")

    def describe(self) -> str:
        if self.kind == "exists":
            return f"file {self.path!r} exists"
        if self.kind == "absent":
            return f"file {self.path!r} is absent"
        return f"file {self.path!r} contains {self.text!r}"


class VariableSpec(BaseModel):
    """A variable a stack declares.

    ``default`` is an expression in the same ``${NAME}`` syntax as the
    templates, so it may reference other variables of the stack.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    required: bool = False
    default: str | None = None
    description: str = ""

    @field_validator("name")
    @classmethod
    def _valid_name(cls, v: str) -> str:
        if not VARIABLE_NAME_RE.match(v):
            raise ValueError(f"invalid variable name: {v!r}")
        return v

    @field_validator("default", mode="before")
    @classmethod
    def _stringify_default(cls, v: Any) -> Any:
        # YAML gives ints/bools for things like `default: 3000`
        if isinstance(v, bool):
            return "true" if v else "false"
        if isinstance(v, (int, float)):
            return str(v)
        return v


class ArtifactTemplate(BaseModel):
    """One output file of a stack.

    ``source`` names a template file next to stack.yml; the loader reads
    it into ``content``. Inline ``content`` is accepted too.
    """

    model_config = ConfigDict(frozen=True)

    role: str
    path: str
    source: str = ""
    content: str = ""
    executable: bool = False

    @field_validator("path")
    @classmethod
    def _relative_path(cls, v: str) -> str:
        return _check_relative(v)


class TemplateSet(BaseModel):
    """The artifacts a stack produces, in output order."""

    model_config = ConfigDict(frozen=True)

    stack_id: str
    artifacts: tuple[ArtifactTemplate, ...] = ()

    def get(self, role: str) -> ArtifactTemplate | None:
        for artifact in self.artifacts:
            if artifact.role == role:
                return artifact
        return None

    @property
    def roles(self) -> list[str]:
        return [a.role for a in self.artifacts]


class StackProfile(BaseModel):
    """Resolved, read-only description of one stack."""

    model_config = ConfigDict(frozen=True)

    id: str
    description: str = ""
    parent: str | None = None
    priority: int = 100
    default_port: int = 8080
    build_command: str = ""
    start_command: str = ""
    detection_markers: tuple[DetectionMarker, ...] = ()
    variables: tuple[VariableSpec, ...] = ()

    def get_variable(self, name: str) -> VariableSpec | None:
        for var in self.variables:
            if var.name == name:
                return var
        return None

    @property
    def variable_names(self) -> list[str]:
        return [v.name for v in self.variables]

    @property
    def sort_key(self) -> tuple[int, str]:
        """Detection order: lower priority first, id breaks ties."""
        return (self.priority, self.id)


class StackDefinition(BaseModel):
    """Raw contents of a stack.yml, before parent resolution.

    Scalar fields are ``None`` when unset so a child can tell "inherit"
    apart from an explicit value.
    """

    id: str
    description: str = ""
    parent: str | None = None
    priority: int | None = None
    default_port: int | None = None
    build_command: str | None = None
    start_command: str | None = None
    detection: list[DetectionMarker] = Field(default_factory=list)
    variables: list[VariableSpec] = Field(default_factory=list)
    templates: list[ArtifactTemplate] = Field(default_factory=list)

    @field_validator("id")
    @classmethod
    def _valid_id(cls, v: str) -> str:
        if not re.match(r"^[a-z0-9][a-z0-9._-]*$", v):
            raise ValueError(f"invalid stack id: {v!r}")
        return v
