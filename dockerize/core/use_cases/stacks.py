"""
Stack use cases — list, describe, validate, detect.

Thin orchestration over the registry and the detector, returning plain
dicts for the CLI to print or dump as JSON.
"""

from __future__ import annotations

from pathlib import Path

from dockerize.core.config.registry import BUILTIN_VARIABLES, StackRegistry, effective_variables
from dockerize.core.config.stack_loader import registry_for
from dockerize.core.errors import DetectionFailure, DockerizeError
from dockerize.core.services.detection import detect, explain
from dockerize.core.services.oracle import DirectoryOracle


def list_stacks(registry: StackRegistry) -> list[dict]:
    """Summary of every stack, in detection order."""
    return [
        {
            "id": p.id,
            "description": p.description,
            "parent": p.parent,
            "priority": p.priority,
            "default_port": p.default_port,
            "artifacts": registry.template_set(p.id).roles,
        }
        for p in registry.ordered()
    ]


def describe_stack(registry: StackRegistry, stack_id: str) -> dict:
    """Full description of one stack.

    Raises:
        UnknownStack: If ``stack_id`` is not registered.
    """
    profile = registry.get(stack_id)
    template_set = registry.template_set(stack_id)
    return {
        "id": profile.id,
        "description": profile.description,
        "parent": profile.parent,
        "priority": profile.priority,
        "default_port": profile.default_port,
        "build_command": profile.build_command,
        "start_command": profile.start_command,
        "markers": [m.describe() for m in profile.detection_markers],
        "variables": [
            {
                "name": v.name,
                "required": v.required,
                "default": v.default,
                "description": v.description,
                "builtin": v.name in BUILTIN_VARIABLES,
            }
            for v in effective_variables(profile)
        ],
        "artifacts": [
            {"role": a.role, "path": a.path, "executable": a.executable}
            for a in template_set.artifacts
        ],
    }


def validate_stacks(stacks_dirs: tuple[Path, ...] = ()) -> dict:
    """Load the registry and report whether it is valid."""
    try:
        registry = registry_for(stacks_dirs)
    except DockerizeError as e:
        return {"valid": False, "error": str(e)}
    return {"valid": True, "stacks": registry.ids}


def detect_stack(project_dir: Path, registry: StackRegistry, with_explain: bool = False) -> dict:
    """Detect the stack of ``project_dir`` without raising.

    Returns:
        {"stack": id or None, "error": ..., "explain": [...]}
    """
    oracle = DirectoryOracle(project_dir)
    result: dict = {"project_dir": str(project_dir)}
    try:
        result["stack"] = detect(oracle, registry).id
    except DetectionFailure as e:
        result["stack"] = None
        result["error"] = str(e)
        result["tried"] = e.tried
    if with_explain:
        result["explain"] = [m.to_dict() for m in explain(oracle, registry)]
    return result
