"""
Stack loader — loads stack definitions from YAML files.

Stacks live in <stacks_dir>/<id>/stack.yml, with their template files
next to it. This module discovers them, reads the templates, resolves
``parent`` references and hands the result to ``StackRegistry``, which
validates it.

Unlike detection, loading is strict: a broken stack file is a
RegistryError at startup rather than a stack that silently disappears.
"""

from __future__ import annotations

import functools
import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from dockerize.core.config.registry import StackRegistry
from dockerize.core.errors import RegistryError
from dockerize.core.models.stack import (
    ArtifactTemplate,
    StackDefinition,
    StackProfile,
    TemplateSet,
)

logger = logging.getLogger(__name__)

BUILTIN_STACKS_DIR = Path(__file__).resolve().parent.parent.parent / "stacks"

STACK_FILENAMES = ("stack.yml", "stack.yaml")

# Fallbacks for fields that neither a stack nor any of its parents set
_DEFAULT_PRIORITY = 100
_DEFAULT_PORT = 8080


def load_stack_file(path: Path) -> StackDefinition:
    """Load a single stack definition and read its template sources.

    Args:
        path: Path to stack.yml.

    Returns:
        StackDefinition with every template's ``content`` filled in.

    Raises:
        RegistryError: If the file is unreadable, not a mapping, invalid,
            or names a template source that cannot be read.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise RegistryError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise RegistryError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise RegistryError(f"Stack file {path} is not a mapping")

    try:
        definition = StackDefinition.model_validate(data)
    except ValidationError as e:
        raise RegistryError(f"Invalid stack definition in {path}: {e}") from e

    templates = [_read_template(t, path.parent, definition.id) for t in definition.templates]
    definition = definition.model_copy(update={"templates": templates})
    logger.debug("Loaded stack: %s from %s", definition.id, path)
    return definition


def _read_template(template: ArtifactTemplate, stack_dir: Path, stack_id: str) -> ArtifactTemplate:
    if not template.source:
        return template
    if template.content:
        raise RegistryError(
            f"Template {template.path} sets both 'source' and 'content'", stack_id
        )
    source = (stack_dir / template.source).resolve()
    if stack_dir.resolve() not in source.parents:
        raise RegistryError(f"Template source escapes the stack directory: {template.source}", stack_id)
    try:
        # newline="" keeps the template's bytes exactly as written
        with source.open(encoding="utf-8", newline="") as fh:
            content = fh.read()
    except OSError as e:
        raise RegistryError(f"Cannot read template {source}: {e}", stack_id) from e
    return template.model_copy(update={"content": content})


def discover_definitions(stacks_dir: Path) -> dict[str, StackDefinition]:
    """Walk one stacks directory and load every stack file in it."""
    definitions: dict[str, StackDefinition] = {}

    if not stacks_dir.is_dir():
        raise RegistryError(f"Stacks directory not found: {stacks_dir}")

    for child in sorted(stacks_dir.iterdir()):
        if not child.is_dir():
            continue
        stack_file = next(
            (child / name for name in STACK_FILENAMES if (child / name).is_file()), None
        )
        if stack_file is None:
            continue

        definition = load_stack_file(stack_file)
        if definition.id in definitions:
            raise RegistryError(f"Stack id declared twice in {stacks_dir}", definition.id)
        definitions[definition.id] = definition

    return definitions


def load_registry(*stacks_dirs: Path) -> StackRegistry:
    """Load, resolve and validate stacks from one or more directories.

    Later directories override earlier ones by stack id, so user stacks
    can replace built-ins.
    """
    raw: dict[str, StackDefinition] = {}
    for stacks_dir in stacks_dirs:
        for stack_id, definition in discover_definitions(Path(stacks_dir)).items():
            if stack_id in raw:
                logger.info("Stack '%s' overridden by %s", stack_id, stacks_dir)
            raw[stack_id] = definition

    profiles: dict[str, StackProfile] = {}
    template_sets: dict[str, TemplateSet] = {}
    for stack_id in raw:
        profile, template_set = _resolve(stack_id, raw, chain=())
        profiles[stack_id] = profile
        template_sets[stack_id] = template_set

    registry = StackRegistry(profiles, template_sets)
    logger.info("Loaded %d stacks: %s", len(registry), registry.ids)
    return registry


@functools.lru_cache(maxsize=1)
def default_registry() -> StackRegistry:
    """The built-in registry, loaded once per process."""
    return load_registry(BUILTIN_STACKS_DIR)


def registry_for(stacks_dirs: tuple[Path, ...] = ()) -> StackRegistry:
    """Built-ins plus any extra directories (extra dirs win)."""
    if not stacks_dirs:
        return default_registry()
    return load_registry(BUILTIN_STACKS_DIR, *stacks_dirs)


# ── Parent resolution ───────────────────────────────────────────


def _resolve(
    stack_id: str,
    raw: dict[str, StackDefinition],
    chain: tuple[str, ...],
) -> tuple[StackProfile, TemplateSet]:
    """Flatten a definition and its ancestors into a profile + template set.

    Merge rules (child over parent):
        scalars     child's value if set, else parent's
        detection   merged by path, child's marker replaces the parent's
        variables   merged by name, child's spec replaces the parent's
        templates   merged by role, child's template replaces the parent's
    """
    if stack_id in chain:
        raise RegistryError(f"Parent cycle: {' -> '.join(chain + (stack_id,))}", stack_id)

    definition = raw[stack_id]

    if definition.parent is None:
        return _to_profile(definition), TemplateSet(
            stack_id=stack_id, artifacts=tuple(definition.templates)
        )

    if definition.parent not in raw:
        raise RegistryError(f"Unknown parent stack '{definition.parent}'", stack_id)

    parent, parent_set = _resolve(definition.parent, raw, chain + (stack_id,))

    markers = _merge_by(parent.detection_markers, definition.detection, key=lambda m: m.path)
    variables = _merge_by(parent.variables, definition.variables, key=lambda v: v.name)
    artifacts = _merge_by(parent_set.artifacts, definition.templates, key=lambda t: t.role)

    profile = StackProfile(
        id=stack_id,
        description=definition.description or parent.description,
        parent=definition.parent,
        priority=_pick(definition.priority, parent.priority),
        default_port=_pick(definition.default_port, parent.default_port),
        build_command=_pick(definition.build_command, parent.build_command),
        start_command=_pick(definition.start_command, parent.start_command),
        detection_markers=tuple(markers),
        variables=tuple(variables),
    )
    return profile, TemplateSet(stack_id=stack_id, artifacts=tuple(artifacts))


def _to_profile(definition: StackDefinition) -> StackProfile:
    return StackProfile(
        id=definition.id,
        description=definition.description,
        priority=_pick(definition.priority, _DEFAULT_PRIORITY),
        default_port=_pick(definition.default_port, _DEFAULT_PORT),
        build_command=_pick(definition.build_command, ""),
        start_command=_pick(definition.start_command, ""),
        detection_markers=tuple(definition.detection),
        variables=tuple(definition.variables),
    )


def _pick(child, parent):
    return parent if child is None else child


def _merge_by(parent_items, child_items, key) -> list:
    """Parent order preserved, child replaces by key, child extras appended."""
    merged = {key(item): item for item in parent_items}
    for item in child_items:
        merged[key(item)] = item
    return list(merged.values())
