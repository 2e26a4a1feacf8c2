"""
Stack registry — the validated, read-only set of stacks.

Built once per process by the stack loader. Construction runs every
load-time check; a registry object that exists is a valid registry:

    - every profile has exactly one template set and vice versa
    - no profile contradicts itself (same file required and absent)
    - every pair of profiles is mutually exclusive: some file is
      required by one and required absent by the other
    - default expressions reference declared variables and form no cycle
    - every template placeholder is a declared or built-in variable
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Iterator, Mapping
from types import MappingProxyType

from dockerize.core.errors import RegistryError, UnknownStack
from dockerize.core.models.stack import StackProfile, TemplateSet, VariableSpec
from dockerize.core.services.substitution import default_order, placeholders

logger = logging.getLogger(__name__)

# Variables every stack gets without declaring them
BUILTIN_VARIABLES = ("STACK_ID", "PORT", "BUILD_COMMAND", "START_COMMAND")


def builtin_variables(profile: StackProfile) -> list[VariableSpec]:
    """Built-in variable specs derived from a profile's own fields.

    BUILD_COMMAND / START_COMMAND are default expressions, so they may use
    any other variable of the stack (``gunicorn --bind 0.0.0.0:${PORT}``).
    """
    return [
        VariableSpec(name="STACK_ID", default=profile.id, description="Stack identifier"),
        VariableSpec(name="PORT", default=str(profile.default_port), description="Port the app listens on"),
        VariableSpec(name="BUILD_COMMAND", default=profile.build_command, description="Build step"),
        VariableSpec(name="START_COMMAND", default=profile.start_command, description="Start command"),
    ]


def effective_variables(profile: StackProfile) -> list[VariableSpec]:
    """Built-ins followed by the profile's declared variables (declared win)."""
    merged: dict[str, VariableSpec] = {v.name: v for v in builtin_variables(profile)}
    for var in profile.variables:
        merged[var.name] = var
    return list(merged.values())


class StackRegistry:
    """Read-only mapping of stack id to profile and template set."""

    def __init__(
        self,
        profiles: Mapping[str, StackProfile],
        template_sets: Mapping[str, TemplateSet],
    ):
        validate_registry(profiles, template_sets)
        self._profiles = MappingProxyType(dict(profiles))
        self._template_sets = MappingProxyType(dict(template_sets))
        self._ordered = tuple(sorted(self._profiles.values(), key=lambda p: p.sort_key))

    def __contains__(self, stack_id: object) -> bool:
        return stack_id in self._profiles

    def __iter__(self) -> Iterator[str]:
        return (p.id for p in self._ordered)

    def __len__(self) -> int:
        return len(self._profiles)

    def __repr__(self) -> str:
        return f"StackRegistry({list(self)})"

    @property
    def ids(self) -> list[str]:
        """Stack ids in detection order."""
        return list(self)

    def ordered(self) -> tuple[StackProfile, ...]:
        """Profiles in detection order: (priority, id)."""
        return self._ordered

    def get(self, stack_id: str) -> StackProfile:
        try:
            return self._profiles[stack_id]
        except KeyError:
            raise UnknownStack(stack_id, known=self._profiles) from None

    def template_set(self, stack_id: str) -> TemplateSet:
        try:
            return self._template_sets[stack_id]
        except KeyError:
            raise UnknownStack(stack_id, known=self._template_sets) from None


# ── Validation ──────────────────────────────────────────────────


def validate_registry(
    profiles: Mapping[str, StackProfile],
    template_sets: Mapping[str, TemplateSet],
) -> None:
    """Run all load-time checks. Raises RegistryError on the first problem."""
    for key, profile in profiles.items():
        if key != profile.id:
            raise RegistryError(f"Registered under '{key}' but declares id '{profile.id}'", profile.id)

    missing_sets = sorted(set(profiles) - set(template_sets))
    if missing_sets:
        raise RegistryError(f"No template set for stacks: {', '.join(missing_sets)}")
    orphan_sets = sorted(set(template_sets) - set(profiles))
    if orphan_sets:
        raise RegistryError(f"Template sets without a stack: {', '.join(orphan_sets)}")

    for stack_id in sorted(profiles):
        profile = profiles[stack_id]
        _check_markers(profile)
        _check_variables(profile)
        _check_templates(profile, template_sets[stack_id])

    _check_exclusive(profiles)
    logger.debug("Registry valid: %d stacks", len(profiles))


def _check_markers(profile: StackProfile) -> None:
    if not profile.detection_markers:
        raise RegistryError("Declares no detection markers and would match any project", profile.id)

    present = {m.path for m in profile.detection_markers if m.requires_present}
    absent = {m.path for m in profile.detection_markers if not m.requires_present}
    contradictions = sorted(present & absent)
    if contradictions:
        raise RegistryError(
            f"Markers require {', '.join(contradictions)} to be both present and absent",
            profile.id,
        )


def _check_variables(profile: StackProfile) -> None:
    names = [v.name for v in profile.variables]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise RegistryError(f"Duplicate variables: {', '.join(duplicates)}", profile.id)

    variables = effective_variables(profile)
    declared = {v.name for v in variables}
    defaults: dict[str, str] = {}
    for var in variables:
        if var.default is None:
            continue
        unknown = [ref for ref in placeholders(var.default) if ref not in declared]
        if unknown:
            raise RegistryError(
                f"Default of {var.name} references undeclared variables: {', '.join(unknown)}",
                profile.id,
            )
        defaults[var.name] = var.default

    try:
        default_order(defaults)
    except RegistryError as e:
        raise RegistryError(str(e), profile.id) from e


def _check_templates(profile: StackProfile, template_set: TemplateSet) -> None:
    if template_set.stack_id != profile.id:
        raise RegistryError(
            f"Template set belongs to '{template_set.stack_id}'", profile.id
        )
    if not template_set.artifacts:
        raise RegistryError("Template set has no artifacts", profile.id)

    declared = {v.name for v in effective_variables(profile)}
    seen_paths: set[str] = set()
    seen_roles: set[str] = set()
    for artifact in template_set.artifacts:
        if artifact.path in seen_paths:
            raise RegistryError(f"Two artifacts write {artifact.path}", profile.id)
        if artifact.role in seen_roles:
            raise RegistryError(f"Duplicate artifact role {artifact.role}", profile.id)
        seen_paths.add(artifact.path)
        seen_roles.add(artifact.role)

        unknown = [n for n in placeholders(artifact.content) if n not in declared]
        if unknown:
            raise RegistryError(
                f"Template {artifact.path} uses undeclared variables: {', '.join(unknown)}",
                profile.id,
            )


def _check_exclusive(profiles: Mapping[str, StackProfile]) -> None:
    """Every pair of profiles needs a file one requires and the other forbids."""
    ids = sorted(profiles)
    for a_id, b_id in itertools.combinations(ids, 2):
        a, b = profiles[a_id], profiles[b_id]
        a_present = {m.path for m in a.detection_markers if m.requires_present}
        a_absent = {m.path for m in a.detection_markers if not m.requires_present}
        b_present = {m.path for m in b.detection_markers if m.requires_present}
        b_absent = {m.path for m in b.detection_markers if not m.requires_present}

        if (a_present & b_absent) or (a_absent & b_present):
            continue

        witness = sorted(a_present | b_present)
        raise RegistryError(
            f"Stacks '{a_id}' and '{b_id}' are not mutually exclusive: a project "
            f"with {', '.join(witness) or 'no marker files'} can match both. "
            "Add an 'absent' marker to one of them."
        )
