"""
Resolution service — turn a template set and a ConfigSet into artifacts.

Steps:
    1. Values: take every provided value, then evaluate default
       expressions in dependency order. A default whose references are
       not all known stays unevaluated.
    2. Render every template in declaration order with a single pass of
       ``substitute``.
    3. Every placeholder still present is traced back to the required
       variables that caused it; those names are the result's
       ``unresolved`` list.

Identical inputs give byte-identical output.
"""

from __future__ import annotations

import logging

from dockerize.core.config.registry import StackRegistry
from dockerize.core.models.config import ConfigSet
from dockerize.core.models.result import RenderedArtifact, ResolutionResult
from dockerize.core.services.substitution import default_order, placeholders, substitute

logger = logging.getLogger(__name__)


def resolve_values(config_set: ConfigSet) -> tuple[dict[str, str], dict[str, set[str]]]:
    """Compute the final value of every variable that can have one.

    Returns:
        (resolved values, blocked) where ``blocked`` maps each variable
        that has no value to the required variables it is waiting on.
    """
    resolved: dict[str, str] = {}
    blocked: dict[str, set[str]] = {}

    defaults: dict[str, str] = {}
    for name, cv in config_set.items():
        if cv.value is not None:
            resolved[name] = cv.value
        elif cv.default is not None:
            defaults[name] = cv.default
        elif cv.required:
            blocked[name] = {name}
        else:
            # declared optional with nothing to fall back on
            resolved[name] = ""

    for name in default_order(defaults):
        waiting_on: set[str] = set()
        for ref in placeholders(defaults[name]):
            if ref in resolved:
                continue
            waiting_on |= blocked.get(ref, {ref})
        if waiting_on:
            blocked[name] = waiting_on
            continue
        resolved[name], _ = substitute(defaults[name], resolved)

    return resolved, blocked


def resolve(stack_id: str, config_set: ConfigSet, registry: StackRegistry) -> ResolutionResult:
    """Render the template set of ``stack_id`` with ``config_set``.

    Raises:
        UnknownStack: If the registry has no template set for ``stack_id``.
        RegistryError: If the ConfigSet's defaults reference each other
            cyclically (a registry-built set never does).
    """
    template_set = registry.template_set(stack_id)
    values, blocked = resolve_values(config_set)

    artifacts: list[RenderedArtifact] = []
    unresolved: set[str] = set()
    for template in template_set.artifacts:
        content, left = substitute(template.content, values)
        for name in left:
            # a name nobody declared is its own root cause
            unresolved |= blocked.get(name, {name})
        artifacts.append(RenderedArtifact(
            role=template.role,
            path=template.path,
            content=content,
            executable=template.executable,
        ))

    if unresolved:
        logger.warning(
            "Stack %s: %d unresolved variables: %s",
            stack_id, len(unresolved), ", ".join(sorted(unresolved)),
        )
    else:
        logger.info("Stack %s: resolved %d artifacts", stack_id, len(artifacts))

    return ResolutionResult(
        stack_id=stack_id,
        artifacts=tuple(artifacts),
        unresolved=tuple(sorted(unresolved)),
        values=values,
    )
