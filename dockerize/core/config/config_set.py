"""
ConfigSet construction — merge the three value layers for one stack.

Increasing priority:
    1. built-in defaults   the stack's declarations (STACK_ID, PORT, ...,
                           then its own variables with their defaults)
    2. environment         only names the stack declares are taken
    3. explicit overrides  any name
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from dockerize.core.config.registry import effective_variables
from dockerize.core.models.config import ConfigSet, ConfigValue
from dockerize.core.models.stack import StackProfile

logger = logging.getLogger(__name__)


def base_config_set(profile: StackProfile) -> ConfigSet:
    """Declarations only: no values, defaults still unevaluated."""
    return ConfigSet(
        ConfigValue(
            name=var.name,
            required=var.required,
            default=var.default,
            description=var.description,
            source="builtin",
        )
        for var in effective_variables(profile)
    )


def build_config_set(
    profile: StackProfile,
    environ: Mapping[str, str] | None = None,
    overrides: Mapping[str, str] | None = None,
) -> ConfigSet:
    """Build the ConfigSet for one invocation.

    Args:
        profile: The stack being rendered.
        environ: Environment snapshot. Only declared names are read.
        overrides: Explicit values. Win over everything.
    """
    config_set = base_config_set(profile)

    if environ:
        from_env = {name: environ[name] for name in config_set if name in environ}
        if from_env:
            logger.debug("From environment: %s", sorted(from_env))
            config_set = config_set.layered(from_env, source="env")

    if overrides:
        undeclared = sorted(set(overrides) - set(config_set))
        if undeclared:
            logger.info(
                "Overrides not declared by stack %s (unused by templates): %s",
                profile.id, ", ".join(undeclared),
            )
        config_set = config_set.layered(dict(overrides), source="override")

    return config_set
