"""
Domain models — Pydantic types for dockerize.

All models are re-exported here for convenient access:

    from dockerize.core.models import StackProfile, TemplateSet, ConfigSet
"""

from dockerize.core.models.config import ConfigSet, ConfigValue
from dockerize.core.models.result import RenderedArtifact, ResolutionResult, WriteOutcome
from dockerize.core.models.stack import (
    ArtifactTemplate,
    DetectionMarker,
    StackDefinition,
    StackProfile,
    TemplateSet,
    VariableSpec,
)

__all__ = [
    # stack.py
    "ArtifactTemplate",
    # config.py
    "ConfigSet",
    "ConfigValue",
    "DetectionMarker",
    # result.py
    "RenderedArtifact",
    "ResolutionResult",
    "StackDefinition",
    "StackProfile",
    "TemplateSet",
    "VariableSpec",
    "WriteOutcome",
]
