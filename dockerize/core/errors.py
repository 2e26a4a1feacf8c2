"""
Error taxonomy.

Every failure the engine can report derives from ``DockerizeError`` and
carries structured fields (stack id, missing names, offending paths) so
callers can act without parsing messages. The CLI decides how to print them.
"""

from __future__ import annotations

from typing import Iterable


class DockerizeError(Exception):
    """Base class for all dockerize errors."""


class DetectionFailure(DockerizeError):
    """No registered stack matched the project directory."""

    def __init__(self, reason: str = "no matching stack", tried: Iterable[str] = ()):
        self.reason = reason
        self.tried = list(tried)
        message = reason
        if self.tried:
            message = f"{reason} (tried: {', '.join(self.tried)})"
        super().__init__(message)


class UnknownStack(DockerizeError):
    """A stack id was requested that the registry does not contain."""

    def __init__(self, stack_id: str, known: Iterable[str] = ()):
        self.stack_id = stack_id
        self.known = sorted(known)
        message = f"Unknown stack '{stack_id}'"
        if self.known:
            message += f" (known: {', '.join(self.known)})"
        super().__init__(message)


class IncompleteConfiguration(DockerizeError):
    """Required variables have no value and no default."""

    def __init__(self, missing: Iterable[str], stack_id: str = ""):
        self.missing = sorted(set(missing))
        self.stack_id = stack_id
        super().__init__(
            f"Missing required variables: {', '.join(self.missing)}"
        )


class RegistryError(DockerizeError):
    """The stack registry is invalid. Raised while loading, never later."""

    def __init__(self, message: str, stack_id: str | None = None):
        self.stack_id = stack_id
        if stack_id:
            message = f"[{stack_id}] {message}"
        super().__init__(message)


LoadTimeRegistryError = RegistryError


class ConfigError(DockerizeError):
    """Invalid project file, env file or command-line assignment."""


class ArtifactExists(DockerizeError):
    """Artifacts already exist with different content and overwrite is off."""

    def __init__(self, paths: Iterable[str]):
        self.paths = list(paths)
        super().__init__(
            f"Refusing to overwrite existing files: {', '.join(self.paths)}"
        )


class ArtifactWriteError(DockerizeError):
    """The destination cannot take an artifact (not a directory, no permission, ...)."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot write {path}: {reason}")
