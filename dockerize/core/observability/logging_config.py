"""
Logging configuration for the dockerize logger tree.

Modules log through ``logging.getLogger(__name__)``; the CLI calls
``configure_logging(resolve_settings(...))`` once per invocation.

Console level, first match wins:
    --debug > --verbose > --quiet > DOCKERIZE_LOG_LEVEL > WARNING

DOCKERIZE_LOG_FILE adds a file handler at DOCKERIZE_LOG_FILE_LEVEL
(console level when unset).
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Mapping
from dataclasses import dataclass

PACKAGE_LOGGER = "dockerize"

ENV_LEVEL = "DOCKERIZE_LOG_LEVEL"
ENV_FILE = "DOCKERIZE_LOG_FILE"
ENV_FILE_LEVEL = "DOCKERIZE_LOG_FILE_LEVEL"

# (threshold, format, datefmt): the first threshold >= level is used
_CONSOLE_FORMATS: tuple[tuple[int, str, str | None], ...] = (
    (logging.DEBUG, "%(levelname)s %(name)s:%(lineno)d %(message)s", None),
    (logging.INFO, "[%(name)s] %(message)s", None),
    (logging.CRITICAL, "%(levelname)s: %(message)s", None),
)
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s:%(lineno)d %(message)s"
_FILE_DATEFMT = "%Y-%m-%dT%H:%M:%S"


@dataclass(frozen=True)
class LogSettings:
    """Where and how much to log."""

    level: int = logging.WARNING
    file: str | None = None
    file_level: int | None = None

    @property
    def effective_file_level(self) -> int:
        return self.level if self.file_level is None else self.file_level


def parse_level(level: str | None) -> int:
    """Convert a level name to its numeric constant (WARNING if unknown)."""
    if not level:
        return logging.WARNING
    numeric = logging.getLevelName(level.strip().upper())
    return numeric if isinstance(numeric, int) else logging.WARNING


def resolve_settings(
    *,
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    environ: Mapping[str, str] | None = None,
) -> LogSettings:
    """Combine the global CLI flags with the DOCKERIZE_LOG_* variables."""
    environ = environ or {}
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    elif quiet:
        level = logging.ERROR
    else:
        level = parse_level(environ.get(ENV_LEVEL))

    file_level = environ.get(ENV_FILE_LEVEL)
    return LogSettings(
        level=level,
        file=environ.get(ENV_FILE) or None,
        file_level=parse_level(file_level) if file_level else None,
    )


def console_formatter(level: int) -> logging.Formatter:
    """Formatter for the console handler; chattier levels show more context."""
    for threshold, fmt, datefmt in _CONSOLE_FORMATS:
        if level <= threshold:
            return logging.Formatter(fmt, datefmt=datefmt)
    return logging.Formatter("%(message)s")


def configure_logging(settings: LogSettings) -> logging.Logger:
    """Replace the handlers of the package logger according to ``settings``."""
    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = False

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(settings.level)
    console.setFormatter(console_formatter(settings.level))
    logger.addHandler(console)

    level = settings.level
    if settings.file:
        file_handler = logging.FileHandler(settings.file, encoding="utf-8")
        file_handler.setLevel(settings.effective_file_level)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_FILE_DATEFMT))
        logger.addHandler(file_handler)
        level = min(level, settings.effective_file_level)

    logger.setLevel(level)
    return logger
