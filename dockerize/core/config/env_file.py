"""
Env sources — ``.env`` files and ``KEY=VALUE`` assignments.

Both feed the ConfigSet: env files join the environment layer, command
line assignments join the override layer.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from dockerize.core.errors import ConfigError
from dockerize.core.models.stack import VARIABLE_NAME_RE

logger = logging.getLogger(__name__)

_INLINE_COMMENT_RE = re.compile(r"\s#")


def parse_env_text(text: str, origin: str = "<env>") -> dict[str, str]:
    """Parse dotenv-style text.

    Supports ``#`` comments, blank lines, an optional ``export`` prefix
    and single or double quoted values. Later keys win.
    """
    values: dict[str, str] = {}
    for lineno, line in enumerate(text.splitlines(), start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if stripped.startswith("export "):
            stripped = stripped[len("export "):].lstrip()
        if "=" not in stripped:
            raise ConfigError(f"{origin}:{lineno}: expected KEY=VALUE, got {stripped!r}")

        key, value = stripped.split("=", 1)
        key = key.strip()
        if not VARIABLE_NAME_RE.match(key):
            raise ConfigError(f"{origin}:{lineno}: invalid variable name {key!r}")

        values[key] = _parse_value(value, f"{origin}:{lineno}")
    return values


def _parse_value(raw: str, where: str) -> str:
    """Unquote a value, or drop the inline comment of an unquoted one."""
    stripped = raw.strip()
    if stripped[:1] in ("'", '"'):
        quote = stripped[0]
        end = stripped.find(quote, 1)
        if end == -1:
            raise ConfigError(f"{where}: unterminated {quote} quote")
        rest = stripped[end + 1:].strip()
        if rest and not rest.startswith("#"):
            raise ConfigError(f"{where}: unexpected text after closing quote: {rest!r}")
        return stripped[1:end]
    # a # only starts a comment after whitespace
    return _INLINE_COMMENT_RE.split(raw, maxsplit=1)[0].strip()


def load_env_file(path: Path) -> dict[str, str]:
    """Read and parse an env file.

    Raises:
        ConfigError: If the file is missing, unreadable or malformed.
    """
    if not path.is_file():
        raise ConfigError(f"Env file not found: {path}")
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    values = parse_env_text(text, origin=str(path))
    logger.debug("Loaded %d values from %s", len(values), path)
    return values


def parse_assignments(pairs: list[str] | tuple[str, ...]) -> dict[str, str]:
    """Parse ``KEY=VALUE`` strings (``--set`` options). Later keys win."""
    values: dict[str, str] = {}
    for pair in pairs:
        if "=" not in pair:
            raise ConfigError(f"Invalid assignment (expected KEY=VALUE): {pair}")
        key, value = pair.split("=", 1)
        if not VARIABLE_NAME_RE.match(key):
            raise ConfigError(f"Invalid variable name in assignment: {pair}")
        values[key] = value
    return values
