"""
Config values — the per-invocation variable set.

A ``ConfigSet`` is built fresh for every run from three layers
(built-in defaults, environment, explicit overrides) and is never
mutated afterwards; layering returns a new set.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import Iterable, Literal

from pydantic import BaseModel, ConfigDict

ValueSource = Literal["builtin", "env", "override"]


class ConfigValue(BaseModel):
    """One variable: its value (if any) and how to fill it when absent."""

    model_config = ConfigDict(frozen=True)

    name: str
    value: str | None = None
    required: bool = False
    default: str | None = None
    source: ValueSource = "builtin"
    description: str = ""

    @property
    def has_value(self) -> bool:
        return self.value is not None


class ConfigSet(Mapping[str, ConfigValue]):
    """Read-only mapping of variable name to ``ConfigValue``."""

    def __init__(self, values: Iterable[ConfigValue] = ()):
        entries: dict[str, ConfigValue] = {}
        for cv in values:
            if cv.name in entries:
                raise ValueError(f"Duplicate config variable: {cv.name}")
            entries[cv.name] = cv
        self._entries = MappingProxyType(entries)

    def __getitem__(self, name: str) -> ConfigValue:
        return self._entries[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"ConfigSet({sorted(self._entries)})"

    def layered(self, values: Mapping[str, str], source: ValueSource) -> "ConfigSet":
        """Return a new set with ``values`` applied on top of this one.

        Known names keep their declaration (required flag, default,
        description) and only take the new value. Unknown names are added
        as optional variables.
        """
        merged = dict(self._entries)
        for name, value in values.items():
            current = merged.get(name)
            if current is None:
                merged[name] = ConfigValue(name=name, value=value, source=source)
            else:
                merged[name] = current.model_copy(update={"value": value, "source": source})
        return ConfigSet(merged.values())

    def provided(self) -> dict[str, str]:
        """Variables that carry an explicit value."""
        return {n: cv.value for n, cv in self._entries.items() if cv.value is not None}

    def to_dict(self) -> dict:
        """Describe the set without exposing values."""
        return {
            name: {
                "source": cv.source,
                "required": cv.required,
                "has_value": cv.has_value,
                "default": cv.default,
            }
            for name, cv in sorted(self._entries.items())
        }
