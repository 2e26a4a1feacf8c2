"""
Placeholder substitution — the ``${NAME}`` template syntax.

Rules:
    ${NAME}     replaced by the value of NAME when one is known,
                otherwise left exactly as written
    $${NAME}    escape, renders as the literal text ${NAME}
    any other $ literal (so ${VAR:-x} or $1 in shell scripts pass through)

Substitution is a single pass over the template: substituted values are
never scanned again.

Pure logic — no I/O.
"""

from __future__ import annotations

import re
from collections.abc import Mapping

from dockerize.core.errors import RegistryError

PLACEHOLDER_RE = re.compile(r"\$(\$?)\{([A-Za-z_][A-Za-z0-9_]*)\}")


def placeholders(text: str) -> list[str]:
    """Return placeholder names in ``text`` in first-seen order (no escapes)."""
    seen: dict[str, None] = {}
    for match in PLACEHOLDER_RE.finditer(text):
        if match.group(1):
            continue
        seen.setdefault(match.group(2), None)
    return list(seen)


def substitute(text: str, values: Mapping[str, str]) -> tuple[str, list[str]]:
    """Substitute known placeholders in ``text``.

    Returns:
        (rendered text, names left unsubstituted in first-seen order)
    """
    missing: dict[str, None] = {}

    def _replace(match: re.Match) -> str:
        escaped, name = match.group(1), match.group(2)
        if escaped:
            return "${" + name + "}"
        if name in values:
            return values[name]
        missing.setdefault(name, None)
        return match.group(0)

    rendered = PLACEHOLDER_RE.sub(_replace, text)
    return rendered, list(missing)


def default_order(defaults: Mapping[str, str]) -> list[str]:
    """Order default expressions so every reference is evaluated first.

    Only references to other keys of ``defaults`` are edges; anything
    else is a leaf (a provided value or a missing variable). Kahn's
    algorithm with sorted tie-breaking keeps the order deterministic.

    Raises:
        RegistryError: When the references form a cycle.
    """
    deps: dict[str, set[str]] = {
        name: {ref for ref in placeholders(expr) if ref in defaults and ref != name}
        for name, expr in defaults.items()
    }
    for name, expr in defaults.items():
        if name in placeholders(expr):
            raise RegistryError(f"Default of {name} references itself")

    in_degree = {name: len(d) for name, d in deps.items()}
    dependents: dict[str, list[str]] = {name: [] for name in deps}
    for name, d in deps.items():
        for ref in d:
            dependents[ref].append(name)

    queue = sorted(name for name, deg in in_degree.items() if deg == 0)
    order: list[str] = []
    while queue:
        node = queue.pop(0)
        order.append(node)
        for successor in sorted(dependents[node]):
            in_degree[successor] -= 1
            if in_degree[successor] == 0:
                queue.append(successor)

    if len(order) < len(deps):
        cyclic = sorted(name for name, deg in in_degree.items() if deg > 0)
        raise RegistryError(
            f"Cyclic default references between: {', '.join(cyclic)}"
        )
    return order
