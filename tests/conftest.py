"""
Shared test fixtures and configuration.
"""

import itertools
import textwrap
from pathlib import Path

import pytest

from dockerize.core.config.stack_loader import default_registry, load_registry


@pytest.fixture
def project_root() -> Path:
    """Return the repository root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def builtin_registry():
    """The registry built from dockerize/stacks."""
    return default_registry()


@pytest.fixture
def stacks_dir(tmp_path: Path) -> Path:
    """Empty directory to write test stacks into."""
    d = tmp_path / "stacks"
    d.mkdir()
    return d


@pytest.fixture
def write_stack(stacks_dir: Path):
    """Write a stack.yml (and optional template files) under ``stacks_dir``.

    Usage::

        write_stack("nodejs", yaml_text, {"Dockerfile.tmpl": "FROM ..."})
    """

    def _write(name: str, yaml_text: str, files: dict[str, str] | None = None) -> Path:
        d = stacks_dir / name
        d.mkdir()
        (d / "stack.yml").write_text(textwrap.dedent(yaml_text))
        for filename, content in (files or {}).items():
            (d / filename).write_text(content)
        return d

    return _write


NODEJS_STACK = """\
    id: nodejs
    default_port: 3000
    detection:
      - exists: package.json
    variables:
      - name: DATABASE_URL
        required: true
      - name: COOLIFY_FQDN
      - name: APP_URL
        default: "https://${COOLIFY_FQDN}"
    templates:
      - role: build_recipe
        path: Dockerfile
        content: |
          FROM node:20
          EXPOSE ${PORT}
      - role: manifest
        path: app.env
        content: |
          DATABASE_URL=${DATABASE_URL}
          APP_URL=${APP_URL}
      - role: entrypoint
        path: entrypoint.sh
        executable: true
        content: |
          #!/bin/sh
          exec node server.js
"""


@pytest.fixture
def nodejs_registry(write_stack, stacks_dir: Path):
    """Single-stack registry: nodejs with a required DATABASE_URL."""
    write_stack("nodejs", NODEJS_STACK)
    return load_registry(stacks_dir)


@pytest.fixture
def marker_file_sets():
    """Every project a registry's markers can tell apart, as path -> content maps.

    Each marker path is missing, empty, or holds any combination of the
    texts its ``contains`` markers look for.

    Usage::

        for files in marker_file_sets(registry):
            oracle = MemoryOracle(files)
    """

    def _states(texts: list[str]) -> list[str | None]:
        states: list[str | None] = [None]
        for n in range(len(texts) + 1):
            states.extend("\n".join(combo) for combo in itertools.combinations(texts, n))
        return states

    def _generate(registry):
        texts: dict[str, list[str]] = {}
        for profile in registry.ordered():
            for marker in profile.detection_markers:
                known = texts.setdefault(marker.path, [])
                if marker.kind == "contains" and marker.text not in known:
                    known.append(marker.text)
        paths = sorted(texts)
        for choice in itertools.product(*(_states(texts[p]) for p in paths)):
            yield {path: content for path, content in zip(paths, choice) if content is not None}

    return _generate
