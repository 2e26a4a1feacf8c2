"""
Tests for registry validation — exclusivity, defaults, placeholders.

Everything here must fail while loading, never during a run.
"""

import pytest

from dockerize.core.config.registry import (
    StackRegistry,
    builtin_variables,
    effective_variables,
)
from dockerize.core.config.stack_loader import load_registry
from dockerize.core.errors import RegistryError, UnknownStack
from dockerize.core.models.stack import (
    ArtifactTemplate,
    DetectionMarker,
    StackProfile,
    TemplateSet,
    VariableSpec,
)
from dockerize.core.services.detection import profile_matches
from dockerize.core.services.oracle import MemoryOracle


def _profile(stack_id, markers, variables=(), priority=100):
    return StackProfile(
        id=stack_id,
        priority=priority,
        detection_markers=tuple(markers),
        variables=tuple(variables),
    )


def _tset(stack_id, content="FROM scratch\n"):
    return TemplateSet(
        stack_id=stack_id,
        artifacts=(ArtifactTemplate(role="build_recipe", path="Dockerfile", content=content),),
    )


def _registry(*profiles, contents=None):
    contents = contents or {}
    return StackRegistry(
        {p.id: p for p in profiles},
        {p.id: _tset(p.id, contents.get(p.id, "FROM scratch\n")) for p in profiles},
    )


PKG = DetectionMarker(path="package.json", kind="exists")
NO_PKG = DetectionMarker(path="package.json", kind="absent")
MANAGE = DetectionMarker(path="manage.py", kind="exists")
NO_MANAGE = DetectionMarker(path="manage.py", kind="absent")
NEXT_CONFIG = DetectionMarker(path="next.config.js", kind="contains", text="module")
NO_NEXT_CONFIG = DetectionMarker(path="next.config.js", kind="absent")


class TestExclusivity:
    def test_exclusive_profiles_accepted(self):
        registry = _registry(
            _profile("nodejs", [PKG, NO_MANAGE]),
            _profile("django", [MANAGE]),
        )
        assert set(registry) == {"nodejs", "django"}

    def test_overlapping_profiles_rejected(self):
        with pytest.raises(RegistryError, match="not mutually exclusive") as exc:
            _registry(
                _profile("nodejs", [PKG]),
                _profile("django", [MANAGE]),
            )
        assert "manage.py" in str(exc.value)
        assert "package.json" in str(exc.value)

    def test_same_markers_rejected(self):
        with pytest.raises(RegistryError, match="not mutually exclusive"):
            _registry(_profile("a", [PKG]), _profile("b", [PKG]))

    def test_contains_counts_as_present(self):
        registry = _registry(
            _profile("next", [PKG, NEXT_CONFIG]),
            _profile("plain", [PKG, NO_NEXT_CONFIG]),
        )
        assert len(registry) == 2

    def test_contains_and_absent_never_both_match(self, marker_file_sets):
        registry = _registry(
            _profile("next", [PKG, NEXT_CONFIG]),
            _profile("plain", [PKG, NO_NEXT_CONFIG]),
            _profile("django", [MANAGE, NO_PKG]),
        )
        seen = set()
        for files in marker_file_sets(registry):
            oracle = MemoryOracle(files)
            matched = [p.id for p in registry.ordered() if profile_matches(p, oracle)]
            assert len(matched) <= 1, (files, matched)
            seen.update(matched)
        assert seen == {"next", "plain", "django"}

    def test_different_contains_texts_rejected(self):
        app_router = DetectionMarker(path="next.config.js", kind="contains", text="appDir")
        with pytest.raises(RegistryError, match="not mutually exclusive"):
            _registry(
                _profile("next", [PKG, NEXT_CONFIG]),
                _profile("next-app", [PKG, app_router]),
            )

    def test_no_markers_rejected(self):
        with pytest.raises(RegistryError, match="no detection markers"):
            _registry(_profile("anything", []))

    def test_self_contradiction_rejected(self):
        with pytest.raises(RegistryError, match="both present and absent"):
            _registry(_profile("never", [PKG, NO_PKG]))


class TestVariables:
    def test_duplicate_variable(self):
        with pytest.raises(RegistryError, match="Duplicate variables"):
            _registry(_profile("a", [PKG], [VariableSpec(name="X"), VariableSpec(name="X")]))

    def test_default_references_undeclared(self):
        with pytest.raises(RegistryError, match="undeclared variables: HOST"):
            _registry(_profile("a", [PKG], [VariableSpec(name="URL", default="https://${HOST}")]))

    def test_cyclic_defaults(self):
        variables = [
            VariableSpec(name="A", default="${B}"),
            VariableSpec(name="B", default="${A}"),
        ]
        with pytest.raises(RegistryError, match="Cyclic") as exc:
            _registry(_profile("loop", [PKG], variables))
        assert exc.value.stack_id == "loop"

    def test_builtin_may_be_referenced(self):
        registry = _registry(_profile("a", [PKG], [VariableSpec(name="URL", default="http://x:${PORT}")]))
        assert "a" in registry

    def test_declared_overrides_builtin(self):
        profile = _profile("a", [PKG], [VariableSpec(name="PORT", required=True)])
        port = [v for v in effective_variables(profile) if v.name == "PORT"][0]
        assert port.required
        assert port.default is None

    def test_builtin_values(self):
        profile = StackProfile(
            id="a", default_port=3000, build_command="make", start_command="./run",
            detection_markers=(PKG,),
        )
        builtins = {v.name: v.default for v in builtin_variables(profile)}
        assert builtins == {
            "STACK_ID": "a",
            "PORT": "3000",
            "BUILD_COMMAND": "make",
            "START_COMMAND": "./run",
        }


class TestTemplates:
    def test_undeclared_placeholder(self):
        with pytest.raises(RegistryError, match="undeclared variables: SECRET"):
            _registry(_profile("a", [PKG]), contents={"a": "ENV S=${SECRET}\n"})

    def test_escaped_placeholder_allowed(self):
        registry = _registry(_profile("a", [PKG]), contents={"a": "echo $${SECRET}\n"})
        assert "a" in registry

    def test_missing_template_set(self):
        profile = _profile("a", [PKG])
        with pytest.raises(RegistryError, match="No template set"):
            StackRegistry({"a": profile}, {})

    def test_orphan_template_set(self):
        profile = _profile("a", [PKG])
        with pytest.raises(RegistryError, match="without a stack"):
            StackRegistry({"a": profile}, {"a": _tset("a"), "b": _tset("b")})

    def test_duplicate_artifact_paths(self):
        profile = _profile("a", [PKG])
        tset = TemplateSet(stack_id="a", artifacts=(
            ArtifactTemplate(role="one", path="Dockerfile"),
            ArtifactTemplate(role="two", path="Dockerfile"),
        ))
        with pytest.raises(RegistryError, match="Two artifacts"):
            StackRegistry({"a": profile}, {"a": tset})


class TestLookup:
    def test_order_by_priority_then_id(self):
        registry = _registry(
            _profile("zeta", [PKG, NO_MANAGE], priority=10),
            _profile("beta", [MANAGE, NO_PKG], priority=50),
            _profile("alpha", [MANAGE, PKG], priority=50),
        )
        assert registry.ids == ["zeta", "alpha", "beta"]

    def test_unknown_stack(self):
        registry = _registry(_profile("a", [PKG]))
        with pytest.raises(UnknownStack) as exc:
            registry.get("cobol")
        assert exc.value.stack_id == "cobol"
        assert exc.value.known == ["a"]

    def test_unknown_template_set(self):
        registry = _registry(_profile("a", [PKG]))
        with pytest.raises(UnknownStack):
            registry.template_set("cobol")


class TestLoadedRegistry:
    def test_overlap_caught_while_loading(self, write_stack, stacks_dir):
        for name in ("one", "two"):
            write_stack(name, f"""\
                id: {name}
                detection:
                  - exists: package.json
                templates:
                  - role: build_recipe
                    path: Dockerfile
                    content: "FROM node\\n"
            """)
        with pytest.raises(RegistryError, match="'one' and 'two'"):
            load_registry(stacks_dir)
