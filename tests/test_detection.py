"""
Tests for detection — oracles, marker evaluation, stack matching.
"""

from pathlib import Path

import pytest

from dockerize.core.errors import DetectionFailure
from dockerize.core.models.stack import DetectionMarker
from dockerize.core.services.detection import detect, explain, marker_holds
from dockerize.core.services.oracle import DirectoryOracle, MemoryOracle


class RecordingOracle(MemoryOracle):
    """MemoryOracle that records every path it was asked about."""

    def __init__(self, files=()):
        super().__init__(files)
        self.calls: list[str] = []

    def exists(self, path: str) -> bool:
        self.calls.append(path)
        return super().exists(path)


# ── Oracles ─────────────────────────────────────────────────────


class TestMemoryOracle:
    def test_iterable_of_paths(self):
        oracle = MemoryOracle(["package.json", "./src/index.js"])
        assert oracle.exists("package.json")
        assert oracle.exists("src/index.js")
        assert not oracle.exists("manage.py")

    def test_contains(self):
        oracle = MemoryOracle({"package.json": '{"scripts": {"pm2": "pm2 start"}}'})
        assert oracle.contains("package.json", '"pm2"')
        assert not oracle.contains("package.json", "next")
        assert not oracle.contains("missing.json", "x")

    def test_rejects_escape(self):
        with pytest.raises(ValueError):
            MemoryOracle(["../outside"])
        assert not MemoryOracle(["a"]).exists("../a")


class TestDirectoryOracle:
    def test_exists_and_contains(self, tmp_path: Path):
        (tmp_path / "package.json").write_text('{"name": "web"}')
        oracle = DirectoryOracle(tmp_path)
        assert oracle.exists("package.json")
        assert oracle.contains("package.json", '"web"')
        assert not oracle.exists("manage.py")

    def test_contains_on_directory_is_false(self, tmp_path: Path):
        (tmp_path / "apps").mkdir()
        assert not DirectoryOracle(tmp_path).contains("apps", "x")

    def test_never_leaves_root(self, tmp_path: Path):
        project = tmp_path / "project"
        project.mkdir()
        (tmp_path / "secret.txt").write_text("x")
        oracle = DirectoryOracle(project)
        assert not oracle.exists("../secret.txt")
        assert not oracle.exists(str(tmp_path / "secret.txt"))


# ── Markers ─────────────────────────────────────────────────────


class TestMarkerHolds:
    def test_kinds(self):
        oracle = MemoryOracle({"package.json": "pnpm"})
        assert marker_holds(DetectionMarker(path="package.json"), oracle)
        assert not marker_holds(DetectionMarker(path="package.json", kind="absent"), oracle)
        assert marker_holds(DetectionMarker(path="manage.py", kind="absent"), oracle)
        assert marker_holds(DetectionMarker(path="package.json", kind="contains", text="pnpm"), oracle)


# ── Detection on the built-in registry ──────────────────────────


class TestDetect:
    @pytest.mark.parametrize("files, expected", [
        (["package.json"], "nodejs"),
        (["package.json", "pnpm-workspace.yaml"], "nodejs-pnpm-monorepo"),
        (["manage.py", "requirements.txt"], "python-django"),
        (["manage.py", "package.json"], "python-django"),
        (["artisan", "composer.json", "package.json"], "php-laravel"),
        (["index.html"], "static-site"),
    ])
    def test_builtin_stacks(self, builtin_registry, files, expected):
        assert detect(MemoryOracle(files), builtin_registry).id == expected

    def test_no_match(self, builtin_registry):
        with pytest.raises(DetectionFailure) as exc:
            detect(MemoryOracle(["go.mod"]), builtin_registry)
        assert exc.value.reason == "no matching stack"
        assert exc.value.tried == builtin_registry.ids

    def test_artisan_without_composer_matches_nothing(self, builtin_registry):
        with pytest.raises(DetectionFailure):
            detect(MemoryOracle(["artisan"]), builtin_registry)

    def test_package_json_only(self, nodejs_registry):
        oracle = MemoryOracle(["package.json"])
        assert detect(oracle, nodejs_registry).id == "nodejs"

    def test_markers_short_circuit_in_order(self, builtin_registry):
        oracle = RecordingOracle([])
        with pytest.raises(DetectionFailure):
            detect(oracle, builtin_registry)
        # first profile in order is the monorepo; its first marker is package.json
        assert oracle.calls[0] == "package.json"
        assert "pnpm-workspace.yaml" not in oracle.calls

    def test_directory(self, tmp_path: Path, builtin_registry):
        (tmp_path / "package.json").write_text("{}")
        assert detect(DirectoryOracle(tmp_path), builtin_registry).id == "nodejs"


class TestExplain:
    def test_reports_every_marker(self, builtin_registry):
        report = explain(MemoryOracle(["package.json"]), builtin_registry)
        assert [m.stack_id for m in report] == builtin_registry.ids
        matched = [m.stack_id for m in report if m.matched]
        assert matched == ["nodejs"]

        node = next(m for m in report if m.stack_id == "nodejs")
        assert all(ok for _, ok in node.markers)
        assert node.to_dict()["markers"][0] == {
            "marker": "file 'package.json' exists", "holds": True,
        }
