"""Tests for `annorder lint` and `annorder rules` CLI commands."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from click.testing import CliRunner

from annorder import __version__
from annorder.cli import main

if TYPE_CHECKING:
    from pathlib import Path


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _project_with_violation(tmp_path: Path) -> Path:
    project = tmp_path / "proj"
    src_dir = project / "src" / "foo"
    src_dir.mkdir(parents=True)
    (src_dir / "MyTest.java").write_text(
        "package foo;\n\npublic class MyTest {\n  @NonNull @Nullable public void myTest() { }\n}\n"
    )
    return project


def _clean_project(tmp_path: Path) -> Path:
    project = tmp_path / "proj"
    src_dir = project / "src" / "foo"
    src_dir.mkdir(parents=True)
    (src_dir / "MyTest.java").write_text(
        "package foo;\n\npublic class MyTest {\n  @Nullable @NonNull public void myTest() { }\n}\n"
    )
    return project


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestMain:
    def test_version(self) -> None:
        result = CliRunner().invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestLintCommand:
    def test_clean_project(self, tmp_path: Path) -> None:
        project = _clean_project(tmp_path)
        result = CliRunner().invoke(main, ["lint", "--project", str(project)])
        assert result.exit_code == 0, result.output
        assert result.output == ""

    def test_violation_porcelain_by_default(self, tmp_path: Path) -> None:
        """CliRunner output is not a TTY, so porcelain is the default."""
        project = _project_with_violation(tmp_path)
        result = CliRunner().invoke(main, ["lint", "--project", str(project)])
        assert result.exit_code == 0, result.output
        assert result.output.strip() == (
            "src/foo/MyTest.java:4:13:WrongAnnotationOrder:@Nullable @NonNull"
        )

    def test_text_format(self, tmp_path: Path) -> None:
        project = _project_with_violation(tmp_path)
        result = CliRunner().invoke(main, ["lint", "--project", str(project), "--format", "text"])
        assert result.exit_code == 0, result.output
        assert "Should be @Nullable @NonNull [WrongAnnotationOrder]" in result.output
        assert "0 errors, 1 warnings" in result.output

    def test_json_format(self, tmp_path: Path) -> None:
        project = _project_with_violation(tmp_path)
        result = CliRunner().invoke(main, ["lint", "--project", str(project), "--format", "json"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["summary"]["findings_count"] == 1

    def test_strict_exits_1_on_findings(self, tmp_path: Path) -> None:
        project = _project_with_violation(tmp_path)
        result = CliRunner().invoke(main, ["lint", "--project", str(project), "--strict"])
        assert result.exit_code == 1

    def test_strict_clean_exits_0(self, tmp_path: Path) -> None:
        project = _clean_project(tmp_path)
        result = CliRunner().invoke(main, ["lint", "--project", str(project), "--strict"])
        assert result.exit_code == 0

    def test_invalid_config_exits_2(self, tmp_path: Path) -> None:
        project = _project_with_violation(tmp_path)
        (project / "annotation-order.yml").write_text("version: 7\n")
        result = CliRunner().invoke(main, ["lint", "--project", str(project)])
        assert result.exit_code == 2
        assert "Invalid rules configuration" in result.output

    def test_paths_argument(self, tmp_path: Path) -> None:
        project = _project_with_violation(tmp_path)
        other = project / "other"
        other.mkdir()
        result = CliRunner().invoke(
            main, ["lint", "--project", str(project), "--format", "json", str(other)]
        )
        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["summary"]["files_scanned"] == 0

    def test_all_pairs(self, tmp_path: Path) -> None:
        project = tmp_path / "proj"
        project.mkdir()
        (project / "Keep.java").write_text(
            "@TargetApi @RestrictTo @Keep\npublic class Keep {\n}\n"
        )
        result = CliRunner().invoke(main, ["lint", "--project", str(project), "--all-pairs"])
        assert result.exit_code == 0, result.output
        lines = result.output.strip().splitlines()
        assert len(lines) == 2
        assert all(line.endswith("@Keep @RestrictTo @TargetApi") for line in lines)


class TestRulesCommand:
    def test_lists_builtin_rules(self, tmp_path: Path) -> None:
        result = CliRunner().invoke(main, ["rules", "--project", str(tmp_path)])
        assert result.exit_code == 0, result.output
        assert "override-before-test: @Override -> @Test" in result.output
        assert "inject-first: @Inject -> @* (except @Inject)" in result.output
        assert "nullable-before-resource: @Nullable -> @*Res" in result.output

    def test_lists_custom_rules(self, tmp_path: Path) -> None:
        rules_path = tmp_path / "custom.yml"
        rules_path.write_text(
            "version: 1\ndefaults: false\n"
            "rules:\n  - name: r\n    before: {name: A}\n    after: {prefix: B}\n"
        )
        result = CliRunner().invoke(main, ["rules", "--rules", str(rules_path)])
        assert result.exit_code == 0, result.output
        assert result.output.strip() == "r: @A -> @B*"

    def test_invalid_rules_exit_2(self, tmp_path: Path) -> None:
        rules_path = tmp_path / "custom.yml"
        rules_path.write_text("nope\n")
        result = CliRunner().invoke(main, ["rules", "--rules", str(rules_path)])
        assert result.exit_code == 2
