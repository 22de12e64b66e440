"""Tests for the pull request provenance gate."""

from pathlib import Path

import pytest

from provenance_enforcer.config import DEFAULT_IGNORED_PATTERNS, ProvenanceConfig
from provenance_enforcer.diff_gate import (
    evaluate,
    is_ignored_change,
    resolve_diff_range,
    run_diff_gate,
    scope_files,
)

RANGE = "HEAD~1...HEAD"


def make_config(**overrides) -> ProvenanceConfig:
    return ProvenanceConfig(root=Path("/repo"), task_id="demo", **overrides)


class TestResolveDiffRange:
    """Test diff range selection."""

    def test_explicit_base_wins(self):
        config = make_config(diff_base="abc123", base_ref="main")
        assert resolve_diff_range(config) == "abc123...HEAD"

    def test_ci_base_ref(self):
        assert resolve_diff_range(make_config(base_ref="main")) == "origin/main...HEAD"

    def test_fallback(self):
        assert resolve_diff_range(make_config()) == "HEAD~1...HEAD"


class TestIgnoredChanges:
    """Test non-substantive path detection."""

    @pytest.mark.parametrize(
        "path",
        [
            ".cursor/provenance/tasks/demo.json",
            ".cursor/rules/00-provenance.mdc",
            "docs/guide.md",
            "README.md",
            "LICENSE",
            ".github/workflows/provenance.yml",
            "scripts/provenance/check.sh",
            "cursor-plugin.example.json",
            "package.json",
            "package-lock.json",
        ],
    )
    def test_ignored(self, path):
        assert is_ignored_change(path, DEFAULT_IGNORED_PATTERNS)

    @pytest.mark.parametrize(
        "path",
        ["src/app.py", "sub/README.md", "LICENSE.txt", ".github/workflows/ci.yml", "mydocs/x"],
    )
    def test_substantive(self, path):
        assert not is_ignored_change(path, DEFAULT_IGNORED_PATTERNS)


class TestEvaluate:
    """Test gate decisions."""

    def test_no_changes(self):
        assert evaluate([], RANGE, DEFAULT_IGNORED_PATTERNS).status == "no_changes"

    def test_only_docs(self):
        result = evaluate(["docs/a.md", "README.md"], RANGE, DEFAULT_IGNORED_PATTERNS)
        assert result.status == "non_substantive"
        assert result.passed

    def test_substantive_without_task_artifact(self):
        result = evaluate(["docs/x.md", "src/y.js"], RANGE, DEFAULT_IGNORED_PATTERNS)
        assert result.status == "failed"
        assert not result.passed
        assert result.substantive_changes == ["src/y.js"]

    def test_substantive_with_task_artifact(self):
        files = ["src/y.js", ".cursor/provenance/tasks/demo.json"]
        result = evaluate(files, RANGE, DEFAULT_IGNORED_PATTERNS)
        assert result.status == "passed"
        assert result.task_artifacts == [".cursor/provenance/tasks/demo.json"]

    def test_nested_or_non_json_task_files_do_not_count(self):
        files = [
            "src/y.js",
            ".cursor/provenance/tasks/sub/demo.json",
            ".cursor/provenance/tasks/demo.md",
        ]
        assert evaluate(files, RANGE, DEFAULT_IGNORED_PATTERNS).status == "failed"

    def test_task_artifact_match_is_case_insensitive(self):
        files = ["src/y.js", ".cursor/provenance/tasks/DEMO.JSON"]
        assert evaluate(files, RANGE, DEFAULT_IGNORED_PATTERNS).status == "passed"


class TestScopeFiles:
    """Test scoping to the working directory."""

    def test_no_prefix(self):
        assert scope_files(["a", "b/c"], "") == ["a", "b/c"]

    def test_prefix_filters_and_strips(self):
        files = ["packages/web/src/a.ts", "packages/api/b.py", "packages/web/docs/x.md"]
        assert scope_files(files, "packages/web/") == ["src/a.ts", "docs/x.md"]


class TestRunDiffGate:
    """Test run_diff_gate against stubbed git output."""

    def test_fails_without_task_artifact(self, no_git):
        no_git.side_effect = lambda args, cwd=None: (
            "docs/x.md\nsrc/y.js\n" if args[0] == "diff" else ""
        )

        result = run_diff_gate(make_config(), Path("/repo"))

        assert result.status == "failed"
        assert result.diff_range == "HEAD~1...HEAD"
        assert result.substantive_changes == ["src/y.js"]

    def test_git_failure_means_no_changes(self):
        result = run_diff_gate(make_config(base_ref="main"))
        assert result.status == "no_changes"
        assert result.diff_range == "origin/main...HEAD"

    def test_scoped_to_subdirectory(self, no_git, tmp_path):
        sub = tmp_path / "packages" / "web"
        sub.mkdir(parents=True)
        outputs = {
            "diff": "packages/api/src/a.py\npackages/web/docs/x.md\n",
            "rev-parse": f"{tmp_path}\n",
        }
        no_git.side_effect = lambda args, cwd=None: outputs.get(args[0], "")

        result = run_diff_gate(make_config(), sub)

        assert result.status == "non_substantive"

    def test_passes_diff_range_to_git(self, no_git):
        run_diff_gate(make_config(diff_base="abc123"), Path("/repo"))
        no_git.assert_any_call(["diff", "--name-only", "abc123...HEAD"], Path("/repo"))
