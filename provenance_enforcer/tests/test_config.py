"""Tests for provenance configuration.

These tests verify config defaults, environment variable overrides and the
provenance directory layout.
"""

import os
from pathlib import Path
from unittest.mock import patch

from provenance_enforcer.config import DEFAULT_IGNORED_PATTERNS, ProvenanceConfig


class TestProvenanceConfigDefaults:
    """Test that config loads with sensible defaults."""

    def test_attribution_defaults(self, tmp_path):
        """Agent and model fall back to cursor / unknown-model."""
        config = ProvenanceConfig.from_env(root=tmp_path)
        assert config.agent_name == "cursor"
        assert config.model_name == "unknown-model"

    def test_task_id_defaults_to_timestamp(self, tmp_path):
        """Without CURSOR_TASK_ID a timestamp-based ID is generated."""
        config = ProvenanceConfig.from_env(root=tmp_path)
        assert config.task_id.startswith("task-")

    def test_hard_fail_off_by_default(self, tmp_path):
        config = ProvenanceConfig.from_env(root=tmp_path)
        assert config.hard_fail is False

    def test_recent_limit_default(self):
        """Task-start reviews the ten most recent artifacts."""
        assert ProvenanceConfig(root=Path("/repo"), task_id="t").recent_limit == 10

    def test_root_defaults_to_cwd(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config = ProvenanceConfig.from_env()
        assert config.root == tmp_path

    def test_ignored_patterns_default(self, tmp_path):
        config = ProvenanceConfig.from_env(root=tmp_path)
        assert config.ignored_patterns == DEFAULT_IGNORED_PATTERNS

    def test_otlp_endpoint_default(self, tmp_path):
        """Default OTLP endpoint should be localhost:4317."""
        with patch.dict(os.environ, {}, clear=True):
            config = ProvenanceConfig.from_env(root=tmp_path)
            assert config.otlp_endpoint == "http://localhost:4317"


class TestProvenanceConfigEnvOverrides:
    """Test environment variable overrides."""

    def test_task_id_from_env_is_sanitized(self, tmp_path):
        with patch.dict(os.environ, {"CURSOR_TASK_ID": "feat/login page"}):
            config = ProvenanceConfig.from_env(root=tmp_path)
            assert config.task_id == "feat-login-page"

    def test_task_id_that_sanitizes_to_empty_falls_back(self, tmp_path):
        with patch.dict(os.environ, {"CURSOR_TASK_ID": "///"}):
            config = ProvenanceConfig.from_env(root=tmp_path)
            assert config.task_id.startswith("task-")

    def test_started_at_override(self, tmp_path):
        with patch.dict(os.environ, {"CURSOR_TASK_STARTED_AT": "2026-01-01T00:00:00Z"}):
            config = ProvenanceConfig.from_env(root=tmp_path)
            assert config.started_at == "2026-01-01T00:00:00Z"

    def test_attribution_overrides(self, tmp_path):
        env = {"CURSOR_AGENT_NAME": "my-agent", "CURSOR_MODEL": "model-x"}
        with patch.dict(os.environ, env):
            config = ProvenanceConfig.from_env(root=tmp_path)
            assert config.agent_name == "my-agent"
            assert config.model_name == "model-x"

    def test_hard_fail_requires_exactly_one(self, tmp_path):
        """Only the literal value "1" enables hard-fail."""
        for value, expected in [("1", True), ("true", False), ("0", False), ("", False)]:
            with patch.dict(os.environ, {"PROVENANCE_ENFORCE_HARD_FAIL": value}):
                config = ProvenanceConfig.from_env(root=tmp_path)
                assert config.hard_fail is expected, value

    def test_diff_settings(self, tmp_path):
        env = {"PROVENANCE_DIFF_BASE": " abc123 ", "GITHUB_BASE_REF": "main"}
        with patch.dict(os.environ, env):
            config = ProvenanceConfig.from_env(root=tmp_path)
            assert config.diff_base == "abc123"
            assert config.base_ref == "main"

    def test_blank_diff_settings_are_none(self, tmp_path):
        env = {"PROVENANCE_DIFF_BASE": "  ", "GITHUB_BASE_REF": ""}
        with patch.dict(os.environ, env):
            config = ProvenanceConfig.from_env(root=tmp_path)
            assert config.diff_base is None
            assert config.base_ref is None

    def test_otlp_endpoint_from_env(self, tmp_path):
        with patch.dict(os.environ, {"OTLP_ENDPOINT": "http://collector:4317"}):
            config = ProvenanceConfig.from_env(root=tmp_path)
            assert config.otlp_endpoint == "http://collector:4317"


class TestProvenanceLayout:
    """Test the derived provenance paths."""

    def test_per_task_files(self):
        config = ProvenanceConfig(root=Path("/repo"), task_id="demo")
        assert config.review_file == Path("/repo/.cursor/provenance/reviews/demo.md")
        assert config.decisions_file == Path("/repo/.cursor/provenance/decisions/demo.md")
        assert config.risks_file == Path("/repo/.cursor/provenance/risks/demo.json")
        assert config.task_file == Path("/repo/.cursor/provenance/tasks/demo.json")
        assert config.flag_file == Path("/repo/.cursor/provenance/flags/demo.json")

    def test_rule_and_schema_files(self):
        config = ProvenanceConfig(root=Path("/repo"), task_id="demo")
        assert config.rule_file == Path("/repo/.cursor/rules/00-provenance.mdc")
        assert config.schema_file == Path(
            "/repo/.cursor/provenance/schema/provenance.task.v2.schema.json"
        )

    def test_managed_dirs(self):
        config = ProvenanceConfig(root=Path("/repo"), task_id="demo")
        names = [d.name for d in config.managed_dirs]
        assert names == ["reviews", "decisions", "risks", "tasks", "flags", "schema"]

    def test_rel_uses_forward_slashes(self):
        config = ProvenanceConfig(root=Path("/repo"), task_id="demo")
        assert config.rel(config.task_file) == ".cursor/provenance/tasks/demo.json"
