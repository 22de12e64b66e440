"""Shared fixtures for provenance tests.

Every test runs against a throwaway repository layout under tmp_path with the
provenance environment variables cleared and git queries stubbed out.
"""

import json
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from provenance_enforcer.config import ProvenanceConfig
from provenance_enforcer.schema import bundled_schema_text

PROVENANCE_ENV_VARS = [
    "CURSOR_TASK_ID",
    "CURSOR_TASK_STARTED_AT",
    "CURSOR_AGENT_NAME",
    "CURSOR_MODEL",
    "PROVENANCE_ENFORCE_HARD_FAIL",
    "PROVENANCE_DIFF_BASE",
    "GITHUB_BASE_REF",
    "OTLP_ENABLED",
    "PROVENANCE_LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove provenance environment variables inherited from the shell or CI."""
    for name in PROVENANCE_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def no_git():
    """Make every git query behave as if git were unavailable."""
    with patch("provenance_enforcer.vcs.run_git", return_value="") as mock_git:
        yield mock_git


@pytest.fixture
def repo(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Repository root with the rule file and bundled schema installed."""
    rule_file = tmp_path / ".cursor" / "rules" / "00-provenance.mdc"
    rule_file.parent.mkdir(parents=True)
    rule_file.write_text("# Provenance rules\n")

    schema_dir = tmp_path / ".cursor" / "provenance" / "schema"
    schema_dir.mkdir(parents=True)
    (schema_dir / "provenance.task.v2.schema.json").write_text(bundled_schema_text())

    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def make_config(repo: Path):
    """Factory for configs rooted at the test repository."""

    def _make(task_id: str = "demo", **overrides: Any) -> ProvenanceConfig:
        overrides.setdefault("started_at", "2026-01-02T03:04:05.000Z")
        return ProvenanceConfig(root=repo, task_id=task_id, **overrides)

    return _make


@pytest.fixture
def write_risks():
    """Helper that replaces a task's risk log with the given JSON content."""

    def _write(config: ProvenanceConfig, risks: Any) -> None:
        config.risks_file.parent.mkdir(parents=True, exist_ok=True)
        config.risks_file.write_text(json.dumps(risks, indent=2))

    return _write
