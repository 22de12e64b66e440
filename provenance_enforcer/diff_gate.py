"""Pull request provenance gate.

Fails when a diff range contains substantive changes but no changed task
summary under ``.cursor/provenance/tasks/``. Documentation, licensing, the
provenance machinery itself and packaging metadata are not substantive.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from provenance_enforcer import vcs
from provenance_enforcer.config import ProvenanceConfig

logger = logging.getLogger(__name__)

TASK_ARTIFACT_PATTERN = re.compile(r"^\.cursor/provenance/tasks/[^/]+\.json$", re.IGNORECASE)

FALLBACK_RANGE = "HEAD~1...HEAD"


@dataclass
class GateResult:
    """Outcome of the diff gate.

    Status values:
        no_changes: Nothing changed within the scope
        non_substantive: Only ignorable files changed
        passed: Substantive changes come with a task summary change
        failed: Substantive changes without a task summary change
    """

    status: Literal["no_changes", "non_substantive", "passed", "failed"]
    diff_range: str
    substantive_changes: list[str] = field(default_factory=list)
    task_artifacts: list[str] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.status != "failed"


def resolve_diff_range(config: ProvenanceConfig) -> str:
    """Pick the diff range: explicit base, then CI base ref, then last commit."""
    if config.diff_base:
        return f"{config.diff_base}...HEAD"
    if config.base_ref:
        return f"origin/{config.base_ref}...HEAD"
    return FALLBACK_RANGE


def scope_files(files: list[str], prefix: str) -> list[str]:
    """Keep files under ``prefix`` and make them relative to it."""
    if not prefix:
        return list(files)
    return [f[len(prefix) :] for f in files if f.startswith(prefix)]


def is_ignored_change(path: str, patterns: tuple[str, ...]) -> bool:
    return any(re.search(pattern, path) for pattern in patterns)


def evaluate(
    changed_files: list[str], diff_range: str, ignored_patterns: tuple[str, ...]
) -> GateResult:
    """Apply the gate rules to a list of scoped changed files."""
    if not changed_files:
        return GateResult(status="no_changes", diff_range=diff_range)

    substantive = [f for f in changed_files if not is_ignored_change(f, ignored_patterns)]
    if not substantive:
        return GateResult(status="non_substantive", diff_range=diff_range)

    task_artifacts = [f for f in changed_files if TASK_ARTIFACT_PATTERN.match(f)]
    return GateResult(
        status="passed" if task_artifacts else "failed",
        diff_range=diff_range,
        substantive_changes=substantive,
        task_artifacts=task_artifacts,
    )


def run_diff_gate(config: ProvenanceConfig, cwd: Path | None = None) -> GateResult:
    """Run the diff gate for the configured range.

    Args:
        config: Provenance configuration
        cwd: Directory whose subtree is in scope (default: config.root)

    Returns:
        GateResult; git failures behave like an empty diff
    """
    cwd = cwd or config.root
    diff_range = resolve_diff_range(config)
    files = vcs.diff_changed_files(diff_range, cwd)
    prefix = vcs.scope_prefix(cwd)
    scoped = scope_files(files, prefix)
    logger.debug(
        "Diff %s: %d changed files, %d in scope %r", diff_range, len(files), len(scoped), prefix
    )
    return evaluate(scoped, diff_range, config.ignored_patterns)
