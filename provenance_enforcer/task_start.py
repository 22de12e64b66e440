"""Task-start hook.

Prepares the provenance tree for a new task: reviews the most recent task
summaries and risk logs, collects risks that are still open, and creates the
task's review document, decision log and risk log. Existing files are never
overwritten.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from provenance_enforcer.artifacts import (
    read_json_or_none,
    recent_json_files,
    write_if_missing,
)
from provenance_enforcer.config import ProvenanceConfig
from provenance_enforcer.errors import MissingArtifactError
from provenance_enforcer.models import RISK_LOG_SCHEMA_TAG, OpenRiskRef
from provenance_enforcer.parsing import normalize_risk_log, utc_now_iso

logger = logging.getLogger(__name__)

# Task files with this suffix are start markers, not summaries
START_MARKER_SUFFIX = ".start.json"

CHECKLIST = [
    "Reviewed provenance rules",
    "Reviewed prior decisions",
    "Reviewed prior risks",
    "Logged initial safeguards",
]


@dataclass
class StartReview:
    """Context gathered from prior tasks when a task starts."""

    task_id: str
    started_at: str
    rule_file: str
    reviewed_task_artifacts: list[str] = field(default_factory=list)
    reviewed_risk_artifacts: list[str] = field(default_factory=list)
    open_risks: list[OpenRiskRef] = field(default_factory=list)


@dataclass
class TaskStartResult:
    """Outcome of the task-start hook.

    Attributes:
        review: The review context rendered into the review document
        created: Relative paths of files created by this run
        skipped: Relative paths that already existed and were left untouched
    """

    review: StartReview
    review_file: str
    created: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def _bullets(items: list[str]) -> str:
    if not items:
        return "- none"
    return "\n".join(f"- {item}" for item in items)


def render_review(review: StartReview) -> str:
    """Render the human-readable start-review document."""
    lines = [
        "# Provenance Start Review",
        "",
        f"- taskId: {review.task_id}",
        f"- startedAt: {review.started_at}",
        f"- ruleFile: {review.rule_file}",
        f"- reviewedTaskArtifacts: {len(review.reviewed_task_artifacts)}",
        f"- reviewedRiskArtifacts: {len(review.reviewed_risk_artifacts)}",
        "",
        "## Reviewed prior task artifacts",
        _bullets(review.reviewed_task_artifacts),
        "",
        "## Reviewed risk artifacts",
        _bullets(review.reviewed_risk_artifacts),
        "",
        "## Open risk references",
        _bullets([risk.render() for risk in review.open_risks]),
        "",
        "## Pre-implementation checks",
        *(f"- [ ] {item}" for item in CHECKLIST),
    ]
    return "\n".join(lines) + "\n"


def render_decisions(task_id: str, started_at: str) -> str:
    """Render the empty decision log template."""
    lines = [
        "# Decisions Log",
        "",
        f"- taskId: {task_id}",
        f"- startedAt: {started_at}",
        "",
        "## Decisions",
        "- Add decision records here using ProvenanceCode IDs when possible.",
        "- Example: DEC-PQS-FE-000123: Explain the decision and rationale.",
        "",
        "## Guardrails from start review",
        "- List controls chosen to avoid repeated mistakes.",
    ]
    return "\n".join(lines) + "\n"


def render_risk_log(task_id: str, started_at: str) -> str:
    """Render the empty risk log skeleton."""
    skeleton = {
        "schema": RISK_LOG_SCHEMA_TAG,
        "taskId": task_id,
        "createdAt": started_at,
        "risks": [],
    }
    return json.dumps(skeleton, indent=2) + "\n"


async def collect_open_risks(config: ProvenanceConfig, risk_files: list[Path]) -> list[OpenRiskRef]:
    """Read risk logs concurrently and collect every risk not closed.

    Unreadable or malformed logs contribute nothing.
    """
    logs = await asyncio.gather(
        *(asyncio.to_thread(read_json_or_none, path) for path in risk_files)
    )
    open_risks: list[OpenRiskRef] = []
    for path, data in zip(risk_files, logs):
        for risk in normalize_risk_log(data):
            if risk.is_record and risk.is_open:
                open_risks.append(OpenRiskRef.from_entry(config.rel(path), risk))
    return open_risks


async def build_start_review(config: ProvenanceConfig, started_at: str) -> StartReview:
    """Gather the review context from recent task summaries and risk logs."""
    task_files, risk_files = await asyncio.gather(
        recent_json_files(
            config.tasks_dir, config.recent_limit, exclude_suffix=START_MARKER_SUFFIX
        ),
        recent_json_files(config.risks_dir, config.recent_limit),
    )
    return StartReview(
        task_id=config.task_id,
        started_at=started_at,
        rule_file=config.rel(config.rule_file),
        reviewed_task_artifacts=[config.rel(p) for p in task_files],
        reviewed_risk_artifacts=[config.rel(p) for p in risk_files],
        open_risks=await collect_open_risks(config, risk_files),
    )


async def run_task_start(config: ProvenanceConfig) -> TaskStartResult:
    """Run the task-start hook.

    Args:
        config: Provenance configuration for this task

    Returns:
        TaskStartResult describing the review and files written

    Raises:
        MissingArtifactError: If the provenance rule file does not exist
        OSError: If the provenance tree cannot be created or written
    """
    started_at = config.started_at or utc_now_iso()

    for directory in config.managed_dirs:
        directory.mkdir(parents=True, exist_ok=True)

    if not config.rule_file.exists():
        raise MissingArtifactError(
            f"Missing provenance rule file: {config.rel(config.rule_file)}."
        )

    review = await build_start_review(config, started_at)
    logger.debug(
        "Reviewed %d task artifacts, %d risk artifacts, %d open risks",
        len(review.reviewed_task_artifacts),
        len(review.reviewed_risk_artifacts),
        len(review.open_risks),
    )

    result = TaskStartResult(review=review, review_file=config.rel(config.review_file))
    outputs = [
        (config.review_file, render_review(review)),
        (config.decisions_file, render_decisions(config.task_id, started_at)),
        (config.risks_file, render_risk_log(config.task_id, started_at)),
    ]
    for path, content in outputs:
        if write_if_missing(path, content):
            result.created.append(config.rel(path))
        else:
            logger.info("Keeping existing %s", config.rel(path))
            result.skipped.append(config.rel(path))

    return result
