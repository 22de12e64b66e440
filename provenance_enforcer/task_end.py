"""Task-end hook.

Aggregates a task's review document, decision log and risk log into a task
summary, validates it against the provenance schema and persists it. Open
high/critical risks mark the task blocked and produce a human-review flag.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from provenance_enforcer import vcs
from provenance_enforcer.artifacts import read_json, write_json
from provenance_enforcer.config import ProvenanceConfig
from provenance_enforcer.errors import (
    ArtifactParseError,
    HardFailError,
    MissingArtifactError,
    SchemaValidationError,
)
from provenance_enforcer.models import (
    FlagArtifact,
    RiskEntry,
    RiskSummary,
    TaskSummary,
)
from provenance_enforcer.parsing import (
    dedupe,
    derive_status,
    extract_decision_ids,
    extract_reviewed_artifacts,
    extract_started_at,
    normalize_risk_log,
    utc_now_iso,
)
from provenance_enforcer.schema import SummaryValidator

logger = logging.getLogger(__name__)


@dataclass
class TaskEndResult:
    """Outcome of the task-end hook.

    Attributes:
        summary: The validated task summary that was written
        task_file: Relative path of the summary artifact
        flag_file: Relative path of the flag artifact, None if not written
        flagged_risk_ids: Open high/critical risk IDs listed in the flag
    """

    summary: TaskSummary
    task_file: str
    flag_file: str | None = None
    flagged_risk_ids: list[str] = field(default_factory=list)


@dataclass
class TaskInputs:
    """Raw inputs read for a task."""

    review_text: str
    decisions_text: str
    risks: list[RiskEntry]
    schema: dict[str, Any]


def _required_files(config: ProvenanceConfig) -> list[tuple[str, Path]]:
    return [
        ("review artifact", config.review_file),
        ("decisions artifact", config.decisions_file),
        ("risks artifact", config.risks_file),
        ("schema file", config.schema_file),
    ]


async def check_required_files(config: ProvenanceConfig) -> None:
    """Ensure every input of the task-end hook exists.

    Raises:
        MissingArtifactError: Naming the first missing file
    """
    required = _required_files(config)
    present = await asyncio.gather(
        *(asyncio.to_thread(path.exists) for _, path in required)
    )
    for (label, path), exists in zip(required, present):
        if not exists:
            raise MissingArtifactError(f"Missing {label}: {config.rel(path)}")


def _read_text_artifact(config: ProvenanceConfig, path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ArtifactParseError(f"Cannot decode {config.rel(path)}: {e}") from e


def _read_json_artifact(config: ProvenanceConfig, path: Path) -> Any:
    try:
        return read_json(path)
    except json.JSONDecodeError as e:
        raise ArtifactParseError(f"Invalid JSON in {config.rel(path)}: {e}") from e
    except UnicodeDecodeError as e:
        raise ArtifactParseError(f"Cannot decode {config.rel(path)}: {e}") from e


async def read_inputs(config: ProvenanceConfig) -> TaskInputs:
    """Read the review, decisions, risks and schema files concurrently.

    Raises:
        ArtifactParseError: If an input is not valid UTF-8, or the risk log or
            schema is not valid JSON
    """
    review_text, decisions_text, risks_json, schema = await asyncio.gather(
        asyncio.to_thread(_read_text_artifact, config, config.review_file),
        asyncio.to_thread(_read_text_artifact, config, config.decisions_file),
        asyncio.to_thread(_read_json_artifact, config, config.risks_file),
        asyncio.to_thread(_read_json_artifact, config, config.schema_file),
    )
    return TaskInputs(
        review_text=review_text,
        decisions_text=decisions_text,
        risks=normalize_risk_log(risks_json),
        schema=schema,
    )


def build_summary(
    config: ProvenanceConfig,
    inputs: TaskInputs,
    ended_at: str,
) -> TaskSummary:
    """Assemble the task summary from the task inputs and git state."""
    review_index = extract_reviewed_artifacts(inputs.review_text)
    started_at = config.started_at or extract_started_at(inputs.review_text)

    return TaskSummary(
        task_id=config.task_id,
        status=derive_status(inputs.risks),
        started_at=started_at,
        ended_at=ended_at,
        agent=config.agent_name,
        model=config.model_name,
        branch=vcs.current_branch(config.root),
        commit_sha=vcs.current_commit(config.root),
        changed_files=vcs.status_changed_files(config.root),
        rule_file=config.rel(config.rule_file),
        review_artifact=config.rel(config.review_file),
        decisions_artifact=config.rel(config.decisions_file),
        risks_artifact=config.rel(config.risks_file),
        reviewed_task_artifacts=review_index.reviewed_task_artifacts,
        reviewed_risk_artifacts=review_index.reviewed_risk_artifacts,
        decision_ids=extract_decision_ids(inputs.decisions_text),
        risk_ids=dedupe([risk.id for risk in inputs.risks]),
        risk_summary=RiskSummary.from_risks(inputs.risks),
    )


def build_flag(
    config: ProvenanceConfig, risks: list[RiskEntry], created_at: str
) -> FlagArtifact:
    """Flag listing every open high/critical risk."""
    return FlagArtifact(
        task_id=config.task_id,
        created_at=created_at,
        risk_ids=[risk.id or "UNSPECIFIED" for risk in risks if risk.is_blocking],
        task_artifact=config.rel(config.task_file),
        risks_artifact=config.rel(config.risks_file),
    )


async def run_task_end(config: ProvenanceConfig) -> TaskEndResult:
    """Run the task-end hook.

    Artifacts are written before the hard-fail policy is applied, so a
    hard failure still leaves the summary and flag on disk.

    Args:
        config: Provenance configuration for this task

    Returns:
        TaskEndResult with the written summary and flag paths

    Raises:
        MissingArtifactError: If a required input file is missing
        ArtifactParseError: If an input is undecodable or the risk log or schema is malformed
        SchemaValidationError: If the summary violates the schema
        HardFailError: If hard-fail is enabled and open high/critical risks remain
    """
    await check_required_files(config)
    inputs = await read_inputs(config)
    validator = SummaryValidator(inputs.schema)

    ended_at = utc_now_iso()
    summary = build_summary(config, inputs, ended_at)

    errors = validator.errors_for(summary.to_dict())
    if errors:
        summary.errors = errors
        raise SchemaValidationError(errors)
    summary.validated = True

    write_json(config.task_file, summary.to_dict())
    result = TaskEndResult(summary=summary, task_file=config.rel(config.task_file))
    logger.info("Wrote task summary %s (status=%s)", result.task_file, summary.status)

    if summary.risk_summary.needs_human_review:
        flag = build_flag(config, inputs.risks, ended_at)
        write_json(config.flag_file, flag.to_dict())
        result.flag_file = config.rel(config.flag_file)
        result.flagged_risk_ids = flag.risk_ids
        logger.warning(
            "Task %s flagged for human review: %s", config.task_id, ", ".join(flag.risk_ids)
        )

        if config.hard_fail:
            raise HardFailError("Hard fail enabled and open high/critical risks remain.")

    return result
