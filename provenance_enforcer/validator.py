"""Batch validation of persisted task summaries.

Checks every task summary against the provenance schema, verifies that the
artifacts it references exist, and requires a human-review flag for every
summary that asks for one. All checks run for all artifacts; errors are
collected rather than raised.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from provenance_enforcer.artifacts import list_json_files, read_json
from provenance_enforcer.config import PROVENANCE_DIR, ProvenanceConfig
from provenance_enforcer.errors import MissingArtifactError
from provenance_enforcer.models import ArtifactReport
from provenance_enforcer.schema import SummaryValidator

logger = logging.getLogger(__name__)

ARTIFACT_KINDS = ("review", "decisions", "risks")


@dataclass
class ValidationReport:
    """Aggregated result of validating every task summary.

    Attributes:
        artifacts: Per-artifact reports, in file name order
        flag_errors: Missing human-review flag errors
    """

    artifacts: list[ArtifactReport] = field(default_factory=list)
    flag_errors: list[str] = field(default_factory=list)

    @property
    def errors(self) -> list[str]:
        errors = [e for report in self.artifacts for e in report.errors]
        return errors + self.flag_errors

    @property
    def passed(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            "status": "passed" if self.passed else "failed",
            "artifacts": [report.task_file for report in self.artifacts],
            "errors": self.errors,
        }


def _check_referenced_files(
    config: ProvenanceConfig, task_file: str, artifacts: Any
) -> list[str]:
    if not isinstance(artifacts, dict) or not all(
        isinstance(artifacts.get(kind), str) and artifacts.get(kind) for kind in ARTIFACT_KINDS
    ):
        return [f"{task_file} => missing artifacts object"]

    errors = []
    for kind in ARTIFACT_KINDS:
        referenced = artifacts[kind]
        if not (config.root / referenced).exists():
            errors.append(f"{task_file} => missing {kind} artifact {referenced}")
    return errors


def check_artifact(
    config: ProvenanceConfig, validator: SummaryValidator, path: Path
) -> ArtifactReport:
    """Validate a single task summary file.

    Never raises for content problems; they are recorded on the report.
    """
    task_file = config.rel(path)
    try:
        artifact = read_json(path)
    except (OSError, ValueError) as e:
        return ArtifactReport(
            task_file=task_file,
            task_id=None,
            errors=[f"{task_file} => invalid JSON: {e}"],
        )

    errors = [f"{task_file} => {error}" for error in validator.errors_for(artifact)]

    if isinstance(artifact, dict):
        task_id = artifact.get("taskId")
        risk_summary = artifact.get("riskSummary")
        needs_review = (
            isinstance(risk_summary, dict) and risk_summary.get("needsHumanReview") is True
        )
        errors.extend(_check_referenced_files(config, task_file, artifact.get("artifacts")))
    else:
        task_id = None
        needs_review = False
        errors.append(f"{task_file} => missing artifacts object")

    return ArtifactReport(
        task_file=task_file,
        task_id=task_id if isinstance(task_id, str) and task_id else None,
        needs_human_review=needs_review,
        errors=errors,
    )


def check_flags(config: ProvenanceConfig, reports: list[ArtifactReport]) -> list[str]:
    """Require a flag file for every summary that needs human review."""
    errors = []
    for report in reports:
        if not report.needs_human_review or report.task_id is None:
            continue
        if not config.flag_file_for(report.task_id).exists():
            errors.append(
                f"{report.task_file} => expected human-review flag file "
                f"{PROVENANCE_DIR}/flags/{report.task_id}.json"
            )
    return errors


async def run_validation(config: ProvenanceConfig) -> ValidationReport:
    """Validate every task summary in the provenance tree.

    Args:
        config: Provenance configuration

    Returns:
        ValidationReport; an empty report when there are no task summaries

    Raises:
        MissingArtifactError: If the schema file does not exist
        ArtifactParseError: If the schema file is not valid JSON
    """
    if not config.schema_file.exists():
        raise MissingArtifactError(f"Missing schema file: {config.rel(config.schema_file)}")
    validator = SummaryValidator.from_file(config.schema_file)

    task_files = list_json_files(config.tasks_dir)
    if not task_files:
        logger.info("No task artifacts in %s", config.rel(config.tasks_dir))
        return ValidationReport()

    reports = await asyncio.gather(
        *(asyncio.to_thread(check_artifact, config, validator, path) for path in task_files)
    )
    report = ValidationReport(artifacts=list(reports))
    report.flag_errors = check_flags(config, report.artifacts)

    logger.debug(
        "Validated %d task artifacts, %d errors", len(report.artifacts), len(report.errors)
    )
    return report

