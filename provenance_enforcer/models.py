"""Data models for provenance artifacts.

Defines dataclasses for risk entries, start-review risk references, the task
summary artifact and the human-review flag. Artifacts serialize to the
camelCase JSON layout via to_dict().
"""

from dataclasses import dataclass, field
from typing import Any, Literal

SUMMARY_SCHEMA_TAG = "provenancecode.task-provenance@2.0"
FLAG_SCHEMA_TAG = "provenancecode.task-flag@2.0"
RISK_LOG_SCHEMA_TAG = "provenancecode.risklog@2.0"
PROVENANCE_CODE_VERSION = "2.0"
VALIDATOR_NAME = "jsonschema"

HIGH_SEVERITIES = frozenset({"high", "critical"})


def _as_text(value: Any) -> str:
    # Falsy values (None, "", 0, false) count as absent
    if not value:
        return ""
    if value is True:
        return "true"
    return str(value)


@dataclass
class RiskEntry:
    """A single risk from a risk log.

    Attributes:
        id: Risk identifier (empty when absent)
        severity: Severity as written (empty when absent)
        status: Status as written (defaults to "open")
        needs_human_review: Whether the author asked for human review
        is_record: False when the log entry was not a JSON object
    """

    id: str
    severity: str
    status: str = "open"
    needs_human_review: bool = False
    is_record: bool = True

    @property
    def is_open(self) -> bool:
        return self.status.lower() != "closed"

    @property
    def is_high_or_critical(self) -> bool:
        return self.severity.lower() in HIGH_SEVERITIES

    @property
    def is_blocking(self) -> bool:
        return self.is_open and self.is_high_or_critical

    @classmethod
    def from_json(cls, item: Any) -> "RiskEntry":
        """Build an entry from one element of a risk log's list."""
        if not isinstance(item, dict):
            return cls(id="", severity="", is_record=False)
        return cls(
            id=_as_text(item.get("id")),
            severity=_as_text(item.get("severity")),
            status=_as_text(item.get("status")) or "open",
            needs_human_review=bool(item.get("needsHumanReview")),
        )


@dataclass
class OpenRiskRef:
    """An unresolved risk found while reviewing prior risk logs."""

    file: str
    id: str
    severity: str
    status: str
    needs_human_review: bool

    @classmethod
    def from_entry(cls, file: str, risk: RiskEntry) -> "OpenRiskRef":
        return cls(
            file=file,
            id=risk.id or "UNSPECIFIED",
            severity=risk.severity or "unknown",
            status=risk.status or "open",
            needs_human_review=risk.needs_human_review,
        )

    def render(self) -> str:
        flag = "true" if self.needs_human_review else "false"
        return (
            f"{self.id} ({self.severity}, {self.status}, "
            f"needsHumanReview={flag}) from {self.file}"
        )


@dataclass
class RiskSummary:
    """Risk counts recorded on a task summary."""

    total: int
    open: int
    high_or_critical_open: int

    @property
    def needs_human_review(self) -> bool:
        return self.high_or_critical_open > 0

    @classmethod
    def from_risks(cls, risks: list[RiskEntry]) -> "RiskSummary":
        return cls(
            total=len(risks),
            open=sum(1 for r in risks if r.is_open),
            high_or_critical_open=sum(1 for r in risks if r.is_blocking),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "open": self.open,
            "highOrCriticalOpen": self.high_or_critical_open,
            "needsHumanReview": self.needs_human_review,
        }


@dataclass
class TaskSummary:
    """The derived record that closes out a task.

    Status values:
        completed: No open high/critical risks remain
        blocked: At least one open high/critical risk remains
    """

    task_id: str
    status: Literal["completed", "blocked"]
    started_at: str | None
    ended_at: str
    agent: str
    model: str
    branch: str
    commit_sha: str
    changed_files: list[str]
    rule_file: str
    review_artifact: str
    decisions_artifact: str
    risks_artifact: str
    reviewed_task_artifacts: list[str]
    reviewed_risk_artifacts: list[str]
    decision_ids: list[str]
    risk_ids: list[str]
    risk_summary: RiskSummary
    validated: bool = False
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the task summary JSON layout."""
        return {
            "schema": SUMMARY_SCHEMA_TAG,
            "provenanceCodeVersion": PROVENANCE_CODE_VERSION,
            "taskId": self.task_id,
            "status": self.status,
            "timestamps": {
                "startedAt": self.started_at,
                "endedAt": self.ended_at,
            },
            "runtime": {
                "agent": self.agent,
                "model": self.model,
            },
            "git": {
                "branch": self.branch,
                "commitSha": self.commit_sha,
                "changedFiles": list(self.changed_files),
            },
            "review": {
                "ruleFile": self.rule_file,
                "startReviewArtifact": self.review_artifact,
                "reviewedTaskArtifacts": list(self.reviewed_task_artifacts),
                "reviewedRiskArtifacts": list(self.reviewed_risk_artifacts),
            },
            "artifacts": {
                "review": self.review_artifact,
                "decisions": self.decisions_artifact,
                "risks": self.risks_artifact,
            },
            "decisionIds": list(self.decision_ids),
            "riskIds": list(self.risk_ids),
            "riskSummary": self.risk_summary.to_dict(),
            "enforcement": {
                "validated": self.validated,
                "validator": VALIDATOR_NAME,
                "errors": list(self.errors),
            },
        }


@dataclass
class FlagArtifact:
    """Marker requesting human review of unresolved high/critical risks."""

    task_id: str
    created_at: str
    risk_ids: list[str]
    task_artifact: str
    risks_artifact: str
    reason: str = "Open high/critical risks require human review"

    def to_dict(self) -> dict[str, Any]:
        return {
            "schema": FLAG_SCHEMA_TAG,
            "taskId": self.task_id,
            "createdAt": self.created_at,
            "reason": self.reason,
            "needsHumanReview": True,
            "riskIds": list(self.risk_ids),
            "artifacts": {
                "task": self.task_artifact,
                "risks": self.risks_artifact,
            },
        }


@dataclass
class ArtifactReport:
    """Validation outcome for one persisted task summary.

    Attributes:
        task_file: Repository-relative path of the summary
        task_id: Task ID read from the summary, None if unreadable
        needs_human_review: riskSummary.needsHumanReview is exactly true
        errors: Problems found in this artifact
    """

    task_file: str
    task_id: str | None
    needs_human_review: bool = False
    errors: list[str] = field(default_factory=list)
