"""Text parsing for provenance artifacts.

Pure functions that extract identifiers and metadata from the free-text
review and decision documents and normalize risk logs. Nothing here touches
the filesystem, so every rule can be tested directly on strings.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Literal

from provenance_enforcer.models import RiskEntry

# ASCII digits and word boundaries only, matching the decisionIds schema pattern
DECISION_ID_PATTERN = re.compile(
    r"\bDEC-(?:\d{6}|[A-Z]{2,10}-[A-Z0-9]{2,10}-\d{6})\b", re.ASCII
)
REVIEWED_ARTIFACT_PATTERN = re.compile(
    r"\.cursor/provenance/(?:tasks|risks)/[a-zA-Z0-9._/-]+\.(?:json|md)"
)
STARTED_AT_PATTERN = re.compile(r"^- startedAt:[ \t]*(.+)$", re.MULTILINE)

TASK_ARTIFACT_PREFIX = ".cursor/provenance/tasks/"
RISK_ARTIFACT_PREFIX = ".cursor/provenance/risks/"


def utc_now_iso() -> str:
    """Current UTC time as ISO 8601 with millisecond precision and a Z suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def sanitize_task_id(raw: str | None) -> str:
    """Make a task ID safe to use as a file name.

    Characters outside ``[A-Za-z0-9._-]`` become ``-``, runs of ``-`` collapse
    to one, and leading/trailing ``-`` are dropped.

    Args:
        raw: Task ID as supplied by the caller (may be None or empty)

    Returns:
        Sanitized ID, possibly empty
    """
    value = re.sub(r"[^a-zA-Z0-9._-]", "-", str(raw or "").strip())
    value = re.sub(r"-+", "-", value)
    return value.strip("-")


def default_task_id() -> str:
    """Timestamp-derived task ID used when none is supplied."""
    return "task-" + re.sub(r"[:.]", "-", utc_now_iso())


def extract_decision_ids(text: str) -> list[str]:
    """Extract decision identifiers from a decision log.

    Matches ``DEC-NNNNNN`` and ``DEC-PREFIX-PREFIX-NNNNNN``.

    Returns:
        Unique IDs in lexicographic order
    """
    return sorted(set(DECISION_ID_PATTERN.findall(text)))


@dataclass
class ReviewIndex:
    """Prior artifacts referenced by a start-review document."""

    reviewed_task_artifacts: list[str]
    reviewed_risk_artifacts: list[str]


def extract_reviewed_artifacts(text: str) -> ReviewIndex:
    """Extract task and risk artifact paths referenced by a review document."""
    reviewed = set(REVIEWED_ARTIFACT_PATTERN.findall(text))
    return ReviewIndex(
        reviewed_task_artifacts=sorted(
            p for p in reviewed if p.startswith(TASK_ARTIFACT_PREFIX)
        ),
        reviewed_risk_artifacts=sorted(
            p for p in reviewed if p.startswith(RISK_ARTIFACT_PREFIX)
        ),
    )


def extract_started_at(text: str) -> str | None:
    """Read the ``- startedAt:`` header line of a review document."""
    match = STARTED_AT_PATTERN.search(text)
    if not match:
        return None
    return match.group(1).strip() or None


def normalize_risk_log(data: Any) -> list[RiskEntry]:
    """Normalize both accepted risk-log shapes into a list of entries.

    A risk log is either a bare JSON list or an object with a ``risks`` list.
    Anything else yields an empty list.
    """
    if isinstance(data, list):
        items = data
    elif isinstance(data, dict) and isinstance(data.get("risks"), list):
        items = data["risks"]
    else:
        return []
    return [RiskEntry.from_json(item) for item in items]


def derive_status(risks: list[RiskEntry]) -> Literal["completed", "blocked"]:
    """Task status: "blocked" if any open high/critical risk exists."""
    return "blocked" if any(r.is_blocking for r in risks) else "completed"


def dedupe(values: list[str]) -> list[str]:
    """Drop empty and repeated values, keeping first-seen order."""
    return list(dict.fromkeys(v for v in values if v))
