"""Configuration for the provenance hooks.

Provides a single configuration object built once at the CLI boundary from
environment variables, plus the provenance directory layout derived from the
repository root.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from provenance_enforcer.parsing import default_task_id, sanitize_task_id

CURSOR_DIR = ".cursor"
RULE_FILE = f"{CURSOR_DIR}/rules/00-provenance.mdc"
PROVENANCE_DIR = f"{CURSOR_DIR}/provenance"
SCHEMA_FILE_NAME = "provenance.task.v2.schema.json"

# Paths that never count as substantive changes for the diff gate
DEFAULT_IGNORED_PATTERNS: tuple[str, ...] = (
    r"^\.cursor/provenance/",
    r"^\.cursor/rules/",
    r"^docs/",
    r"^README\.md$",
    r"^LICENSE$",
    r"^\.github/workflows/provenance\.yml$",
    r"^scripts/provenance/",
    r"^cursor-plugin\.example\.json$",
    r"^package\.json$",
    r"^package-lock\.json$",
)


@dataclass
class ProvenanceConfig:
    """Configuration for one provenance hook invocation.

    All settings have defaults but can be overridden via environment
    variables using the from_env() factory method.
    """

    root: Path = field(default_factory=Path.cwd)
    task_id: str = field(default_factory=default_task_id)
    started_at: str | None = None

    # Runtime attribution
    agent_name: str = "cursor"
    model_name: str = "unknown-model"

    # Enforcement policy
    hard_fail: bool = False
    recent_limit: int = 10

    # Diff gate settings
    diff_base: str | None = None
    base_ref: str | None = None
    ignored_patterns: tuple[str, ...] = DEFAULT_IGNORED_PATTERNS

    # Telemetry settings
    otlp_endpoint: str = field(
        default_factory=lambda: os.getenv("OTLP_ENDPOINT", "http://localhost:4317")
    )
    service_name: str = "provenance-enforcer"

    @classmethod
    def from_env(cls, root: Path | None = None) -> "ProvenanceConfig":
        """Load config with environment variable overrides.

        Environment variables:
            CURSOR_TASK_ID: Task identifier (sanitized; default: timestamp-based)
            CURSOR_TASK_STARTED_AT: Task start time override
            CURSOR_AGENT_NAME: Agent attribution (default: cursor)
            CURSOR_MODEL: Model attribution (default: unknown-model)
            PROVENANCE_ENFORCE_HARD_FAIL: "1" fails task-end on open high/critical risks
            PROVENANCE_DIFF_BASE: Explicit diff base for check-pr
            GITHUB_BASE_REF: Pull request base branch for check-pr
            OTLP_ENDPOINT: Override otlp_endpoint (default: http://localhost:4317)

        Args:
            root: Repository root (default: current working directory)
        """
        task_id = sanitize_task_id(os.getenv("CURSOR_TASK_ID", ""))
        return cls(
            root=root if root is not None else Path.cwd(),
            task_id=task_id or default_task_id(),
            started_at=os.getenv("CURSOR_TASK_STARTED_AT") or None,
            agent_name=os.getenv("CURSOR_AGENT_NAME") or "cursor",
            model_name=os.getenv("CURSOR_MODEL") or "unknown-model",
            hard_fail=os.getenv("PROVENANCE_ENFORCE_HARD_FAIL", "") == "1",
            diff_base=os.getenv("PROVENANCE_DIFF_BASE", "").strip() or None,
            base_ref=os.getenv("GITHUB_BASE_REF", "").strip() or None,
            otlp_endpoint=os.getenv("OTLP_ENDPOINT", "http://localhost:4317"),
        )

    # Directory layout

    @property
    def provenance_dir(self) -> Path:
        return self.root / PROVENANCE_DIR

    @property
    def rule_file(self) -> Path:
        return self.root / RULE_FILE

    @property
    def reviews_dir(self) -> Path:
        return self.provenance_dir / "reviews"

    @property
    def decisions_dir(self) -> Path:
        return self.provenance_dir / "decisions"

    @property
    def risks_dir(self) -> Path:
        return self.provenance_dir / "risks"

    @property
    def tasks_dir(self) -> Path:
        return self.provenance_dir / "tasks"

    @property
    def flags_dir(self) -> Path:
        return self.provenance_dir / "flags"

    @property
    def schema_dir(self) -> Path:
        return self.provenance_dir / "schema"

    @property
    def schema_file(self) -> Path:
        return self.schema_dir / SCHEMA_FILE_NAME

    @property
    def managed_dirs(self) -> list[Path]:
        """All directories of the provenance tree, in creation order."""
        return [
            self.reviews_dir,
            self.decisions_dir,
            self.risks_dir,
            self.tasks_dir,
            self.flags_dir,
            self.schema_dir,
        ]

    # Per-task files

    @property
    def review_file(self) -> Path:
        return self.reviews_dir / f"{self.task_id}.md"

    @property
    def decisions_file(self) -> Path:
        return self.decisions_dir / f"{self.task_id}.md"

    @property
    def risks_file(self) -> Path:
        return self.risks_dir / f"{self.task_id}.json"

    @property
    def task_file(self) -> Path:
        return self.tasks_dir / f"{self.task_id}.json"

    @property
    def flag_file(self) -> Path:
        return self.flags_dir / f"{self.task_id}.json"

    def flag_file_for(self, task_id: str) -> Path:
        """Flag file location for an arbitrary task ID."""
        return self.flags_dir / f"{task_id}.json"

    def rel(self, path: Path) -> str:
        """Render a path relative to the repository root with forward slashes."""
        return Path(os.path.relpath(path, self.root)).as_posix()
