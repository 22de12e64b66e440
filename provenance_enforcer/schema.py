"""JSON schema loading and validation for task summaries.

Wraps a Draft 2020-12 validator that reports every violation, not just the
first one, formatted as "<instance path> <message>".
"""

import json
from importlib import resources
from pathlib import Path
from typing import Any

from jsonschema import Draft202012Validator
from jsonschema.exceptions import SchemaError, ValidationError

from provenance_enforcer.config import SCHEMA_FILE_NAME
from provenance_enforcer.errors import ArtifactParseError, ProvenanceError


def bundled_schema_text() -> str:
    """Text of the task schema shipped with this package."""
    return (
        resources.files("provenance_enforcer")
        .joinpath("schemas", SCHEMA_FILE_NAME)
        .read_text(encoding="utf-8")
    )


class SummaryValidator:
    """Validates task summaries against a loaded schema.

    Usage:
        validator = SummaryValidator.from_file(config.schema_file)
        errors = validator.errors_for(summary)
    """

    def __init__(self, schema: dict[str, Any]) -> None:
        """Compile the schema.

        Raises:
            ProvenanceError: If the schema itself is invalid
        """
        try:
            Draft202012Validator.check_schema(schema)
        except SchemaError as e:
            raise ProvenanceError(f"Invalid provenance schema: {e.message}") from e
        self._validator = Draft202012Validator(
            schema, format_checker=Draft202012Validator.FORMAT_CHECKER
        )

    @classmethod
    def from_file(cls, path: Path) -> "SummaryValidator":
        """Load and compile a schema file.

        Raises:
            ArtifactParseError: If the file is not valid UTF-8 JSON
            OSError: If the file cannot be read
        """
        try:
            schema = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ArtifactParseError(f"Invalid JSON in schema file {path.name}: {e}") from e
        except UnicodeDecodeError as e:
            raise ArtifactParseError(f"Cannot decode schema file {path.name}: {e}") from e
        return cls(schema)

    def errors_for(self, instance: Any) -> list[str]:
        """Return every schema violation of ``instance``, in document order."""
        errors = sorted(self._validator.iter_errors(instance), key=_error_key)
        return [format_error(e) for e in errors]

    def is_valid(self, instance: Any) -> bool:
        return self._validator.is_valid(instance)


def format_error(error: ValidationError) -> str:
    """Render an error as "<instance path> <message>", path "/" at the root."""
    path = "".join(f"/{part}" for part in error.absolute_path) or "/"
    return f"{path} {error.message}"


def _error_key(error: ValidationError) -> tuple[str, str]:
    return ("/".join(str(part) for part in error.absolute_path), error.message)
