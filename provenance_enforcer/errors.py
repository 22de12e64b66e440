"""Shared error types for the provenance_enforcer package."""


class ProvenanceError(Exception):
    """Base exception for provenance errors.

    Use this for user-facing errors that should have actionable messages.
    The CLI reports these with a ``[provenance]`` prefix and exits with 1.
    """

    pass


class MissingArtifactError(ProvenanceError):
    """A required input file (rule, schema or task artifact) does not exist."""

    pass


class ArtifactParseError(ProvenanceError):
    """An artifact exists but could not be parsed as JSON."""

    pass


class SchemaValidationError(ProvenanceError):
    """A task summary does not satisfy the provenance schema.

    Attributes:
        errors: Every violation found, formatted as "<path> <message>"
    """

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__("Provenance schema validation failed: " + "; ".join(errors))


class HardFailError(ProvenanceError):
    """Hard-fail policy triggered by unresolved high/critical risks."""

    pass
