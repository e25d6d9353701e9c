"""
Named failures raised by the artifact engine.

Every failure carries a stable ``code`` so that callers (and the CLI) can
branch on it without parsing messages. All of them subclass ValueError, which
is how the rest of the package reports bad requests.
"""

from __future__ import annotations


class ArtifactError(ValueError):
    """Base class for caller-facing engine failures."""

    code = "ARTIFACT_ERROR"
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> dict[str, object]:
        return {"code": self.code, "message": self.message, "retryable": self.retryable}


class InvalidArtifactContent(ArtifactError):
    code = "INVALID_ARTIFACT_CONTENT"


class CorruptArtifact(ArtifactError):
    code = "CORRUPT_ARTIFACT"


class OpNotApplicable(ArtifactError):
    code = "OP_NOT_APPLICABLE"

    def __init__(self, op_type: str, path: str, reason: str):
        super().__init__(f"Operation {op_type!r} not applicable at {path!r}: {reason}")
        self.op_type = op_type
        self.path = path
        self.reason = reason


class RevisionConflict(ArtifactError):
    code = "REVISION_CONFLICT"
    retryable = True

    def __init__(self, expected_rev: int, actual_rev: object):
        super().__init__(f"Revision conflict: expected rev {expected_rev}, found {actual_rev}")
        self.expected_rev = expected_rev
        self.actual_rev = actual_rev


class InvalidStatusTransition(ArtifactError):
    code = "INVALID_STATUS_TRANSITION"

    def __init__(self, from_status: str, to_status: str):
        super().__init__(f"Invalid artifact status transition: {from_status} -> {to_status}")
        self.from_status = from_status
        self.to_status = to_status


class ArtifactLocked(ArtifactError):
    code = "ARTIFACT_LOCKED"

    def __init__(self, artifact_key: str, status: str):
        super().__init__(f"Artifact {artifact_key} is locked (status={status})")
        self.artifact_key = artifact_key
        self.status = status


class DuplicateArtifactKey(ArtifactError):
    code = "DUPLICATE_ARTIFACT_KEY"


class SourceNotFound(ArtifactError):
    code = "SOURCE_NOT_FOUND"

    def __init__(self, source_type: str, source_id: str):
        super().__init__(f"Source not found: {source_type}:{source_id}")
        self.source_type = source_type
        self.source_id = source_id


class ArtifactNotFound(ArtifactError):
    code = "ARTIFACT_NOT_FOUND"


class InvalidArtifactKey(ArtifactError):
    code = "INVALID_ARTIFACT_KEY"


class ExecutionNotFound(ArtifactError):
    code = "EXECUTION_NOT_FOUND"


class ExecutionOutputMissing(ArtifactError):
    code = "EXECUTION_OUTPUT_MISSING"


class Forbidden(ArtifactError):
    code = "FORBIDDEN"


class InvalidMessageRole(ArtifactError):
    code = "INVALID_MESSAGE_ROLE"
