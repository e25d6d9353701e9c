"""
Record types for the artifact store.

The Artifact is the only mutable record (the live head). Versions, ops and
messages are immutable: each line in their ledgers is written once and never
modified.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Literal

# Content formats
FORMAT_STRUCTURED = "structured"
FORMAT_FREEFORM = "freeform-text"
FORMAT_PLAIN = "plain"

ArtifactFormat = Literal["structured", "freeform-text", "plain"]

FORMATS = frozenset({FORMAT_STRUCTURED, FORMAT_FREEFORM, FORMAT_PLAIN})

# Source reference types
SourceType = Literal["document", "entity", "memory", "web", "github"]

SOURCE_TYPES = frozenset({"document", "entity", "memory", "web", "github"})
EXTERNAL_SOURCE_TYPES = frozenset({"web", "github"})

# Message roles
MESSAGE_ROLES = frozenset({"user", "assistant"})


def _dumps(data: dict[str, Any]) -> str:
    return json.dumps(data, separators=(",", ":"))


@dataclass(frozen=True)
class SourceRef:
    """
    Pointer from an artifact to something it was derived from.

    ``source_updated_at`` is the target's revision timestamp as observed when
    the reference was captured. It is the staleness baseline and is only
    changed by an explicit re-add.
    """

    source_type: SourceType
    source_id: str
    title: str | None = None
    manual: bool = False
    added_at: int = 0
    source_updated_at: int | None = None

    def __post_init__(self) -> None:
        if self.source_type not in SOURCE_TYPES:
            raise ValueError(f"Invalid source type: {self.source_type}")

    @property
    def key(self) -> tuple[str, str]:
        return (self.source_type, self.source_id)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "type": self.source_type,
            "id": self.source_id,
            "manual": self.manual,
            "added_at": self.added_at,
        }
        if self.title is not None:
            result["title"] = self.title
        if self.source_updated_at is not None:
            result["source_updated_at"] = self.source_updated_at
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SourceRef:
        return cls(
            source_type=data["type"],
            source_id=str(data.get("id", "")),
            title=data.get("title"),
            manual=bool(data.get("manual", False)),
            added_at=int(data.get("added_at", 0)),
            source_updated_at=data.get("source_updated_at"),
        )


@dataclass
class Artifact:
    """Live head record. Mutated only through the engine."""

    artifact_id: str
    artifact_key: str
    project_id: str
    type: str
    title: str
    format: ArtifactFormat
    content: str
    status: str
    created_by: str
    created_at: int
    updated_at: int
    status_changed_at: int
    status_by: str
    status_context: dict[str, Any] = field(default_factory=dict)
    sources: list[SourceRef] = field(default_factory=list)
    execution_context: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "artifact_id": self.artifact_id,
            "artifact_key": self.artifact_key,
            "project_id": self.project_id,
            "type": self.type,
            "title": self.title,
            "format": self.format,
            "content": self.content,
            "status": self.status,
            "status_context": dict(self.status_context),
            "sources": [s.to_dict() for s in self.sources],
            "execution_context": self.execution_context,
            "created_by": self.created_by,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "status_changed_at": self.status_changed_at,
            "status_by": self.status_by,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, sort_keys=True)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Artifact:
        return cls(
            artifact_id=data["artifact_id"],
            artifact_key=data["artifact_key"],
            project_id=data["project_id"],
            type=data["type"],
            title=data["title"],
            format=data["format"],
            content=data["content"],
            status=data["status"],
            status_context=dict(data.get("status_context") or {}),
            sources=[SourceRef.from_dict(s) for s in data.get("sources", [])],
            execution_context=data.get("execution_context"),
            created_by=data.get("created_by", "system"),
            created_at=data["created_at"],
            updated_at=data["updated_at"],
            status_changed_at=data.get("status_changed_at", data["created_at"]),
            status_by=data.get("status_by", data.get("created_by", "system")),
        )

    @classmethod
    def from_json(cls, text: str) -> Artifact:
        return cls.from_dict(json.loads(text))


@dataclass(frozen=True)
class Version:
    """Whole-content snapshot taken on every content-changing write."""

    version_id: str
    artifact_id: str
    artifact_key: str
    project_id: str
    version: int
    format: ArtifactFormat
    content: str
    created_at: int
    sources: list[SourceRef] = field(default_factory=list)
    execution_context: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "version_id": self.version_id,
            "artifact_id": self.artifact_id,
            "artifact_key": self.artifact_key,
            "project_id": self.project_id,
            "version": self.version,
            "format": self.format,
            "content": self.content,
            "sources": [s.to_dict() for s in self.sources],
            "execution_context": self.execution_context,
            "created_at": self.created_at,
        }

    def to_json(self) -> str:
        return _dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Version:
        return cls(
            version_id=data["version_id"],
            artifact_id=data["artifact_id"],
            artifact_key=data["artifact_key"],
            project_id=data["project_id"],
            version=data["version"],
            format=data["format"],
            content=data["content"],
            sources=[SourceRef.from_dict(s) for s in data.get("sources", [])],
            execution_context=data.get("execution_context"),
            created_at=data["created_at"],
        )

    @classmethod
    def from_json(cls, line: str) -> Version:
        return cls.from_dict(json.loads(line))


@dataclass(frozen=True)
class OpRecord:
    """One applied structural operation plus its compiled patch."""

    op_id: str
    artifact_id: str
    artifact_key: str
    project_id: str
    base_rev: int
    next_rev: int
    op: dict[str, Any]
    patch: list[dict[str, Any]]
    created_at: int
    created_by: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "op_id": self.op_id,
            "artifact_id": self.artifact_id,
            "artifact_key": self.artifact_key,
            "project_id": self.project_id,
            "base_rev": self.base_rev,
            "next_rev": self.next_rev,
            "op": self.op,
            "patch": self.patch,
            "created_at": self.created_at,
            "created_by": self.created_by,
        }

    def to_json(self) -> str:
        return _dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OpRecord:
        return cls(
            op_id=data["op_id"],
            artifact_id=data["artifact_id"],
            artifact_key=data["artifact_key"],
            project_id=data["project_id"],
            base_rev=data["base_rev"],
            next_rev=data["next_rev"],
            op=data["op"],
            patch=data["patch"],
            created_at=data["created_at"],
            created_by=data["created_by"],
        )

    @classmethod
    def from_json(cls, line: str) -> OpRecord:
        return cls.from_dict(json.loads(line))


@dataclass(frozen=True)
class Message:
    """Conversational annotation. Never affects content or status."""

    message_id: str
    artifact_id: str
    artifact_key: str
    project_id: str
    role: str
    content: str
    created_at: int
    context: Any = None

    def __post_init__(self) -> None:
        if self.role not in MESSAGE_ROLES:
            raise ValueError(f"Invalid message role: {self.role}")

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "message_id": self.message_id,
            "artifact_id": self.artifact_id,
            "artifact_key": self.artifact_key,
            "project_id": self.project_id,
            "role": self.role,
            "content": self.content,
            "created_at": self.created_at,
        }
        if self.context is not None:
            result["context"] = self.context
        return result

    def to_json(self) -> str:
        return _dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Message:
        return cls(
            message_id=data["message_id"],
            artifact_id=data["artifact_id"],
            artifact_key=data["artifact_key"],
            project_id=data["project_id"],
            role=data["role"],
            content=data["content"],
            context=data.get("context"),
            created_at=data["created_at"],
        )

    @classmethod
    def from_json(cls, line: str) -> Message:
        return cls.from_dict(json.loads(line))
