"""
Source resolution and staleness classification.

A source reference is fresh, stale, missing or external. Staleness is always
computed on read; it is never stored on the artifact, because sources change
independently of it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Protocol, Sequence

from .errors import SourceNotFound
from .records import EXTERNAL_SOURCE_TYPES, SOURCE_TYPES, SourceRef

STALENESS_FRESH = "fresh"
STALENESS_STALE = "stale"
STALENESS_MISSING = "missing"
STALENESS_EXTERNAL = "external"

Staleness = Literal["fresh", "stale", "missing", "external"]

# Aggregate priority (higher wins); external counts as fresh.
_SEVERITY = {
    STALENESS_FRESH: 0,
    STALENESS_EXTERNAL: 0,
    STALENESS_STALE: 1,
    STALENESS_MISSING: 2,
}


@dataclass(frozen=True)
class SourceRecord:
    """Current state of a resolvable source, as reported by its owner."""

    source_type: str
    source_id: str
    project_id: str
    title: str | None
    updated_at: int


class SourceCatalog(Protocol):
    def lookup(self, source_type: str, source_id: str) -> SourceRecord | None:
        ...


@dataclass(frozen=True)
class SourceStatus:
    source: SourceRef
    status: str

    def to_dict(self) -> dict[str, Any]:
        return {**self.source.to_dict(), "status": self.status}


@dataclass(frozen=True)
class StalenessReport:
    status: str
    sources: list[SourceStatus] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"status": self.status, "sources": [s.to_dict() for s in self.sources]}


def aggregate_staleness(statuses: Sequence[str]) -> str:
    """Worst case across sources: missing > stale > fresh."""
    worst = STALENESS_FRESH
    for status in statuses:
        if _SEVERITY[status] > _SEVERITY[worst]:
            worst = status
    return worst


class SourceTracker:
    """Resolves source references against a catalog, scoped to a project."""

    def __init__(self, catalog: SourceCatalog):
        self.catalog = catalog

    def resolve(self, project_id: str, source_type: str, source_id: str) -> SourceRecord | None:
        """Lenient resolution: None for unknown, external or foreign sources."""
        if source_type not in SOURCE_TYPES or source_type in EXTERNAL_SOURCE_TYPES:
            return None
        record = self.catalog.lookup(source_type, source_id)
        if record is None or record.project_id != project_id:
            return None
        return record

    def resolve_strict(self, project_id: str, source_type: str, source_id: str) -> SourceRecord:
        record = self.resolve(project_id, source_type, source_id)
        if record is None:
            raise SourceNotFound(source_type, source_id)
        return record

    def classify(self, project_id: str, source: SourceRef) -> str:
        if source.source_type in EXTERNAL_SOURCE_TYPES:
            return STALENESS_EXTERNAL
        record = self.resolve(project_id, source.source_type, source.source_id)
        if record is None:
            return STALENESS_MISSING
        if source.source_updated_at is not None and record.updated_at > source.source_updated_at:
            return STALENESS_STALE
        return STALENESS_FRESH

    def check(self, project_id: str, sources: Sequence[SourceRef]) -> StalenessReport:
        statuses = [SourceStatus(s, self.classify(project_id, s)) for s in sources]
        return StalenessReport(
            status=aggregate_staleness([s.status for s in statuses]),
            sources=statuses,
        )

    def capture(self, project_id: str, source_type: str, source_id: str, *, added_at: int) -> SourceRef:
        """Resolve a manually added source and capture its baseline."""
        record = self.resolve_strict(project_id, source_type, source_id)
        return SourceRef(
            source_type=record.source_type,
            source_id=record.source_id,
            title=record.title,
            manual=True,
            added_at=added_at,
            source_updated_at=record.updated_at,
        )
