"""
In-memory catalog of the collaborators the engine reads from.

Documents, entities and memories are resolvable sources; executions are the
upstream generation results artifacts are created from. The catalog can be
loaded from ``.artledger/catalog.json`` for local use.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from .config import data_dir
from .records import SourceRef
from .sources import SourceRecord

CATALOG_FILENAME = "catalog.json"

# Catalog section -> source type
_SECTIONS = {
    "documents": "document",
    "entities": "entity",
    "memories": "memory",
}


@dataclass(frozen=True)
class Execution:
    """Result of an upstream generation run."""

    execution_id: str
    project_id: str
    output: str | None
    widget_id: str = ""
    widget_version: str = ""
    model: str = ""
    parameters: dict[str, Any] = field(default_factory=dict)
    document_id: str | None = None
    selection_text: str | None = None
    started_at: int = 0
    completed_at: int | None = None
    sources: list[SourceRef] = field(default_factory=list)

    def execution_context(self, *, now: int) -> dict[str, Any]:
        return {
            "widget_id": self.widget_id,
            "widget_version": self.widget_version,
            "model": self.model,
            "inputs": {
                "document_id": self.document_id,
                "selection_text": self.selection_text,
                "parameters": self.parameters,
            },
            "started_at": self.started_at,
            "completed_at": self.completed_at if self.completed_at is not None else now,
        }

    @classmethod
    def from_dict(cls, execution_id: str, data: dict[str, Any]) -> Execution:
        return cls(
            execution_id=execution_id,
            project_id=data["project_id"],
            output=data.get("output"),
            widget_id=data.get("widget_id", ""),
            widget_version=data.get("widget_version", ""),
            model=data.get("model", ""),
            parameters=data.get("parameters") or {},
            document_id=data.get("document_id"),
            selection_text=data.get("selection_text"),
            started_at=int(data.get("started_at", 0)),
            completed_at=data.get("completed_at"),
            sources=[SourceRef.from_dict(s) for s in data.get("sources", [])],
        )


class ExecutionCatalog(Protocol):
    def get_execution(self, execution_id: str) -> Execution | None:
        ...


class Catalog:
    """Dict-backed SourceCatalog and ExecutionCatalog."""

    def __init__(self) -> None:
        self._sources: dict[tuple[str, str], SourceRecord] = {}
        self._executions: dict[str, Execution] = {}

    def put_source(
        self,
        source_type: str,
        source_id: str,
        *,
        project_id: str,
        updated_at: int,
        title: str | None = None,
    ) -> SourceRecord:
        record = SourceRecord(source_type, source_id, project_id, title, updated_at)
        self._sources[(source_type, source_id)] = record
        return record

    def remove_source(self, source_type: str, source_id: str) -> None:
        self._sources.pop((source_type, source_id), None)

    def put_execution(self, execution: Execution) -> Execution:
        self._executions[execution.execution_id] = execution
        return execution

    def lookup(self, source_type: str, source_id: str) -> SourceRecord | None:
        return self._sources.get((source_type, source_id))

    def get_execution(self, execution_id: str) -> Execution | None:
        return self._executions.get(execution_id)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Catalog:
        catalog = cls()
        for section, source_type in _SECTIONS.items():
            for source_id, raw in (data.get(section) or {}).items():
                if not isinstance(raw, dict):
                    continue
                catalog.put_source(
                    source_type,
                    source_id,
                    project_id=raw["project_id"],
                    updated_at=int(raw.get("updated_at", 0)),
                    title=raw.get("title") or raw.get("name"),
                )
        for execution_id, raw in (data.get("executions") or {}).items():
            if isinstance(raw, dict):
                catalog.put_execution(Execution.from_dict(execution_id, raw))
        return catalog

    @classmethod
    def load(cls, root: Path) -> Catalog:
        """Load ``.artledger/catalog.json`` under ``root`` (empty if absent)."""
        path = data_dir(root) / CATALOG_FILENAME
        if not path.exists():
            return cls()
        return cls.from_dict(json.loads(path.read_text(encoding="utf-8")))
