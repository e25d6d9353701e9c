"""Pytest configuration and fixtures."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from artledger.catalog import Catalog, Execution
from artledger.engine import ArtifactEngine
from artledger.records import SourceRef
from artledger.store import ArtifactStore

PROJECT = "proj-1"
OTHER_PROJECT = "proj-2"


class StepClock:
    """Deterministic clock: every call advances by one millisecond."""

    def __init__(self, start: int = 1_000):
        self.now = start

    def __call__(self) -> int:
        self.now += 1
        return self.now


def diagram_envelope(rev: int = 0) -> dict:
    return {
        "rev": rev,
        "type": "diagram",
        "data": {
            "nodesById": {
                "a": {"nodeId": "a", "type": "character", "position": {"x": 0, "y": 0}, "data": {"label": "Ada"}},
            },
            "nodeOrder": ["a"],
            "edgesById": {},
            "edgeOrder": [],
        },
    }


def nodes_envelope(rev: int = 0) -> dict:
    return {"rev": rev, "data": {"nodes": []}}


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def catalog() -> Catalog:
    catalog = Catalog()
    catalog.put_source("document", "doc-1", project_id=PROJECT, updated_at=100, title="Chapter 1")
    catalog.put_source("entity", "ent-1", project_id=PROJECT, updated_at=50, title="Ada")
    catalog.put_source("document", "doc-other", project_id=OTHER_PROJECT, updated_at=10)
    catalog.put_execution(
        Execution(
            execution_id="exec-1",
            project_id=PROJECT,
            output=json.dumps(diagram_envelope()),
            widget_id="relationship-map",
            widget_version="1.0.0",
            model="test-model",
            parameters={"depth": 2},
            document_id="doc-1",
            started_at=900,
            completed_at=950,
            sources=[SourceRef("document", "doc-1", title="Chapter 1", added_at=900, source_updated_at=100)],
        )
    )
    catalog.put_execution(Execution(execution_id="exec-text", project_id=PROJECT, output="Just some prose."))
    catalog.put_execution(Execution(execution_id="exec-empty", project_id=PROJECT, output=None))
    return catalog


@pytest.fixture
def store(tmp_path: Path) -> ArtifactStore:
    return ArtifactStore(tmp_path / ".artledger")


@pytest.fixture
def engine(store: ArtifactStore, catalog: Catalog, clock: StepClock) -> ArtifactEngine:
    return ArtifactEngine(store, catalog, executions=catalog, clock=clock)
