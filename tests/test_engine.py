from __future__ import annotations

import json
import threading

import pytest

from artledger.auth import LocalAuthorizer
from artledger.engine import ArtifactEngine
from artledger.errors import (
    ArtifactLocked,
    ArtifactNotFound,
    CorruptArtifact,
    DuplicateArtifactKey,
    ExecutionNotFound,
    ExecutionOutputMissing,
    Forbidden,
    InvalidArtifactContent,
    InvalidArtifactKey,
    InvalidMessageRole,
    InvalidStatusTransition,
    OpNotApplicable,
    RevisionConflict,
    SourceNotFound,
)
from artledger.ops import AddNode
from artledger.store import ArtifactStore

from conftest import OTHER_PROJECT, PROJECT, diagram_envelope, nodes_envelope


def _structured(engine: ArtifactEngine, key: str = "graph", envelope: dict | None = None) -> str:
    content = json.dumps(envelope if envelope is not None else nodes_envelope())
    engine.create(PROJECT, key, "diagram", "Graph", "structured", content)
    return key


def _text(engine: ArtifactEngine, key: str = "notes", content: str = "first draft") -> str:
    engine.create(PROJECT, key, "prose", "Notes", "freeform-text", content)
    return key


# -----------------------------------------------------------------------------
# Creation
# -----------------------------------------------------------------------------


def test_create_from_execution_is_idempotent(engine: ArtifactEngine) -> None:
    first = engine.create_from_execution(PROJECT, "exec-1", "Relationships", "diagram")
    second = engine.create_from_execution(PROJECT, "exec-1", "Relationships again", "diagram")

    assert first.created is True
    assert second.created is False
    assert second.artifact_id == first.artifact_id
    assert first.artifact_key == "artifact-exec-1"

    view = engine.get_by_key(PROJECT, "artifact-exec-1")
    assert view.artifact.title == "Relationships"
    assert [v.version for v in view.versions] == [1]


def test_create_from_execution_captures_context_and_sources(engine: ArtifactEngine) -> None:
    engine.create_from_execution(PROJECT, "exec-1", "Relationships", "diagram")
    artifact = engine.get(PROJECT, "artifact-exec-1")

    assert artifact.format == "structured"
    assert artifact.status == "draft"
    assert artifact.execution_context is not None
    assert artifact.execution_context["widget_id"] == "relationship-map"
    assert artifact.execution_context["inputs"]["document_id"] == "doc-1"
    assert artifact.execution_context["completed_at"] == 950
    assert [s.key for s in artifact.sources] == [("document", "doc-1")]

    version = engine.versions(PROJECT, "artifact-exec-1")[0]
    assert version.sources == artifact.sources
    assert version.content == artifact.content


def test_create_from_execution_infers_freeform_text(engine: ArtifactEngine) -> None:
    engine.create_from_execution(PROJECT, "exec-text", "Summary", "prose")
    assert engine.get(PROJECT, "artifact-exec-text").format == "freeform-text"


def test_create_from_execution_errors(engine: ArtifactEngine) -> None:
    with pytest.raises(ExecutionNotFound):
        engine.create_from_execution(PROJECT, "exec-missing", "X", "diagram")
    with pytest.raises(ExecutionNotFound):
        engine.create_from_execution(OTHER_PROJECT, "exec-1", "X", "diagram")
    with pytest.raises(ExecutionOutputMissing):
        engine.create_from_execution(PROJECT, "exec-empty", "X", "diagram")


def test_create_rejects_duplicates_and_bad_input(engine: ArtifactEngine) -> None:
    _text(engine, "notes")
    with pytest.raises(DuplicateArtifactKey):
        _text(engine, "notes")
    with pytest.raises(InvalidArtifactKey):
        _text(engine, "Not A Key!")
    with pytest.raises(InvalidArtifactContent):
        engine.create(PROJECT, "broken", "diagram", "Broken", "structured", "{not json")
    with pytest.raises(InvalidArtifactContent):
        engine.create(PROJECT, "no-rev", "diagram", "No rev", "structured", json.dumps({"data": {}}))

    # The same key is free in another project
    engine.create(OTHER_PROJECT, "notes", "prose", "Notes", "plain", "hi")


# -----------------------------------------------------------------------------
# Content writes
# -----------------------------------------------------------------------------


def test_update_content_appends_versions_and_marks_modified(engine: ArtifactEngine) -> None:
    key = _text(engine)
    engine.update_content(PROJECT, key, "second draft")
    result = engine.update_content(PROJECT, key, "third draft")

    assert result.version == 3
    artifact = engine.get(PROJECT, key)
    assert artifact.status == "manually-modified"
    assert artifact.content == "third draft"

    versions = engine.versions(PROJECT, key)
    assert [v.version for v in versions] == [1, 2, 3]
    assert versions[-1].content == artifact.content


def test_update_content_carries_sources_forward(engine: ArtifactEngine) -> None:
    engine.create_from_execution(PROJECT, "exec-text", "Summary", "prose")
    engine.update_content(PROJECT, "artifact-exec-text", "Edited prose.")

    latest = engine.versions(PROJECT, "artifact-exec-text")[-1]
    first = engine.versions(PROJECT, "artifact-exec-text")[0]
    assert latest.execution_context == first.execution_context
    assert latest.sources == first.sources


def test_update_content_validates_structured(engine: ArtifactEngine) -> None:
    key = _structured(engine)
    with pytest.raises(InvalidArtifactContent):
        engine.update_content(PROJECT, key, "not an envelope")
    assert len(engine.versions(PROJECT, key)) == 1

    # Switching format on write is allowed
    engine.update_content(PROJECT, key, "plain words now", fmt="plain")
    assert engine.get(PROJECT, key).format == "plain"


@pytest.mark.parametrize("locked_status", ["applied", "saved"])
def test_locked_artifacts_reject_writes(engine: ArtifactEngine, locked_status: str) -> None:
    key = _structured(engine)
    engine.set_status(PROJECT, key, locked_status)

    with pytest.raises(ArtifactLocked):
        engine.update_content(PROJECT, key, json.dumps(nodes_envelope(rev=5)))
    with pytest.raises(ArtifactLocked):
        engine.apply_op(PROJECT, key, {"type": "node.add", "node": {"id": "n1"}})

    artifact = engine.get(PROJECT, key)
    assert json.loads(artifact.content)["rev"] == 0
    assert len(engine.versions(PROJECT, key)) == 1
    assert engine.get_by_key(PROJECT, key).ops == []


# -----------------------------------------------------------------------------
# Structural ops
# -----------------------------------------------------------------------------


def test_apply_op_adds_node(engine: ArtifactEngine) -> None:
    key = _structured(engine)

    result = engine.apply_op(PROJECT, key, {"type": "node.add", "node": {"id": "n1"}})

    assert result.next_envelope == {"rev": 1, "data": {"nodes": [{"id": "n1"}]}}
    assert result.log_entry.base_rev == 0
    assert result.log_entry.next_rev == 1
    assert result.log_entry.patch[0] == {"op": "test", "path": "/rev", "value": 0}
    assert result.log_entry.patch[-1] == {"op": "replace", "path": "/rev", "value": 1}

    artifact = engine.get(PROJECT, key)
    assert artifact.status == "manually-modified"
    assert json.loads(artifact.content) == result.next_envelope
    assert engine.versions(PROJECT, key)[-1].content == artifact.content


def test_apply_op_chains_revisions(engine: ArtifactEngine) -> None:
    key = _structured(engine)
    engine.apply_op(PROJECT, key, AddNode(node={"id": "n1"}))
    engine.apply_op(PROJECT, key, AddNode(node={"id": "n2"}))
    engine.apply_op(PROJECT, key, {"type": "node.remove", "node_id": "n1"})

    ops = engine.get_by_key(PROJECT, key).ops
    assert [(o.base_rev, o.next_rev) for o in ops] == [(0, 1), (1, 2), (2, 3)]
    for earlier, later in zip(ops, ops[1:]):
        assert earlier.next_rev == later.base_rev
    assert json.loads(engine.get(PROJECT, key).content)["data"]["nodes"] == [{"id": "n2"}]


def test_apply_op_with_stale_base_rev_conflicts(engine: ArtifactEngine) -> None:
    key = _structured(engine)
    engine.apply_op(PROJECT, key, AddNode(node={"id": "n1"}))

    with pytest.raises(RevisionConflict) as excinfo:
        engine.apply_op(PROJECT, key, AddNode(node={"id": "n2"}), base_rev=0)

    assert excinfo.value.retryable is True
    assert excinfo.value.actual_rev == 1
    assert len(engine.get_by_key(PROJECT, key).ops) == 1


def test_apply_op_not_applicable_leaves_artifact_untouched(engine: ArtifactEngine) -> None:
    key = _structured(engine)
    before = engine.get(PROJECT, key)

    with pytest.raises(OpNotApplicable):
        engine.apply_op(PROJECT, key, {"type": "node.remove", "node_id": "ghost"})
    with pytest.raises(OpNotApplicable):
        engine.apply_op(PROJECT, key, {"type": "no.such.op"})

    after = engine.get(PROJECT, key)
    assert after.content == before.content
    assert after.status == "draft"
    assert len(engine.versions(PROJECT, key)) == 1


def test_apply_op_rejects_result_that_breaks_type_pack(engine: ArtifactEngine) -> None:
    key = _structured(engine, "diagram", diagram_envelope())
    with pytest.raises(OpNotApplicable):
        engine.apply_op(PROJECT, key, {"type": "field.set", "path": "/nodeOrder", "value": "a"})
    assert json.loads(engine.get(PROJECT, key).content)["rev"] == 0


def test_apply_op_typed_diagram_ops(engine: ArtifactEngine) -> None:
    key = _structured(engine, "diagram", diagram_envelope())
    engine.apply_op(
        PROJECT,
        key,
        {
            "type": "diagram.node.upsert",
            "node": {"nodeId": "b", "type": "character", "position": {"x": 10, "y": 5}, "data": {}},
        },
    )
    engine.apply_op(PROJECT, key, {"type": "diagram.edge.add", "edge": {"edgeId": "e1", "source": "a", "target": "b"}})
    result = engine.apply_op(PROJECT, key, {"type": "diagram.node.move", "node_id": "a", "position": {"x": 3, "y": 4}})

    data = result.next_envelope["data"]
    assert result.next_envelope["rev"] == 3
    assert data["nodeOrder"] == ["a", "b"]
    assert data["edgesById"]["e1"]["type"] == "relationshipEdge"
    assert data["nodesById"]["a"]["position"] == {"x": 3, "y": 4}


def test_apply_op_requires_structured_format(engine: ArtifactEngine) -> None:
    key = _text(engine)
    with pytest.raises(OpNotApplicable):
        engine.apply_op(PROJECT, key, AddNode(node={"id": "n1"}))


def test_apply_op_on_corrupt_content(engine: ArtifactEngine) -> None:
    key = _structured(engine)
    artifact = engine.get(PROJECT, key)
    artifact.content = "{corrupt"
    engine.store.put(artifact)

    with pytest.raises(CorruptArtifact):
        engine.apply_op(PROJECT, key, AddNode(node={"id": "n1"}))


def test_apply_op_on_mistyped_outline_children(engine: ArtifactEngine) -> None:
    envelope = {"rev": 1, "data": {"itemsById": {"a": {}}, "childrenByParentId": []}}
    key = _structured(engine, envelope=envelope)
    before = engine.get(PROJECT, key)

    with pytest.raises(OpNotApplicable):
        engine.apply_op(PROJECT, key, {"type": "outline.item.move", "item_id": "a", "new_index": 0})

    assert engine.get(PROJECT, key).content == before.content
    assert engine.get_by_key(PROJECT, key).ops == []


def test_apply_op_with_retry_rederives_after_conflict(engine: ArtifactEngine) -> None:
    key = _structured(engine)
    calls: list[int] = []

    def derive(envelope: dict) -> AddNode:
        calls.append(envelope["rev"])
        if len(calls) == 1:
            # A competing writer lands between our read and our write
            engine.apply_op(PROJECT, key, AddNode(node={"id": "other"}))
        return AddNode(node={"id": f"n{len(envelope['data']['nodes'])}"})

    result = engine.apply_op_with_retry(PROJECT, key, derive)

    assert calls == [0, 1]
    assert result.log_entry.base_rev == 1
    assert result.next_envelope["data"]["nodes"] == [{"id": "other"}, {"id": "n1"}]


def test_apply_op_with_retry_gives_up(engine: ArtifactEngine) -> None:
    key = _structured(engine)
    counter = {"n": 0}

    def derive(envelope: dict) -> AddNode:
        counter["n"] += 1
        engine.apply_op(PROJECT, key, AddNode(node={"id": f"other-{counter['n']}"}))
        return AddNode(node={"id": f"mine-{counter['n']}"})

    with pytest.raises(RevisionConflict):
        engine.apply_op_with_retry(PROJECT, key, derive, attempts=2)
    assert counter["n"] == 2


# -----------------------------------------------------------------------------
# Status
# -----------------------------------------------------------------------------


def test_status_lifecycle_and_context(engine: ArtifactEngine) -> None:
    key = _text(engine)

    change = engine.set_status(PROJECT, key, "manually-modified", {"applied_to_document_id": "doc-1"})
    assert change.changed is True
    assert engine.get(PROJECT, key).status_context == {}

    change = engine.set_status(PROJECT, key, "applied", {"applied_to_document_id": "doc-1"})
    artifact = engine.get(PROJECT, key)
    assert artifact.status == "applied"
    assert artifact.status_context == {"applied_to_document_id": "doc-1"}
    assert artifact.status_changed_at == change.status_changed_at

    engine.set_status(PROJECT, key, "saved", {"saved_to_entity_id": "ent-1"})
    artifact = engine.get(PROJECT, key)
    assert artifact.status == "saved"
    assert artifact.status_context == {"saved_to_entity_id": "ent-1"}
    with pytest.raises(InvalidStatusTransition):
        engine.set_status(PROJECT, key, "applied")


def test_status_same_state_is_noop(engine: ArtifactEngine) -> None:
    key = _text(engine)
    before = engine.get(PROJECT, key)

    change = engine.set_status(PROJECT, key, "draft")

    assert change.changed is False
    after = engine.get(PROJECT, key)
    assert after.status_changed_at == before.status_changed_at
    assert after.updated_at == before.updated_at


def test_status_invalid_transition(engine: ArtifactEngine) -> None:
    key = _text(engine)
    engine.set_status(PROJECT, key, "saved", {"saved_to_entity_id": "ent-1"})

    with pytest.raises(InvalidStatusTransition) as excinfo:
        engine.set_status(PROJECT, key, "draft")
    assert str(excinfo.value) == "Invalid artifact status transition: saved -> draft"
    with pytest.raises(InvalidStatusTransition):
        engine.set_status(PROJECT, key, "archived")
    assert engine.get(PROJECT, key).status == "saved"


def test_write_after_draft_changes_status_timestamp(engine: ArtifactEngine) -> None:
    key = _text(engine)
    created = engine.get(PROJECT, key)
    engine.update_content(PROJECT, key, "changed")
    updated = engine.get(PROJECT, key)

    assert updated.status_changed_at > created.status_changed_at
    assert updated.updated_at == updated.status_changed_at


# -----------------------------------------------------------------------------
# Sources and staleness
# -----------------------------------------------------------------------------


def test_update_sources_add_and_remove(engine: ArtifactEngine) -> None:
    key = _text(engine)
    artifact_id = engine.get(PROJECT, key).artifact_id

    sources = engine.update_sources(artifact_id, add=[("document", "doc-1"), {"type": "entity", "id": "ent-1"}])
    assert [(s.key, s.manual, s.source_updated_at) for s in sources] == [
        (("document", "doc-1"), True, 100),
        (("entity", "ent-1"), True, 50),
    ]
    assert sources[0].title == "Chapter 1"

    # Re-adding keeps the original baseline
    sources = engine.update_sources(artifact_id, add=[("document", "doc-1")])
    assert len(sources) == 2

    sources = engine.update_sources(artifact_id, remove=[("document", "doc-1")])
    assert [s.key for s in sources] == [("entity", "ent-1")]
    assert engine.get(PROJECT, key).sources == sources
    # Sources are not content: no version written
    assert len(engine.versions(PROJECT, key)) == 1


@pytest.mark.parametrize(
    "source",
    [("web", "https://example.com"), ("github", "org/repo"), ("document", "doc-other"), ("memory", "nope")],
)
def test_update_sources_rejects_unresolvable(engine: ArtifactEngine, source: tuple[str, str]) -> None:
    key = _text(engine)
    artifact_id = engine.get(PROJECT, key).artifact_id

    with pytest.raises(SourceNotFound):
        engine.update_sources(artifact_id, add=[("document", "doc-1"), source])
    assert engine.get(PROJECT, key).sources == []


def test_staleness_tracks_source_revisions(engine: ArtifactEngine, catalog) -> None:
    key = _text(engine)
    artifact_id = engine.get(PROJECT, key).artifact_id
    assert engine.check_staleness(artifact_id).status == "fresh"

    engine.update_sources(artifact_id, add=[("document", "doc-1")])
    assert engine.check_staleness(artifact_id).status == "fresh"

    catalog.put_source("document", "doc-1", project_id=PROJECT, updated_at=200)
    report = engine.check_staleness(artifact_id)
    assert report.status == "stale"
    assert report.sources[0].status == "stale"

    catalog.remove_source("document", "doc-1")
    assert engine.check_staleness(artifact_id).status == "missing"


def test_get_by_key_reports_staleness(engine: ArtifactEngine, catalog) -> None:
    engine.create_from_execution(PROJECT, "exec-1", "Relationships", "diagram")
    assert engine.get_by_key(PROJECT, "artifact-exec-1").staleness.status == "fresh"

    catalog.put_source("document", "doc-1", project_id=PROJECT, updated_at=101)
    assert engine.get_by_key(PROJECT, "artifact-exec-1").staleness.status == "stale"


# -----------------------------------------------------------------------------
# Messages and queries
# -----------------------------------------------------------------------------


def test_append_message_bumps_updated_at_only(engine: ArtifactEngine) -> None:
    key = _text(engine)
    before = engine.get(PROJECT, key)

    message_id = engine.append_message(PROJECT, key, "user", "Make it shorter", {"selection": "first"})

    after = engine.get(PROJECT, key)
    assert after.updated_at > before.updated_at
    assert after.status == before.status
    assert after.content == before.content
    messages = engine.get_by_key(PROJECT, key).messages
    assert [m.message_id for m in messages] == [message_id]
    assert messages[0].context == {"selection": "first"}

    with pytest.raises(InvalidMessageRole) as exc:
        engine.append_message(PROJECT, key, "system", "nope")
    assert exc.value.code == "INVALID_MESSAGE_ROLE"
    assert len(engine.get_by_key(PROJECT, key).messages) == 1


def test_messages_allowed_on_locked_artifacts(engine: ArtifactEngine) -> None:
    key = _text(engine)
    engine.set_status(PROJECT, key, "saved")
    engine.append_message(PROJECT, key, "assistant", "Saved.")
    assert len(engine.get_by_key(PROJECT, key).messages) == 1


def test_get_by_key_pages_messages(engine: ArtifactEngine) -> None:
    key = _text(engine)
    for i in range(5):
        engine.append_message(PROJECT, key, "user", f"message {i}")

    first = engine.get_by_key(PROJECT, key, message_limit=2)
    assert [m.content for m in first.messages] == ["message 0", "message 1"]
    assert first.next_message_cursor is not None

    second = engine.get_by_key(PROJECT, key, message_limit=2, message_cursor=first.next_message_cursor)
    assert [m.content for m in second.messages] == ["message 2", "message 3"]

    third = engine.get_by_key(PROJECT, key, message_limit=2, message_cursor=second.next_message_cursor)
    assert [m.content for m in third.messages] == ["message 4"]
    assert third.next_message_cursor is None


def test_get_by_key_orders_versions_newest_first(engine: ArtifactEngine) -> None:
    key = _text(engine)
    engine.update_content(PROJECT, key, "v2")
    engine.update_content(PROJECT, key, "v3")

    view = engine.get_by_key(PROJECT, key, version_limit=2)
    assert [v.version for v in view.versions] == [3, 2]


def test_lookup_by_id_and_misses(engine: ArtifactEngine) -> None:
    key = _text(engine)
    artifact_id = engine.get(PROJECT, key).artifact_id

    assert engine.get_by_key(PROJECT, artifact_id).artifact.artifact_key == key
    with pytest.raises(ArtifactNotFound):
        engine.get_by_key(PROJECT, "missing")
    with pytest.raises(ArtifactNotFound):
        engine.get_by_key(OTHER_PROJECT, artifact_id)


def test_list_filters_and_orders_by_recency(engine: ArtifactEngine) -> None:
    _text(engine, "a")
    _structured(engine, "b")
    _text(engine, "c")
    engine.update_content(PROJECT, "a", "touched")
    engine.set_status(PROJECT, "c", "applied")

    assert [a.artifact_key for a in engine.list(PROJECT)] == ["c", "a", "b"]
    assert [a.artifact_key for a in engine.list(PROJECT, artifact_type="prose")] == ["c", "a"]
    assert [a.artifact_key for a in engine.list(PROJECT, status="applied")] == ["c"]
    assert [a.artifact_key for a in engine.list(PROJECT, artifact_type="prose", status="draft")] == []
    assert engine.list(OTHER_PROJECT) == []


def test_list_by_project_pages(engine: ArtifactEngine) -> None:
    for key in ("a", "b", "c"):
        _text(engine, key)

    first = engine.list_by_project(PROJECT, limit=2)
    assert [a.artifact_key for a in first.artifacts] == ["c", "b"]
    assert first.next_cursor is not None

    second = engine.list_by_project(PROJECT, limit=2, cursor=first.next_cursor)
    assert [a.artifact_key for a in second.artifacts] == ["a"]
    assert second.next_cursor is None


def test_zero_limits_return_empty_pages(engine: ArtifactEngine) -> None:
    key = _text(engine)
    engine.append_message(PROJECT, key, "user", "hello")

    view = engine.get_by_key(PROJECT, key, message_limit=0, version_limit=0)
    assert view.messages == []
    assert view.versions == []
    assert view.next_message_cursor is None

    assert engine.list(PROJECT, limit=0) == []
    page = engine.list_by_project(PROJECT, limit=0)
    assert page.artifacts == []
    assert page.next_cursor is None

    with pytest.raises(ValueError):
        engine.get_by_key(PROJECT, key, message_limit=-1)
    with pytest.raises(ValueError):
        engine.list_by_project(PROJECT, limit=-1)


def test_version_diff(engine: ArtifactEngine) -> None:
    key = _text(engine, content="line one\nline two\n")
    engine.update_content(PROJECT, key, "line one\nline 2\n")

    diff = engine.version_diff(PROJECT, key, 1, 2)
    assert "-line two" in diff
    assert "+line 2" in diff
    assert engine.version_diff(PROJECT, key, 2, 2) == ""
    with pytest.raises(ArtifactNotFound):
        engine.version_diff(PROJECT, key, 1, 9)


# -----------------------------------------------------------------------------
# Authorization and persistence
# -----------------------------------------------------------------------------


def test_authorizer_is_consulted(store, catalog, clock) -> None:
    engine = ArtifactEngine(
        store,
        catalog,
        executions=catalog,
        clock=clock,
        authorizer=LocalAuthorizer("agent:planner", projects=[PROJECT], read_only=[PROJECT]),
    )
    with pytest.raises(Forbidden):
        engine.create(PROJECT, "notes", "prose", "Notes", "plain", "x")
    with pytest.raises(Forbidden):
        engine.list(OTHER_PROJECT)
    assert engine.list(PROJECT) == []


def test_actor_is_recorded(store, catalog, clock) -> None:
    engine = ArtifactEngine(store, catalog, clock=clock, authorizer=LocalAuthorizer("human:alice"))
    key = _structured(engine)
    result = engine.apply_op(PROJECT, key, AddNode(node={"id": "n1"}))

    artifact = engine.get(PROJECT, key)
    assert artifact.created_by == "human:alice"
    assert artifact.status_by == "human:alice"
    assert result.log_entry.created_by == "human:alice"


def test_state_survives_reopen(engine: ArtifactEngine, catalog, clock) -> None:
    key = _structured(engine)
    engine.apply_op(PROJECT, key, AddNode(node={"id": "n1"}))
    engine.append_message(PROJECT, key, "user", "hello")

    reopened = ArtifactEngine(type(engine.store)(engine.store.data_dir), catalog, clock=clock)
    view = reopened.get_by_key(PROJECT, key)
    assert view.artifact.status == "manually-modified"
    assert [v.version for v in view.versions] == [2, 1]
    assert len(view.ops) == 1
    assert len(view.messages) == 1


# -----------------------------------------------------------------------------
# Engines sharing one data directory
# -----------------------------------------------------------------------------


def _second_engine(engine: ArtifactEngine, catalog, clock) -> ArtifactEngine:
    return ArtifactEngine(ArtifactStore(engine.store.data_dir), catalog, executions=catalog, clock=clock)


def test_create_sees_keys_created_by_another_engine(engine: ArtifactEngine, catalog, clock) -> None:
    other = _second_engine(engine, catalog, clock)
    with pytest.raises(ArtifactNotFound):
        other.get(PROJECT, "notes")

    _text(engine)

    with pytest.raises(DuplicateArtifactKey):
        other.create(PROJECT, "notes", "prose", "Notes", "plain", "again")
    heads = [a for a in engine.store.iter_artifacts(PROJECT) if a.artifact_key == "notes"]
    assert len(heads) == 1


def test_apply_op_waits_for_writer_in_another_engine(engine: ArtifactEngine, catalog, clock) -> None:
    key = _structured(engine)
    artifact_id = engine.get(PROJECT, key).artifact_id
    other = _second_engine(engine, catalog, clock)
    assert [v.version for v in other.versions(PROJECT, key)] == [1]

    worker = threading.Thread(target=other.apply_op, args=(PROJECT, key, AddNode(node={"id": "b"})))
    with engine.store.transaction(artifact_id):
        worker.start()
        worker.join(timeout=0.2)
        assert worker.is_alive()
        engine.apply_op(PROJECT, key, AddNode(node={"id": "a"}))
    worker.join(timeout=5)
    assert not worker.is_alive()

    view = engine.get_by_key(PROJECT, key)
    assert [(o.base_rev, o.next_rev) for o in view.ops] == [(0, 1), (1, 2)]
    assert [v.version for v in view.versions] == [3, 2, 1]
    assert json.loads(view.artifact.content) == {"rev": 2, "data": {"nodes": [{"id": "a"}, {"id": "b"}]}}
