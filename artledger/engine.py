"""
Artifact engine: creation, content writes, structural ops, status changes,
source tracking and queries.

Every mutation is a single-artifact read-modify-write performed inside
``store.transaction``; the head is re-read under the lock so the status,
lock and revision checks see the latest state.
"""

from __future__ import annotations

import difflib
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping, Sequence

from .auth import Authorizer, LocalAuthorizer
from .catalog import Catalog, ExecutionCatalog
from .config import EngineConfig, MAX_CONFLICT_RETRIES, MIN_CONFLICT_RETRIES, data_dir, load_config
from .envelope import envelope_errors, infer_format, parse_envelope, serialize_envelope, validate_content
from .errors import (
    ArtifactNotFound,
    CorruptArtifact,
    DuplicateArtifactKey,
    ExecutionNotFound,
    ExecutionOutputMissing,
    InvalidArtifactContent,
    InvalidMessageRole,
    OpNotApplicable,
    RevisionConflict,
)
from .ops import ArtifactOp, compile_op, parse_op
from .patch import apply_patch
from .records import FORMAT_STRUCTURED, FORMATS, MESSAGE_ROLES, Artifact, Message, OpRecord, SourceRef, Version
from .sources import SourceCatalog, SourceTracker, StalenessReport
from .status import DEFAULT_MACHINE, STATUS_DRAFT, StatusMachine
from .store import ArtifactStore
from .util import execution_artifact_key, new_ulid, system_clock, validate_artifact_key

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Result Classes
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class CreateResult:
    artifact_id: str
    artifact_key: str
    version: int
    created: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "artifact_id": self.artifact_id,
            "artifact_key": self.artifact_key,
            "version": self.version,
            "created": self.created,
        }


@dataclass(frozen=True)
class ContentUpdate:
    artifact_key: str
    version: int
    updated_at: int

    def to_dict(self) -> dict[str, Any]:
        return {"artifact_key": self.artifact_key, "version": self.version, "updated_at": self.updated_at}


@dataclass(frozen=True)
class OpResult:
    next_envelope: dict[str, Any]
    log_entry: OpRecord

    def to_dict(self) -> dict[str, Any]:
        return {"next_envelope": self.next_envelope, "log_entry": self.log_entry.to_dict()}


@dataclass(frozen=True)
class StatusChange:
    artifact_key: str
    status: str
    status_changed_at: int
    changed: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "artifact_key": self.artifact_key,
            "status": self.status,
            "status_changed_at": self.status_changed_at,
            "changed": self.changed,
        }


@dataclass(frozen=True)
class ArtifactView:
    """An artifact with its history and on-the-fly staleness."""

    artifact: Artifact
    versions: list[Version]
    ops: list[OpRecord]
    messages: list[Message]
    staleness: StalenessReport
    next_message_cursor: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "artifact": self.artifact.to_dict(),
            "versions": [v.to_dict() for v in self.versions],
            "ops": [o.to_dict() for o in self.ops],
            "messages": [m.to_dict() for m in self.messages],
            "staleness": self.staleness.to_dict(),
        }
        if self.next_message_cursor is not None:
            result["next_message_cursor"] = self.next_message_cursor
        return result


@dataclass(frozen=True)
class ArtifactPage:
    artifacts: list[Artifact] = field(default_factory=list)
    next_cursor: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"artifacts": [a.to_dict() for a in self.artifacts]}
        if self.next_cursor is not None:
            result["next_cursor"] = self.next_cursor
        return result


SourceKey = tuple[str, str] | Mapping[str, str]


def _source_key(item: SourceKey) -> tuple[str, str]:
    if isinstance(item, Mapping):
        return (str(item.get("type", "")), str(item.get("id", "")))
    source_type, source_id = item
    return (str(source_type), str(source_id))


def _parse_cursor(cursor: str | None, name: str) -> int | None:
    if cursor is None or cursor == "":
        return None
    try:
        return int(cursor)
    except ValueError:
        raise ValueError(f"Invalid {name}: {cursor!r}") from None


def _limit(value: int | None, default: int, name: str) -> int:
    if value is None:
        return default
    if value < 0:
        raise ValueError(f"Invalid {name}: {value} (must be >= 0)")
    return value


class ArtifactEngine:
    """
    Versioned, status-gated artifact store.

    Collaborators:
        store: heads plus append-only version/op/message ledgers
        sources: resolves documents, entities and memories for staleness
        executions: upstream generation results (create_from_execution)
        authorizer: project-scoped read/write capability check
    """

    def __init__(
        self,
        store: ArtifactStore,
        sources: SourceCatalog,
        *,
        executions: ExecutionCatalog | None = None,
        authorizer: Authorizer | None = None,
        config: EngineConfig | None = None,
        clock: Callable[[], int] | None = None,
        status_machine: StatusMachine = DEFAULT_MACHINE,
    ):
        self.store = store
        self.config = config or EngineConfig()
        self.tracker = SourceTracker(sources)
        self.executions = executions
        self.authorizer = authorizer or LocalAuthorizer(self.config.actor)
        self.clock = clock or system_clock
        self.status_machine = status_machine

    @classmethod
    def open(cls, root: Path, *, authorizer: Authorizer | None = None) -> ArtifactEngine:
        """Open the engine for a workspace root (``<root>/.artledger``)."""
        config = load_config(root)
        catalog = Catalog.load(root)
        return cls(
            ArtifactStore(data_dir(root)),
            catalog,
            executions=catalog,
            authorizer=authorizer,
            config=config,
        )

    # -------------------------------------------------------------------------
    # Lookup helpers
    # -------------------------------------------------------------------------

    def _find(self, project_id: str, artifact_key: str) -> Artifact | None:
        artifact = self.store.find_by_key(project_id, artifact_key)
        if artifact is not None:
            return artifact
        # Fall back to treating the key as an internal id
        artifact = self.store.get(artifact_key)
        if artifact is not None and artifact.project_id == project_id:
            return artifact
        return None

    def _lookup(self, project_id: str, artifact_key: str) -> Artifact:
        artifact = self._find(project_id, artifact_key)
        if artifact is None:
            raise ArtifactNotFound(f"Artifact not found: {artifact_key}")
        return artifact

    def _get(self, artifact_id: str) -> Artifact:
        artifact = self.store.get(artifact_id)
        if artifact is None:
            raise ArtifactNotFound(f"Artifact not found: {artifact_id}")
        return artifact

    def _reload(self, artifact: Artifact) -> Artifact:
        return self._get(artifact.artifact_id)

    # -------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------

    def _insert(
        self,
        *,
        actor: str,
        project_id: str,
        artifact_key: str,
        artifact_type: str,
        title: str,
        fmt: str,
        content: str,
        sources: Sequence[SourceRef],
        execution_context: dict[str, Any] | None,
    ) -> Artifact:
        now = self.clock()
        artifact = Artifact(
            artifact_id=new_ulid(timestamp_ms=now),
            artifact_key=artifact_key,
            project_id=project_id,
            type=artifact_type,
            title=title,
            format=fmt,
            content=content,
            status=STATUS_DRAFT,
            created_by=actor,
            created_at=now,
            updated_at=now,
            status_changed_at=now,
            status_by=actor,
            sources=list(sources),
            execution_context=execution_context,
        )
        self.store.append_version(
            Version(
                version_id=new_ulid(timestamp_ms=now),
                artifact_id=artifact.artifact_id,
                artifact_key=artifact_key,
                project_id=project_id,
                version=1,
                format=fmt,
                content=content,
                sources=list(sources),
                execution_context=execution_context,
                created_at=now,
            )
        )
        self.store.put(artifact)
        logger.info("Created artifact %s (%s, %s) in %s", artifact_key, artifact_type, fmt, project_id)
        return artifact

    def create_from_execution(
        self,
        project_id: str,
        execution_id: str,
        title: str,
        artifact_type: str,
    ) -> CreateResult:
        """
        Create an artifact from an upstream execution result.

        Idempotent: the key is derived from the execution id, and an existing
        artifact with that key is returned unchanged.
        """
        actor = self.authorizer.require(project_id, "write")

        execution = self.executions.get_execution(execution_id) if self.executions else None
        if execution is None or execution.project_id != project_id:
            raise ExecutionNotFound(f"Execution not found: {execution_id}")
        if not execution.output:
            raise ExecutionOutputMissing(f"Execution {execution_id} has no output")

        artifact_key = execution_artifact_key(execution_id)
        with self.store.transaction(f"key:{project_id}:{artifact_key}"):
            existing = self._find(project_id, artifact_key)
            if existing is not None:
                latest = self.store.latest_version(existing.artifact_id)
                logger.debug("Artifact %s already exists for execution %s", artifact_key, execution_id)
                return CreateResult(
                    existing.artifact_id,
                    artifact_key,
                    latest.version if latest else 1,
                    created=False,
                )

            fmt = infer_format(execution.output)
            validate_content(fmt, execution.output)
            artifact = self._insert(
                actor=actor,
                project_id=project_id,
                artifact_key=artifact_key,
                artifact_type=artifact_type,
                title=title,
                fmt=fmt,
                content=execution.output,
                sources=execution.sources,
                execution_context=execution.execution_context(now=self.clock()),
            )
        return CreateResult(artifact.artifact_id, artifact_key, 1)

    def create(
        self,
        project_id: str,
        artifact_key: str,
        artifact_type: str,
        title: str,
        fmt: str,
        content: str,
        *,
        sources: Sequence[SourceRef] | None = None,
        execution_context: dict[str, Any] | None = None,
    ) -> CreateResult:
        """
        Create an artifact under a caller-chosen key.

        Raises:
            DuplicateArtifactKey: if the key already exists in the project
            InvalidArtifactContent: if structured content fails validation
        """
        actor = self.authorizer.require(project_id, "write")
        validate_artifact_key(artifact_key)
        if fmt not in FORMATS:
            raise InvalidArtifactContent(f"Unknown format: {fmt!r}")

        with self.store.transaction(f"key:{project_id}:{artifact_key}"):
            if self.store.find_by_key(project_id, artifact_key) is not None:
                raise DuplicateArtifactKey(f"Artifact key already exists: {artifact_key}")
            validate_content(fmt, content)
            artifact = self._insert(
                actor=actor,
                project_id=project_id,
                artifact_key=artifact_key,
                artifact_type=artifact_type,
                title=title,
                fmt=fmt,
                content=content,
                sources=sources or [],
                execution_context=execution_context,
            )
        return CreateResult(artifact.artifact_id, artifact_key, 1)

    # -------------------------------------------------------------------------
    # Content writes
    # -------------------------------------------------------------------------

    def _touch_after_write(self, artifact: Artifact, actor: str, now: int) -> None:
        """Common head bookkeeping for content-changing writes."""
        next_status = self.status_machine.after_write(artifact.status)
        if next_status != artifact.status:
            artifact.status = next_status
            artifact.status_changed_at = now
            artifact.status_by = actor
        artifact.status_context = {}
        artifact.updated_at = now

    def _next_version(self, artifact: Artifact) -> int:
        latest = self.store.latest_version(artifact.artifact_id)
        return (latest.version if latest else 0) + 1

    def _append_snapshot(self, artifact: Artifact, version: int, now: int) -> None:
        self.store.append_version(
            Version(
                version_id=new_ulid(timestamp_ms=now),
                artifact_id=artifact.artifact_id,
                artifact_key=artifact.artifact_key,
                project_id=artifact.project_id,
                version=version,
                format=artifact.format,
                content=artifact.content,
                sources=list(artifact.sources),
                execution_context=artifact.execution_context,
                created_at=now,
            )
        )

    def update_content(
        self,
        project_id: str,
        artifact_key: str,
        content: str,
        *,
        fmt: str | None = None,
        sources: Sequence[SourceRef] | None = None,
        execution_context: dict[str, Any] | None = None,
    ) -> ContentUpdate:
        """
        Replace content wholesale and append a new version.

        Sources and execution context carry forward unless given.

        Raises:
            ArtifactLocked: if the artifact is applied or saved
            InvalidArtifactContent: if structured content fails validation
        """
        actor = self.authorizer.require(project_id, "write")
        artifact = self._lookup(project_id, artifact_key)
        if fmt is not None and fmt not in FORMATS:
            raise InvalidArtifactContent(f"Unknown format: {fmt!r}")

        with self.store.transaction(artifact.artifact_id):
            artifact = self._reload(artifact)
            self.status_machine.ensure_writable(artifact.artifact_key, artifact.status)

            next_fmt = fmt or artifact.format
            validate_content(next_fmt, content)

            now = self.clock()
            version = self._next_version(artifact)
            artifact.content = content
            artifact.format = next_fmt
            if sources is not None:
                artifact.sources = list(sources)
            if execution_context is not None:
                artifact.execution_context = execution_context
            self._touch_after_write(artifact, actor, now)

            self._append_snapshot(artifact, version, now)
            self.store.put(artifact)

        logger.info("Updated %s to version %d (status=%s)", artifact.artifact_key, version, artifact.status)
        return ContentUpdate(artifact.artifact_key, version, now)

    def apply_op(
        self,
        project_id: str,
        artifact_key: str,
        op: ArtifactOp | dict[str, Any],
        *,
        base_rev: int | None = None,
    ) -> OpResult:
        """
        Apply one typed operation to a structured artifact.

        ``base_rev`` is the envelope revision the caller derived the op from;
        when given it must match the stored revision.

        Raises:
            ArtifactLocked: if the artifact is applied or saved
            CorruptArtifact: if stored structured content no longer parses
            RevisionConflict: if ``base_rev`` is stale
            OpNotApplicable: if the op does not apply cleanly
        """
        actor = self.authorizer.require(project_id, "write")
        typed_op = parse_op(op)
        artifact = self._lookup(project_id, artifact_key)

        with self.store.transaction(artifact.artifact_id):
            artifact = self._reload(artifact)
            self.status_machine.ensure_writable(artifact.artifact_key, artifact.status)
            if artifact.format != FORMAT_STRUCTURED:
                raise OpNotApplicable(typed_op.type, "", f"artifact format is {artifact.format}, not structured")

            try:
                envelope = parse_envelope(artifact.content)
            except InvalidArtifactContent as e:
                raise CorruptArtifact(f"Stored content of {artifact.artifact_key} is corrupt: {e}") from e

            if base_rev is not None and base_rev != envelope["rev"]:
                raise RevisionConflict(base_rev, envelope["rev"])

            compiled = compile_op(envelope, typed_op)
            next_envelope = apply_patch(envelope, compiled.patch, op_type=typed_op.type)
            errors = envelope_errors(next_envelope)
            if errors:
                raise OpNotApplicable(typed_op.type, "/data", "; ".join(errors))

            now = self.clock()
            log_entry = OpRecord(
                op_id=new_ulid(timestamp_ms=now),
                artifact_id=artifact.artifact_id,
                artifact_key=artifact.artifact_key,
                project_id=artifact.project_id,
                base_rev=compiled.base_rev,
                next_rev=compiled.next_rev,
                op=typed_op.to_dict(),
                patch=compiled.patch,
                created_at=now,
                created_by=actor,
            )
            self.store.append_op(log_entry)

            version = self._next_version(artifact)
            artifact.content = serialize_envelope(next_envelope)
            self._touch_after_write(artifact, actor, now)
            self._append_snapshot(artifact, version, now)
            self.store.put(artifact)

        logger.info(
            "Applied %s to %s (rev %d -> %d)",
            typed_op.type,
            artifact.artifact_key,
            compiled.base_rev,
            compiled.next_rev,
        )
        return OpResult(next_envelope, log_entry)

    def apply_op_with_retry(
        self,
        project_id: str,
        artifact_key: str,
        derive_op: Callable[[dict[str, Any]], ArtifactOp | dict[str, Any]],
        *,
        attempts: int | None = None,
    ) -> OpResult:
        """
        Optimistic apply: derive the op from the current envelope, apply it
        against that revision, and on a revision conflict re-read and
        re-derive. Bounded; the last conflict is raised when exhausted.
        """
        limit = attempts if attempts is not None else self.config.conflict_retries
        limit = max(MIN_CONFLICT_RETRIES, min(MAX_CONFLICT_RETRIES, limit))

        last_conflict: RevisionConflict | None = None
        for attempt in range(1, limit + 1):
            artifact = self._lookup(project_id, artifact_key)
            try:
                envelope = parse_envelope(artifact.content)
            except InvalidArtifactContent as e:
                raise CorruptArtifact(f"Stored content of {artifact.artifact_key} is corrupt: {e}") from e
            op = derive_op(envelope)
            try:
                return self.apply_op(project_id, artifact_key, op, base_rev=envelope["rev"])
            except RevisionConflict as e:
                last_conflict = e
                logger.warning("Revision conflict on %s (attempt %d/%d): %s", artifact_key, attempt, limit, e)

        assert last_conflict is not None
        raise last_conflict

    # -------------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------------

    def set_status(
        self,
        project_id: str,
        artifact_key: str,
        status: str,
        context: dict[str, Any] | None = None,
    ) -> StatusChange:
        """
        Move an artifact through its lifecycle.

        A request for the current status is a no-op success.

        Raises:
            InvalidStatusTransition: if the transition is not allowed
        """
        actor = self.authorizer.require(project_id, "write")
        artifact = self._lookup(project_id, artifact_key)

        with self.store.transaction(artifact.artifact_id):
            artifact = self._reload(artifact)
            transition = self.status_machine.transition(artifact.status, status, context)
            if not transition.changed:
                return StatusChange(artifact.artifact_key, artifact.status, artifact.status_changed_at, changed=False)

            now = self.clock()
            artifact.status = transition.to_status
            artifact.status_context = transition.status_context
            artifact.status_changed_at = now
            artifact.status_by = actor
            artifact.updated_at = now
            self.store.put(artifact)

        logger.info("Status of %s: %s -> %s", artifact.artifact_key, transition.from_status, transition.to_status)
        return StatusChange(artifact.artifact_key, transition.to_status, now)

    # -------------------------------------------------------------------------
    # Sources
    # -------------------------------------------------------------------------

    def update_sources(
        self,
        artifact_id: str,
        *,
        add: Iterable[SourceKey] | None = None,
        remove: Iterable[SourceKey] | None = None,
    ) -> list[SourceRef]:
        """
        Manually attach or detach sources.

        Removal is a set difference on ``(type, id)``; additions are resolved
        strictly and capture the current revision as their baseline. Already
        attached sources are left as they are.

        Raises:
            SourceNotFound: if an added source cannot be resolved
        """
        artifact = self._get(artifact_id)
        self.authorizer.require(artifact.project_id, "write")

        with self.store.transaction(artifact.artifact_id):
            artifact = self._reload(artifact)
            now = self.clock()

            sources = list(artifact.sources)
            remove_keys = {_source_key(item) for item in (remove or [])}
            if remove_keys:
                sources = [s for s in sources if s.key not in remove_keys]

            for item in add or []:
                source_type, source_id = _source_key(item)
                if any(s.key == (source_type, source_id) for s in sources):
                    continue
                sources.append(self.tracker.capture(artifact.project_id, source_type, source_id, added_at=now))

            artifact.sources = sources
            artifact.updated_at = now
            self.store.put(artifact)

        logger.info("Sources of %s: %d attached", artifact.artifact_key, len(sources))
        return sources

    def check_staleness(self, artifact_id: str) -> StalenessReport:
        artifact = self._get(artifact_id)
        self.authorizer.require(artifact.project_id, "read")
        return self.tracker.check(artifact.project_id, artifact.sources)

    # -------------------------------------------------------------------------
    # Messages
    # -------------------------------------------------------------------------

    def append_message(
        self,
        project_id: str,
        artifact_key: str,
        role: str,
        content: str,
        context: Any = None,
    ) -> str:
        """Attach a conversational message. Content and status are untouched."""
        self.authorizer.require(project_id, "write")
        if role not in MESSAGE_ROLES:
            expected = ", ".join(sorted(MESSAGE_ROLES))
            raise InvalidMessageRole(f"Invalid message role: {role} (expected one of {expected})")
        artifact = self._lookup(project_id, artifact_key)

        with self.store.transaction(artifact.artifact_id):
            artifact = self._reload(artifact)
            now = self.clock()
            message = Message(
                message_id=new_ulid(timestamp_ms=now),
                artifact_id=artifact.artifact_id,
                artifact_key=artifact.artifact_key,
                project_id=artifact.project_id,
                role=role,
                content=content,
                context=context,
                created_at=now,
            )
            self.store.append_message(message)
            artifact.updated_at = now
            self.store.put(artifact)
        return message.message_id

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get(self, project_id: str, artifact_key: str) -> Artifact:
        """Fetch the head of an artifact by key (or id)."""
        self.authorizer.require(project_id, "read")
        return self._lookup(project_id, artifact_key)

    def get_by_key(
        self,
        project_id: str,
        artifact_key: str,
        *,
        message_limit: int | None = None,
        message_cursor: str | None = None,
        version_limit: int | None = None,
    ) -> ArtifactView:
        """
        Fetch an artifact with its history.

        Versions are newest-first; ops and messages oldest-first. Messages
        page forward from ``message_cursor`` (a ``created_at`` value).
        """
        self.authorizer.require(project_id, "read")
        artifact = self._lookup(project_id, artifact_key)

        version_limit = _limit(version_limit, self.config.version_limit, "version limit")
        message_limit = _limit(message_limit, self.config.message_limit, "message limit")
        after = _parse_cursor(message_cursor, "message cursor")

        versions = sorted(self.store.versions_for(artifact.artifact_id), key=lambda v: v.version, reverse=True)
        ops = self.store.ops_for(artifact.artifact_id)[: self.config.op_limit]
        messages = [
            m for m in self.store.messages_for(artifact.artifact_id) if after is None or m.created_at > after
        ][:message_limit]
        next_cursor = str(messages[-1].created_at) if messages and len(messages) == message_limit else None

        logger.debug("Read %s: %d versions, %d ops, %d messages", artifact_key, len(versions), len(ops), len(messages))
        return ArtifactView(
            artifact=artifact,
            versions=versions[:version_limit],
            ops=ops,
            messages=messages,
            staleness=self.tracker.check(artifact.project_id, artifact.sources),
            next_message_cursor=next_cursor,
        )

    def list(
        self,
        project_id: str,
        *,
        artifact_type: str | None = None,
        status: str | None = None,
        limit: int | None = None,
    ) -> list[Artifact]:
        """Most recently updated artifacts, optionally filtered by type and status."""
        self.authorizer.require(project_id, "read")
        artifacts = [
            a
            for a in self.store.iter_artifacts(project_id)
            if (artifact_type is None or a.type == artifact_type) and (status is None or a.status == status)
        ]
        artifacts.sort(key=lambda a: (a.updated_at, a.artifact_id), reverse=True)
        return artifacts[: _limit(limit, self.config.list_limit, "limit")]

    def list_by_project(
        self,
        project_id: str,
        *,
        limit: int | None = None,
        cursor: str | None = None,
    ) -> ArtifactPage:
        """Page through a project's artifacts by recency (cursor = updated_at)."""
        self.authorizer.require(project_id, "read")
        limit = _limit(limit, self.config.list_limit, "limit")
        before = _parse_cursor(cursor, "cursor")

        artifacts = [a for a in self.store.iter_artifacts(project_id) if before is None or a.updated_at < before]
        artifacts.sort(key=lambda a: (a.updated_at, a.artifact_id), reverse=True)
        page = artifacts[:limit]
        next_cursor = str(page[-1].updated_at) if page and len(page) == limit else None
        return ArtifactPage(page, next_cursor)

    def versions(self, project_id: str, artifact_key: str) -> list[Version]:
        """Full version history, oldest first."""
        self.authorizer.require(project_id, "read")
        artifact = self._lookup(project_id, artifact_key)
        return sorted(self.store.versions_for(artifact.artifact_id), key=lambda v: v.version)

    def version_diff(self, project_id: str, artifact_key: str, from_version: int, to_version: int) -> str:
        """Unified diff between two version contents."""
        by_number = {v.version: v for v in self.versions(project_id, artifact_key)}
        for number in (from_version, to_version):
            if number not in by_number:
                raise ArtifactNotFound(f"Version {number} not found for {artifact_key}")
        diff = difflib.unified_diff(
            by_number[from_version].content.splitlines(keepends=True),
            by_number[to_version].content.splitlines(keepends=True),
            fromfile=f"{artifact_key}@v{from_version}",
            tofile=f"{artifact_key}@v{to_version}",
        )
        return "".join(diff)
