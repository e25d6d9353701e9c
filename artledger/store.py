"""
File-backed artifact store.

Heads (the mutable Artifact records) live one JSON file per artifact and are
replaced atomically. History lives in append-only JSONL ledgers:

    .artledger/artifacts/<artifact_id>.json
    .artledger/versions.jsonl
    .artledger/ops.jsonl
    .artledger/messages.jsonl
    .artledger/locks/<digest>.lock

INVARIANT: ledger lines are never modified or deleted. The only ledger write
operation is append().

Several processes may share one data directory. ``transaction`` takes an
exclusive OS file lock as well as a thread lock, and every read picks up
ledger lines and heads written by other processes since the last read.
"""

from __future__ import annotations

import hashlib
import logging
import sys
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Callable, Generic, Iterator, Protocol, TypeVar

from .records import Artifact, Message, OpRecord, Version

if sys.platform == "win32":
    import msvcrt
else:
    import fcntl

logger = logging.getLogger(__name__)

LOCK_TIMEOUT_MS = 10_000


@contextmanager
def file_lock(handle: IO[bytes], timeout_ms: int = LOCK_TIMEOUT_MS) -> Iterator[None]:
    """Hold an exclusive lock on an open file, across processes."""
    if sys.platform == "win32":
        start = time.monotonic()
        handle.seek(0)
        while True:
            try:
                msvcrt.locking(handle.fileno(), msvcrt.LK_NBLCK, 1)
                break
            except OSError:
                if (time.monotonic() - start) * 1000 > timeout_ms:
                    raise TimeoutError(f"Could not acquire lock on {handle.name}")
                time.sleep(0.01)
        try:
            yield
        finally:
            handle.seek(0)
            msvcrt.locking(handle.fileno(), msvcrt.LK_UNLCK, 1)
    else:
        fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
        try:
            yield
        finally:
            fcntl.flock(handle.fileno(), fcntl.LOCK_UN)


class _LedgerRecord(Protocol):
    artifact_id: str

    def to_json(self) -> str:
        ...


R = TypeVar("R", bound=_LedgerRecord)


class RecordLedger(Generic[R]):
    """Append-only JSONL ledger of one record type, indexed by artifact_id."""

    def __init__(self, path: Path, parse: Callable[[str], R]):
        self.path = path
        self._parse = parse

        # Query indexes, extended from the last read offset
        self._records: list[R] = []
        self._by_artifact_id: dict[str, list[int]] = {}
        self._offset = 0
        self._guard = threading.Lock()

    def refresh(self) -> None:
        """Index complete lines appended since the last read, by any writer."""
        with self._guard:
            if not self.path.exists():
                return
            with self.path.open("rb") as f:
                f.seek(self._offset)
                chunk = f.read()
            # A line still being written by another process has no newline yet
            end = chunk.rfind(b"\n") + 1
            for raw in chunk[:end].splitlines():
                line = raw.decode("utf-8").strip()
                if line:
                    record = self._parse(line)
                    self._by_artifact_id.setdefault(record.artifact_id, []).append(len(self._records))
                    self._records.append(record)
            self._offset += end

    def append(self, record: R) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as f:
            f.write(record.to_json() + "\n")

    def iter_records(self) -> Iterator[R]:
        """Iterate over all records in append order."""
        self.refresh()
        yield from list(self._records)

    def for_artifact(self, artifact_id: str) -> list[R]:
        """All records for an artifact, in append order."""
        self.refresh()
        return [self._records[i] for i in self._by_artifact_id.get(artifact_id, [])]

    def latest(self, artifact_id: str) -> R | None:
        self.refresh()
        indices = self._by_artifact_id.get(artifact_id)
        return self._records[indices[-1]] if indices else None

    def count(self) -> int:
        self.refresh()
        return len(self._records)


class ArtifactStore:
    """
    Artifact heads plus their version, op and message ledgers.

    ``transaction(lock_key)`` serializes read-modify-write cycles on one
    artifact, between threads and between processes; the engine wraps every
    mutation in it.
    """

    def __init__(self, data_dir: Path):
        self.data_dir = data_dir
        self.heads_dir = data_dir / "artifacts"
        self.locks_dir = data_dir / "locks"
        self.versions: RecordLedger[Version] = RecordLedger(data_dir / "versions.jsonl", Version.from_json)
        self.ops: RecordLedger[OpRecord] = RecordLedger(data_dir / "ops.jsonl", OpRecord.from_json)
        self.messages: RecordLedger[Message] = RecordLedger(data_dir / "messages.jsonl", Message.from_json)

        self._locks: dict[str, threading.RLock] = {}
        self._depth: dict[str, int] = {}
        self._locks_guard = threading.Lock()

        # (project_id, artifact_key) -> artifact_id; keys never change, so
        # entries stay valid and only misses need a rescan
        self._by_key: dict[tuple[str, str], str] = {}
        self._indexed_ids: set[str] = set()
        self._keys_guard = threading.Lock()

    # -------------------------------------------------------------------------
    # Locking
    # -------------------------------------------------------------------------

    def _lock_path(self, lock_key: str) -> Path:
        digest = hashlib.sha256(lock_key.encode("utf-8")).hexdigest()[:32]
        return self.locks_dir / f"{digest}.lock"

    @contextmanager
    def transaction(self, lock_key: str) -> Iterator[None]:
        with self._locks_guard:
            lock = self._locks.setdefault(lock_key, threading.RLock())
        with lock:
            # Re-entry on the same thread already holds the file lock
            if self._depth.get(lock_key):
                self._depth[lock_key] += 1
                try:
                    yield
                finally:
                    self._depth[lock_key] -= 1
                return

            self.locks_dir.mkdir(parents=True, exist_ok=True)
            with self._lock_path(lock_key).open("a+b") as handle, file_lock(handle):
                self._depth[lock_key] = 1
                try:
                    yield
                finally:
                    self._depth[lock_key] = 0

    # -------------------------------------------------------------------------
    # Heads
    # -------------------------------------------------------------------------

    def _head_path(self, artifact_id: str) -> Path:
        return self.heads_dir / f"{artifact_id}.json"

    def _index_new_heads(self) -> None:
        if not self.heads_dir.exists():
            return
        with self._keys_guard:
            for path in self.heads_dir.glob("*.json"):
                if path.stem in self._indexed_ids:
                    continue
                artifact = Artifact.from_json(path.read_text(encoding="utf-8"))
                self._by_key[(artifact.project_id, artifact.artifact_key)] = artifact.artifact_id
                self._indexed_ids.add(artifact.artifact_id)

    def get(self, artifact_id: str) -> Artifact | None:
        path = self._head_path(artifact_id)
        if "/" in artifact_id or "\\" in artifact_id or not path.exists():
            return None
        return Artifact.from_json(path.read_text(encoding="utf-8"))

    def find_by_key(self, project_id: str, artifact_key: str) -> Artifact | None:
        artifact_id = self._by_key.get((project_id, artifact_key))
        if artifact_id is None:
            # Another process may have created it since the last scan
            self._index_new_heads()
            artifact_id = self._by_key.get((project_id, artifact_key))
        return self.get(artifact_id) if artifact_id else None

    def put(self, artifact: Artifact) -> None:
        """Write a head atomically (write to temp, then rename)."""
        self.heads_dir.mkdir(parents=True, exist_ok=True)
        path = self._head_path(artifact.artifact_id)
        temp_path = path.with_suffix(".tmp")
        temp_path.write_text(artifact.to_json(), encoding="utf-8")
        temp_path.replace(path)

        with self._keys_guard:
            self._by_key[(artifact.project_id, artifact.artifact_key)] = artifact.artifact_id
            self._indexed_ids.add(artifact.artifact_id)

    def iter_artifacts(self, project_id: str | None = None) -> Iterator[Artifact]:
        if not self.heads_dir.exists():
            return
        for path in sorted(self.heads_dir.glob("*.json")):
            artifact = Artifact.from_json(path.read_text(encoding="utf-8"))
            if project_id is None or artifact.project_id == project_id:
                yield artifact

    # -------------------------------------------------------------------------
    # History
    # -------------------------------------------------------------------------

    def append_version(self, version: Version) -> None:
        self.versions.append(version)
        logger.debug("Appended version %d for %s", version.version, version.artifact_key)

    def append_op(self, op: OpRecord) -> None:
        self.ops.append(op)
        logger.debug("Appended op %s (rev %d -> %d) for %s", op.op.get("type"), op.base_rev, op.next_rev, op.artifact_key)

    def append_message(self, message: Message) -> None:
        self.messages.append(message)

    def versions_for(self, artifact_id: str) -> list[Version]:
        return self.versions.for_artifact(artifact_id)

    def latest_version(self, artifact_id: str) -> Version | None:
        return self.versions.latest(artifact_id)

    def ops_for(self, artifact_id: str) -> list[OpRecord]:
        return self.ops.for_artifact(artifact_id)

    def messages_for(self, artifact_id: str) -> list[Message]:
        return self.messages.for_artifact(artifact_id)
