"""
Small utilities: ULIDs, millisecond clocks, key validation.
"""

from __future__ import annotations

import os
import re
import threading
import time

from .errors import InvalidArtifactKey


_CROCKFORD32 = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"
_ARTIFACT_KEY_RE = re.compile(r"^[a-z0-9:_-]+$", re.IGNORECASE)


def _encode_crockford_base32(value: int, length: int) -> str:
    chars: list[str] = []
    for _ in range(length):
        chars.append(_CROCKFORD32[value & 31])
        value >>= 5
    return "".join(reversed(chars))


def new_ulid(*, timestamp_ms: int | None = None) -> str:
    """
    Generate a ULID (26 chars, Crockford base32).

    ULID = 48-bit millisecond timestamp + 80-bit randomness.
    """
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)

    if not (0 <= timestamp_ms < (1 << 48)):
        raise ValueError("timestamp_ms out of range for ULID")

    randomness = int.from_bytes(os.urandom(10), "big")
    value = (timestamp_ms << 80) | randomness
    return _encode_crockford_base32(value, 26)


class MonotonicClock:
    """
    Wall-clock milliseconds that never repeat or go backwards.

    Two writes in the same millisecond get consecutive values, so
    ``updated_at`` and ``status_changed_at`` always advance.
    """

    def __init__(self) -> None:
        self._last = 0
        self._lock = threading.Lock()

    def __call__(self) -> int:
        with self._lock:
            now = int(time.time() * 1000)
            if now <= self._last:
                now = self._last + 1
            self._last = now
            return now


# Shared by every engine in the process so timestamps never collide across instances
system_clock = MonotonicClock()


def validate_artifact_key(artifact_key: str) -> str:
    if not isinstance(artifact_key, str) or not _ARTIFACT_KEY_RE.match(artifact_key):
        raise InvalidArtifactKey(f"Invalid artifact key: {artifact_key!r}")
    return artifact_key


def execution_artifact_key(execution_id: str) -> str:
    """Deterministic artifact key for an upstream execution."""
    return f"artifact-{execution_id}"
