"""
Artifact status lifecycle.

    draft -> manually-modified -> applied -> saved

``applied`` and ``saved`` are write-protected; ``saved`` is terminal. The
transition table is the single source of truth; every status change goes
through ``StatusMachine.transition``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

from .errors import ArtifactLocked, InvalidStatusTransition

STATUS_DRAFT = "draft"
STATUS_MANUALLY_MODIFIED = "manually-modified"
STATUS_APPLIED = "applied"
STATUS_SAVED = "saved"

STATUSES = (STATUS_DRAFT, STATUS_MANUALLY_MODIFIED, STATUS_APPLIED, STATUS_SAVED)

ALLOWED_TRANSITIONS: Mapping[str, frozenset[str]] = MappingProxyType({
    STATUS_DRAFT: frozenset({STATUS_MANUALLY_MODIFIED, STATUS_APPLIED, STATUS_SAVED}),
    STATUS_MANUALLY_MODIFIED: frozenset({STATUS_APPLIED, STATUS_SAVED}),
    STATUS_APPLIED: frozenset({STATUS_SAVED}),
    STATUS_SAVED: frozenset(),
})

LOCKED_STATUSES = frozenset({STATUS_APPLIED, STATUS_SAVED})

# Statuses that accept a status_context on entry
CONTEXT_STATUSES = frozenset({STATUS_APPLIED, STATUS_SAVED})


@dataclass(frozen=True)
class Transition:
    """Outcome of a checked transition."""

    from_status: str
    to_status: str
    status_context: dict[str, Any] = field(default_factory=dict)

    @property
    def changed(self) -> bool:
        return self.from_status != self.to_status


class StatusMachine:
    """Finite-state machine over artifact statuses."""

    def __init__(self, transitions: Mapping[str, frozenset[str]] = ALLOWED_TRANSITIONS):
        self.transitions = transitions

    def can_transition(self, from_status: str, to_status: str) -> bool:
        if from_status == to_status:
            return from_status in self.transitions
        return to_status in self.transitions.get(from_status, frozenset())

    def transition(
        self,
        from_status: str,
        to_status: str,
        context: dict[str, Any] | None = None,
    ) -> Transition:
        """
        Check a transition and compute the status_context to store.

        Same-state requests are no-op successes. Entering applied/saved keeps
        the supplied context; entering any other state clears it.

        Raises:
            InvalidStatusTransition: if the pair is not in the table
        """
        if not self.can_transition(from_status, to_status):
            raise InvalidStatusTransition(from_status, to_status)
        status_context = dict(context or {}) if to_status in CONTEXT_STATUSES else {}
        return Transition(from_status, to_status, status_context)

    def is_locked(self, status: str) -> bool:
        return status in LOCKED_STATUSES

    def ensure_writable(self, artifact_key: str, status: str) -> None:
        if self.is_locked(status):
            raise ArtifactLocked(artifact_key, status)

    def after_write(self, status: str) -> str:
        """Status after a content write: drafts become manually-modified."""
        if status == STATUS_DRAFT:
            return self.transition(STATUS_DRAFT, STATUS_MANUALLY_MODIFIED).to_status
        return status

    def next_statuses(self, status: str) -> list[str]:
        return [s for s in STATUSES if s in self.transitions.get(status, frozenset())]


DEFAULT_MACHINE = StatusMachine()
