"""
Project-scoped capability checks.

The engine asks an Authorizer before any engine logic runs: ``read`` for
queries, ``write`` for mutations. The answer is the caller's actor string
("human:alice", "agent:planner", ...).
"""

from __future__ import annotations

from typing import Iterable, Literal, Protocol

from .errors import Forbidden

Access = Literal["read", "write"]


class Authorizer(Protocol):
    def require(self, project_id: str, access: Access) -> str:
        ...


class LocalAuthorizer:
    """
    Single-actor authorizer.

    Grants the actor every project, or only ``projects`` when given.
    ``read_only`` projects reject writes.
    """

    def __init__(
        self,
        actor: str = "human:local",
        *,
        projects: Iterable[str] | None = None,
        read_only: Iterable[str] = (),
    ):
        self.actor = actor
        self.projects = frozenset(projects) if projects is not None else None
        self.read_only = frozenset(read_only)

    def require(self, project_id: str, access: Access) -> str:
        if self.projects is not None and project_id not in self.projects:
            raise Forbidden(f"{self.actor} has no access to project {project_id}")
        if access == "write" and project_id in self.read_only:
            raise Forbidden(f"{self.actor} cannot write to project {project_id}")
        return self.actor
