"""
Envelope type packs.

A type pack validates the ``data`` payload of an envelope whose ``type`` it
is registered for. Envelopes with no type, or a type with no pack, only get
the minimal envelope shape check.
"""

from __future__ import annotations

from typing import Any, Protocol


class EnvelopeTypePack(Protocol):
    def validate(self, data: Any) -> list[str]:
        ...


from .diagram_pack import DiagramTypePack
from .outline_pack import OutlineTypePack
from .prose_pack import ProseTypePack
from .table_pack import TableTypePack
from .timeline_pack import TimelineTypePack


TYPE_PACKS: dict[str, EnvelopeTypePack] = {
    "prose": ProseTypePack(),
    "table": TableTypePack(),
    "diagram": DiagramTypePack(),
    "timeline": TimelineTypePack(),
    "outline": OutlineTypePack(),
}


def get_type_pack(envelope_type: str | None) -> EnvelopeTypePack | None:
    """Get type pack for an envelope type (case-sensitive, None-safe)."""
    if not isinstance(envelope_type, str):
        return None
    return TYPE_PACKS.get(envelope_type.strip())


def list_envelope_types() -> list[str]:
    return sorted(TYPE_PACKS.keys())
