"""
Envelope codec.

Structured content is a JSON object with an integer ``rev`` and a ``data``
payload. The engine treats ``data`` as an opaque tree of dicts, lists and
scalars; type packs add per-type checks when the envelope names a type.
"""

from __future__ import annotations

import json
from typing import Any

from .errors import InvalidArtifactContent
from .records import FORMAT_FREEFORM, FORMAT_STRUCTURED
from .types import get_type_pack


def envelope_errors(value: Any) -> list[str]:
    """Return shape errors for a parsed envelope (empty when valid)."""
    if not isinstance(value, dict):
        return ["envelope must be a JSON object"]

    errors: list[str] = []
    rev = value.get("rev")
    if isinstance(rev, bool) or not isinstance(rev, int):
        errors.append("envelope.rev must be an integer")
    elif rev < 0:
        errors.append("envelope.rev must not be negative")
    if "data" not in value:
        errors.append("envelope.data is required")
        return errors

    pack = get_type_pack(value.get("type"))
    if pack is not None:
        errors.extend(pack.validate(value["data"]))
    return errors


def parse_envelope(content: str) -> dict[str, Any]:
    """
    Parse and validate serialized structured content.

    Raises:
        InvalidArtifactContent: on a JSON error or an envelope shape error
    """
    try:
        value = json.loads(content)
    except (TypeError, ValueError) as e:
        raise InvalidArtifactContent(f"Structured content is not valid JSON: {e}") from e

    errors = envelope_errors(value)
    if errors:
        raise InvalidArtifactContent("Invalid envelope: " + "; ".join(errors))
    return value


def serialize_envelope(envelope: dict[str, Any]) -> str:
    return json.dumps(envelope, indent=2)


def infer_format(content: str) -> str:
    """
    Infer the format of raw content.

    Conservative: only content that starts with ``{`` and parses into a
    valid envelope is structured.
    """
    if not content.strip().startswith("{"):
        return FORMAT_FREEFORM
    try:
        parse_envelope(content)
    except InvalidArtifactContent:
        return FORMAT_FREEFORM
    return FORMAT_STRUCTURED


def validate_content(fmt: str, content: str) -> None:
    """Validate content for a format. Only structured content is checked."""
    if fmt != FORMAT_STRUCTURED:
        return
    parse_envelope(content)
