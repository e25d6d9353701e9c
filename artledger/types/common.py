from __future__ import annotations

import re
from typing import Any

_ID_RE = re.compile(r"^[a-z0-9:_-]+$", re.IGNORECASE)


def is_id(value: Any) -> bool:
    return isinstance(value, str) and bool(_ID_RE.match(value))


def check_id_list(data: dict[str, Any], key: str, prefix: str, errors: list[str]) -> list[str]:
    value = data.get(key)
    if not isinstance(value, list):
        errors.append(f"{prefix}.{key} must be a list of ids")
        return []
    for i, item in enumerate(value):
        if not is_id(item):
            errors.append(f"{prefix}.{key}[{i}] must be an id")
    return [v for v in value if isinstance(v, str)]


def check_record_map(
    data: dict[str, Any],
    key: str,
    id_field: str,
    prefix: str,
    errors: list[str],
) -> dict[str, dict[str, Any]]:
    """Check a ``{id: {id_field: id, ...}}`` map; return the well-formed entries."""
    value = data.get(key)
    if not isinstance(value, dict):
        errors.append(f"{prefix}.{key} must be an object")
        return {}
    out: dict[str, dict[str, Any]] = {}
    for record_id, record in value.items():
        if not isinstance(record, dict):
            errors.append(f"{prefix}.{key}.{record_id} must be an object")
            continue
        if record.get(id_field) != record_id:
            errors.append(f"{prefix}.{key}.{record_id}.{id_field} must equal its key")
            continue
        out[record_id] = record
    return out


def check_order_refs(order: list[str], records: dict[str, Any], label: str, errors: list[str]) -> None:
    for item in order:
        if item not in records:
            errors.append(f"{label} references unknown id {item!r}")


def check_str(record: dict[str, Any], key: str, label: str, errors: list[str], *, optional: bool = False) -> None:
    if key not in record and optional:
        return
    if not isinstance(record.get(key), str):
        errors.append(f"{label}.{key} must be a string")
