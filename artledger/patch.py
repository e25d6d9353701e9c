"""
Generic patch instructions over JSON-like trees.

A patch is a list of ``{"op": ..., "path": ...}`` instructions in the
RFC 6902 vocabulary (test, add, replace, remove, move, copy) addressed with
JSON Pointers. Application is strict and never mutates its input: a missing
target, a missing parent or an out-of-range index makes the whole patch
inapplicable.
"""

from __future__ import annotations

import copy
from typing import Any

from .errors import OpNotApplicable, RevisionConflict

PATCH_OPS = frozenset({"test", "add", "replace", "remove", "move", "copy"})

REV_POINTER = "/rev"


class PatchError(Exception):
    """Raised by the low-level pointer helpers; mapped to OpNotApplicable."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


def escape_segment(segment: str) -> str:
    return segment.replace("~", "~0").replace("/", "~1")


def pointer(*segments: str | int) -> str:
    """Build a JSON Pointer from raw segments."""
    return "".join("/" + escape_segment(str(s)) for s in segments)


def decode_pointer(path: str) -> list[str]:
    if path == "":
        return []
    if not path.startswith("/"):
        raise PatchError(path, "pointer must start with '/'")
    return [s.replace("~1", "/").replace("~0", "~") for s in path[1:].split("/")]


def _list_index(container: list[Any], segment: str, path: str, *, allow_end: bool) -> int:
    if segment == "-" and allow_end:
        return len(container)
    if not segment.isdigit() or (len(segment) > 1 and segment.startswith("0")):
        raise PatchError(path, f"invalid array index {segment!r}")
    index = int(segment)
    upper = len(container) if allow_end else len(container) - 1
    if index > upper:
        raise PatchError(path, f"array index {index} out of range")
    return index


def _child(container: Any, segment: str, path: str) -> Any:
    if isinstance(container, dict):
        if segment not in container:
            raise PatchError(path, f"missing key {segment!r}")
        return container[segment]
    if isinstance(container, list):
        return container[_list_index(container, segment, path, allow_end=False)]
    raise PatchError(path, f"cannot descend into {type(container).__name__}")


def get_at(document: Any, path: str) -> Any:
    """Return the value at ``path``; raises PatchError when absent."""
    current = document
    for segment in decode_pointer(path):
        current = _child(current, segment, path)
    return current


def has_path(document: Any, path: str) -> bool:
    try:
        get_at(document, path)
    except PatchError:
        return False
    return True


def _parent(document: Any, path: str) -> tuple[Any, str]:
    segments = decode_pointer(path)
    if not segments:
        raise PatchError(path, "operation not allowed on the document root")
    current = document
    for segment in segments[:-1]:
        current = _child(current, segment, path)
    return current, segments[-1]


def _add(document: Any, path: str, value: Any) -> None:
    parent, last = _parent(document, path)
    if isinstance(parent, dict):
        parent[last] = value
    elif isinstance(parent, list):
        parent.insert(_list_index(parent, last, path, allow_end=True), value)
    else:
        raise PatchError(path, f"parent is {type(parent).__name__}, not a container")


def _replace(document: Any, path: str, value: Any) -> None:
    parent, last = _parent(document, path)
    if isinstance(parent, dict):
        if last not in parent:
            raise PatchError(path, f"missing key {last!r}")
        parent[last] = value
    elif isinstance(parent, list):
        parent[_list_index(parent, last, path, allow_end=False)] = value
    else:
        raise PatchError(path, f"parent is {type(parent).__name__}, not a container")


def _remove(document: Any, path: str) -> Any:
    parent, last = _parent(document, path)
    if isinstance(parent, dict):
        if last not in parent:
            raise PatchError(path, f"missing key {last!r}")
        return parent.pop(last)
    if isinstance(parent, list):
        return parent.pop(_list_index(parent, last, path, allow_end=False))
    raise PatchError(path, f"parent is {type(parent).__name__}, not a container")


def _apply_one(document: Any, instruction: dict[str, Any]) -> None:
    op = instruction.get("op")
    path = instruction.get("path")
    if op not in PATCH_OPS:
        raise PatchError(str(path), f"unknown patch op {op!r}")
    if not isinstance(path, str):
        raise PatchError(str(path), "path must be a string")

    if op == "test":
        if get_at(document, path) != instruction.get("value"):
            raise PatchError(path, "test failed")
    elif op == "add":
        _add(document, path, copy.deepcopy(instruction.get("value")))
    elif op == "replace":
        _replace(document, path, copy.deepcopy(instruction.get("value")))
    elif op == "remove":
        _remove(document, path)
    elif op == "move":
        source = instruction.get("from")
        if not isinstance(source, str):
            raise PatchError(path, "move requires 'from'")
        if path.startswith(source + "/"):
            raise PatchError(path, "cannot move a value into one of its children")
        _add(document, path, _remove(document, source))
    elif op == "copy":
        source = instruction.get("from")
        if not isinstance(source, str):
            raise PatchError(path, "copy requires 'from'")
        _add(document, path, copy.deepcopy(get_at(document, source)))


def apply_patch(document: Any, patch: list[dict[str, Any]], *, op_type: str = "patch") -> Any:
    """
    Apply a patch to a deep copy of ``document`` and return the copy.

    Raises:
        RevisionConflict: if a ``test`` on ``/rev`` fails
        OpNotApplicable: for any other failed instruction
    """
    result = copy.deepcopy(document)
    for instruction in patch:
        try:
            _apply_one(result, instruction)
        except PatchError as e:
            if instruction.get("op") == "test" and e.path == REV_POINTER and e.reason == "test failed":
                raise RevisionConflict(instruction.get("value"), get_at(result, REV_POINTER)) from e
            raise OpNotApplicable(op_type, e.path, e.reason) from e
    return result
