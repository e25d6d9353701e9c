"""
Typed artifact operations and their compilation into generic patches.

Operations are a closed set of frozen dataclasses, each tagged with a dotted
``type``. Compilation is pure: it reads the current envelope, checks that the
operation applies, and returns patch instructions. Every compiled patch is
guarded by a ``test`` on ``/rev`` and ends by bumping ``/rev``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, ClassVar

from .errors import OpNotApplicable
from .patch import REV_POINTER, get_at, has_path, pointer

logger = logging.getLogger(__name__)

OP_TYPES: dict[str, type[ArtifactOp]] = {}


def register_op(cls: type[ArtifactOp]) -> type[ArtifactOp]:
    OP_TYPES[cls.type] = cls
    return cls


def _field(data: dict[str, Any], key: str, op_type: str, kind: type | tuple[type, ...]) -> Any:
    value = data.get(key)
    if isinstance(value, bool) and kind is not bool:
        value = None
    if not isinstance(value, kind):
        names = kind.__name__ if isinstance(kind, type) else "/".join(k.__name__ for k in kind)
        raise OpNotApplicable(op_type, key, f"field {key!r} must be {names}")
    return value


def _str_list(data: dict[str, Any], key: str, op_type: str) -> list[str]:
    value = _field(data, key, op_type, list)
    if not all(isinstance(item, str) for item in value):
        raise OpNotApplicable(op_type, key, f"field {key!r} must be a list of str")
    return list(value)


def _id_field(record: dict[str, Any], key: str, op_type: str) -> str:
    value = record.get(key)
    if not isinstance(value, str) or not value:
        raise OpNotApplicable(op_type, key, f"record must carry a non-empty {key!r}")
    return value


@dataclass(frozen=True)
class ArtifactOp:
    """Base class for typed operations."""

    type: ClassVar[str] = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ArtifactOp:
        raise NotImplementedError

    def to_dict(self) -> dict[str, Any]:
        raise NotImplementedError

    def compile(self, envelope: dict[str, Any]) -> list[dict[str, Any]]:
        raise NotImplementedError

    def _require(self, envelope: dict[str, Any], path: str, reason: str = "path does not exist") -> Any:
        if not has_path(envelope, path):
            raise OpNotApplicable(self.type, path, reason)
        return get_at(envelope, path)

    def _require_list(self, envelope: dict[str, Any], path: str) -> list[Any]:
        value = self._require(envelope, path)
        if not isinstance(value, list):
            raise OpNotApplicable(self.type, path, "target is not a list")
        return value

    def _require_dict(self, envelope: dict[str, Any], path: str) -> dict[str, Any]:
        value = self._require(envelope, path)
        if not isinstance(value, dict):
            raise OpNotApplicable(self.type, path, "target is not an object")
        return value

    def _require_absent(self, envelope: dict[str, Any], path: str) -> None:
        if has_path(envelope, path):
            raise OpNotApplicable(self.type, path, "already exists")


def _append_if_absent(order: list[Any], path: str, item_id: str) -> list[dict[str, Any]]:
    if item_id in order:
        return []
    return [{"op": "add", "path": path + "/-", "value": item_id}]


# -----------------------------------------------------------------------------
# Generic operations
# -----------------------------------------------------------------------------


@register_op
@dataclass(frozen=True)
class AddNode(ArtifactOp):
    type: ClassVar[str] = "node.add"

    node: dict[str, Any]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AddNode:
        return cls(node=_field(data, "node", cls.type, dict))

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "node": self.node}

    def compile(self, envelope: dict[str, Any]) -> list[dict[str, Any]]:
        node_id = _id_field(self.node, "id", self.type)
        nodes = self._require_list(envelope, "/data/nodes")
        if any(isinstance(n, dict) and n.get("id") == node_id for n in nodes):
            raise OpNotApplicable(self.type, "/data/nodes", f"node {node_id!r} already exists")
        return [{"op": "add", "path": "/data/nodes/-", "value": self.node}]


@register_op
@dataclass(frozen=True)
class RemoveNode(ArtifactOp):
    type: ClassVar[str] = "node.remove"

    node_id: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RemoveNode:
        return cls(node_id=_field(data, "node_id", cls.type, str))

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "node_id": self.node_id}

    def compile(self, envelope: dict[str, Any]) -> list[dict[str, Any]]:
        nodes = self._require_list(envelope, "/data/nodes")
        for index, node in enumerate(nodes):
            if isinstance(node, dict) and node.get("id") == self.node_id:
                return [{"op": "remove", "path": pointer("data", "nodes", index)}]
        raise OpNotApplicable(self.type, "/data/nodes", f"node {self.node_id!r} not found")


@register_op
@dataclass(frozen=True)
class SetField(ArtifactOp):
    """Set a value at a pointer relative to ``data``."""

    type: ClassVar[str] = "field.set"

    path: str
    value: Any = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SetField:
        if "value" not in data:
            raise OpNotApplicable(cls.type, "value", "field 'value' is required")
        return cls(path=_field(data, "path", cls.type, str), value=data["value"])

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "path": self.path, "value": self.value}

    def compile(self, envelope: dict[str, Any]) -> list[dict[str, Any]]:
        if not self.path.startswith("/"):
            raise OpNotApplicable(self.type, self.path, "path must start with '/'")
        target = "/data" + self.path
        op = "replace" if has_path(envelope, target) else "add"
        return [{"op": op, "path": target, "value": self.value}]


@register_op
@dataclass(frozen=True)
class RemoveField(ArtifactOp):
    type: ClassVar[str] = "field.remove"

    path: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RemoveField:
        return cls(path=_field(data, "path", cls.type, str))

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "path": self.path}

    def compile(self, envelope: dict[str, Any]) -> list[dict[str, Any]]:
        if not self.path.startswith("/"):
            raise OpNotApplicable(self.type, self.path, "path must start with '/'")
        target = "/data" + self.path
        self._require(envelope, target)
        return [{"op": "remove", "path": target}]


# -----------------------------------------------------------------------------
# Diagram operations
# -----------------------------------------------------------------------------


@register_op
@dataclass(frozen=True)
class DiagramNodeUpsert(ArtifactOp):
    type: ClassVar[str] = "diagram.node.upsert"

    node: dict[str, Any]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DiagramNodeUpsert:
        return cls(node=_field(data, "node", cls.type, dict))

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "node": self.node}

    def compile(self, envelope: dict[str, Any]) -> list[dict[str, Any]]:
        node_id = _id_field(self.node, "nodeId", self.type)
        self._require(envelope, "/data/nodesById")
        order = self._require_list(envelope, "/data/nodeOrder")
        patch = [{"op": "add", "path": pointer("data", "nodesById", node_id), "value": self.node}]
        return patch + _append_if_absent(order, "/data/nodeOrder", node_id)


@register_op
@dataclass(frozen=True)
class DiagramNodeMove(ArtifactOp):
    type: ClassVar[str] = "diagram.node.move"

    node_id: str
    position: dict[str, Any]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DiagramNodeMove:
        return cls(
            node_id=_field(data, "node_id", cls.type, str),
            position=_field(data, "position", cls.type, dict),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "node_id": self.node_id, "position": self.position}

    def compile(self, envelope: dict[str, Any]) -> list[dict[str, Any]]:
        path = pointer("data", "nodesById", self.node_id, "position")
        self._require(envelope, pointer("data", "nodesById", self.node_id))
        op = "replace" if has_path(envelope, path) else "add"
        return [{"op": op, "path": path, "value": self.position}]


@register_op
@dataclass(frozen=True)
class DiagramEdgeAdd(ArtifactOp):
    type: ClassVar[str] = "diagram.edge.add"

    edge: dict[str, Any]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DiagramEdgeAdd:
        return cls(edge=_field(data, "edge", cls.type, dict))

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "edge": self.edge}

    def compile(self, envelope: dict[str, Any]) -> list[dict[str, Any]]:
        edge_id = _id_field(self.edge, "edgeId", self.type)
        source = _id_field(self.edge, "source", self.type)
        target = _id_field(self.edge, "target", self.type)
        self._require(envelope, "/data/edgesById")
        self._require_list(envelope, "/data/edgeOrder")
        path = pointer("data", "edgesById", edge_id)
        self._require_absent(envelope, path)
        value = {
            "edgeId": edge_id,
            "source": source,
            "target": target,
            "type": self.edge.get("type") or "relationshipEdge",
            "data": self.edge.get("data") or {},
        }
        return [
            {"op": "add", "path": path, "value": value},
            {"op": "add", "path": "/data/edgeOrder/-", "value": edge_id},
        ]


@register_op
@dataclass(frozen=True)
class DiagramEdgeUpdate(ArtifactOp):
    type: ClassVar[str] = "diagram.edge.update"

    edge_id: str
    updates: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DiagramEdgeUpdate:
        return cls(
            edge_id=_field(data, "edge_id", cls.type, str),
            updates=_field(data, "updates", cls.type, dict),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "edge_id": self.edge_id, "updates": self.updates}

    def compile(self, envelope: dict[str, Any]) -> list[dict[str, Any]]:
        path = pointer("data", "edgesById", self.edge_id)
        current = self._require(envelope, path)
        if "edgeId" in self.updates and self.updates["edgeId"] != self.edge_id:
            raise OpNotApplicable(self.type, path, "edgeId cannot be changed")
        return [{"op": "replace", "path": path, "value": {**current, **self.updates}}]


# -----------------------------------------------------------------------------
# Table operations
# -----------------------------------------------------------------------------


@register_op
@dataclass(frozen=True)
class TableRowAdd(ArtifactOp):
    type: ClassVar[str] = "table.row.add"

    row: dict[str, Any]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TableRowAdd:
        return cls(row=_field(data, "row", cls.type, dict))

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "row": self.row}

    def compile(self, envelope: dict[str, Any]) -> list[dict[str, Any]]:
        row_id = _id_field(self.row, "rowId", self.type)
        self._require(envelope, "/data/rowsById")
        self._require_list(envelope, "/data/rowOrder")
        path = pointer("data", "rowsById", row_id)
        self._require_absent(envelope, path)
        row = {"cells": {}, **self.row}
        return [
            {"op": "add", "path": path, "value": row},
            {"op": "add", "path": "/data/rowOrder/-", "value": row_id},
        ]


@register_op
@dataclass(frozen=True)
class TableRowReorder(ArtifactOp):
    type: ClassVar[str] = "table.row.reorder"

    row_order: list[str]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TableRowReorder:
        return cls(row_order=_str_list(data, "row_order", cls.type))

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "row_order": list(self.row_order)}

    def compile(self, envelope: dict[str, Any]) -> list[dict[str, Any]]:
        current = self._require_list(envelope, "/data/rowOrder")
        if sorted(map(str, current)) != sorted(map(str, self.row_order)) or len(set(self.row_order)) != len(
            self.row_order
        ):
            raise OpNotApplicable(self.type, "/data/rowOrder", "row_order must be a permutation of the current rows")
        return [{"op": "replace", "path": "/data/rowOrder", "value": list(self.row_order)}]


@register_op
@dataclass(frozen=True)
class TableCellUpdate(ArtifactOp):
    type: ClassVar[str] = "table.cell.update"

    row_id: str
    column_id: str
    value: Any = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TableCellUpdate:
        if "value" not in data:
            raise OpNotApplicable(cls.type, "value", "field 'value' is required")
        return cls(
            row_id=_field(data, "row_id", cls.type, str),
            column_id=_field(data, "column_id", cls.type, str),
            value=data["value"],
        )

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "row_id": self.row_id, "column_id": self.column_id, "value": self.value}

    def compile(self, envelope: dict[str, Any]) -> list[dict[str, Any]]:
        self._require(envelope, pointer("data", "rowsById", self.row_id, "cells"))
        if has_path(envelope, "/data/columnsById"):
            self._require(envelope, pointer("data", "columnsById", self.column_id), "unknown column")
        return [{"op": "add", "path": pointer("data", "rowsById", self.row_id, "cells", self.column_id), "value": self.value}]


@register_op
@dataclass(frozen=True)
class TableRowsRemove(ArtifactOp):
    type: ClassVar[str] = "table.rows.remove"

    row_ids: list[str]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TableRowsRemove:
        return cls(row_ids=_str_list(data, "row_ids", cls.type))

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "row_ids": list(self.row_ids)}

    def compile(self, envelope: dict[str, Any]) -> list[dict[str, Any]]:
        order = self._require_list(envelope, "/data/rowOrder")
        patch: list[dict[str, Any]] = []
        for row_id in dict.fromkeys(self.row_ids):
            path = pointer("data", "rowsById", row_id)
            self._require(envelope, path)
            patch.append({"op": "remove", "path": path})
        remaining = [r for r in order if r not in self.row_ids]
        patch.append({"op": "replace", "path": "/data/rowOrder", "value": remaining})
        return patch


# -----------------------------------------------------------------------------
# Timeline operations
# -----------------------------------------------------------------------------


@register_op
@dataclass(frozen=True)
class TimelineItemUpsert(ArtifactOp):
    type: ClassVar[str] = "timeline.item.upsert"

    item: dict[str, Any]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TimelineItemUpsert:
        return cls(item=_field(data, "item", cls.type, dict))

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "item": self.item}

    def compile(self, envelope: dict[str, Any]) -> list[dict[str, Any]]:
        item_id = _id_field(self.item, "itemId", self.type)
        self._require(envelope, "/data/itemsById")
        order = self._require_list(envelope, "/data/itemOrder")
        patch = [{"op": "add", "path": pointer("data", "itemsById", item_id), "value": self.item}]
        return patch + _append_if_absent(order, "/data/itemOrder", item_id)


@register_op
@dataclass(frozen=True)
class TimelineItemUpdate(ArtifactOp):
    type: ClassVar[str] = "timeline.item.update"

    item_id: str
    updates: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TimelineItemUpdate:
        return cls(
            item_id=_field(data, "item_id", cls.type, str),
            updates=_field(data, "updates", cls.type, dict),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "item_id": self.item_id, "updates": self.updates}

    def compile(self, envelope: dict[str, Any]) -> list[dict[str, Any]]:
        path = pointer("data", "itemsById", self.item_id)
        current = self._require(envelope, path)
        if "itemId" in self.updates and self.updates["itemId"] != self.item_id:
            raise OpNotApplicable(self.type, path, "itemId cannot be changed")
        return [{"op": "replace", "path": path, "value": {**current, **self.updates}}]


# -----------------------------------------------------------------------------
# Outline and prose operations
# -----------------------------------------------------------------------------


OUTLINE_ROOT = "root"


@register_op
@dataclass(frozen=True)
class OutlineItemMove(ArtifactOp):
    type: ClassVar[str] = "outline.item.move"

    item_id: str
    new_index: int
    new_parent_id: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OutlineItemMove:
        parent = data.get("new_parent_id")
        if parent is not None and not isinstance(parent, str):
            raise OpNotApplicable(cls.type, "new_parent_id", "field 'new_parent_id' must be str")
        return cls(
            item_id=_field(data, "item_id", cls.type, str),
            new_index=_field(data, "new_index", cls.type, int),
            new_parent_id=parent,
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"type": self.type, "item_id": self.item_id, "new_index": self.new_index}
        if self.new_parent_id is not None:
            result["new_parent_id"] = self.new_parent_id
        return result

    def compile(self, envelope: dict[str, Any]) -> list[dict[str, Any]]:
        self._require(envelope, pointer("data", "itemsById", self.item_id))
        children = self._require_dict(envelope, "/data/childrenByParentId")
        for parent_id, child_ids in children.items():
            if not isinstance(child_ids, list):
                path = pointer("data", "childrenByParentId", parent_id)
                raise OpNotApplicable(self.type, path, "target is not a list")
        parent_key = self.new_parent_id or OUTLINE_ROOT
        if self.new_parent_id is not None:
            if self.new_parent_id == self.item_id:
                raise OpNotApplicable(self.type, self.item_id, "item cannot be its own parent")
            self._require(envelope, pointer("data", "itemsById", self.new_parent_id), "unknown parent item")

        patch: list[dict[str, Any]] = []
        target_len = len(children.get(parent_key, []))
        for parent_id, child_ids in children.items():
            if self.item_id in child_ids:
                index = child_ids.index(self.item_id)
                patch.append({"op": "remove", "path": pointer("data", "childrenByParentId", parent_id, index)})
                if parent_id == parent_key:
                    target_len -= 1
                break

        if parent_key not in children:
            patch.append({"op": "add", "path": pointer("data", "childrenByParentId", parent_key), "value": []})
        if not (0 <= self.new_index <= target_len):
            raise OpNotApplicable(
                self.type,
                pointer("data", "childrenByParentId", parent_key),
                f"index {self.new_index} out of range (0..{target_len})",
            )
        patch.append(
            {
                "op": "add",
                "path": pointer("data", "childrenByParentId", parent_key, self.new_index),
                "value": self.item_id,
            }
        )
        return patch


@register_op
@dataclass(frozen=True)
class ProseBlockReplace(ArtifactOp):
    type: ClassVar[str] = "prose.block.replace"

    block_id: str
    markdown: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProseBlockReplace:
        return cls(
            block_id=_field(data, "block_id", cls.type, str),
            markdown=_field(data, "markdown", cls.type, str),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "block_id": self.block_id, "markdown": self.markdown}

    def compile(self, envelope: dict[str, Any]) -> list[dict[str, Any]]:
        path = pointer("data", "blocksById", self.block_id, "markdown")
        self._require(envelope, pointer("data", "blocksById", self.block_id))
        op = "replace" if has_path(envelope, path) else "add"
        return [{"op": op, "path": path, "value": self.markdown}]


# -----------------------------------------------------------------------------
# Parsing and compilation
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class CompiledPatch:
    op: ArtifactOp
    base_rev: int
    next_rev: int
    patch: list[dict[str, Any]]


def parse_op(data: ArtifactOp | dict[str, Any]) -> ArtifactOp:
    """Parse a plain dict into a typed operation."""
    if isinstance(data, ArtifactOp):
        return data
    if not isinstance(data, dict):
        raise OpNotApplicable("?", "", "operation must be an object")
    op_type = data.get("type")
    cls = OP_TYPES.get(op_type) if isinstance(op_type, str) else None
    if cls is None:
        raise OpNotApplicable(str(op_type), "type", "unknown operation type")
    return cls.from_dict(data)


def compile_op(envelope: dict[str, Any], op: ArtifactOp) -> CompiledPatch:
    """Compile ``op`` against ``envelope``. Pure; raises OpNotApplicable."""
    base_rev = envelope["rev"]
    body = op.compile(envelope)
    patch = [{"op": "test", "path": REV_POINTER, "value": base_rev}, *body]
    patch.append({"op": "replace", "path": REV_POINTER, "value": base_rev + 1})
    logger.debug("Compiled %s at rev %d into %d instructions", op.type, base_rev, len(patch))
    return CompiledPatch(op=op, base_rev=base_rev, next_rev=base_rev + 1, patch=patch)


def list_op_types() -> list[str]:
    return sorted(OP_TYPES.keys())
