from __future__ import annotations

from typing import Any

from .common import check_id_list, check_order_refs, check_record_map, check_str


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class DiagramTypePack:
    def validate(self, data: Any) -> list[str]:
        if not isinstance(data, dict):
            return ["diagram.data must be an object"]
        errors: list[str] = []

        nodes = check_record_map(data, "nodesById", "nodeId", "diagram", errors)
        for node_id, node in nodes.items():
            label = f"diagram.nodesById.{node_id}"
            check_str(node, "type", label, errors)
            position = node.get("position")
            if not (isinstance(position, dict) and _is_number(position.get("x")) and _is_number(position.get("y"))):
                errors.append(f"{label}.position must be {{x: number, y: number}}")
            if not isinstance(node.get("data", {}), dict):
                errors.append(f"{label}.data must be an object")
        node_order = check_id_list(data, "nodeOrder", "diagram", errors)
        check_order_refs(node_order, nodes, "diagram.nodeOrder", errors)

        edges = check_record_map(data, "edgesById", "edgeId", "diagram", errors)
        for edge_id, edge in edges.items():
            label = f"diagram.edgesById.{edge_id}"
            check_str(edge, "type", label, errors)
            check_str(edge, "source", label, errors)
            check_str(edge, "target", label, errors)
        edge_order = check_id_list(data, "edgeOrder", "diagram", errors)
        check_order_refs(edge_order, edges, "diagram.edgeOrder", errors)
        return errors
