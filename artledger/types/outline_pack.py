from __future__ import annotations

from typing import Any

from .common import check_record_map, check_str, is_id


class OutlineTypePack:
    def validate(self, data: Any) -> list[str]:
        if not isinstance(data, dict):
            return ["outline.data must be an object"]
        errors: list[str] = []

        items = check_record_map(data, "itemsById", "itemId", "outline", errors)
        for item_id, item in items.items():
            check_str(item, "title", f"outline.itemsById.{item_id}", errors)

        children = data.get("childrenByParentId")
        if not isinstance(children, dict):
            errors.append("outline.childrenByParentId must be an object")
            return errors
        for parent_id, child_ids in children.items():
            if not isinstance(child_ids, list) or not all(is_id(c) for c in child_ids):
                errors.append(f"outline.childrenByParentId.{parent_id} must be a list of ids")
        return errors
