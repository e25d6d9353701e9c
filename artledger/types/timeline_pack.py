from __future__ import annotations

from typing import Any

from .common import check_id_list, check_order_refs, check_record_map, check_str

GROUP_KINDS = frozenset({"plotline", "character", "faction"})


class TimelineTypePack:
    def validate(self, data: Any) -> list[str]:
        if not isinstance(data, dict):
            return ["timeline.data must be an object"]
        errors: list[str] = []

        groups = check_record_map(data, "groupsById", "groupId", "timeline", errors)
        for group_id, group in groups.items():
            label = f"timeline.groupsById.{group_id}"
            check_str(group, "label", label, errors)
            if group.get("kind") not in GROUP_KINDS:
                errors.append(f"{label}.kind must be one of {', '.join(sorted(GROUP_KINDS))}")
        group_order = check_id_list(data, "groupOrder", "timeline", errors)
        check_order_refs(group_order, groups, "timeline.groupOrder", errors)

        items = check_record_map(data, "itemsById", "itemId", "timeline", errors)
        for item_id, item in items.items():
            label = f"timeline.itemsById.{item_id}"
            check_str(item, "start", label, errors)
            check_str(item, "content", label, errors)
            check_str(item, "end", label, errors, optional=True)
        item_order = check_id_list(data, "itemOrder", "timeline", errors)
        check_order_refs(item_order, items, "timeline.itemOrder", errors)
        return errors
