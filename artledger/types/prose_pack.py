from __future__ import annotations

from typing import Any

from .common import check_id_list, check_order_refs, check_record_map, check_str

BLOCK_KINDS = frozenset({"heading", "paragraph", "list", "quote", "code"})


class ProseTypePack:
    def validate(self, data: Any) -> list[str]:
        if not isinstance(data, dict):
            return ["prose.data must be an object"]
        errors: list[str] = []
        blocks = check_record_map(data, "blocksById", "blockId", "prose", errors)
        for block_id, block in blocks.items():
            label = f"prose.blocksById.{block_id}"
            if block.get("kind") not in BLOCK_KINDS:
                errors.append(f"{label}.kind must be one of {', '.join(sorted(BLOCK_KINDS))}")
            check_str(block, "markdown", label, errors)
        order = check_id_list(data, "blockOrder", "prose", errors)
        check_order_refs(order, blocks, "prose.blockOrder", errors)
        return errors
