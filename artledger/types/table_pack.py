from __future__ import annotations

from typing import Any

from .common import check_id_list, check_order_refs, check_record_map, check_str

VALUE_TYPES = frozenset({"text", "number", "bool", "date", "enum", "entity"})


class TableTypePack:
    def validate(self, data: Any) -> list[str]:
        if not isinstance(data, dict):
            return ["table.data must be an object"]
        errors: list[str] = []

        columns = check_record_map(data, "columnsById", "columnId", "table", errors)
        for column_id, column in columns.items():
            label = f"table.columnsById.{column_id}"
            check_str(column, "label", label, errors)
            if column.get("valueType") not in VALUE_TYPES:
                errors.append(f"{label}.valueType must be one of {', '.join(sorted(VALUE_TYPES))}")
        column_order = check_id_list(data, "columnOrder", "table", errors)
        check_order_refs(column_order, columns, "table.columnOrder", errors)

        rows = check_record_map(data, "rowsById", "rowId", "table", errors)
        for row_id, row in rows.items():
            if not isinstance(row.get("cells"), dict):
                errors.append(f"table.rowsById.{row_id}.cells must be an object")
        row_order = check_id_list(data, "rowOrder", "table", errors)
        check_order_refs(row_order, rows, "table.rowOrder", errors)
        return errors
