"""Per-table change counts for terminal summaries."""

from collections.abc import Iterable
from typing import Any

from compare.detection import TableChanges


def summarize(changes: Iterable[TableChanges]) -> list[dict[str, Any]]:
    """Convert table changes to summary data with change counts.

    Each dictionary contains:
        - name: table name
        - removed: count of removed records
        - added: count of added records
        - modified: count of modified records
        - total: count of all changed records
    """
    return [
        {
            "name": table.table_name,
            "removed": len(table.removed),
            "added": len(table.added),
            "modified": len(table.modified),
            "total": len(table.removed) + len(table.added) + len(table.modified),
        }
        for table in changes
    ]
