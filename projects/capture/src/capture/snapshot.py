"""Full in-memory snapshots of database contents."""

from __future__ import annotations

import fnmatch
import re
from collections.abc import Iterable, Iterator, Mapping, Sequence
from logging import getLogger
from typing import TYPE_CHECKING

from capture.normalize import normalize
from capture.types import Record

if TYPE_CHECKING:
    from capture.source import RowSource

logger = getLogger(__name__)


class Snapshot(Mapping[str, tuple[Record, ...]]):
    """Read-only mapping of table name to its records at one instant."""

    def __init__(self, tables: Mapping[str, Iterable[Record]]) -> None:
        """Initialize from a mapping of table names to records."""
        self._tables = {name: tuple(records) for name, records in tables.items()}

    def __getitem__(self, table_name: str) -> tuple[Record, ...]:
        """Return the records of a table."""
        return self._tables[table_name]

    def __iter__(self) -> Iterator[str]:
        """Iterate over table names."""
        return iter(self._tables)

    def __len__(self) -> int:
        """Return the number of tables."""
        return len(self._tables)

    def __repr__(self) -> str:
        """Summarize table and record counts."""
        rows = sum(len(records) for records in self._tables.values())
        return f"Snapshot(tables={len(self._tables)}, records={rows})"


def matches_pattern(name: str, pattern: str) -> bool:
    """Return True if name matches a glob pattern, or a regex given as ``re:...``."""
    if pattern.startswith("re:"):
        return re.search(pattern[3:], name) is not None
    return fnmatch.fnmatchcase(name, pattern)


def filter_tables(
    tables: Iterable[str],
    include: Sequence[str] = (),
    exclude: Sequence[str] = (),
) -> list[str]:
    """Filter table names using include/exclude patterns.

    Include patterns keep a table if it matches *any* include pattern.
    Exclude patterns drop a table if it matches *any* exclude pattern.
    """
    result = list(tables)
    if include:
        result = [t for t in result if any(matches_pattern(t, p) for p in include)]
    if exclude:
        result = [t for t in result if not any(matches_pattern(t, p) for p in exclude)]
    return result


def build(table_names: Iterable[str], source: RowSource) -> Snapshot:
    """Read and normalize every row of the given tables.

    Rows keep the order the source returned them in. Any fetch error
    propagates as ``SourceUnavailable`` and no snapshot is returned.
    """
    tables: dict[str, list[Record]] = {}
    for table_name in table_names:
        tables[table_name] = [normalize(row) for row in source.fetch_all_rows(table_name)]
        logger.debug("Read %d rows from %s", len(tables[table_name]), table_name)

    return Snapshot(tables)


def capture(
    source: RowSource,
    include: Sequence[str] = (),
    exclude: Sequence[str] = (),
) -> Snapshot:
    """Capture a snapshot of all (filtered) tables of a source."""
    table_names = filter_tables(source.list_tables(), include, exclude)
    snapshot = build(table_names, source)
    logger.info("Captured %r", snapshot)
    return snapshot
