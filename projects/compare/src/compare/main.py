"""Main before/after comparison functionality."""

from collections.abc import Callable, Iterable, Sequence
from logging import getLogger
from typing import Protocol

from capture.snapshot import capture
from capture.source import RowSource
from compare.detection import TableChanges, TableComparison, compare_snapshots
from compare.rendering import DEFAULT_MAX_EDITS, Spans, render
from compare.triggers import Trigger

logger = getLogger(__name__)

type Notify = Callable[[str], None]


class ReportSink(Protocol):
    """Receives the report in order and owns all of its presentation."""

    def start(self) -> None:
        """Begin the report."""
        ...

    def section_title(self, table_name: str) -> None:
        """Open the section of a changed table."""
        ...

    def diff_section(self, before: Spans, after: Spans) -> None:
        """Add the side-by-side diff of one changed record."""
        ...

    def section_end(self) -> None:
        """Close the current table section."""
        ...

    def no_changes(self) -> None:
        """Report that no table changed."""
        ...

    def finish(self) -> None:
        """End the report."""
        ...


def report_changes(
    comparisons: Iterable[TableComparison],
    sink: ReportSink,
    *,
    max_edits: int = DEFAULT_MAX_EDITS,
) -> list[TableChanges]:
    """Feed table comparisons to a report sink and return the changed tables.

    Each changed record is rendered from its before and after texts; a side
    without a record, or whose serialization failed, renders as empty text.
    """
    changed: list[TableChanges] = []

    sink.start()
    for comparison in comparisons:
        changes = comparison.changes
        if not changes.has_changes:
            continue

        changed.append(changes)
        sink.section_title(comparison.name)
        for identity in changes.changed:
            before_text = comparison.before.get(identity) or ""
            after_text = comparison.after.get(identity) or ""
            sink.diff_section(*render(before_text, after_text, max_edits=max_edits))
        sink.section_end()

    if not changed:
        sink.no_changes()
    sink.finish()

    return changed


def run(  # noqa: PLR0913
    source: RowSource,
    trigger: Trigger,
    sink: ReportSink,
    *,
    include: Sequence[str] = (),
    exclude: Sequence[str] = (),
    include_created: bool = True,
    collision_safe: bool = True,
    notify: Notify = logger.info,
) -> list[TableChanges]:
    """Snapshot the source around an operation and report what it changed.

    The before snapshot is taken, the trigger blocks until the operation is
    done, then the after snapshot is taken and every changed table is
    reported to the sink. Errors while reading either snapshot abort the run
    before anything is reported.
    """
    notify("Reading database before the operation...")
    before = capture(source, include, exclude)

    trigger()

    notify("Reading database after the operation...")
    after = capture(source, include, exclude)

    comparisons = compare_snapshots(
        before,
        after,
        include_created=include_created,
        collision_safe=collision_safe,
    )
    return report_changes(comparisons, sink)
