"""Before/after comparison module for database snapshots."""

from compare.detection import (
    TableChanges,
    TableComparison,
    compare_snapshots,
    detect,
)
from compare.identity import identity_of
from compare.main import ReportSink, report_changes, run
from compare.rendering import ChangeTag, Span, render
from compare.triggers import Trigger, command_trigger, console_trigger

__all__ = [
    "ChangeTag",
    "ReportSink",
    "Span",
    "TableChanges",
    "TableComparison",
    "Trigger",
    "command_trigger",
    "compare_snapshots",
    "console_trigger",
    "detect",
    "identity_of",
    "render",
    "report_changes",
    "run",
]
