"""Tests for the change summary."""

from compare.detection import TableChanges
from report.summary import summarize


def test_summarize_counts() -> None:
    """Test per-table change counts."""
    changes = [
        TableChanges(
            "users",
            removed=frozenset({"1"}),
            added=frozenset({"2", "3"}),
            modified=frozenset({"4"}),
        ),
        TableChanges("posts", modified=frozenset({"9"})),
    ]

    assert summarize(changes) == [
        {"name": "users", "removed": 1, "added": 2, "modified": 1, "total": 4},
        {"name": "posts", "removed": 0, "added": 0, "modified": 1, "total": 1},
    ]


def test_summarize_nothing() -> None:
    """Test that no changes give an empty summary."""
    assert summarize([]) == []
