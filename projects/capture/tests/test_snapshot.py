"""Tests for building snapshots from a row source."""

from collections.abc import Iterator

import pytest

from capture.errors import SourceUnavailable
from capture.snapshot import Snapshot, build, capture, filter_tables, matches_pattern
from capture.types import Cell, Row


class FakeSource:
    """Row source serving fixed rows, optionally failing part way through a table."""

    def __init__(self, tables: dict[str, list[Row]], failing: str | None = None) -> None:
        """Initialize with rows per table and the table to fail on."""
        self.tables = tables
        self.failing = failing
        self.fetched: list[str] = []

    def list_tables(self) -> list[str]:
        """Return the table names."""
        return list(self.tables)

    def fetch_all_rows(self, table_name: str) -> Iterator[Row]:
        """Yield the rows of a table."""
        self.fetched.append(table_name)
        for row in self.tables[table_name]:
            yield row
            if table_name == self.failing:
                raise SourceUnavailable(table_name, "connection lost")


def user(user_id: int, name: str) -> Row:
    """Create a users row."""
    return (Cell("name", "VARCHAR", name), Cell("id", "INT", user_id))


@pytest.fixture(name="source")
def create_source() -> FakeSource:
    """Create a source with a few tables."""
    return FakeSource(
        {
            "users": [user(2, "Bob"), user(1, "Alice")],
            "posts": [(Cell("id", "INT", 10), Cell("body", "TEXT", "hi"))],
            "schema_migrations": [(Cell("version", "VARCHAR", "20240101"),)],
        },
    )


def test_build_normalizes_rows_in_fetch_order(source: FakeSource) -> None:
    """Test that records are normalized and keep the order rows were fetched in."""
    snapshot = build(["users"], source)

    assert list(snapshot) == ["users"]
    assert snapshot["users"] == (
        {"id": 2, "name": "Bob"},
        {"id": 1, "name": "Alice"},
    )


def test_build_empty_table() -> None:
    """Test that a table without rows is kept with no records."""
    snapshot = build(["empty"], FakeSource({"empty": []}))

    assert snapshot["empty"] == ()


def test_build_propagates_source_errors(source: FakeSource) -> None:
    """Test that a failure while iterating rows aborts the snapshot."""
    source.failing = "users"

    with pytest.raises(SourceUnavailable, match="Cannot read table 'users'") as exc_info:
        build(["posts", "users"], source)

    assert exc_info.value.table_name == "users"


def test_snapshot_is_read_only(source: FakeSource) -> None:
    """Test that a snapshot cannot be modified once built."""
    snapshot = build(["users"], source)

    with pytest.raises(TypeError):
        snapshot["users"] = ()  # type: ignore[index]
    with pytest.raises(AttributeError):
        snapshot["users"].append({})  # type: ignore[attr-defined]


def test_snapshot_mapping_protocol() -> None:
    """Test length, membership and lookup of a snapshot."""
    snapshot = Snapshot({"a": [{"id": 1}], "b": []})

    assert len(snapshot) == 2
    assert "a" in snapshot
    assert "c" not in snapshot
    assert snapshot.get("c") is None
    assert repr(snapshot) == "Snapshot(tables=2, records=1)"


@pytest.mark.parametrize(
    ("name", "pattern", "expected"),
    [
        ("users", "users", True),
        ("users", "user*", True),
        ("users", "posts", False),
        ("Users", "users", False),
        ("schema_migrations", "re:^schema_", True),
        ("ar_internal_metadata", "re:_metadata$", True),
        ("users", "re:^post", False),
    ],
)
def test_matches_pattern(name: str, pattern: str, *, expected: bool) -> None:
    """Test glob and regex table patterns."""
    assert matches_pattern(name, pattern) is expected


def test_filter_tables() -> None:
    """Test include and exclude filters together."""
    tables = ["users", "user_roles", "posts", "schema_migrations"]

    assert filter_tables(tables) == tables
    assert filter_tables(tables, include=["user*"]) == ["users", "user_roles"]
    assert filter_tables(tables, exclude=["re:^schema_"]) == ["users", "user_roles", "posts"]
    assert filter_tables(tables, include=["user*"], exclude=["*_roles"]) == ["users"]


def test_capture_applies_filters(source: FakeSource) -> None:
    """Test that only filtered tables are fetched."""
    snapshot = capture(source, exclude=["schema_*"])

    assert set(snapshot) == {"users", "posts"}
    assert source.fetched == ["users", "posts"]
