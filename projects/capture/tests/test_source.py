"""Tests for reading rows through SQLAlchemy."""

from collections.abc import Iterator
from pathlib import Path

import pytest
from sqlalchemy import Engine, create_engine, text

from capture.coercion import digest
from capture.errors import SourceUnavailable
from capture.snapshot import capture
from capture.source import Connected, Database


@pytest.fixture(name="database_url")
def create_database_url(tmp_path: Path) -> str:
    """Create a SQLite database file with a few tables."""
    url = f"sqlite:///{tmp_path / 'app.db'}"
    engine = create_engine(url)
    with engine.begin() as connection:
        connection.execute(
            text(
                """
                CREATE TABLE users (
                    id INTEGER PRIMARY KEY,
                    name VARCHAR(20),
                    score REAL,
                    avatar BLOB,
                    created_at DATETIME
                )
                """,
            ),
        )
        connection.execute(
            text('CREATE TABLE "order" (id INTEGER PRIMARY KEY, total DECIMAL(10, 2))'),
        )
        connection.execute(
            text(
                "INSERT INTO users (id, name, score, avatar, created_at) "
                "VALUES (1, 'Alice', 9.5, :avatar, '2024-01-02 03:04:05')",
            ),
            {"avatar": b"\x01\x02"},
        )
        connection.execute(text("INSERT INTO users (id, name) VALUES (2, 'Bob')"))
        connection.execute(text('INSERT INTO "order" (id, total) VALUES (7, 12.5)'))
    engine.dispose()
    return url


@pytest.fixture(name="connected")
def create_connected(database_url: str) -> Iterator[Connected]:
    """Connect to the test database."""
    with Database(database_url).connect() as connected:
        yield connected


def test_list_tables(connected: Connected) -> None:
    """Test that all user tables are listed."""
    assert sorted(connected.list_tables()) == ["order", "users"]


def test_fetch_all_rows_returns_cells(connected: Connected) -> None:
    """Test that rows come back as cells with declared type names and raw values."""
    rows = list(connected.fetch_all_rows("users"))

    assert len(rows) == 2
    first = {cell.name: cell for cell in rows[0]}
    assert [cell.name for cell in rows[0]] == ["id", "name", "score", "avatar", "created_at"]
    assert first["id"].type_name == "INTEGER"
    assert first["name"].type_name == "VARCHAR"
    assert first["avatar"].type_name == "BLOB"
    assert first["created_at"].type_name == "DATETIME"
    assert first["avatar"].value == b"\x01\x02"
    # No result processing, the driver's string comes back as is
    assert first["created_at"].value == "2024-01-02 03:04:05"


def test_fetch_all_rows_quotes_reserved_names(connected: Connected) -> None:
    """Test reading a table named after a SQL keyword."""
    rows = list(connected.fetch_all_rows("order"))

    assert [(cell.name, cell.value) for cell in rows[0]] == [("id", 7), ("total", 12.5)]


def test_fetch_missing_table(connected: Connected) -> None:
    """Test that a missing table raises SourceUnavailable naming the table."""
    with pytest.raises(SourceUnavailable) as exc_info:
        list(connected.fetch_all_rows("missing"))

    assert exc_info.value.table_name == "missing"


def test_connect_failure(tmp_path: Path) -> None:
    """Test that an unreachable database raises SourceUnavailable."""
    database = Database(f"sqlite:///{tmp_path / 'missing' / 'app.db'}")

    with pytest.raises(SourceUnavailable, match="Cannot read database"):
        database.connect()


def test_capture_from_database(connected: Connected) -> None:
    """Test a full snapshot of a real database."""
    snapshot = capture(connected, include=["users"])

    assert snapshot["users"] == (
        {
            "avatar": digest(b"\x01\x02"),
            "created_at": "2024-01-02 03:04:05",
            "id": 1,
            "name": "Alice",
            "score": 9.5,
        },
        {"avatar": None, "created_at": None, "id": 2, "name": "Bob", "score": None},
    )


def test_snapshots_see_committed_changes(database_url: str, connected: Connected) -> None:
    """Test that a second snapshot reflects writes made in between."""
    before = capture(connected, include=["users"])

    engine = create_engine(database_url)
    with engine.begin() as connection:
        connection.execute(text("UPDATE users SET name = 'Jane' WHERE id = 2"))
    engine.dispose()

    after = capture(connected, include=["users"])

    assert before["users"][1]["name"] == "Bob"
    assert after["users"][1]["name"] == "Jane"


def test_invalid_utf8_text_is_digested(database_url: str) -> None:
    """Test that one undecodable text cell does not abort the snapshot."""
    engine = create_engine(database_url)
    with engine.begin() as connection:
        connection.execute(
            text("INSERT INTO users (id, name) VALUES (3, CAST(X'FF' AS TEXT))"),
        )
    engine.dispose()

    with Database(database_url).connect() as connected:
        snapshot = capture(connected, include=["users"])

    assert snapshot["users"][2]["name"] == digest(b"\xff")
    assert snapshot["users"][0]["name"] == "Alice"


def test_connect_failure_disposes_engine(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Test that the engine is released when the database is unreachable."""
    disposed: list[Engine] = []
    dispose = Engine.dispose

    def record_dispose(engine: Engine, *args: object, **kwargs: object) -> None:
        disposed.append(engine)
        dispose(engine, *args, **kwargs)  # type: ignore[arg-type]

    monkeypatch.setattr(Engine, "dispose", record_dispose)
    database = Database(f"sqlite:///{tmp_path / 'missing' / 'app.db'}")

    with pytest.raises(SourceUnavailable):
        database.connect()

    assert len(disposed) == 1
