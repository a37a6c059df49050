"""Database access for snapshot capture using SQLAlchemy.

A ``Database`` only knows where to connect. Rows can only be read from the
``Connected`` handle returned by :meth:`Database.connect`, so there is no way
to fetch from a database that was never connected.
"""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Any, Protocol, Self
from warnings import catch_warnings, filterwarnings

from sqlalchemy import MetaData, Table, column, create_engine, event, inspect, select, table
from sqlalchemy.exc import SAWarning, SQLAlchemyError

from capture.errors import SourceUnavailable
from capture.types import Cell, Row

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator
    from types import TracebackType

    from sqlalchemy import URL, Engine
    from sqlalchemy.types import TypeEngine

logger = getLogger(__name__)


class RowSource(Protocol):
    """Anything snapshots can be built from."""

    def list_tables(self) -> Iterable[str]:
        """Return the names of all tables."""
        ...

    def fetch_all_rows(self, table_name: str) -> Iterable[Row]:
        """Return every row of a table as column cells."""
        ...


def declared_type_name(sql_type: TypeEngine[Any]) -> str:
    """Return the declared type name of a reflected column type, e.g. ``BIGINT``."""
    return str(getattr(sql_type, "__visit_name__", "")).upper()


def decode_text(data: bytes) -> str | bytes:
    """Decode SQLite text as UTF-8, keeping undecodable values as raw bytes."""
    try:
        return data.decode()
    except UnicodeDecodeError:
        return data


def use_lenient_text(dbapi_connection: Any, _connection_record: Any) -> None:  # noqa: ANN401
    """Stop SQLite from failing a whole fetch on one cell of invalid UTF-8."""
    dbapi_connection.text_factory = decode_text


class Database:
    """A database that has not been connected to yet."""

    def __init__(self, url: str | URL, **engine_options: Any) -> None:  # noqa: ANN401
        """Initialize with a SQLAlchemy URL and extra engine options."""
        self.url = url
        self._engine_options = {"pool_pre_ping": True, **engine_options}

    def connect(self) -> Connected:
        """Connect to the database and verify that it is reachable."""
        try:
            engine = create_engine(self.url, **self._engine_options)
        except SQLAlchemyError as err:
            raise SourceUnavailable(None, str(err)) from err

        if engine.dialect.name == "sqlite":
            event.listen(engine, "connect", use_lenient_text)

        try:
            with engine.connect():
                pass
        except SQLAlchemyError as err:
            engine.dispose()
            raise SourceUnavailable(None, str(err)) from err

        logger.debug("Connected to %s", engine.url.render_as_string(hide_password=True))
        return Connected(engine)


class Connected:
    """A connected database that rows can be read from."""

    def __init__(self, engine: Engine) -> None:
        """Initialize with a connected engine."""
        self._engine = engine

    def __enter__(self) -> Self:
        """Return the connected database."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        """Close the connection pool."""
        self.close()

    def close(self) -> None:
        """Release all pooled connections."""
        self._engine.dispose()

    def list_tables(self) -> list[str]:
        """Return the names of all tables in the default schema."""
        try:
            return inspect(self._engine).get_table_names()
        except SQLAlchemyError as err:
            raise SourceUnavailable(None, str(err)) from err

    def fetch_all_rows(self, table_name: str) -> Iterator[Row]:
        """Yield every row of a table as cells in column order.

        Values are the raw driver values: the select carries no column types,
        so no SQLAlchemy result processing is applied to them.
        """
        try:
            with self._engine.connect() as connection:
                with catch_warnings():
                    # Unknown column types reflect as NullType with a warning
                    filterwarnings("ignore", category=SAWarning)
                    reflected = Table(table_name, MetaData(), autoload_with=connection)

                columns = tuple(
                    (col.name, declared_type_name(col.type)) for col in reflected.columns
                )
                query = select(table(table_name, *(column(name) for name, _ in columns)))

                for values in connection.execute(query):
                    yield tuple(
                        Cell(name, type_name, value)
                        for (name, type_name), value in zip(columns, values, strict=True)
                    )
        except SQLAlchemyError as err:
            raise SourceUnavailable(table_name, str(err)) from err
