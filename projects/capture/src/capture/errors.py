"""Error types raised while capturing and comparing database snapshots."""


class DbbaError(Exception):
    """Base class for all errors raised by dbba."""


class SourceUnavailable(DbbaError):
    """Rows of a table could not be fetched from the database.

    Aborts the whole snapshot: a partial snapshot is never compared.
    """

    def __init__(self, table_name: str | None, reason: str) -> None:
        """Record which table failed and why."""
        self.table_name = table_name
        self.reason = reason
        where = f"table '{table_name}'" if table_name else "database"
        super().__init__(f"Cannot read {where}: {reason}")


class SerializationFailure(DbbaError):
    """A record could not be serialized to its canonical text."""


class RenderFailure(DbbaError):
    """Two record texts could not be aligned line by line."""
