"""Type definitions for database snapshots."""

from enum import StrEnum, auto
from typing import Any, NamedTuple

# Closed value model every column value is coerced into before comparison
type CanonicalValue = str | bool | int | float | None

# Column name -> canonical value, iterated in ascending column name order
type Record = dict[str, CanonicalValue]


class TypeFamily(StrEnum):
    """Families of declared column types that share a coercion rule."""

    INTEGER = auto()
    FLOAT = auto()
    DATETIME = auto()
    BINARY = auto()
    BOOLEAN = auto()
    OTHER = auto()


class Cell(NamedTuple):
    """A single column value as read from the database."""

    name: str
    type_name: str
    value: Any


type Row = tuple[Cell, ...]
