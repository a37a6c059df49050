"""Snapshot capture module for dbba."""

from capture.coercion import coerce, type_family
from capture.errors import DbbaError, RenderFailure, SerializationFailure, SourceUnavailable
from capture.normalize import normalize, serialize
from capture.snapshot import Snapshot, build, capture, filter_tables
from capture.source import Connected, Database, RowSource
from capture.types import CanonicalValue, Cell, Record, Row, TypeFamily

__all__ = [
    "CanonicalValue",
    "Cell",
    "Connected",
    "Database",
    "DbbaError",
    "Record",
    "RenderFailure",
    "Row",
    "RowSource",
    "SerializationFailure",
    "Snapshot",
    "SourceUnavailable",
    "TypeFamily",
    "build",
    "capture",
    "coerce",
    "filter_tables",
    "normalize",
    "serialize",
    "type_family",
]
