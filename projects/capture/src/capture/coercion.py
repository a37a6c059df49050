"""Value coercion into the canonical value model.

Database drivers hand back values of many Python types depending on the
dialect and column type. This module maps each of them, together with the
declared column type name, onto the small closed set of canonical values
(None, bool, int, float, str) that snapshots are compared and serialized in.
"""

from collections.abc import Callable
from datetime import date, datetime
from decimal import Decimal
from functools import cache
from hashlib import md5
from logging import getLogger
from math import isfinite
from typing import Any

from capture.types import CanonicalValue, TypeFamily

logger = getLogger(__name__)

type Reader = Callable[[Any], CanonicalValue]

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

DIGEST_PREFIX = "MD5 Digest value: "

INTEGER_TYPES = frozenset({"TINYINT", "SMALLINT", "MEDIUMINT", "INT", "INTEGER", "BIGINT"})
FLOAT_TYPES = frozenset(
    {"FLOAT", "DOUBLE", "DOUBLE_PRECISION", "DECIMAL", "NUMERIC", "REAL"},
)
DATETIME_TYPES = frozenset({"DATETIME", "TIMESTAMP", "DATE"})
BINARY_TYPES = frozenset(
    {
        "BLOB",
        "TINYBLOB",
        "MEDIUMBLOB",
        "LONGBLOB",
        "BINARY",
        "VARBINARY",
        "LARGEBINARY",
        "BYTEA",
    },
)
BOOLEAN_TYPES = frozenset({"BIT", "BOOL", "BOOLEAN"})


@cache
def type_family(type_name: str) -> TypeFamily:
    """Classify a declared column type name into its coercion family.

    Only the base name counts: ``INT(11) UNSIGNED`` is an ``INT`` and
    ``DOUBLE PRECISION`` is a ``DOUBLE``. Matching is case-insensitive.

    Examples:
        BIGINT -> INTEGER
        decimal(10,2) -> FLOAT
        LONGBLOB -> BINARY
        JSON -> OTHER

    """
    words = type_name.split("(", 1)[0].upper().split()
    base = words[0] if words else ""

    family = TypeFamily.OTHER
    if base in INTEGER_TYPES:
        family = TypeFamily.INTEGER
    elif base in FLOAT_TYPES:
        family = TypeFamily.FLOAT
    elif base in DATETIME_TYPES:
        family = TypeFamily.DATETIME
    elif base in BINARY_TYPES:
        family = TypeFamily.BINARY
    elif base in BOOLEAN_TYPES:
        family = TypeFamily.BOOLEAN
    return family


def digest(data: bytes | bytearray | memoryview) -> str:
    """Return the digest text used in place of binary column content."""
    return f"{DIGEST_PREFIX}{md5(bytes(data), usedforsecurity=False).hexdigest()}"


def read_integer(raw_value: Any) -> int:  # noqa: ANN401
    """Read a signed 64-bit integer."""
    if isinstance(raw_value, int):
        value = int(raw_value)
    elif (
        isinstance(raw_value, Decimal)
        and raw_value.is_finite()
        and raw_value == raw_value.to_integral_value()
    ):
        value = int(raw_value)
    else:
        msg = f"Cannot read {type(raw_value).__name__} as integer: {raw_value!r}"
        raise TypeError(msg)

    if not INT64_MIN <= value <= INT64_MAX:
        msg = f"Integer out of 64-bit range: {value}"
        raise ValueError(msg)
    return value


def read_float(raw_value: Any) -> float:  # noqa: ANN401
    """Read a finite 64-bit float from a float, integer or decimal value."""
    if isinstance(raw_value, bool) or not isinstance(raw_value, int | float | Decimal):
        msg = f"Cannot read {type(raw_value).__name__} as float: {raw_value!r}"
        raise TypeError(msg)

    value = float(raw_value)
    if not isfinite(value):
        msg = f"Float is not finite: {raw_value!r}"
        raise ValueError(msg)
    return value


def read_datetime(raw_value: Any) -> str:  # noqa: ANN401
    """Read a timestamp and format it as ``YYYY-MM-DD HH:MM:SS``.

    Dates are read as midnight, ISO-8601 strings are parsed and any timezone
    information is dropped from the output.
    """
    # datetime is a subclass of date, check it first
    if isinstance(raw_value, datetime):
        value = raw_value
    elif isinstance(raw_value, date):
        value = datetime.combine(raw_value, datetime.min.time())
    elif isinstance(raw_value, str):
        value = datetime.fromisoformat(raw_value.strip())
    else:
        msg = f"Cannot read {type(raw_value).__name__} as datetime: {raw_value!r}"
        raise TypeError(msg)

    # strftime does not zero-pad years below 1000 on every platform
    return (
        f"{value.year:04d}-{value.month:02d}-{value.day:02d} "
        f"{value.hour:02d}:{value.minute:02d}:{value.second:02d}"
    )


def read_binary(raw_value: Any) -> str:  # noqa: ANN401
    """Read binary content and return its digest text."""
    if not isinstance(raw_value, bytes | bytearray | memoryview):
        msg = f"Cannot read {type(raw_value).__name__} as binary"
        raise TypeError(msg)
    return digest(raw_value)


def read_boolean(raw_value: Any) -> bool:  # noqa: ANN401
    """Read a single bit from a boolean, the integers 0/1 or a single byte."""
    if isinstance(raw_value, bool):
        return raw_value
    if isinstance(raw_value, int) and raw_value in (0, 1):
        return bool(raw_value)
    if (
        isinstance(raw_value, bytes | bytearray)
        and len(raw_value) == 1
        and raw_value[0] in (0, 1)
    ):
        return bool(raw_value[0])
    msg = f"Cannot read {type(raw_value).__name__} as boolean: {raw_value!r}"
    raise ValueError(msg)


def read_text(raw_value: Any) -> str:  # noqa: ANN401
    """Read a text value verbatim."""
    if not isinstance(raw_value, str):
        msg = f"Cannot read {type(raw_value).__name__} as text"
        raise TypeError(msg)
    return raw_value


def read_unknown(raw_value: Any) -> str:  # noqa: ANN401
    """Read a value of an unrecognized type, binary first and text second.

    Binary must win: many binary values would also pass as lossy text and
    silently corrupt comparisons.
    """
    try:
        return read_binary(raw_value)
    except TypeError:
        return read_text(raw_value)


def value_reader(family: TypeFamily) -> Reader:
    """Get the reader function for a type family."""
    match family:
        case TypeFamily.INTEGER:
            return read_integer
        case TypeFamily.FLOAT:
            return read_float
        case TypeFamily.DATETIME:
            return read_datetime
        case TypeFamily.BINARY:
            return read_binary
        case TypeFamily.BOOLEAN:
            return read_boolean
        case TypeFamily.OTHER:
            return read_unknown


def coerce(raw_value: Any, type_name: str) -> CanonicalValue:  # noqa: ANN401
    """Coerce a raw driver value into a canonical value.

    Never raises for a readable driver value: NULL stays ``None`` for every
    declared type and a value that cannot be read under its type family
    degrades to ``None`` instead of aborting the snapshot.
    """
    if raw_value is None:
        return None

    reader = value_reader(type_family(type_name))
    try:
        return reader(raw_value)
    except (ValueError, TypeError, ArithmeticError) as err:
        logger.debug("Coercing %s value to NULL: %s", type_name or "untyped", err)
        return None
