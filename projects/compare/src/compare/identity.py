"""Record identity used to match records across two snapshots."""

from decimal import Decimal
from math import isfinite

from capture.types import Record

ID_FIELD = "id"
UNKNOWN_IDENTITY = "unknown"


def record_key(record: Record) -> str | None:
    """Return the key written from a record's ``id`` field, None without a usable id.

    Integer ids are written as plain base-10 digits, float ids in positional
    notation and string ids verbatim.
    """
    match record.get(ID_FIELD):
        case bool() | None:
            return None
        case int() as value:
            return str(value)
        case float() as value if isfinite(value):
            # repr is the shortest round-tripping form, Decimal drops the exponent
            return format(Decimal(repr(value)), "f")
        case str() as value:
            return value
        case _:
            return None


def identity_of(record: Record) -> str:
    """Return the identity of a record.

    Records without a usable ``id`` share the ``"unknown"`` identity.
    """
    key = record_key(record)
    return UNKNOWN_IDENTITY if key is None else key
