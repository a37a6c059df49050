"""Record normalization and canonical serialization."""

import json
from collections.abc import Iterable

from capture.coercion import coerce
from capture.errors import SerializationFailure
from capture.types import Cell, Record


def normalize(row: Iterable[Cell]) -> Record:
    """Normalize a database row into a record ordered by column name.

    Every column of the row is kept; one that cannot be read is ``None``.
    """
    values = {cell.name: coerce(cell.value, cell.type_name) for cell in row}
    return {name: values[name] for name in sorted(values)}


def serialize(record: Record) -> str:
    """Serialize a record to its canonical, diff-friendly JSON text.

    Keys are sorted and the output is pretty-printed with two-space
    indentation, so structurally identical records always produce identical
    text regardless of the order their columns were read in.

    Raises:
        SerializationFailure: If the record holds a value outside the
            canonical model, including non-finite floats.

    """
    try:
        return json.dumps(
            record,
            indent=2,
            sort_keys=True,
            ensure_ascii=False,
            allow_nan=False,
        )
    except (TypeError, ValueError) as err:
        msg = f"Cannot serialize record: {err}"
        raise SerializationFailure(msg) from err
