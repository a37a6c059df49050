"""Change detection between two snapshots of the same tables."""

import re
from collections import Counter
from collections.abc import Iterable, Iterator, Mapping
from decimal import Decimal
from hashlib import md5
from logging import getLogger
from typing import NamedTuple

from capture.errors import SerializationFailure
from capture.normalize import serialize
from capture.snapshot import Snapshot
from capture.types import Record
from compare.identity import UNKNOWN_IDENTITY, record_key

logger = getLogger(__name__)

# Identity -> canonical record text, None where serialization failed
type KeyedTexts = dict[str, str | None]

_NUMERIC = re.compile(r"-?\d+(\.\d+)?")


def identity_sort_key(identity: str) -> tuple[int, Decimal, str]:
    """Sort numeric identities numerically, before all other identities."""
    if _NUMERIC.fullmatch(identity):
        return (0, Decimal(identity), identity)
    return (1, Decimal(0), identity)


class TableChanges(NamedTuple):
    """Identities of the records that changed in one table."""

    table_name: str
    removed: frozenset[str] = frozenset()
    added: frozenset[str] = frozenset()
    modified: frozenset[str] = frozenset()

    @property
    def has_changes(self) -> bool:
        """Whether any record was removed, added or modified."""
        return bool(self.removed or self.added or self.modified)

    @property
    def changed(self) -> list[str]:
        """All changed identities: removed, then added, then modified."""
        return [
            *sorted(self.removed, key=identity_sort_key),
            *sorted(self.added, key=identity_sort_key),
            *sorted(self.modified, key=identity_sort_key),
        ]


class TableComparison(NamedTuple):
    """Changes of one table together with the record texts they refer to."""

    name: str
    changes: TableChanges
    before: KeyedTexts
    after: KeyedTexts


def content_identity(text: str | None, seen: Counter[str]) -> str:
    """Identity for a record without ``id``, derived from its canonical text.

    Identical records are numbered by occurrence, so duplicates are counted
    instead of collapsed.
    """
    content = md5((text or "").encode(), usedforsecurity=False).hexdigest()
    key = f"{UNKNOWN_IDENTITY}:{content}"
    seen[key] += 1
    return key if seen[key] == 1 else f"{key}#{seen[key]}"


def keyed_texts(records: Iterable[Record], *, collision_safe: bool = True) -> KeyedTexts:
    """Map each record's identity to its canonical text.

    With ``collision_safe`` records without ``id`` are keyed by content.
    Otherwise they share the ``"unknown"`` identity and the last one wins.
    """
    texts: KeyedTexts = {}
    seen: Counter[str] = Counter()

    for record in records:
        key = record_key(record)
        identity = UNKNOWN_IDENTITY if key is None else key
        try:
            text = serialize(record)
        except SerializationFailure as err:
            logger.warning("Comparing record %s by identity only: %s", identity, err)
            text = None

        if collision_safe and key is None:
            identity = content_identity(text, seen)
        elif identity in texts:
            logger.warning("Duplicate identity %s, keeping the last record", identity)

        texts[identity] = text

    return texts


def classify(
    before: Mapping[str, str | None],
    after: Mapping[str, str | None],
    table_name: str = "",
) -> TableChanges:
    """Classify identities as removed, added or modified.

    A record whose text is missing on either side cannot be shown to be
    unchanged and counts as modified.
    """
    common = before.keys() & after.keys()
    return TableChanges(
        table_name=table_name,
        removed=frozenset(before.keys() - after.keys()),
        added=frozenset(after.keys() - before.keys()),
        modified=frozenset(
            identity
            for identity in common
            if before[identity] is None
            or after[identity] is None
            or before[identity] != after[identity]
        ),
    )


def detect(
    before: Iterable[Record],
    after: Iterable[Record],
    table_name: str = "",
    *,
    collision_safe: bool = True,
) -> TableChanges:
    """Detect the changes between two snapshots of one table."""
    return classify(
        keyed_texts(before, collision_safe=collision_safe),
        keyed_texts(after, collision_safe=collision_safe),
        table_name,
    )


def compare_table(
    name: str,
    before: Iterable[Record],
    after: Iterable[Record],
    *,
    collision_safe: bool = True,
) -> TableComparison:
    """Compare two snapshots of one table, keeping the texts for rendering."""
    before_texts = keyed_texts(before, collision_safe=collision_safe)
    after_texts = keyed_texts(after, collision_safe=collision_safe)
    return TableComparison(
        name=name,
        changes=classify(before_texts, after_texts, name),
        before=before_texts,
        after=after_texts,
    )


def compare_snapshots(
    before: Snapshot,
    after: Snapshot,
    *,
    include_created: bool = True,
    collision_safe: bool = True,
) -> Iterator[TableComparison]:
    """Compare all tables of two snapshots in table name order.

    Tables missing from ``after`` compare against no records. Tables missing
    from ``before`` were created in between; they compare against no records
    when ``include_created`` and are skipped otherwise.
    """
    names = set(before)
    created = set(after) - names
    if include_created:
        names |= created
    elif created:
        logger.info("Skipping tables created in between: %s", ", ".join(sorted(created)))

    for name in sorted(names):
        yield compare_table(
            name,
            before.get(name, ()),
            after.get(name, ()),
            collision_safe=collision_safe,
        )
