"""Line-level before/after diff rendering.

Record texts are aligned line by line with the Myers shortest edit script,
so the number of deleted plus inserted lines is minimal. Within a changed
region deletions come before insertions, as in conventional line diffs.
The alignment is returned as two parallel span sequences for side-by-side
display: a deleted line leaves an empty placeholder on the after side and an
inserted line one on the before side.
"""

from collections.abc import Iterator, Sequence
from enum import StrEnum
from logging import getLogger
from typing import NamedTuple

from capture.errors import RenderFailure

logger = getLogger(__name__)

# Upper bound on the edit distance the aligner searches
DEFAULT_MAX_EDITS = 2000


class ChangeTag(StrEnum):
    """Kind of change of an aligned line, named after its markup tag."""

    EQUAL = "equal"
    DELETE = "del"
    INSERT = "ins"


class Span(NamedTuple):
    """One aligned line, including its line terminator."""

    tag: ChangeTag
    text: str


type Spans = list[Span]


def split_lines(text: str) -> list[str]:
    """Split text on newlines, keeping the terminators.

    Unlike ``str.splitlines`` only ``\\n`` ends a line, so joining the result
    always gives back the input.
    """
    lines = text.split("\n")
    result = [f"{line}\n" for line in lines[:-1]]
    if lines[-1]:
        result.append(lines[-1])
    return result


def _trace(a: Sequence[str], b: Sequence[str], max_edits: int) -> list[dict[int, int]]:
    """Run the greedy Myers search, recording the frontier before each round."""
    n, m = len(a), len(b)
    frontier = {1: 0}
    trace: list[dict[int, int]] = []

    for d in range(min(n + m, max_edits) + 1):
        trace.append(frontier.copy())
        for k in range(-d, d + 1, 2):
            # Prefer extending the path that reached furthest; on a tie delete
            if k == -d or (k != d and frontier[k - 1] < frontier[k + 1]):
                x = frontier[k + 1]
            else:
                x = frontier[k - 1] + 1
            y = x - k
            while x < n and y < m and a[x] == b[y]:
                x += 1
                y += 1
            frontier[k] = x
            if x >= n and y >= m:
                return trace

    msg = f"More than {max_edits} edits needed to align {n} and {m} lines"
    raise RenderFailure(msg)


def _backtrack(
    a: Sequence[str],
    b: Sequence[str],
    trace: list[dict[int, int]],
) -> Iterator[Span]:
    """Walk the recorded frontiers back from the end, yielding spans in reverse."""
    x, y = len(a), len(b)
    for d in range(len(trace) - 1, -1, -1):
        frontier = trace[d]
        k = x - y
        if k == -d or (k != d and frontier[k - 1] < frontier[k + 1]):
            prev_k = k + 1
        else:
            prev_k = k - 1
        prev_x = frontier[prev_k]
        prev_y = prev_x - prev_k

        while x > prev_x and y > prev_y:
            x -= 1
            y -= 1
            yield Span(ChangeTag.EQUAL, a[x])

        if d > 0:
            if x == prev_x:
                yield Span(ChangeTag.INSERT, b[prev_y])
            else:
                yield Span(ChangeTag.DELETE, a[prev_x])
        x, y = prev_x, prev_y


def align(
    a: Sequence[str],
    b: Sequence[str],
    *,
    max_edits: int = DEFAULT_MAX_EDITS,
) -> Spans:
    """Align two line sequences into a minimal sequence of tagged spans.

    Raises:
        RenderFailure: If more than ``max_edits`` deletions and insertions
            would be needed.

    """
    # Common prefix and suffix are aligned up front, earliest lines first
    start = 0
    while start < len(a) and start < len(b) and a[start] == b[start]:
        start += 1
    end = 0
    while (
        end < len(a) - start
        and end < len(b) - start
        and a[len(a) - 1 - end] == b[len(b) - 1 - end]
    ):
        end += 1

    middle_a = a[start : len(a) - end]
    middle_b = b[start : len(b) - end]
    middle = list(_backtrack(middle_a, middle_b, _trace(middle_a, middle_b, max_edits)))
    middle.reverse()

    return [
        *(Span(ChangeTag.EQUAL, line) for line in a[:start]),
        *middle,
        *(Span(ChangeTag.EQUAL, line) for line in a[len(a) - end :]),
    ]


def replace_all(a: Sequence[str], b: Sequence[str]) -> Spans:
    """Unaligned fallback: every before line deleted, every after line inserted."""
    return [
        *(Span(ChangeTag.DELETE, line) for line in a),
        *(Span(ChangeTag.INSERT, line) for line in b),
    ]


def sides(spans: Spans) -> tuple[Spans, Spans]:
    """Split a tagged span sequence into parallel before and after sequences."""
    before: Spans = []
    after: Spans = []
    for span in spans:
        match span.tag:
            case ChangeTag.EQUAL:
                before.append(span)
                after.append(span)
            case ChangeTag.DELETE:
                before.append(span)
                after.append(Span(ChangeTag.DELETE, ""))
            case ChangeTag.INSERT:
                before.append(Span(ChangeTag.INSERT, ""))
                after.append(span)
    return before, after


def render(
    before_text: str,
    after_text: str,
    *,
    max_edits: int = DEFAULT_MAX_EDITS,
) -> tuple[Spans, Spans]:
    """Render the line diff of two record texts as side-by-side spans.

    Texts that cannot be aligned within ``max_edits`` are shown as fully
    replaced instead of failing the report.
    """
    a = split_lines(before_text)
    b = split_lines(after_text)
    try:
        spans = align(a, b, max_edits=max_edits)
    except RenderFailure as err:
        logger.warning("Showing record as replaced: %s", err)
        spans = replace_all(a, b)
    return sides(spans)
