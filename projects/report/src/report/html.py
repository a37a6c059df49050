"""HTML report of database changes."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from jinja2 import Environment, FileSystemLoader, select_autoescape

if TYPE_CHECKING:
    from typing import TextIO

    from compare.rendering import Spans

TEMPLATE_DIR = Path(__file__).parent / "templates"

_JINJA_ENV = Environment(
    loader=FileSystemLoader(TEMPLATE_DIR),
    autoescape=select_autoescape(),
    trim_blocks=True,
    lstrip_blocks=True,
)


class HtmlReport:
    """Writes the report as a standalone HTML document to a text stream.

    Each sink call writes its part of the document immediately, so a report
    is streamed out table by table. All text is escaped by the template.
    """

    def __init__(self, stream: TextIO, *, generated_at: datetime | None = None) -> None:
        """Initialize with the stream to write to."""
        self._stream = stream
        self._generated_at = generated_at
        self._parts = _JINJA_ENV.get_template("report.html").module

    def _write(self, html: str) -> None:
        self._stream.write(html)

    def start(self) -> None:
        """Write the document head and page header."""
        generated_at = self._generated_at or datetime.now().astimezone()
        self._write(self._parts.start(f"{generated_at:%Y-%m-%d %H:%M:%S}"))

    def section_title(self, table_name: str) -> None:
        """Open the section of a changed table."""
        self._write(self._parts.section_title(table_name))

    def diff_section(self, before: Spans, after: Spans) -> None:
        """Write the Before and After panes of one record."""
        self._write(self._parts.diff_section(before, after))

    def section_end(self) -> None:
        """Close the current table section."""
        self._write(self._parts.section_end())

    def no_changes(self) -> None:
        """Write the message shown when nothing changed."""
        self._write(self._parts.no_changes())

    def finish(self) -> None:
        """Write the footer and close the document."""
        self._write(self._parts.finish())
