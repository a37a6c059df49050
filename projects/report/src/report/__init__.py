"""Report sinks for database before/after changes."""

from report.html import HtmlReport
from report.summary import summarize

__all__ = ["HtmlReport", "summarize"]
