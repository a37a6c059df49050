"""Command line interface for dbba."""

import logging
import secrets
import sys
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from sys import stdout
from tempfile import gettempdir
from typing import Annotated, Any

from capture import Database, DbbaError
from compare import command_trigger, console_trigger
from compare import run as run_comparison
from cyclopts import App, Parameter
from report import HtmlReport, summarize
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from sqlalchemy import URL
from sqlalchemy.exc import SQLAlchemyError

# "-h" is the short form of --host
app = App(help="Database Before/After diff tool", help_flags=["--help"])

console = Console()
err_console = Console(stderr=True)

# Constants
DEFAULT_DRIVER = "mysql+pymysql"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3306
DEFAULT_ENCODING = "utf8"
DEFAULT_SUFFIX = "db_diff.html"


@dataclass(frozen=True)
class ConnectionSettings:
    """Connection parameters of the audited database."""

    username: str
    database: str
    password: str = ""
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    encoding: str = DEFAULT_ENCODING
    driver: str = DEFAULT_DRIVER

    @property
    def url(self) -> URL:
        """SQLAlchemy URL with the credentials escaped."""
        return URL.create(
            self.driver,
            username=self.username,
            password=self.password or None,
            host=self.host,
            port=self.port,
            database=self.database,
            query={"charset": self.encoding},
        )


def print_error(message: str) -> None:
    """Print error message to stderr."""
    err_console.print(f"[bold red]Error:[/] {message}")


def print_success(message: str) -> None:
    """Print success message to stderr."""
    err_console.print(f"[bold green]✓[/] {message}")


def print_info(message: str) -> None:
    """Print info message to stderr."""
    err_console.print(f"[bold blue]i[/] {message}")


def setup_logging(*, verbose: bool = False) -> None:
    """Send log records through rich on stderr."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=verbose)],
    )


def report_path(output_dir: Path, suffix: str, now: datetime | None = None) -> Path:
    """Unique report file path, sortable by creation time."""
    timestamp = f"{now or datetime.now().astimezone():%Y%m%dT%H%M%S}"
    return output_dir / f"{timestamp}_{secrets.token_hex(4)}_{suffix}"


def format_summary_table(data: Iterable[dict[str, Any]]) -> None:
    """Format change summary as a rich table."""
    data = list(data)
    if not data:
        console.print("No changes detected.")
        return

    table = Table(title="Database Changes")
    table.add_column("Table", style="bold cyan")
    table.add_column("Removed", style="bold red", justify="right")
    table.add_column("Added", style="bold green", justify="right")
    table.add_column("Modified", style="bold yellow", justify="right")

    for summary in data:
        table.add_row(
            summary.get("name", ""),
            str(summary.get("removed", 0)),
            str(summary.get("added", 0)),
            str(summary.get("modified", 0)),
        )

    console.print(table)


@app.default
def run(  # noqa: PLR0913
    *,
    host: Annotated[str, Parameter(name=["--host", "-h"], env_var="DB_HOST")] = DEFAULT_HOST,
    port: Annotated[int, Parameter(name=["--port", "-P"], env_var="DB_PORT")] = DEFAULT_PORT,
    username: Annotated[
        str | None,
        Parameter(name=["--username", "-u"], env_var="DB_USERNAME"),
    ] = None,
    password: Annotated[str, Parameter(name=["--password", "-p"], env_var="DB_PASSWORD")] = "",
    database: Annotated[
        str | None,
        Parameter(name=["--database", "-d"], env_var="DB_DATABASE"),
    ] = None,
    encoding: Annotated[
        str,
        Parameter(name=["--encoding", "-e"], env_var="DB_ENCODING"),
    ] = DEFAULT_ENCODING,
    url: Annotated[str | None, Parameter(env_var="DB_URL")] = None,
    suffix: Annotated[str, Parameter(name=["--suffix", "-s"])] = DEFAULT_SUFFIX,
    output_dir: Annotated[
        Path | None,
        Parameter(env_var=["DBBA_OUTPUT_DIR", "RAILS_ROOT"]),
    ] = None,
    include: tuple[str, ...] = (),
    exclude: tuple[str, ...] = (),
    command: str | None = None,
    skip_created: bool = False,
    last_write_wins: bool = False,
    verbose: Annotated[bool, Parameter(name=["--verbose", "-v"])] = False,
) -> None:
    """Snapshot a database around an operation and report what it changed.

    Parameters
    ----------
    host
        Database host.
    port
        Database port.
    username
        Database username.
    password
        Database password.
    database
        Database name.
    encoding
        Connection character set.
    url
        SQLAlchemy database URL, used instead of the connection options.
    suffix
        Suffix of the report file name.
    output_dir
        Directory the report is written to.
    include
        Only compare tables matching these patterns (glob, or regex after ``re:``).
    exclude
        Never compare tables matching these patterns.
    command
        Shell command to run as the operation instead of waiting for Enter.
    skip_created
        Leave out tables created during the operation.
    last_write_wins
        Key all records without ``id`` as ``unknown``, keeping only the last.
    verbose
        Show debug logging.

    """
    setup_logging(verbose=verbose)

    if url is None:
        if not username or not database:
            print_error("Either --url or both --username and --database are required")
            sys.exit(1)
        settings = ConnectionSettings(
            username=username,
            database=database,
            password=password,
            host=host,
            port=port,
            encoding=encoding,
        )
        target: str | URL = settings.url
    else:
        target = url

    output = report_path(output_dir or Path(gettempdir()), suffix)
    trigger = command_trigger(command) if command else console_trigger(err_console)

    try:
        with (
            Database(target).connect() as source,
            output.open("w", encoding="utf-8") as stream,
        ):
            print_info(f"Report: {output}")
            changes = run_comparison(
                source,
                trigger,
                HtmlReport(stream),
                include=include,
                exclude=exclude,
                include_created=not skip_created,
                collision_safe=not last_write_wins,
                notify=print_info,
            )
    except (DbbaError, SQLAlchemyError) as e:
        output.unlink(missing_ok=True)
        print_error(str(e))
        sys.exit(1)
    except OSError as e:
        output.unlink(missing_ok=True)
        print_error(f"Failed to write report: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        output.unlink(missing_ok=True)
        print_error("Interrupted by user")
        sys.exit(1)

    format_summary_table(summarize(changes))
    print_success(f"Report written to {output}")
    stdout.write(f"open {output}\n")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
