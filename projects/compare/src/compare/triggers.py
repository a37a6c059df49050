"""Triggers that block until the audited operation has completed."""

import subprocess
from collections.abc import Callable
from logging import getLogger

from rich.console import Console

logger = getLogger(__name__)

# Blocks until the operation is done; the return value is never interpreted
type Trigger = Callable[[], object]


def console_trigger(console: Console, prompt: str | None = None) -> Trigger:
    """Wait for the user to press Enter once they have run the operation."""
    message = prompt or "[bold yellow]Run the use case now, then press Enter when done.[/]"

    def wait() -> str:
        return console.input(message)

    return wait


def command_trigger(command: str) -> Trigger:
    """Run a shell command as the operation and wait for it to exit."""

    def run() -> int:
        logger.info("Running operation: %s", command)
        completed = subprocess.run(command, shell=True, check=False)  # noqa: S602
        if completed.returncode:
            logger.warning("Operation exited with status %d", completed.returncode)
        return completed.returncode

    return run
