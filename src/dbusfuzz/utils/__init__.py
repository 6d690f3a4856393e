"""Shared utilities."""

from __future__ import annotations

import logging
import subprocess

log = logging.getLogger(__name__)


def run_check_command(command: str | None) -> int:
    """Run the post-call check command with its output discarded.

    Returns 0 when ``command`` is None or succeeded, the exit status (> 0) on
    failure, and a negative value when it could not be run or was killed by
    a signal.
    """
    if command is None:
        return 0
    try:
        completed = subprocess.run(
            command,
            shell=True,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
    except OSError as e:
        log.warning("Could not run check command %r: %s", command, e)
        return -1
    if completed.returncode < 0:
        log.debug("Check command %r killed by signal %d", command, -completed.returncode)
    return completed.returncode
