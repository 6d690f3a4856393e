"""Target liveness from the kernel's /proc/<pid>/status record."""

from __future__ import annotations

import logging
import re
from enum import Enum
from pathlib import Path

log = logging.getLogger(__name__)

PROC_ROOT = Path("/proc")

_CORE_DUMPING_RE = re.compile(r"^CoreDumping:\s*(-?\d+)")


class Liveness(str, Enum):
    ALIVE = "alive"
    CRASHED = "crashed"
    ERROR = "error"


def is_alive(pid: int, proc_root: Path = PROC_ROOT) -> Liveness:
    """Report whether ``pid`` is still running and not dumping core.

    A read error while scanning the record is reported as CRASHED: a process
    that disappears mid-read is more likely than a transient I/O failure.
    """
    if pid <= 0:
        raise ValueError(f"Invalid pid {pid}")
    status = Path(proc_root) / str(pid) / "status"
    try:
        f = open(status, encoding="utf-8", errors="replace")
    except (FileNotFoundError, NotADirectoryError):
        return Liveness.CRASHED
    except OSError as e:
        log.debug("Cannot open %s: %s", status, e)
        return Liveness.ERROR

    with f:
        try:
            for line in f:
                m = _CORE_DUMPING_RE.match(line)
                if m:
                    if int(m.group(1)) > 0:
                        return Liveness.CRASHED
                    break
        except OSError as e:
            log.debug("Read error on %s, assuming process %d exited: %s", status, pid, e)
            return Liveness.CRASHED
    return Liveness.ALIVE
