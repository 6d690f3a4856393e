"""Health checks for the message bus and the /proc status records."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dbusfuzz.core.config import ConfigManager
from dbusfuzz.core.exceptions import DbusFuzzError


@dataclass
class HealthCheckResult:
    """Result of a single health check."""

    name: str
    ok: bool
    message: str = ""
    suggestion: str = ""


class HealthChecker:
    """Run health checks for the configured bus and liveness detection."""

    def __init__(
        self,
        config: ConfigManager | None = None,
        *,
        bus: str | None = None,
        proc_root: Path | None = None,
    ) -> None:
        self._config = config or ConfigManager()
        self._bus = bus
        self._proc_root = proc_root

    @property
    def bus(self) -> str:
        return self._bus or self._config.config.bus

    def check_bus(self) -> HealthCheckResult:
        """Check that the bus accepts a connection and answers ListNames."""
        from dbusfuzz.bus.connection import BusConnection

        try:
            with BusConnection(self.bus) as conn:
                names = conn.list_names()
        except DbusFuzzError as e:
            suggestion = "Start a session bus (e.g. dbus-run-session) or check DBUS_SESSION_BUS_ADDRESS."
            if self.bus == "system":
                suggestion = "Check that the system bus daemon is running and /run/dbus/system_bus_socket exists."
            return HealthCheckResult(name="bus", ok=False, message=str(e), suggestion=suggestion)
        return HealthCheckResult(name="bus", ok=True, message=f"{self.bus} bus: {len(names)} name(s)")

    def check_proc(self) -> HealthCheckResult:
        """Check that the liveness detector can read a status record (our own)."""
        from dbusfuzz.fuzz.liveness import PROC_ROOT, Liveness, is_alive

        proc_root = self._proc_root or PROC_ROOT
        state = is_alive(os.getpid(), proc_root=proc_root)
        if state is Liveness.ALIVE:
            return HealthCheckResult(name="proc", ok=True, message=f"{proc_root} status records readable")
        return HealthCheckResult(
            name="proc",
            ok=False,
            message=f"Cannot read {proc_root}/{os.getpid()}/status ({state.value})",
            suggestion="Crash detection needs a Linux procfs mounted at /proc.",
        )

    def check_all(self, *, skip_bus: bool = False) -> list[HealthCheckResult]:
        """Run all enabled checks."""
        results: list[HealthCheckResult] = []
        if not skip_bus:
            results.append(self.check_bus())
        results.append(self.check_proc())
        return results
