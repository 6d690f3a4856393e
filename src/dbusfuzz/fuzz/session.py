"""Fuzz every selected method of one bus name."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable

from dbusfuzz.bus.connection import BusConnection
from dbusfuzz.bus.introspect import walk_objects
from dbusfuzz.core.config import AppConfig
from dbusfuzz.core.exceptions import AllocationError
from dbusfuzz.core.schema import (
    FuzzSummary,
    FuzzTarget,
    MethodInfo,
    MethodReport,
    ReturnCode,
    TrialOutcome,
)
from dbusfuzz.fuzz.arguments import append_argument, begin_method, end_method
from dbusfuzz.fuzz.trial import TrialController
from dbusfuzz.fuzz.values import ValueGenerator
from dbusfuzz.protocols import ValueSource
from dbusfuzz.reporters.console import ConsoleReporter

log = logging.getLogger(__name__)


class FuzzSession:
    """Walks the objects of a bus name and runs the trial controller on each method."""

    def __init__(
        self,
        connection: BusConnection,
        config: AppConfig,
        *,
        reporter: ConsoleReporter | None = None,
        values: ValueSource | None = None,
        proc_root: Path | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._connection = connection
        self._config = config
        self._reporter = reporter or ConsoleReporter()
        fuzz = config.fuzz
        self._values = values or ValueGenerator(
            min_iterations=fuzz.min_iterations,
            max_iterations=fuzz.max_iterations,
            seed=fuzz.seed,
        )
        self._proc_root = proc_root
        self._sleep = sleep

    def _skip_interface(self, name: str, wanted: str | None) -> bool:
        if wanted:
            return name != wanted
        return name in self._config.skip_interfaces

    def _fuzz_one(self, controller: TrialController, info: MethodInfo, buffer_size: int) -> MethodReport:
        try:
            method = begin_method(info.name)
        except AllocationError as e:
            return MethodReport(
                method=info.name,
                interface=controller.target.interface,
                object_path=controller.target.object_path,
                outcome=TrialOutcome.INTERNAL_ERROR,
                code=ReturnCode.INTERNAL_ERROR,
                detail=str(e),
            )
        try:
            for sig in info.in_signatures:
                append_argument(method, sig)
            return controller.run(method, void_method=info.is_void, buffer_size=buffer_size)
        finally:
            end_method(method)

    def run(
        self,
        bus_name: str,
        *,
        object_path: str | None = None,
        interface: str | None = None,
        method: str | None = None,
        check_command: str | None = None,
        buffer_size: int | None = None,
    ) -> FuzzSummary:
        """Fuzz ``bus_name``; stops early once the target process has crashed."""
        if buffer_size is None:
            buffer_size = self._config.fuzz.buffer_size
        pid = self._connection.get_pid(bus_name)
        summary = FuzzSummary(bus_name=bus_name, pid=pid)
        log.info("Fuzzing %s (pid %d)", bus_name, pid)

        objects = walk_objects(
            self._connection,
            bus_name,
            object_path or "/",
            recursive=object_path is None,
        )
        for path, node in objects:
            for iface in node.interfaces:
                if self._skip_interface(iface.name, interface):
                    continue
                methods = [m for m in iface.methods if method is None or m.name == method]
                if not methods:
                    continue
                target = FuzzTarget(bus_name=bus_name, object_path=path, interface=iface.name, pid=pid)
                self._reporter.interface_started(target)
                controller = TrialController(
                    self._connection.proxy(bus_name, path, iface.name),
                    self._values,
                    target,
                    settings=self._config.fuzz,
                    reporter=self._reporter,
                    check_command=check_command,
                    proc_root=self._proc_root,
                    sleep=self._sleep,
                )
                for info in methods:
                    report = self._fuzz_one(controller, info, buffer_size)
                    summary.methods.append(report)
                    if report.outcome is TrialOutcome.PROCESS_CRASHED:
                        log.warning("Process %d crashed; not fuzzing further methods", pid)
                        summary.stopped_early = True
                        return summary

        if method is not None and not summary.methods:
            log.warning("Method %s not found on %s", method, bus_name)
        return summary
