"""Trial controller: the generate / invoke / check loop for one method."""

from __future__ import annotations

import functools
import logging
import time
from pathlib import Path
from typing import Callable

from dbusfuzz.core.config import MAX_BUFFER_SIZE, MIN_BUFFER_SIZE, FuzzConfigModel
from dbusfuzz.core.exceptions import BusConnectionError, InternalError, UnsupportedSignatureError
from dbusfuzz.core.schema import (
    OUTCOME_CODES,
    BusErrorKind,
    FuzzTarget,
    MethodReport,
    ReturnCode,
    TrialOutcome,
)
from dbusfuzz.fuzz.arguments import MethodUnderTest
from dbusfuzz.fuzz.liveness import PROC_ROOT, Liveness, is_alive
from dbusfuzz.fuzz.outcome import classify
from dbusfuzz.fuzz.payload import OwnedCall, create_call
from dbusfuzz.protocols import MethodInvoker, ValueSource
from dbusfuzz.reporters.console import ConsoleReporter
from dbusfuzz.utils import run_check_command

log = logging.getLogger(__name__)


def effective_buffer_size(buffer_size: int) -> int:
    """Budgets below MIN_BUFFER_SIZE (including "not supplied", 0) become MAX_BUFFER_SIZE."""
    return buffer_size if buffer_size >= MIN_BUFFER_SIZE else MAX_BUFFER_SIZE


class TrialController:
    """Runs the fuzzing loop for one method of one target.

    Each iteration releases the previous payload, builds a new one, invokes
    the method, runs the optional check command, checks target liveness and
    classifies the reply. The loop ends when the value source says stop, on
    the first failure, or when ``max_exceptions`` remote exceptions were seen
    (which counts as a pass).
    """

    def __init__(
        self,
        invoker: MethodInvoker,
        values: ValueSource,
        target: FuzzTarget,
        *,
        settings: FuzzConfigModel | None = None,
        reporter: ConsoleReporter | None = None,
        check_command: str | None = None,
        liveness: Callable[[int], Liveness] | None = None,
        run_check: Callable[[str], int] = run_check_command,
        sleep: Callable[[float], None] = time.sleep,
        proc_root: Path | None = None,
    ) -> None:
        self._invoker = invoker
        self._values = values
        self._target = target
        self._settings = settings or FuzzConfigModel()
        self._reporter = reporter or ConsoleReporter()
        self._check_command = check_command
        self._liveness = liveness or functools.partial(is_alive, proc_root=proc_root or PROC_ROOT)
        self._run_check = run_check
        self._sleep = sleep

    @property
    def target(self) -> FuzzTarget:
        return self._target

    def run(self, method: MethodUnderTest, *, void_method: bool, buffer_size: int = 0) -> MethodReport:
        """Fuzz ``method`` and return its report; ``report.code`` is the method's return code."""
        method.exception_count = 0
        report = MethodReport(
            method=method.name,
            interface=self._target.interface,
            object_path=self._target.object_path,
            arguments=method.signatures,
        )
        self._reporter.method_started(method)

        budget = effective_buffer_size(buffer_size)
        try:
            if self._target.pid <= 0:
                outcome, detail = TrialOutcome.INTERNAL_ERROR, f"Invalid target pid {self._target.pid}"
            else:
                self._values.init(budget)
                outcome, detail = self._loop(method, report, void_method)

            report.outcome = outcome
            report.code = OUTCOME_CODES[outcome]
            report.detail = detail
            report.exceptions = method.exception_count

            if outcome is TrialOutcome.UNSUPPORTED_SIGNATURE:
                self._reporter.unsupported(method, detail)
            elif outcome is TrialOutcome.INTERNAL_ERROR:
                self._reporter.internal_error(report)
            elif report.code is ReturnCode.SUCCESS:
                self._reporter.passed(report)
            else:
                report.reproducer = self._reporter.failed(
                    report,
                    method,
                    self._target,
                    budget if buffer_size != 0 else None,
                    self._check_command,
                )
        finally:
            method.release_values()
        return report

    def _loop(
        self,
        method: MethodUnderTest,
        report: MethodReport,
        void_method: bool,
    ) -> tuple[TrialOutcome, str]:
        pid = self._target.pid
        payload: OwnedCall | None = None

        while self._values.should_continue(method.string_length_biasing, method.argument_count):
            if payload is not None:
                method.release_values()
                payload = None

            try:
                payload = create_call(method, self._values)
            except UnsupportedSignatureError as e:
                return TrialOutcome.UNSUPPORTED_SIGNATURE, e.signature
            except InternalError as e:
                log.debug("Could not build call for %s: %s", method.name, e)
                return TrialOutcome.INTERNAL_ERROR, str(e)

            report.trials += 1
            try:
                result = self._invoker.call(method.name, payload)
            except BusConnectionError as e:
                return TrialOutcome.INTERNAL_ERROR, f"Bus call failed: {e}"

            if result.error is not None and result.error.kind is BusErrorKind.TIMEOUT:
                # the target may still be chewing on a large input
                log.debug("Bus timeout on %s, waiting %.0fs", method.name, self._settings.timeout_cooldown)
                self._sleep(self._settings.timeout_cooldown)
            verdict = classify(result, void_method)

            if self._check_command is not None:
                status = self._run_check(self._check_command)
                if status < 0:
                    return TrialOutcome.INTERNAL_ERROR, f"Check command '{self._check_command}' could not be run"
                if status > 0:
                    return TrialOutcome.EXTERNAL_CHECK_FAILED, f"'{self._check_command}' returned {status}"

            state = self._liveness(pid)
            if state is Liveness.ERROR:
                return TrialOutcome.INTERNAL_ERROR, f"Error while reading status file of process {pid}"
            if state is Liveness.CRASHED:
                return TrialOutcome.PROCESS_CRASHED, f"process {pid} exited"

            if verdict.outcome is TrialOutcome.REMOTE_EXCEPTION:
                if not verdict.counted:
                    self._reporter.skipped(method, verdict.detail)
                    continue
                method.exception_count += 1
                self._reporter.exception_raised(method, verdict.detail)
                if method.exception_count >= self._settings.max_exceptions:
                    log.debug("%s: %d exceptions raised, moving on", method.name, method.exception_count)
                    return TrialOutcome.REMOTE_EXCEPTION, f"{method.exception_count} exceptions raised"
                continue
            if verdict.ends_loop:
                return verdict.outcome, verdict.detail

            self._reporter.trial_succeeded(self._target, method)

        return TrialOutcome.SUCCESS, ""


def fuzz_method(
    method: MethodUnderTest,
    invoker: MethodInvoker,
    values: ValueSource,
    *,
    buffer_size: int,
    bus_name: str,
    object_path: str,
    interface: str,
    pid: int,
    void_method: bool,
    check_command: str | None = None,
    **options: object,
) -> int:
    """Fuzz one method and return its return code (see ReturnCode)."""
    target = FuzzTarget(bus_name=bus_name, object_path=object_path, interface=interface, pid=pid)
    controller = TrialController(invoker, values, target, check_command=check_command, **options)  # type: ignore[arg-type]
    return int(controller.run(method, void_method=void_method, buffer_size=buffer_size).code)
