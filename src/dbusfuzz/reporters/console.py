"""Human-readable progress and failure output, including reproducer lines."""

from __future__ import annotations

import logging
import shlex

import click

from dbusfuzz.core.schema import FuzzSummary, FuzzTarget, MethodReport, ReturnCode, TrialOutcome
from dbusfuzz.fuzz.arguments import ArgumentSignature, MethodUnderTest
from dbusfuzz.reporters import full_log

log = logging.getLogger(__name__)

PROGRAM = "dbusfuzz"


def reproducer_command(
    target: FuzzTarget,
    method: str,
    buffer_size: int | None = None,
    check_command: str | None = None,
) -> str:
    """Command line that re-runs the fuzzer on exactly this method."""
    argv = [
        PROGRAM, "fuzz", "-v",
        "-n", target.bus_name,
        "-o", target.object_path,
        "-i", target.interface,
        "-t", method,
    ]
    if buffer_size is not None:
        argv += ["-b", str(buffer_size)]
    if check_command is not None:
        argv += ["-e", check_command]
    return shlex.join(argv)


def describe_argument(arg: ArgumentSignature) -> str:
    """One "on input" line for an argument and its last generated value."""
    if not arg.is_basic or not arg.has_value:
        return f"    --{arg.type_code}-- (not generated)"
    value = arg.generated_value
    code = arg.type_code
    if code == "v":
        code, value = full_log.unwrap_variant(value)
    text = full_log.format_value(code, value)
    if code in full_log.STRING_CODES:
        return f"    --{arg.type_code} [length: {len(text.encode('utf-8'))} B]-- '{text}'"
    return f"    --{arg.type_code}-- '{text}'"


class ConsoleReporter:
    """Reporter for the progress/failure stream and the full log."""

    def __init__(self, *, verbose: bool = False) -> None:
        self.verbose = verbose

    def _verbose(self, message: str) -> None:
        if self.verbose:
            click.echo(message)

    def interface_started(self, target: FuzzTarget) -> None:
        click.echo(f"Object: {click.style(target.object_path, bold=True)}")
        click.echo(f" Interface: {click.style(target.interface, bold=True)}")

    def summary(self, summary: FuzzSummary) -> None:
        failed = [m for m in summary.methods if m.code not in (ReturnCode.SUCCESS, ReturnCode.INTERNAL_ERROR)]
        errors = summary.count(TrialOutcome.INTERNAL_ERROR)
        skipped = summary.count(TrialOutcome.UNSUPPORTED_SIGNATURE)
        click.echo(
            f"Tested {len(summary.methods)} method(s) of {summary.bus_name}: "
            f"{len(failed)} failed, {skipped} skipped, {errors} error(s)."
        )
        if summary.stopped_early:
            click.echo(f"Process {summary.pid} crashed; remaining methods were not tested.")

    def method_started(self, method: MethodUnderTest) -> None:
        log.debug("  Method: %s(%s)", method.name, ", ".join(method.signatures))

    def trial_succeeded(self, target: FuzzTarget, method: MethodUnderTest) -> None:
        full_log.write_entry(target.interface, target.object_path, method.name, method.arguments, TrialOutcome.SUCCESS)

    def exception_raised(self, method: MethodUnderTest, message: str) -> None:
        log.debug("  EXCE %s - D-Bus exception thrown: %.60s", method.name, message)

    def skipped(self, method: MethodUnderTest, reason: str) -> None:
        self._verbose(f"  {click.style('SKIP', fg='blue')} {method.name} - {reason}")

    def unsupported(self, method: MethodUnderTest, signature: str) -> None:
        log.debug("  unsupported argument by dbusfuzz: %s", signature)
        self.skipped(method, "advanced signatures not yet implemented")

    def passed(self, report: MethodReport) -> None:
        self._verbose(f"  {click.style('PASS', fg='green')} {report.method}")

    def internal_error(self, report: MethodReport) -> None:
        click.echo(f"  {click.style('ERROR', fg='red')} {report.method} - {report.detail}", err=True)

    def failed(
        self,
        report: MethodReport,
        method: MethodUnderTest,
        target: FuzzTarget,
        buffer_size: int | None = None,
        check_command: str | None = None,
    ) -> str:
        """Print failure diagnostics and return the reproducer command line."""
        click.echo(f"  {click.style('FAIL', fg='red')} {report.method} - {report.detail}")
        click.echo("   on input:")
        for arg in method.arguments:
            click.echo(describe_argument(arg))
        full_log.write_entry(target.interface, target.object_path, method.name, method.arguments, report.outcome)
        command = reproducer_command(target, method.name, buffer_size, check_command)
        click.echo(f"   reproducer: {click.style(command, fg='yellow')}")
        return command
