"""CLI entry point for dbusfuzz."""

from __future__ import annotations

import contextlib
import logging
from pathlib import Path

import click

from dbusfuzz import __version__
from dbusfuzz.core.config import AppConfig, ConfigManager
from dbusfuzz.core.exceptions import DbusFuzzError
from dbusfuzz.core.health import HealthChecker

log = logging.getLogger(__name__)


def _load_config(project_root: Path | None = None) -> ConfigManager:
    """Load .env into the environment and read the YAML config."""
    from dotenv import load_dotenv

    root = project_root or Path.cwd()
    load_dotenv(root / ".env")
    config = ConfigManager(project_root=project_root)
    config.load()
    return config


def _setup_logging(debug: bool) -> None:
    logging.basicConfig(format="%(levelname)s %(name)s: %(message)s")
    logging.getLogger("dbusfuzz").setLevel(logging.DEBUG if debug else logging.WARNING)


def _bus_option(func):
    return click.option(
        "--system/--session",
        "system_bus",
        default=None,
        help="Use the system or the session bus (default: config 'bus').",
    )(func)


def _resolve_bus(app: AppConfig, system_bus: bool | None) -> str:
    if system_bus is None:
        return app.bus
    return "system" if system_bus else "session"


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """dbusfuzz: fuzz the methods exposed by services on a D-Bus bus."""
    pass


@main.command()
@click.option("--name", "-n", "bus_name", required=True, help="Bus name of the service to fuzz.")
@click.option("--object", "-o", "object_path", help="Only fuzz this object path (default: walk the whole tree).")
@click.option("--interface", "-i", help="Only fuzz this interface.")
@click.option("--method", "-t", help="Only fuzz this method.")
@click.option("--buffer-size", "-b", type=int, help="Maximum string length budget in bytes.")
@click.option("--command", "-e", "check_command", help="Shell command run after every call; non-zero exit is a failure.")
@click.option("--log-dir", "-L", type=click.Path(path_type=Path), help="Write the full log to <log-dir>/<name>.")
@_bus_option
@click.option("--verbose", "-v", is_flag=True, help="Also print PASS and SKIP lines.")
@click.option("--debug", "-d", is_flag=True, help="Debug logging.")
@click.option("--report", "report_path", type=click.Path(path_type=Path), help="Write a JSON summary to this file.")
def fuzz(
    bus_name: str,
    object_path: str | None,
    interface: str | None,
    method: str | None,
    buffer_size: int | None,
    check_command: str | None,
    log_dir: Path | None,
    system_bus: bool | None,
    verbose: bool,
    debug: bool,
    report_path: Path | None,
) -> None:
    """Fuzz every method of NAME (optionally narrowed by object, interface and method)."""
    from dbusfuzz.bus.connection import BusConnection
    from dbusfuzz.fuzz.session import FuzzSession
    from dbusfuzz.reporters.console import ConsoleReporter
    from dbusfuzz.reporters.full_log import full_log_context
    from dbusfuzz.reporters.json_reporter import JsonReporter

    _setup_logging(debug)
    try:
        app = _load_config().config
        bus = _resolve_bus(app, system_bus)
        reporter = ConsoleReporter(verbose=verbose)
        log_dir = log_dir or (Path(app.log_dir) if app.log_dir else None)

        with contextlib.ExitStack() as stack:
            if log_dir is not None:
                stack.enter_context(full_log_context(log_dir / bus_name))
            conn = stack.enter_context(BusConnection(bus, call_timeout=app.fuzz.call_timeout))
            session = FuzzSession(conn, app, reporter=reporter)
            summary = session.run(
                bus_name,
                object_path=object_path,
                interface=interface,
                method=method,
                check_command=check_command,
                buffer_size=buffer_size,
            )
    except DbusFuzzError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    reporter.summary(summary)
    if report_path is None and "json" in app.reporters:
        report_path = Path(f"{bus_name}.json")
    if report_path is not None:
        JsonReporter().report_summary(summary, report_path)
        click.echo(f"Wrote {report_path}")
    raise SystemExit(summary.exit_code)


@main.command("list")
@_bus_option
def list_names(system_bus: bool | None) -> None:
    """List the names currently owned on the bus."""
    from dbusfuzz.bus.connection import BusConnection

    try:
        app = _load_config().config
        with BusConnection(_resolve_bus(app, system_bus)) as conn:
            names = conn.list_names()
    except DbusFuzzError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)
    for name in names:
        click.echo(name)


@main.command()
@_bus_option
@click.option("--verbose", "-v", is_flag=True, help="Show detailed output.")
@click.option("--skip-bus", is_flag=True, help="Skip the bus connectivity check.")
def check(system_bus: bool | None, verbose: bool, skip_bus: bool) -> None:
    """Verify bus access and crash detection; show suggestions for failures."""
    try:
        config = _load_config()
    except DbusFuzzError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)
    bus = None if system_bus is None else ("system" if system_bus else "session")
    checker = HealthChecker(config=config, bus=bus)
    results = checker.check_all(skip_bus=skip_bus)
    for r in results:
        status = "OK" if r.ok else "FAIL"
        click.echo(f"  {r.name}: {status}")
        if verbose or not r.ok:
            click.echo(f"    {r.message}")
        if not r.ok and r.suggestion:
            click.echo(f"    → {r.suggestion}")
    if all(r.ok for r in results):
        click.echo("All checks passed.")
    else:
        click.echo("Some checks failed. Fix the issues above or follow the suggested steps.", err=True)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
