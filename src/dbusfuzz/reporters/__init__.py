"""Reporters: console progress/failures, full log, JSON summary."""

from dbusfuzz.reporters.console import ConsoleReporter, reproducer_command
from dbusfuzz.reporters.json_reporter import JsonReporter

__all__ = [
    "ConsoleReporter",
    "JsonReporter",
    "reproducer_command",
]
