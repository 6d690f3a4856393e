"""Machine-parsable full log: one semicolon-delimited line per trial.

Line shape: ``interface;object;method;sig;value;...;outcome``. Strings,
object paths and signatures are logged as a hex dump of their UTF-8 bytes.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator, Sequence

from dbusfuzz.core.schema import TrialOutcome
from dbusfuzz.fuzz.arguments import ArgumentSignature

LOGGER_NAME = "dbusfuzz.full"

STRING_CODES = "sog"

OUTCOME_TOKENS: dict[TrialOutcome, str] = {
    TrialOutcome.SUCCESS: "Success",
    TrialOutcome.PROCESS_CRASHED: "Crash",
    TrialOutcome.REMOTE_EXCEPTION_FATAL: "No reply",
    TrialOutcome.EXTERNAL_CHECK_FAILED: "Command execution error",
    TrialOutcome.VOID_CONTRACT_VIOLATION: "Void method returned value",
}


def get_logger() -> logging.Logger:
    """Return the full-log logger (never propagates to the console)."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.propagate = False
    return logger


@contextmanager
def full_log_context(log_file: Path) -> Generator[logging.Logger, None, None]:
    """Append full-log lines to ``log_file`` for the duration of the context."""
    logger = get_logger()
    logger.setLevel(logging.INFO)
    log_file = Path(log_file)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)

    try:
        yield logger
    finally:
        logger.removeHandler(handler)
        handler.close()


def unwrap_variant(value: Any) -> tuple[str, Any]:
    """Follow nested ``(signature, value)`` variants down to the innermost value."""
    code, inner = "v", value
    while code == "v" and isinstance(inner, tuple) and len(inner) == 2:
        code, inner = inner
    return code, inner


def format_value(type_code: str, value: Any) -> str:
    """Printable form of a basic value: decimal ints, true/false, UTF-8 text."""
    if type_code == "v":
        code, inner = unwrap_variant(value)
        if code == "v":
            return "unable to deconstruct variant"
        return format_value(code, inner)
    if type_code == "b":
        return "true" if value else "false"
    if type_code == "d":
        return repr(value)
    return str(value)


def machine_value(type_code: str, value: Any) -> str:
    if type_code == "v":
        code, inner = unwrap_variant(value)
        return machine_value(code, inner) if code != "v" else ""
    if type_code in STRING_CODES:
        return str(value).encode("utf-8").hex()
    return format_value(type_code, value)


def format_entry(
    interface: str,
    object_path: str,
    method: str,
    arguments: Sequence[ArgumentSignature],
    outcome: TrialOutcome,
) -> str:
    fields = [interface, object_path, method]
    for arg in arguments:
        fields.append(arg.type_code)
        fields.append(machine_value(arg.type_code, arg.generated_value) if arg.has_value else "")
    fields.append(OUTCOME_TOKENS.get(outcome, outcome.value))
    return ";".join(fields)


def write_entry(
    interface: str,
    object_path: str,
    method: str,
    arguments: Sequence[ArgumentSignature],
    outcome: TrialOutcome,
) -> None:
    logger = get_logger()
    if logger.handlers:
        logger.info(format_entry(interface, object_path, method, arguments, outcome))
