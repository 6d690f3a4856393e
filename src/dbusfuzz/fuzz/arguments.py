"""Argument list of the method under test.

A :class:`MethodUnderTest` is created per method by :func:`begin_method`,
filled once per formal parameter with :func:`append_argument` (in declaration
order), read by the trial loop, and cleared with :func:`end_method`.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any

from dbusfuzz.core.exceptions import AllocationError

log = logging.getLogger(__name__)

# Signatures containing one of these markers make the random module pace
# generation by string length.
BIASING_MARKERS = ("s", "v")


@dataclass
class ArgumentSignature:
    """One formal parameter and the value generated for the current trial."""

    type_code: str
    generated_value: Any = None

    @property
    def is_basic(self) -> bool:
        return len(self.type_code) == 1

    @property
    def has_value(self) -> bool:
        return self.generated_value is not None

    def release(self) -> None:
        """Drop the generated value; unix fds are closed."""
        value, self.generated_value = self.generated_value, None
        if self.type_code == "h" and isinstance(value, int) and value >= 0:
            os.close(value)


@dataclass
class MethodUnderTest:
    """Ordered argument list and per-method counters."""

    name: str
    arguments: list[ArgumentSignature] = field(default_factory=list)
    string_length_biasing: bool = False
    exception_count: int = 0

    @property
    def argument_count(self) -> int:
        return len(self.arguments)

    @property
    def signatures(self) -> list[str]:
        return [a.type_code for a in self.arguments]

    def release_values(self) -> None:
        """Release every generated value of the current trial."""
        for arg in self.arguments:
            arg.release()


def begin_method(name: str) -> MethodUnderTest:
    """Create an empty MethodUnderTest bound to ``name``."""
    if not isinstance(name, str) or not name:
        raise AllocationError(f"Could not create method record for name {name!r}")
    return MethodUnderTest(name=name)


def append_argument(method: MethodUnderTest, signature: str | None) -> None:
    """Append one argument signature; ``None`` or ``""`` is a no-op."""
    if not signature:
        return
    if not isinstance(signature, str):
        raise AllocationError(f"Could not store argument signature {signature!r}")
    method.arguments.append(ArgumentSignature(type_code=signature))
    if any(marker in signature for marker in BIASING_MARKERS):
        method.string_length_biasing = True


def argument_count(method: MethodUnderTest) -> int:
    return method.argument_count


def end_method(method: MethodUnderTest) -> None:
    """Release all values and arguments and reset counters. Safe to call twice."""
    method.release_values()
    method.arguments = []
    method.string_length_biasing = False
    method.exception_count = 0
    method.name = ""
