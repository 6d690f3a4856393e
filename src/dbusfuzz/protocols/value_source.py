"""Protocol for the random-value module."""

from __future__ import annotations

from typing import Protocol


class ValueSource(Protocol):
    """Produces one random value per D-Bus basic type and paces the trial loop."""

    def init(self, budget: int) -> None:
        """Reset state for a new method test with the given string budget (bytes)."""
        ...

    def should_continue(self, string_length_biasing: bool, argument_count: int) -> bool:
        """Return True if another trial should run."""
        ...

    def byte(self) -> int: ...

    def boolean(self) -> bool: ...

    def int16(self) -> int: ...

    def uint16(self) -> int: ...

    def int32(self) -> int: ...

    def uint32(self) -> int: ...

    def int64(self) -> int: ...

    def uint64(self) -> int: ...

    def double(self) -> float: ...

    def string(self) -> str: ...

    def object_path(self) -> str: ...

    def signature(self) -> str: ...

    def variant(self) -> tuple[str, object]: ...

    def unix_fd(self) -> int: ...
