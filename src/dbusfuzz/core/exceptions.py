"""Custom exception hierarchy for dbusfuzz."""

from __future__ import annotations


class DbusFuzzError(Exception):
    """Base exception for dbusfuzz."""

    pass


class ConfigError(DbusFuzzError):
    """Raised when configuration loading or validation fails."""

    pass


class AllocationError(DbusFuzzError):
    """Raised when a method or argument record cannot be created."""

    pass


class InternalError(DbusFuzzError):
    """Raised when the engine itself fails (malformed signature, descriptor overflow, ...)."""

    pass


class ValueGenerationError(InternalError):
    """Raised when the random-value module cannot produce a value."""

    pass


class UnsupportedSignatureError(DbusFuzzError):
    """Raised when a method takes a container argument; the method is skipped, not failed."""

    def __init__(self, signature: str) -> None:
        super().__init__(f"unsupported argument signature: {signature!r}")
        self.signature = signature


class BusConnectionError(DbusFuzzError):
    """Raised when the bus transport fails (connect, send, disconnect)."""

    pass


class IntrospectionError(DbusFuzzError):
    """Raised when introspection data cannot be fetched or parsed."""

    pass
