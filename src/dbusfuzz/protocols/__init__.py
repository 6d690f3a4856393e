"""Protocol interfaces for the engine's collaborators."""

from dbusfuzz.protocols.method_invoker import MethodInvoker
from dbusfuzz.protocols.value_source import ValueSource

__all__ = [
    "MethodInvoker",
    "ValueSource",
]
