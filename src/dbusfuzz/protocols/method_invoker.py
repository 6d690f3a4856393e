"""Protocol for invoking a method on the target."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from dbusfuzz.core.schema import CallResult

if TYPE_CHECKING:
    from dbusfuzz.fuzz.payload import OwnedCall


class MethodInvoker(Protocol):
    """Synchronous method call against one object/interface of the target."""

    def call(self, method: str, payload: OwnedCall) -> CallResult:
        """Call ``method`` with ``payload``; remote errors are returned, not raised.

        Transport failures raise BusConnectionError.
        """
        ...
