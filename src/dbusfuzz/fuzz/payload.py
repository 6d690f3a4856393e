"""Construction of the call payload for one trial.

Every trial generates a fresh value for each argument, describes the call
shape as a descriptor such as ``"(@s@i)"`` (one ``@`` marker per argument,
each consuming one already-built value), assembles the values against the
descriptor into a :class:`TransientCall` and promotes that into an
:class:`OwnedCall`. Only the owned call is handed to the bus; the generated
values stay on the arguments for logging.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from dbusfuzz.core.exceptions import InternalError, UnsupportedSignatureError, ValueGenerationError
from dbusfuzz.fuzz.arguments import MethodUnderTest
from dbusfuzz.protocols import ValueSource

log = logging.getLogger(__name__)

MAX_DESCRIPTOR_LEN = 512

# Basic type code -> ValueSource producer.
PRODUCERS: dict[str, str] = {
    "y": "byte",
    "b": "boolean",
    "n": "int16",
    "q": "uint16",
    "i": "int32",
    "u": "uint32",
    "x": "int64",
    "t": "uint64",
    "d": "double",
    "s": "string",
    "o": "object_path",
    "g": "signature",
    "v": "variant",
    "h": "unix_fd",
}


@dataclass(frozen=True)
class OwnedCall:
    """Immutable, independently owned call payload."""

    descriptor: str
    signature: str
    body: tuple[Any, ...]

    def __len__(self) -> int:
        return len(self.body)


class TransientCall:
    """Assembled payload, valid only until promoted or released."""

    def __init__(self, descriptor: str, signature: str, values: list[Any]) -> None:
        self._descriptor = descriptor
        self._signature = signature
        self._values: list[Any] | None = values

    @property
    def valid(self) -> bool:
        return self._values is not None

    def release(self) -> None:
        self._values = None

    def promote(self) -> OwnedCall:
        """Convert to an OwnedCall; the transient handle is invalid afterwards."""
        if not self.valid:
            raise InternalError("Unable to promote call payload: transient handle already released")
        owned = OwnedCall(descriptor=self._descriptor, signature=self._signature, body=tuple(self._values))
        self._values = None
        return owned


class CallBuilder:
    """Ordered accumulator: one typed value at a time, finalized into a call."""

    def __init__(self) -> None:
        self._codes: list[str] = []
        self._values: list[Any] = []

    def __len__(self) -> int:
        return len(self._values)

    def append(self, type_code: str, value: Any) -> CallBuilder:
        self._codes.append(type_code)
        self._values.append(value)
        return self

    def descriptor(self) -> str:
        return call_descriptor(self._codes)

    def end(self) -> TransientCall:
        return assemble(self.descriptor(), *self._values)


def call_descriptor(signatures: list[str], max_len: int = MAX_DESCRIPTOR_LEN) -> str:
    """Build the ``"(@s@i...)"`` call-shape descriptor for ``signatures``."""
    descriptor = "(" + "".join("@" + sig for sig in signatures) + ")"
    if len(descriptor) > max_len:
        raise InternalError(
            f"Call descriptor of {len(descriptor)} characters exceeds the {max_len} character limit"
        )
    return descriptor


def _split_descriptor(descriptor: str) -> list[str]:
    if len(descriptor) < 2 or descriptor[0] != "(" or descriptor[-1] != ")":
        raise InternalError(f"Malformed call descriptor {descriptor!r}")
    inner = descriptor[1:-1]
    if not inner:
        return []
    if inner[0] != "@":
        raise InternalError(f"Malformed call descriptor {descriptor!r}")
    codes = inner[1:].split("@")
    if any(not code for code in codes):
        raise InternalError(f"Malformed call descriptor {descriptor!r}")
    return codes


def assemble(descriptor: str, *values: Any) -> TransientCall:
    """Assemble a tuple payload from a descriptor and one value per ``@`` marker."""
    codes = _split_descriptor(descriptor)
    if len(codes) != len(values):
        raise InternalError(
            f"Call descriptor {descriptor!r} expects {len(codes)} value(s), got {len(values)}"
        )
    return TransientCall(descriptor, "".join(codes), list(values))


def generate_values(method: MethodUnderTest, values: ValueSource) -> None:
    """Store a fresh value on every argument of ``method``.

    Raises UnsupportedSignatureError before any value is built when an argument
    has a container signature, InternalError on an empty signature or generator
    failure (values built so far are released).
    """
    for arg in method.arguments:
        if len(arg.type_code) > 1:
            raise UnsupportedSignatureError(arg.type_code)

    for arg in method.arguments:
        code = arg.type_code
        if not code:
            method.release_values()
            raise InternalError(f"Empty argument signature in method {method.name!r}")
        producer = PRODUCERS.get(code)
        if producer is None:
            method.release_values()
            raise InternalError(f"Unknown argument signature {code!r}")
        try:
            arg.generated_value = getattr(values, producer)()
        except ValueGenerationError:
            method.release_values()
            raise
        if arg.generated_value is None:
            method.release_values()
            raise InternalError(
                f"Failed to construct value for {code!r} signature of method {method.name!r}"
            )


def create_call(method: MethodUnderTest, values: ValueSource) -> OwnedCall:
    """Generate values for ``method`` and return the owned call payload."""
    generate_values(method, values)
    builder = CallBuilder()
    for arg in method.arguments:
        builder.append(arg.type_code, arg.generated_value)
    transient = builder.end()
    owned = transient.promote()
    log.debug("Built call %s for %s", owned.descriptor, method.name)
    return owned
