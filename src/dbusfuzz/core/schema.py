"""Pydantic models for bus replies, introspection data and fuzzing results."""

from __future__ import annotations

from enum import Enum, IntEnum
from typing import Any

from pydantic import BaseModel, Field

NO_REPLY_ERROR = "org.freedesktop.DBus.Error.NoReply"
TIMEOUT_ERROR = "org.freedesktop.DBus.Error.Timeout"
ACCESS_DENIED_ERRORS = (
    "org.freedesktop.DBus.Error.AccessDenied",
    "org.freedesktop.DBus.Error.AuthFailed",
)


class TrialOutcome(str, Enum):
    """Result of one invocation, or of a whole method test."""

    SUCCESS = "Success"
    REMOTE_EXCEPTION = "RemoteException"
    REMOTE_EXCEPTION_FATAL = "RemoteExceptionFatal"
    VOID_CONTRACT_VIOLATION = "VoidContractViolation"
    PROCESS_CRASHED = "ProcessCrashed"
    EXTERNAL_CHECK_FAILED = "ExternalCheckFailed"
    UNSUPPORTED_SIGNATURE = "UnsupportedSignature"
    INTERNAL_ERROR = "InternalError"


class ReturnCode(IntEnum):
    """Per-method return codes of the trial controller."""

    SUCCESS = 0
    INTERNAL_ERROR = -1
    CRASHED = 1
    VOID_VIOLATION = 2
    WARNING = 3
    CHECK_FAILED = 4


OUTCOME_CODES: dict[TrialOutcome, ReturnCode] = {
    TrialOutcome.SUCCESS: ReturnCode.SUCCESS,
    TrialOutcome.REMOTE_EXCEPTION: ReturnCode.SUCCESS,
    TrialOutcome.UNSUPPORTED_SIGNATURE: ReturnCode.SUCCESS,
    TrialOutcome.REMOTE_EXCEPTION_FATAL: ReturnCode.CRASHED,
    TrialOutcome.PROCESS_CRASHED: ReturnCode.CRASHED,
    TrialOutcome.VOID_CONTRACT_VIOLATION: ReturnCode.VOID_VIOLATION,
    TrialOutcome.EXTERNAL_CHECK_FAILED: ReturnCode.CHECK_FAILED,
    TrialOutcome.INTERNAL_ERROR: ReturnCode.INTERNAL_ERROR,
}


class BusErrorKind(str, Enum):
    """Closed set of failure kinds reported by the bus layer."""

    NO_REPLY = "no_reply"
    TIMEOUT = "timeout"
    ACCESS_DENIED = "access_denied"
    TIMED_OUT = "timed_out"
    REMOTE = "remote"


class BusError(BaseModel):
    """A failed call: error name (empty for local failures) and stripped message."""

    kind: BusErrorKind
    name: str = ""
    message: str = ""

    @classmethod
    def from_reply(cls, name: str, message: str = "") -> BusError:
        """Derive the error kind from a D-Bus error name and message."""
        if name == NO_REPLY_ERROR:
            kind = BusErrorKind.NO_REPLY
        elif name == TIMEOUT_ERROR:
            kind = BusErrorKind.TIMEOUT
        elif name in ACCESS_DENIED_ERRORS:
            kind = BusErrorKind.ACCESS_DENIED
        elif "Timeout" in message:
            kind = BusErrorKind.TIMED_OUT
        else:
            kind = BusErrorKind.REMOTE
        return cls(kind=kind, name=name, message=message)


class CallResult(BaseModel):
    """Response to one method call: either a reply body or an error."""

    body: tuple[Any, ...] | None = None
    signature: str = ""
    error: BusError | None = None

    @property
    def replied(self) -> bool:
        return self.error is None


class MethodInfo(BaseModel):
    """A method found by introspection."""

    name: str
    in_signatures: list[str] = Field(default_factory=list)
    out_signatures: list[str] = Field(default_factory=list)

    @property
    def is_void(self) -> bool:
        return not self.out_signatures


class InterfaceInfo(BaseModel):
    """An interface found by introspection."""

    name: str
    methods: list[MethodInfo] = Field(default_factory=list)


class NodeInfo(BaseModel):
    """One introspected object: its interfaces and child node names."""

    interfaces: list[InterfaceInfo] = Field(default_factory=list)
    children: list[str] = Field(default_factory=list)


class FuzzTarget(BaseModel):
    """Where the method under test lives on the bus."""

    bus_name: str
    object_path: str
    interface: str
    pid: int


class MethodReport(BaseModel):
    """Result of fuzzing one method."""

    method: str
    interface: str = ""
    object_path: str = ""
    outcome: TrialOutcome = TrialOutcome.SUCCESS
    code: ReturnCode = ReturnCode.SUCCESS
    trials: int = 0
    exceptions: int = 0
    arguments: list[str] = Field(default_factory=list)
    detail: str = ""
    reproducer: str | None = None


class FuzzSummary(BaseModel):
    """Result of fuzzing every selected method of one bus name."""

    bus_name: str
    pid: int = 0
    methods: list[MethodReport] = Field(default_factory=list)
    stopped_early: bool = False

    def count(self, outcome: TrialOutcome) -> int:
        return sum(1 for m in self.methods if m.outcome is outcome)

    @property
    def exit_code(self) -> int:
        """0 all passed, 1 crash or failed check, 2 void violations only, 3 internal errors only."""
        codes = {m.code for m in self.methods}
        if codes & {ReturnCode.CRASHED, ReturnCode.CHECK_FAILED}:
            return 1
        if ReturnCode.VOID_VIOLATION in codes:
            return 2
        if ReturnCode.INTERNAL_ERROR in codes:
            return 3
        return 0
