"""Classification of one invocation result into a trial outcome."""

from __future__ import annotations

from dataclasses import dataclass

from dbusfuzz.core.schema import BusErrorKind, CallResult, TrialOutcome


@dataclass(frozen=True)
class Verdict:
    """Outcome of one trial; ``counted`` marks exceptions that count toward the limit."""

    outcome: TrialOutcome
    counted: bool = False
    detail: str = ""

    @property
    def ends_loop(self) -> bool:
        return self.outcome in (TrialOutcome.REMOTE_EXCEPTION_FATAL, TrialOutcome.VOID_CONTRACT_VIOLATION)


def classify(result: CallResult, void_method: bool) -> Verdict:
    """Classify a call result (first match wins)."""
    error = result.error
    if not result.replied:
        if error.kind is BusErrorKind.NO_REPLY:
            return Verdict(TrialOutcome.REMOTE_EXCEPTION_FATAL, detail=f"no reply ({error.name})")
        if error.kind is BusErrorKind.TIMEOUT:
            return Verdict(TrialOutcome.REMOTE_EXCEPTION_FATAL, detail=f"timeout ({error.name})")
        if error.kind is BusErrorKind.ACCESS_DENIED:
            return Verdict(TrialOutcome.REMOTE_EXCEPTION, detail=f"raised exception '{error.name}'")
        if error.kind is BusErrorKind.TIMED_OUT:
            return Verdict(TrialOutcome.REMOTE_EXCEPTION, detail="timeout reached")
        return Verdict(TrialOutcome.REMOTE_EXCEPTION, counted=True, detail=error.message or error.name)

    if void_method and (result.signature or result.body):
        return Verdict(
            TrialOutcome.VOID_CONTRACT_VIOLATION,
            detail=f"void method returns '({result.signature})' instead of '()'",
        )
    return Verdict(TrialOutcome.SUCCESS)
