"""Method-fuzzing engine.

The trial controller and session driver live in :mod:`dbusfuzz.fuzz.trial`
and :mod:`dbusfuzz.fuzz.session`; they are not re-exported here because they
depend on the reporters, which depend on this package.
"""

from dbusfuzz.fuzz.arguments import (
    ArgumentSignature,
    MethodUnderTest,
    append_argument,
    argument_count,
    begin_method,
    end_method,
)
from dbusfuzz.fuzz.liveness import Liveness, is_alive
from dbusfuzz.fuzz.outcome import Verdict, classify
from dbusfuzz.fuzz.payload import CallBuilder, OwnedCall, TransientCall, create_call
from dbusfuzz.fuzz.values import ValueGenerator

__all__ = [
    "ArgumentSignature",
    "CallBuilder",
    "Liveness",
    "MethodUnderTest",
    "OwnedCall",
    "TransientCall",
    "ValueGenerator",
    "Verdict",
    "append_argument",
    "argument_count",
    "begin_method",
    "classify",
    "create_call",
    "end_method",
    "is_alive",
]
