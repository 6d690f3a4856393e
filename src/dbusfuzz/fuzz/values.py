"""Random values for D-Bus basic types.

The generator also paces a method test: :meth:`ValueGenerator.should_continue`
decides whether another trial runs. When a method takes strings or variants
the maximum string length doubles every trial until it reaches the buffer
budget; otherwise a fixed number of trials runs, scaled by argument count.
"""

from __future__ import annotations

import logging
import math
import os
import random
import string
import sys
import time

from dbusfuzz.core.config import MAX_BUFFER_SIZE, MIN_BUFFER_SIZE
from dbusfuzz.core.exceptions import ValueGenerationError

log = logging.getLogger(__name__)

FIRST_STRING_LEN = 8
MAX_SIGNATURE_LEN = 255
MAX_VARIANT_DEPTH = 2

VARIANT_TYPE_CODES = "ybnqiuxtdsog"

# Boundary values mixed into integer generation (filtered to each type's range).
INTERESTING_INTS = [
    0, 1, -1, 2, -2, 7, 8, 15, 16, 31, 32, 63, 64,
    127, 128, 255, 256, 511, 512, 1023, 1024,
    4095, 4096, 4097, 32767, 32768, 65535, 65536,
    0x7FFFFFFF, 0x80000000, 0xFFFFFFFF, 0x100000000,
    -0x80000000, -0x7FFFFFFF,
    0x7FFFFFFFFFFFFFFF, 0x8000000000000000, 0xFFFFFFFFFFFFFFFF,
    -0x8000000000000000,
]

INTERESTING_DOUBLES = [
    0.0, -0.0, 1.0, -1.0, math.inf, -math.inf, math.nan,
    sys.float_info.max, -sys.float_info.max,
    sys.float_info.min, sys.float_info.epsilon, 5e-324,
]

# Fragments strings are assembled from: format specifiers, path and shell
# metacharacters, and multi-byte code points.
STRING_FRAGMENTS = [
    "%s", "%n", "%x", "%99999999d", "%.1024f", "%p",
    "../", "/etc/passwd", "~", "$HOME", "`id`", "$(id)", ";", "|", "&&",
    "'", '"', "\\", "\n", "\r\n", "\t", " ",
    "é", "ß", "€", "中文", "\U0001f600", "‮", "﻿", "�",
    "A", "0", "-1", "NaN", "null", "true",
]
_PRINTABLE = string.ascii_letters + string.digits + string.punctuation
_PATH_CHARS = string.ascii_letters + string.digits + "_"


def _int_range(bits: int, signed: bool) -> tuple[int, int]:
    if signed:
        return -(1 << (bits - 1)), (1 << (bits - 1)) - 1
    return 0, (1 << bits) - 1


class ValueGenerator:
    """Default ValueSource: random D-Bus basic values and trial pacing."""

    def __init__(
        self,
        *,
        min_iterations: int = 10,
        max_iterations: int = 64,
        seed: int | None = None,
    ) -> None:
        self._min_iterations = min_iterations
        self._max_iterations = max(max_iterations, min_iterations)
        self._seed = seed
        self._rng = random.Random()
        self._budget = MAX_BUFFER_SIZE
        self._trial = 0
        self._max_len = FIRST_STRING_LEN

    @property
    def budget(self) -> int:
        return self._budget

    @property
    def max_string_length(self) -> int:
        return self._max_len

    def init(self, budget: int) -> None:
        """Reset pacing state for a new method test."""
        self._budget = budget if budget >= MIN_BUFFER_SIZE else MAX_BUFFER_SIZE
        self._rng.seed(self._seed if self._seed is not None else time.time_ns())
        self._trial = 0
        self._max_len = min(FIRST_STRING_LEN, self._budget)

    def _doubling_steps(self) -> int:
        steps, length = 0, FIRST_STRING_LEN
        while length < self._budget:
            length *= 2
            steps += 1
        return steps

    def trial_limit(self, string_length_biasing: bool, argument_count: int) -> int:
        if string_length_biasing:
            return min(self._max_iterations, max(self._min_iterations, self._doubling_steps() + 1))
        return min(self._max_iterations, self._min_iterations + 8 * argument_count)

    def should_continue(self, string_length_biasing: bool, argument_count: int) -> bool:
        """Return True if another trial should run, advancing the length schedule."""
        if self._trial >= self.trial_limit(string_length_biasing, argument_count):
            return False
        self._max_len = min(self._budget, FIRST_STRING_LEN << min(self._trial, 40))
        self._trial += 1
        return True

    # -- integers -----------------------------------------------------------

    def _integer(self, bits: int, signed: bool) -> int:
        low, high = _int_range(bits, signed)
        if self._rng.random() < 0.5:
            candidates = [v for v in INTERESTING_INTS if low <= v <= high]
            candidates.extend((low, high, high - 1))
            return self._rng.choice(candidates)
        return self._rng.randint(low, high)

    def byte(self) -> int:
        return self._integer(8, signed=False)

    def boolean(self) -> bool:
        return self._rng.random() < 0.5

    def int16(self) -> int:
        return self._integer(16, signed=True)

    def uint16(self) -> int:
        return self._integer(16, signed=False)

    def int32(self) -> int:
        return self._integer(32, signed=True)

    def uint32(self) -> int:
        return self._integer(32, signed=False)

    def int64(self) -> int:
        return self._integer(64, signed=True)

    def uint64(self) -> int:
        return self._integer(64, signed=False)

    def double(self) -> float:
        if self._rng.random() < 0.3:
            return self._rng.choice(INTERESTING_DOUBLES)
        return self._rng.uniform(-1.0, 1.0) * 10.0 ** self._rng.randint(-308, 307)

    # -- strings ------------------------------------------------------------

    def _target_length(self) -> int:
        return self._rng.randint(self._max_len // 2, self._max_len)

    def string(self) -> str:
        """A valid UTF-8 string (no NUL, no surrogates) of at most max_string_length bytes."""
        target = self._target_length()
        parts: list[str] = []
        size = 0
        while size < target:
            if self._rng.random() < 0.3:
                piece = self._rng.choice(STRING_FRAGMENTS)
            else:
                piece = "".join(self._rng.choices(_PRINTABLE, k=min(16, target - size)))
            piece_size = len(piece.encode("utf-8"))
            if size + piece_size > target:
                piece = "A" * (target - size)
                piece_size = len(piece)
            parts.append(piece)
            size += piece_size
        return "".join(parts)

    def object_path(self) -> str:
        """A syntactically valid object path of at most max_string_length bytes."""
        target = self._target_length()
        path = ""
        while True:
            segment = "".join(self._rng.choices(_PATH_CHARS, k=self._rng.randint(1, 32)))
            if len(path) + 1 + len(segment) > target:
                break
            path += "/" + segment
        return path or "/"

    def _complete_type(self) -> str:
        basic = self._rng.choice(VARIANT_TYPE_CODES + "h")
        form = self._rng.randint(0, 3)
        if form == 0:
            return basic
        if form == 1:
            return "a" + basic
        if form == 2:
            return "(" + "".join(self._rng.choices(VARIANT_TYPE_CODES, k=self._rng.randint(1, 4))) + ")"
        return "a{" + self._rng.choice(VARIANT_TYPE_CODES) + self._rng.choice(VARIANT_TYPE_CODES + "v") + "}"

    def signature(self) -> str:
        """A syntactically valid D-Bus signature of at most 255 characters."""
        target = min(MAX_SIGNATURE_LEN, self._target_length())
        sig = ""
        while True:
            piece = self._complete_type()
            if len(sig) + len(piece) > target:
                break
            sig += piece
        return sig

    def variant(self, depth: int = 0) -> tuple[str, object]:
        """A ``(signature, value)`` pair of a random basic type."""
        codes = VARIANT_TYPE_CODES + ("v" if depth < MAX_VARIANT_DEPTH else "")
        code = self._rng.choice(codes)
        if code == "v":
            return ("v", self.variant(depth + 1))
        producer = {
            "y": self.byte,
            "b": self.boolean,
            "n": self.int16,
            "q": self.uint16,
            "i": self.int32,
            "u": self.uint32,
            "x": self.int64,
            "t": self.uint64,
            "d": self.double,
            "s": self.string,
            "o": self.object_path,
            "g": self.signature,
        }[code]
        return (code, producer())

    def unix_fd(self) -> int:
        """Open /dev/null; the caller owns (and closes) the returned fd."""
        try:
            return os.open(os.devnull, os.O_RDONLY)
        except OSError as e:
            raise ValueGenerationError(f"Could not open {os.devnull}: {e}") from e
