"""Tests for ValueGenerator (random values and trial pacing)."""

from __future__ import annotations

import math
import os
import re

import pytest

from dbusfuzz.core.config import MAX_BUFFER_SIZE
from dbusfuzz.fuzz.values import MAX_SIGNATURE_LEN, ValueGenerator

_PATH_RE = re.compile(r"^/$|^(/[A-Za-z0-9_]+)+$")


@pytest.fixture
def gen() -> ValueGenerator:
    g = ValueGenerator(seed=1234)
    g.init(1024)
    return g


def _run(gen: ValueGenerator, biased: bool, argc: int) -> int:
    n = 0
    while gen.should_continue(biased, argc):
        n += 1
        assert n < 10_000
    return n


def test_init_small_budget_uses_default() -> None:
    g = ValueGenerator()
    g.init(0)
    assert g.budget == MAX_BUFFER_SIZE
    g.init(255)
    assert g.budget == MAX_BUFFER_SIZE
    g.init(256)
    assert g.budget == 256


def test_unbiased_trial_count() -> None:
    g = ValueGenerator(min_iterations=10, max_iterations=64, seed=1)
    g.init(1024)
    assert _run(g, False, 0) == 10
    g.init(1024)
    assert _run(g, False, 2) == 26
    g.init(1024)
    assert _run(g, False, 20) == 64


def test_biased_string_length_doubles_to_budget() -> None:
    g = ValueGenerator(min_iterations=1, max_iterations=64, seed=1)
    g.init(1024)
    lengths = []
    while g.should_continue(True, 1):
        lengths.append(g.max_string_length)
    assert lengths[0] == 8
    assert lengths[1] == 16
    assert lengths[-1] == 1024
    assert all(b >= a for a, b in zip(lengths, lengths[1:]))


def test_biased_runs_at_least_min_iterations() -> None:
    g = ValueGenerator(min_iterations=20, max_iterations=64, seed=1)
    g.init(256)
    assert _run(g, True, 1) == 20


def test_init_resets_schedule(gen: ValueGenerator) -> None:
    first = _run(gen, True, 1)
    gen.init(1024)
    assert _run(gen, True, 1) == first


def test_integer_ranges(gen: ValueGenerator) -> None:
    for _ in range(300):
        assert 0 <= gen.byte() <= 0xFF
        assert -(1 << 15) <= gen.int16() < (1 << 15)
        assert 0 <= gen.uint16() < (1 << 16)
        assert -(1 << 31) <= gen.int32() < (1 << 31)
        assert 0 <= gen.uint32() < (1 << 32)
        assert -(1 << 63) <= gen.int64() < (1 << 63)
        assert 0 <= gen.uint64() < (1 << 64)
        assert isinstance(gen.boolean(), bool)
        assert isinstance(gen.double(), float)


def test_double_includes_special_values() -> None:
    g = ValueGenerator(seed=7)
    g.init(1024)
    seen = [g.double() for _ in range(2000)]
    assert any(math.isinf(v) for v in seen)
    assert any(math.isnan(v) for v in seen)


def test_string_is_valid_and_bounded(gen: ValueGenerator) -> None:
    while gen.should_continue(True, 1):
        s = gen.string()
        data = s.encode("utf-8")
        assert len(data) <= gen.max_string_length
        assert "\x00" not in s


def test_object_path_is_valid(gen: ValueGenerator) -> None:
    while gen.should_continue(True, 1):
        p = gen.object_path()
        assert _PATH_RE.match(p), p
        assert len(p) <= max(gen.max_string_length, 1)


def test_signature_is_bounded(gen: ValueGenerator) -> None:
    g = ValueGenerator(seed=3)
    g.init(MAX_BUFFER_SIZE)
    while g.should_continue(True, 1):
        assert len(g.signature()) <= MAX_SIGNATURE_LEN


def test_variant_shape(gen: ValueGenerator) -> None:
    for _ in range(200):
        code, value = gen.variant()
        depth = 0
        while code == "v":
            code, value = value
            depth += 1
        assert depth <= 2
        assert code in "ybnqiuxtdsog"


def test_unix_fd_is_open(gen: ValueGenerator) -> None:
    fd = gen.unix_fd()
    try:
        os.fstat(fd)
    finally:
        os.close(fd)


def test_seed_is_reproducible() -> None:
    a, b = ValueGenerator(seed=99), ValueGenerator(seed=99)
    a.init(1024)
    b.init(1024)
    a.should_continue(True, 1)
    b.should_continue(True, 1)
    assert [a.int32() for _ in range(20)] == [b.int32() for _ in range(20)]
    assert a.string() == b.string()
