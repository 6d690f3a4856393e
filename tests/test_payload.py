"""Tests for call payload construction."""

from __future__ import annotations

import pytest

from dbusfuzz.core.exceptions import InternalError, UnsupportedSignatureError, ValueGenerationError
from dbusfuzz.fuzz.payload import (
    MAX_DESCRIPTOR_LEN,
    CallBuilder,
    TransientCall,
    assemble,
    call_descriptor,
    create_call,
)

from _helpers import FakeValues, make_method


def test_call_descriptor_shape() -> None:
    assert call_descriptor([]) == "()"
    assert call_descriptor(["s", "i"]) == "(@s@i)"


def test_call_descriptor_overflow() -> None:
    with pytest.raises(InternalError, match="exceeds"):
        call_descriptor(["i"] * (MAX_DESCRIPTOR_LEN // 2))


def test_assemble_checks_value_count() -> None:
    with pytest.raises(InternalError):
        assemble("(@s@i)", "x")
    with pytest.raises(InternalError):
        assemble("s@i", "x", 1)


def test_promote_invalidates_transient() -> None:
    transient = assemble("(@s@i)", "x", 1)
    owned = transient.promote()
    assert owned.signature == "si"
    assert owned.body == ("x", 1)
    assert not transient.valid
    with pytest.raises(InternalError):
        transient.promote()


def test_released_transient_cannot_be_promoted() -> None:
    transient = TransientCall("(@i)", "i", [1])
    transient.release()
    with pytest.raises(InternalError):
        transient.promote()


def test_call_builder() -> None:
    owned = CallBuilder().append("y", 1).append("b", True).end().promote()
    assert owned.descriptor == "(@y@b)"
    assert owned.body == (1, True)


def test_create_call_zero_arguments() -> None:
    method = make_method("Ping")
    owned = create_call(method, FakeValues())
    assert owned.descriptor == "()"
    assert owned.signature == ""
    assert owned.body == ()


def test_create_call_generates_each_argument_in_order() -> None:
    method = make_method("All", "y", "b", "n", "q", "i", "u", "x", "t", "d", "s", "o", "g", "v")
    owned = create_call(method, FakeValues())
    assert owned.signature == "ybnqiuxtdsogv"
    assert owned.body == (7, True, -3, 3, 5, 6, -9, 9, 1.5, "fuzz", "/a/b", "ai", ("s", "inner"))
    assert [a.generated_value for a in method.arguments] == list(owned.body)


def test_create_call_unix_fd() -> None:
    values = FakeValues()
    method = make_method("TakeFd", "h")
    owned = create_call(method, values)
    assert owned.body == (values.opened_fds[0],)
    method.release_values()


def test_unsupported_signature_releases_values() -> None:
    method = make_method("SetMap", "s", "a{sv}")
    with pytest.raises(UnsupportedSignatureError) as exc:
        create_call(method, FakeValues())
    assert exc.value.signature == "a{sv}"
    assert all(a.generated_value is None for a in method.arguments)


def test_unknown_code_is_internal_error() -> None:
    method = make_method("M", "i", "z")
    with pytest.raises(InternalError):
        create_call(method, FakeValues())
    assert method.arguments[0].generated_value is None


def test_producer_failure_is_internal_error() -> None:
    class Broken(FakeValues):
        def string(self) -> str:
            raise ValueGenerationError("no strings today")

    method = make_method("M", "i", "s")
    with pytest.raises(InternalError, match="no strings"):
        create_call(method, Broken())
    assert method.arguments[0].generated_value is None


def test_producer_returning_none_is_internal_error() -> None:
    class Empty(FakeValues):
        def int32(self):  # type: ignore[override]
            return None

    with pytest.raises(InternalError, match="Failed to construct"):
        create_call(make_method("M", "i"), Empty())


def test_container_signature_found_before_any_value_is_built() -> None:
    values = FakeValues()
    method = make_method("M", "h", "i", "as")
    with pytest.raises(UnsupportedSignatureError) as exc:
        create_call(method, values)
    assert exc.value.signature == "as"
    assert values.opened_fds == []
