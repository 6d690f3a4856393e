"""Shared test helpers and factory functions for dbusfuzz tests.

Import this module directly from test files::

    from _helpers import FakeInvoker, FakeValues, make_method

Pytest fixtures that wrap these factories live in ``conftest.py``.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, Iterable

from dbusfuzz.core.config import ConfigManager
from dbusfuzz.core.schema import BusError, CallResult, FuzzTarget
from dbusfuzz.fuzz.arguments import MethodUnderTest, append_argument, begin_method
from dbusfuzz.fuzz.payload import OwnedCall


# ---------------------------------------------------------------------------
# ConfigManager factory
# ---------------------------------------------------------------------------


def make_config_manager(tmp_path: Path) -> ConfigManager:
    """Create a real ConfigManager pointed at a nonexistent config/env so defaults are used."""
    mgr = ConfigManager(project_root=tmp_path)
    mgr._config_path = tmp_path / "nonexistent.yaml"
    mgr._env_path = tmp_path / ".env"
    mgr.load()
    return mgr


# ---------------------------------------------------------------------------
# Engine collaborators
# ---------------------------------------------------------------------------


class FakeValues:
    """ValueSource with fixed values and a fixed number of trials."""

    def __init__(self, trials: int = 3) -> None:
        self.trials = trials
        self.budget: int | None = None
        self.calls = 0
        self.opened_fds: list[int] = []

    def init(self, budget: int) -> None:
        self.budget = budget
        self.calls = 0

    def should_continue(self, string_length_biasing: bool, argument_count: int) -> bool:
        if self.calls >= self.trials:
            return False
        self.calls += 1
        return True

    def byte(self) -> int:
        return 7

    def boolean(self) -> bool:
        return True

    def int16(self) -> int:
        return -3

    def uint16(self) -> int:
        return 3

    def int32(self) -> int:
        return 5

    def uint32(self) -> int:
        return 6

    def int64(self) -> int:
        return -9

    def uint64(self) -> int:
        return 9

    def double(self) -> float:
        return 1.5

    def string(self) -> str:
        return "fuzz"

    def object_path(self) -> str:
        return "/a/b"

    def signature(self) -> str:
        return "ai"

    def variant(self) -> tuple[str, object]:
        return ("s", "inner")

    def unix_fd(self) -> int:
        fd = os.open(os.devnull, os.O_RDONLY)
        self.opened_fds.append(fd)
        return fd


class FakeInvoker:
    """MethodInvoker replaying ``results`` (the last one repeats) and recording payloads."""

    def __init__(self, results: Iterable[CallResult] | Callable[[int], CallResult] = ()) -> None:
        self._results = results if callable(results) else list(results) or [CallResult(body=())]
        self.calls: list[tuple[str, OwnedCall]] = []

    def call(self, method: str, payload: OwnedCall) -> CallResult:
        self.calls.append((method, payload))
        if callable(self._results):
            return self._results(len(self.calls))
        index = min(len(self.calls), len(self._results)) - 1
        return self._results[index]


def error_result(name: str, message: str = "") -> CallResult:
    return CallResult(error=BusError.from_reply(name, message))


def make_method(name: str, *signatures: str) -> MethodUnderTest:
    method = begin_method(name)
    for sig in signatures:
        append_argument(method, sig)
    return method


def make_target(pid: int = 4242, **kwargs: str) -> FuzzTarget:
    fields = {
        "bus_name": "org.example.Service",
        "object_path": "/org/example/Object",
        "interface": "org.example.Iface",
    }
    fields.update(kwargs)
    return FuzzTarget(pid=pid, **fields)


# ---------------------------------------------------------------------------
# Fake /proc
# ---------------------------------------------------------------------------


def make_proc_root(tmp_path: Path, pid: int = 4242, core_dumping: int | None = 0) -> Path:
    """Write ``<tmp>/proc/<pid>/status``; ``core_dumping=None`` omits the line."""
    proc = tmp_path / "proc"
    (proc / str(pid)).mkdir(parents=True, exist_ok=True)
    lines = ["Name:\texample-daemon", "State:\tS (sleeping)", f"Pid:\t{pid}"]
    if core_dumping is not None:
        lines.append(f"CoreDumping:\t{core_dumping}")
    lines.append("Threads:\t1")
    (proc / str(pid) / "status").write_text("\n".join(lines) + "\n")
    return proc


INTROSPECT_ROOT = """<!DOCTYPE node PUBLIC "-//freedesktop//DTD D-BUS Object Introspection 1.0//EN"
 "http://www.freedesktop.org/standards/dbus/1.0/introspect.dtd">
<node>
  <interface name="org.freedesktop.DBus.Introspectable">
    <method name="Introspect">
      <arg name="xml_data" type="s" direction="out"/>
    </method>
  </interface>
  <node name="org"/>
</node>
"""

INTROSPECT_OBJECT = """<node>
  <interface name="org.freedesktop.DBus.Peer">
    <method name="Ping"/>
  </interface>
  <interface name="org.example.Iface">
    <method name="Ping"/>
    <method name="SetName">
      <arg name="name" type="s" direction="in"/>
      <arg name="flags" type="u"/>
    </method>
    <method name="GetValue">
      <arg name="key" type="i" direction="in"/>
      <arg name="value" type="v" direction="out"/>
    </method>
    <method name="SetMap">
      <arg name="map" type="a{sv}" direction="in"/>
    </method>
  </interface>
</node>
"""
