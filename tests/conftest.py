"""Shared pytest fixtures for dbusfuzz tests.

Factory functions live in ``_helpers.py``; this module re-exports them as
pytest fixtures so tests can receive them via dependency injection.
"""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from dbusfuzz.core.config import ConfigManager
from dbusfuzz.core.schema import FuzzTarget

from _helpers import (  # noqa: F401 - re-export for fixture use
    FakeInvoker,
    FakeValues,
    make_config_manager,
    make_proc_root,
    make_target,
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def config_manager(tmp_path: Path) -> ConfigManager:
    """A real ConfigManager backed by default config (no YAML/env file)."""
    return make_config_manager(tmp_path)


@pytest.fixture()
def fake_values() -> FakeValues:
    """A ValueSource running three trials with fixed values."""
    return FakeValues(trials=3)


@pytest.fixture()
def target() -> FuzzTarget:
    return make_target()


@pytest.fixture()
def proc_root(tmp_path: Path) -> Path:
    """A fake /proc with a live (not core dumping) process 4242."""
    return make_proc_root(tmp_path)


@pytest.fixture(autouse=True)
def _clean_full_log():
    """Make sure no full-log handler leaks between tests."""
    yield
    logger = logging.getLogger("dbusfuzz.full")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


@pytest.fixture(autouse=True)
def _no_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the caller's DBUSFUZZ_* variables out of config tests."""
    for key in ("DBUSFUZZ_BUS", "DBUSFUZZ_LOG_DIR", "DBUSFUZZ_BUFFER_SIZE"):
        monkeypatch.delenv(key, raising=False)
