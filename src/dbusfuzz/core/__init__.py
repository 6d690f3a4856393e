"""Framework core: schema, config, exceptions, health."""

from dbusfuzz.core.config import AppConfig, ConfigManager, FuzzConfigModel
from dbusfuzz.core.health import HealthChecker, HealthCheckResult
from dbusfuzz.core.schema import (
    BusError,
    BusErrorKind,
    CallResult,
    FuzzSummary,
    FuzzTarget,
    InterfaceInfo,
    MethodInfo,
    MethodReport,
    NodeInfo,
    ReturnCode,
    TrialOutcome,
)

__all__ = [
    "AppConfig",
    "BusError",
    "BusErrorKind",
    "CallResult",
    "ConfigManager",
    "FuzzConfigModel",
    "FuzzSummary",
    "FuzzTarget",
    "HealthCheckResult",
    "HealthChecker",
    "InterfaceInfo",
    "MethodInfo",
    "MethodReport",
    "NodeInfo",
    "ReturnCode",
    "TrialOutcome",
]
