"""Configuration loading from .env and YAML."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from dbusfuzz.core.exceptions import ConfigError

log = logging.getLogger(__name__)

# Buffer budgets below MIN_BUFFER_SIZE are replaced by MAX_BUFFER_SIZE.
MIN_BUFFER_SIZE = 256
MAX_BUFFER_SIZE = 50000
MAX_EXCEPTIONS = 50

ENV_KEYS = ("DBUSFUZZ_BUS", "DBUSFUZZ_LOG_DIR", "DBUSFUZZ_BUFFER_SIZE")

DEFAULT_SKIP_INTERFACES = [
    "org.freedesktop.DBus.Introspectable",
    "org.freedesktop.DBus.Peer",
    "org.freedesktop.DBus.Properties",
]


def _find_project_root(start: Path | None = None) -> Path:
    """Find project root by looking for pyproject.toml upward."""
    current = Path(start or Path.cwd()).resolve()
    for _ in range(10):
        if (current / "pyproject.toml").exists():
            return current
        parent = current.parent
        if parent == current:
            break
        current = parent
    return Path.cwd().resolve()


class FuzzConfigModel(BaseModel):
    """Fuzz section of config."""

    buffer_size: int = 0
    max_exceptions: int = Field(default=MAX_EXCEPTIONS, ge=1)
    timeout_cooldown: float = Field(default=10.0, ge=0)
    min_iterations: int = Field(default=10, ge=1)
    max_iterations: int = Field(default=64, ge=1)
    call_timeout: float | None = None
    seed: int | None = None


class AppConfig(BaseModel):
    """Full application configuration."""

    bus: str = "session"
    log_dir: str | None = None
    skip_interfaces: list[str] = Field(default_factory=lambda: list(DEFAULT_SKIP_INTERFACES))
    reporters: list[str] = Field(default_factory=list)
    fuzz: FuzzConfigModel = Field(default_factory=FuzzConfigModel)


class ConfigManager:
    """Load and merge configuration from .env and YAML."""

    def __init__(
        self,
        project_root: Path | None = None,
        env_path: Path | None = None,
        config_path: Path | None = None,
    ) -> None:
        self._root = Path(project_root or _find_project_root()).resolve()
        self._env_path = Path(env_path) if env_path else self._root / ".env"
        self._config_path = Path(config_path) if config_path else self._root / "config" / "default.yaml"
        self._config: AppConfig | None = None
        self._env: dict[str, str] = {}

    def load_env(self) -> dict[str, str]:
        """Load .env file into a dict (without modifying os.environ)."""
        from dotenv import dotenv_values

        try:
            self._env = {k: v for k, v in dotenv_values(self._env_path).items() if v is not None}
        except (OSError, PermissionError) as e:
            log.warning("Failed to read .env file %s: %s", self._env_path, e)
            self._env = {}
        return self._env

    def load_yaml(self) -> dict[str, Any]:
        """Load YAML config file if it exists."""
        if not self._config_path.exists():
            return {}
        import yaml

        try:
            with open(self._config_path) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, PermissionError) as e:
            log.warning("Failed to read config file %s: %s", self._config_path, e)
            return {}
        except yaml.YAMLError as e:
            log.warning("Malformed YAML in %s: %s", self._config_path, e)
            return {}
        if not isinstance(data, dict):
            log.warning("Ignoring config file %s: top level is not a mapping", self._config_path)
            return {}
        return data

    def load(self) -> AppConfig:
        """Load .env and YAML, merge with defaults, return AppConfig."""
        env = self.load_env()
        yaml_data = self.load_yaml()

        # YAML first, then env overrides
        config_dict: dict[str, Any] = {
            key: yaml_data[key]
            for key in ("bus", "log_dir", "skip_interfaces", "reporters")
            if yaml_data.get(key) is not None
        }
        fuzz_dict: dict[str, Any] = dict(yaml_data.get("fuzz") or {})

        # process environment wins over .env
        overrides = {**env, **{k: v for k, v in os.environ.items() if k in ENV_KEYS}}
        if overrides.get("DBUSFUZZ_BUS"):
            config_dict["bus"] = overrides["DBUSFUZZ_BUS"]
        if overrides.get("DBUSFUZZ_LOG_DIR"):
            config_dict["log_dir"] = overrides["DBUSFUZZ_LOG_DIR"]
        if overrides.get("DBUSFUZZ_BUFFER_SIZE"):
            fuzz_dict["buffer_size"] = overrides["DBUSFUZZ_BUFFER_SIZE"]

        try:
            config_dict["fuzz"] = FuzzConfigModel(**fuzz_dict)
            self._config = AppConfig(**config_dict)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e
        if self._config.bus not in ("session", "system"):
            raise ConfigError(f"Unknown bus {self._config.bus!r}; expected 'session' or 'system'")
        return self._config

    @property
    def config(self) -> AppConfig:
        """Return loaded config; load if not yet loaded."""
        if self._config is None:
            self.load()
        if self._config is None:
            raise RuntimeError("ConfigManager.load() failed to produce a config")
        return self._config

    @property
    def env(self) -> dict[str, str]:
        """Return loaded env dict."""
        if not self._env and self._env_path.exists():
            self.load_env()
        return self._env

    @property
    def project_root(self) -> Path:
        return self._root
