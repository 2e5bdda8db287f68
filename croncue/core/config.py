"""
croncue configuration — loads and merges config from multiple sources.

Precedence (highest to lowest):
1. Explicit overrides (passed in code)
2. Environment variables (CRONCUE_*)
3. Project config (./croncue.toml)
4. User config (~/.croncue/config.toml)
5. Defaults (hardcoded)

Environment variable mapping:
    CRONCUE_DATA_DIR → scheduler.data_dir
    CRONCUE_DEFAULT_TARGET → scheduler.default_target
    CRONCUE_TICK_INTERVAL → scheduler.tick_interval
    CRONCUE_TIMEZONE → scheduler.timezone
    CRONCUE_HEARTBEAT_* → heartbeat.*
    CRONCUE_LOG_DIR → logging.log_dir
"""

from __future__ import annotations

import os
import re
import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

from croncue.core.errors import ConfigError

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Config Sub-Models
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class SchedulerConfig(BaseModel):
    """Job repository, evaluator and watcher configuration."""

    data_dir: str = "~/.croncue/cron"
    default_target: str | None = None
    tick_interval: float = 15.0  # seconds between evaluator ticks
    timezone: str | None = None  # IANA name; None = system local time
    rescan_interval: float = 30.0  # seconds between trigger directory sweeps

    @field_validator("tick_interval", "rescan_interval")
    @classmethod
    def _positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("must be greater than zero")
        return value

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir).expanduser()


class HeartbeatConfig(BaseModel):
    """Standing heartbeat job configuration."""

    enabled: bool = False
    cron: str = "*/5 * * * *"
    target: str = "tui"
    file: str = ".croncue/HEARTBEAT.md"


class LoggingConfig(BaseModel):
    """Log output configuration."""

    log_dir: str = "~/.croncue/logs"
    console_level: str = "WARNING"
    event_log: bool = True


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Main Config
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class CronCueConfig(BaseModel):
    """Root configuration for croncue."""

    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    heartbeat: HeartbeatConfig = Field(default_factory=HeartbeatConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @staticmethod
    def load(
        overrides: dict[str, Any] | None = None,
        project_path: Path | None = None,
        user_path: Path | None = None,
    ) -> CronCueConfig:
        """
        Load configuration from all sources and merge.

        Precedence: overrides > env vars > project toml > user toml > defaults
        """
        merged: dict[str, Any] = {}

        # Layer 1: User config (~/.croncue/config.toml)
        user_config_path = user_path or Path.home() / ".croncue" / "config.toml"
        if user_config_path.exists():
            _deep_merge(merged, _load_toml(user_config_path))

        # Layer 2: Project config (./croncue.toml)
        project_config_path = project_path or Path.cwd() / "croncue.toml"
        if project_config_path.exists():
            _deep_merge(merged, _load_toml(project_config_path))

        # Layer 3: Environment variables
        _deep_merge(merged, _load_from_env())

        # Layer 4: Explicit overrides
        if overrides:
            _deep_merge(merged, overrides)

        _substitute_env_vars(merged)

        try:
            return CronCueConfig(**merged)
        except Exception as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

    def get_home(self) -> Path:
        """Get the croncue home directory (~/.croncue)."""
        return Path.home() / ".croncue"


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Internal Helpers
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def _load_toml(path: Path) -> dict[str, Any]:
    """Load a TOML file."""
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except Exception as e:
        raise ConfigError(f"Failed to load config from {path}: {e}") from e


def _load_from_env() -> dict[str, Any]:
    """Load configuration from CRONCUE_* environment variables."""
    result: dict[str, Any] = {}

    env_mapping = {
        "CRONCUE_DATA_DIR": ("scheduler", "data_dir"),
        "CRONCUE_DEFAULT_TARGET": ("scheduler", "default_target"),
        "CRONCUE_TICK_INTERVAL": ("scheduler", "tick_interval"),
        "CRONCUE_TIMEZONE": ("scheduler", "timezone"),
        "CRONCUE_HEARTBEAT_ENABLED": ("heartbeat", "enabled"),
        "CRONCUE_HEARTBEAT_CRON": ("heartbeat", "cron"),
        "CRONCUE_HEARTBEAT_TARGET": ("heartbeat", "target"),
        "CRONCUE_HEARTBEAT_FILE": ("heartbeat", "file"),
        "CRONCUE_LOG_DIR": ("logging", "log_dir"),
    }
    # Free-text values must stay strings even when they look numeric
    string_keys = {"data_dir", "default_target", "timezone", "cron", "target", "file", "log_dir"}

    for env_var, (section, key) in env_mapping.items():
        value = os.environ.get(env_var)
        if value is not None:
            if section not in result:
                result[section] = {}
            result[section][key] = value if key in string_keys else _convert_value(value)

    return result


def _convert_value(value: str) -> Any:
    """Convert string value to appropriate type."""
    if value.lower() in ("true", "yes"):
        return True
    if value.lower() in ("false", "no"):
        return False
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        pass
    return value


def _deep_merge(base: dict, override: dict) -> None:
    """Deep merge override into base (mutates base)."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value


_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")


def _substitute(value: str) -> str:
    for var_name in _ENV_PATTERN.findall(value):
        value = value.replace(f"${{{var_name}}}", os.environ.get(var_name, ""))
    return value


def _substitute_env_vars(data: dict) -> None:
    """Recursively substitute ${ENV_VAR} patterns in string values."""
    for key, value in data.items():
        if isinstance(value, dict):
            _substitute_env_vars(value)
        elif isinstance(value, str):
            data[key] = _substitute(value)
        elif isinstance(value, list):
            data[key] = [_substitute(v) if isinstance(v, str) else v for v in value]
