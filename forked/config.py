"""
Supervisor configuration.

SupervisorConfig is immutable and validated on construction through
from_params(). Values can come from keyword arguments, a configuration
dictionary, or a YAML file with environment variable overrides:

    # etc/forked.yaml
    forked:
      process_timeout: 10
      poll_interval: 0.25

    FORKED_PROCESS_TIMEOUT=2.5 python app.py
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

from .exceptions import ConfigError

DEFAULT_PROCESS_TIMEOUT = 5.0
DEFAULT_POLL_INTERVAL = 0.5
DEFAULT_GRACE_POLL_INTERVAL = 0.05
DEFAULT_ENV_PREFIX = "FORKED_"

# Maximum config file size (1MB); supervisor configs are tiny
MAX_CONFIG_SIZE_BYTES = 1024 * 1024


def _convert_env_value(value: str) -> int | float | str:
    """Convert an environment variable string to int or float where possible."""
    try:
        if "." in value:
            return float(value)
        return int(value)
    except ValueError:
        return value


def _navigate_to_section(config_dict: dict, section: str) -> dict:
    """Navigate to a dotted section, falling back to an empty dict."""
    current: Any = config_dict
    for part in section.split("."):
        if isinstance(current, dict) and part in current:
            current = current[part]
        else:
            return {}
    return current if isinstance(current, dict) else {}


@dataclass(frozen=True)
class SupervisorConfig:
    """
    Immutable configuration for a ProcessManager.

    Attributes:
        process_timeout: Seconds to wait for workers after TERM before KILL
        poll_interval: Sleep between non-blocking reaps in the normal loop;
            bounds restart latency
        grace_poll_interval: Sleep between reaps while waiting for workers
            to exit during shutdown
    """

    process_timeout: float = DEFAULT_PROCESS_TIMEOUT
    poll_interval: float = DEFAULT_POLL_INTERVAL
    grace_poll_interval: float = DEFAULT_GRACE_POLL_INTERVAL

    @classmethod
    def from_params(
        cls,
        process_timeout: float = DEFAULT_PROCESS_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        grace_poll_interval: float = DEFAULT_GRACE_POLL_INTERVAL,
    ) -> SupervisorConfig:
        """
        Create a validated SupervisorConfig.

        Raises:
            ConfigError: If a value has the wrong type or is out of range
        """
        values = {
            "process_timeout": process_timeout,
            "poll_interval": poll_interval,
            "grace_poll_interval": grace_poll_interval,
        }
        for key, value in values.items():
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigError(f"'{key}' must be a number", value=value)

        if process_timeout < 0:
            raise ConfigError(
                "'process_timeout' must not be negative", value=process_timeout
            )
        if poll_interval <= 0:
            raise ConfigError("'poll_interval' must be positive", value=poll_interval)
        if grace_poll_interval <= 0:
            raise ConfigError(
                "'grace_poll_interval' must be positive", value=grace_poll_interval
            )

        return cls(
            process_timeout=float(process_timeout),
            poll_interval=float(poll_interval),
            grace_poll_interval=float(grace_poll_interval),
        )

    @classmethod
    def from_config(cls, config_dict: dict, section: str = "forked") -> SupervisorConfig:
        """
        Create a SupervisorConfig from a configuration dictionary.

        Missing keys fall back to defaults; unknown keys are ignored.

        Args:
            config_dict: Configuration dictionary
            section: Dotted section holding the supervisor settings

        Example:
            cfg = SupervisorConfig.from_config({"forked": {"process_timeout": 2}})
        """
        return cls._from_settings(_navigate_to_section(config_dict, section))

    @classmethod
    def _from_settings(cls, settings: dict) -> SupervisorConfig:
        """Build from a flat settings mapping, using defaults for missing keys."""
        return cls.from_params(
            process_timeout=settings.get("process_timeout", DEFAULT_PROCESS_TIMEOUT),
            poll_interval=settings.get("poll_interval", DEFAULT_POLL_INTERVAL),
            grace_poll_interval=settings.get(
                "grace_poll_interval", DEFAULT_GRACE_POLL_INTERVAL
            ),
        )

    @classmethod
    def from_yaml(
        cls,
        fname: str | Path,
        section: str = "forked",
        env_prefix: str | None = DEFAULT_ENV_PREFIX,
    ) -> SupervisorConfig:
        """
        Load a SupervisorConfig from a YAML file.

        Environment variables named <env_prefix><KEY> (e.g.
        FORKED_PROCESS_TIMEOUT) override values from the file. Pass
        env_prefix=None to disable overrides.

        Raises:
            ConfigError: If the file cannot be read or parsed
        """
        path = Path(fname)
        try:
            if path.stat().st_size > MAX_CONFIG_SIZE_BYTES:
                raise ConfigError("configuration file too large", path=str(path))
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except OSError as e:
            raise ConfigError("cannot read configuration file", path=str(path)) from e
        except yaml.YAMLError as e:
            raise ConfigError("malformed configuration file", path=str(path)) from e

        if not isinstance(data, dict):
            raise ConfigError("configuration root must be a mapping", path=str(path))

        settings = dict(_navigate_to_section(data, section))
        if env_prefix:
            settings.update(_collect_env_overrides(env_prefix))
        return cls._from_settings(settings)


def _collect_env_overrides(env_prefix: str) -> dict[str, Any]:
    """Collect FORKED_* variables as lowercase setting names."""
    overrides = {}
    for key, value in os.environ.items():
        if key.startswith(env_prefix):
            name = key[len(env_prefix) :].lower()
            overrides[name] = _convert_env_value(value)
    return overrides
