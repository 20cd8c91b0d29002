"""
Immutable logger configuration.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .constants import LogConstants
from .exceptions import InvalidLogLevelError


@dataclass(frozen=True)
class LogConfig:
    """
    Immutable configuration for supervisor loggers.

    Attributes:
        level: Numeric log level, or False to disable logging
        micros: Whether timestamps carry sub-millisecond digits
        colors: Whether to emit ANSI colors
    """

    level: int | bool = logging.INFO
    micros: bool = False
    colors: bool = True

    @staticmethod
    def _resolve_level(level: str | int | bool) -> int | bool:
        """Resolve a level name, number or bool to int or False."""
        if isinstance(level, bool):
            return logging.INFO if level else False
        if isinstance(level, str):
            name = level.lower()
            if name.isnumeric():
                return int(name)
            if name in LogConstants.LEVEL_NAMES:
                return LogConstants.LEVEL_NAMES[name]
            raise InvalidLogLevelError(level)
        if isinstance(level, int):
            return level
        raise InvalidLogLevelError(level)

    @classmethod
    def from_params(
        cls, level: str | int | bool = "info", micros: bool = False, colors: bool = True
    ) -> LogConfig:
        """
        Create LogConfig from individual parameters.

        Args:
            level: Level name ("info", "debug", ...), number, or False
            micros: Whether to show sub-millisecond precision
            colors: Whether to enable colored output

        Raises:
            InvalidLogLevelError: If the level name is unknown
        """
        return cls(level=cls._resolve_level(level), micros=micros, colors=colors)

    @classmethod
    def from_config(cls, config_dict: dict, section: str = "logging") -> LogConfig:
        """
        Create LogConfig from a configuration dictionary.

        Example:
            LogConfig.from_config({"logging": {"level": "debug", "colors": False}})
        """
        current: object = config_dict
        for part in section.split("."):
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                current = {}
                break
        settings = current if isinstance(current, dict) else {}

        return cls.from_params(
            level=settings.get("level", "info"),
            micros=settings.get("micros", False),
            colors=settings.get("colors", True),
        )
