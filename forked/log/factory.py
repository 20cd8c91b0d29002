"""
Factory for creating configured supervisor loggers.
"""

import logging
import sys
from typing import IO, Any, cast

from .config import LogConfig
from .formatters import LogFormatter
from .logger import Logger


class LoggerFactory:
    """Factory for creating and configuring loggers."""

    @staticmethod
    def create_root(config: LogConfig | None = None) -> Logger:
        """
        Create the supervisor's default logger.

        Example:
            >>> lg = LoggerFactory.create_root(LogConfig.from_params("debug"))
            >>> lg.info("supervisor started", extra={"workers": 2})
            [12:34:56,789] [I] supervisor started      [workers:2] [1234] [forked]
        """
        return LoggerFactory.create("forked", config)

    @staticmethod
    def create(
        name: str,
        config: LogConfig | None = None,
        stream: IO[str] | None = None,
        extra: dict[str, Any] | None = None,
    ) -> Logger:
        """
        Create a logger writing to a stream (stdout by default).

        Loggers are registered with the logging manager, so asking for the
        same name twice returns the existing instance unchanged: config,
        stream and extra given to the later call are ignored, and a debug
        record on the existing logger notes that they were.

        Args:
            name: Logger name
            config: Logger configuration (default: info level, colors)
            stream: Output stream for the console handler
            extra: Fields included in every record from this logger
        """
        existing = logging.root.manager.loggerDict.get(name)
        if isinstance(existing, Logger):
            if (
                (config is not None and config != existing.config)
                or stream is not None
                or extra
            ):
                existing.debug(
                    "logger already exists, new settings ignored",
                    extra={"logger": name},
                )
            return existing

        config = config or LogConfig()

        lg = Logger(name, config, extra)
        lg.propagate = False

        handler = logging.StreamHandler(stream if stream is not None else sys.stdout)
        if config.level is not False:
            handler.setLevel(cast(int, config.level))
        handler.setFormatter(LogFormatter(config))
        lg.addHandler(handler)

        logging.root.manager.loggerDict[name] = lg
        return lg
