"""
Logger class with structured extra fields and a TRACE level.
"""

import logging
from typing import Any

from .config import LogConfig
from .constants import LogConstants


class Logger(logging.Logger):
    """
    Logger that keeps structured extra fields on each record.

    Fields passed as extra={...} are merged with the logger's own fields and
    stored on the record under LogConstants.EXTRA_ATTR so LogFormatter can
    render them as [key:value] pairs. Supervisor code logs lowercase messages
    with the details in extra:

        lg.info("worker exited", extra={"worker": "fetcher", "code": 0})
    """

    def __init__(
        self,
        name: str,
        config: LogConfig | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize the logger.

        Args:
            name: Logger name
            config: Logger configuration (default: info level)
            extra: Fields included in every record from this logger
        """
        if config is None:
            config = LogConfig()

        if config.level is False:
            super().__init__(name, logging.CRITICAL + 1)
            self._logging_disabled = True
        else:
            super().__init__(name, config.level)
            self._logging_disabled = False

        self._config = config
        self._extra = dict(extra or {})

    @property
    def config(self) -> LogConfig:
        return self._config

    @property
    def disabled(self) -> bool:  # type: ignore[override]
        """Check if logging is disabled."""
        return self._logging_disabled

    @disabled.setter
    def disabled(self, value: bool) -> None:
        self._logging_disabled = value

    def makeRecord(  # type: ignore[override]
        self,
        name: str,
        level: int,
        fn: str,
        lno: int,
        msg: object,
        args: Any,
        exc_info: Any,
        func: str | None = None,
        extra: dict[str, Any] | None = None,
        sinfo: str | None = None,
    ) -> logging.LogRecord:
        """Create a log record carrying merged extra fields."""
        merged = self._extra.copy()
        if extra:
            merged.update(extra)
        record = super().makeRecord(
            name, level, fn, lno, msg, args, exc_info, func, merged, sinfo
        )
        setattr(record, LogConstants.EXTRA_ATTR, merged)
        return record

    def trace(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log a TRACE level message."""
        level = LogConstants.CUSTOM_LEVELS["TRACE"]
        if not self._logging_disabled and self.isEnabledFor(level):
            self._log(level, msg, args, **kwargs)
