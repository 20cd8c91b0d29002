"""
Log formatter rendering structured fields after the message.

Output layout:

    [12:34:56,789] [I] worker exited            [code:0] [worker:fetcher] [4242] [forked]

Extra fields are sorted by key, padded to a fixed rule width so they line up,
and followed by the process id and logger name.
"""

import logging
from typing import Any

from .config import LogConfig
from .constants import LogConstants


def _level_color(levelno: int) -> str:
    return LogConstants.LEVEL_COLORS.get(levelno, LogConstants.DEFAULT_COLOR)


def _escape(value: Any) -> str:
    """Render a field value, escaping % so it survives %-formatting."""
    if isinstance(value, (list, tuple, set, frozenset)):
        text = ",".join(str(v) for v in value)
    else:
        text = str(value)
    return text.replace("%", "%%")


class LogFormatter(logging.Formatter):
    """
    Formatter for supervisor loggers.

    Renders the standard "[time] [L] message" prefix, then the record's
    structured extra fields as [key:value], then [pid] [name]. Colors are
    applied per level when the config enables them.
    """

    def __init__(self, config: LogConfig | None = None) -> None:
        self._config = config or LogConfig()
        super().__init__(LogConstants.DEFAULT_FORMAT)

    @property
    def config(self) -> LogConfig:
        return self._config

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        s = super().formatTime(record, datefmt)
        if self._config.micros:
            micros = int((record.created % 1) * 1000000) % 1000
            s += f".{micros:03d}"
        return s

    def format(self, record: logging.LogRecord) -> str:
        fmt = self._build_format(record)
        self._style._fmt = fmt
        self._fmt = fmt
        return super().format(record)

    def _build_format(self, record: logging.LogRecord) -> str:
        rule = (
            LogConstants.MICRO_RULE_WIDTH
            if self._config.micros
            else LogConstants.DEFAULT_RULE_WIDTH
        )
        # "[" + time + "] [" + level + "] " + message
        width = 1 + (16 if self._config.micros else 12) + 4 + 1 + 2
        width += len(record.getMessage())

        fields = self._render_fields(record)
        meta = ["%(process)d", "%(name)s"]

        if not self._config.colors:
            fmt = LogConstants.DEFAULT_FORMAT + " " * max(1, rule - width)
            parts = [f"[{k}:{v}]" for k, v in fields] + [f"[{m}]" for m in meta]
            return fmt + " ".join(parts)

        col = _level_color(record.levelno)
        bold = col + ";1m"
        col += "m"
        reset = LogConstants.RESET
        gray = LogConstants.GRAY + "m"

        fmt = f"{col}[%(asctime)s] [{bold}%(levelname).1s{reset}{col}] {bold}%(message)s{reset}"
        fmt += " " * max(1, rule - width)
        parts = [f"{col}{k}[{bold}{v}{reset}{col}]" for k, v in fields]
        parts += [f"{gray}[{m}]" for m in meta]
        return fmt + " ".join(parts) + reset

    def _render_fields(self, record: logging.LogRecord) -> list[tuple[str, str]]:
        extra = getattr(record, LogConstants.EXTRA_ATTR, None)
        if not extra:
            return []
        return [(key, _escape(extra[key])) for key in sorted(extra)]
