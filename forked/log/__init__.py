"""
Logging for the process supervisor.

A small structured-logging layer on top of the standard logging module:
- Logger keeps extra={...} fields on each record
- LogFormatter renders them as [key:value] after the message, with colors
- Custom TRACE level below DEBUG

The supervisor only needs info/error/debug/warning from whatever logger it
is given; this package supplies the default one.
"""

import logging

from .config import LogConfig
from .constants import LogConstants
from .exceptions import InvalidLogLevelError, LogError
from .factory import LoggerFactory
from .formatters import LogFormatter
from .logger import Logger

logging.addLevelName(LogConstants.CUSTOM_LEVELS["TRACE"], "TRACE")

__all__ = [
    "InvalidLogLevelError",
    "LogConfig",
    "LogConstants",
    "LogError",
    "LogFormatter",
    "Logger",
    "LoggerFactory",
]
