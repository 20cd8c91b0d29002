"""
Constants for the logging system: format strings, levels and colors.
"""

import logging


class LogConstants:
    """Constants for the logging system."""

    DEFAULT_FORMAT: str = "[%(asctime)s] [%(levelname).1s] %(message)s"

    # Column where structured fields start
    DEFAULT_RULE_WIDTH: int = 70
    MICRO_RULE_WIDTH: int = 74

    CUSTOM_LEVELS: dict[str, int] = {"TRACE": 5}

    LEVEL_NAMES: dict[str, int | bool] = {
        "critical": logging.CRITICAL,
        "error": logging.ERROR,
        "warning": logging.WARNING,
        "info": logging.INFO,
        "debug": logging.DEBUG,
        "trace": 5,
        "false": False,  # Disables all logging
    }

    # Record attribute holding structured extra fields
    EXTRA_ATTR: str = "__forked__extra"

    RESET: str = "\x1b[0m"
    GRAY: str = "\x1b[38;5;241"

    LEVEL_COLORS: dict[int, str] = {
        5: "\x1b[38;5;244",  # TRACE
        logging.DEBUG: "\x1b[38;5;32",
        logging.INFO: "\x1b[36",
        logging.WARNING: "\x1b[33",
        logging.ERROR: "\x1b[31",
        logging.CRITICAL: "\x1b[35",
    }
    DEFAULT_COLOR: str = "\x1b[38"
