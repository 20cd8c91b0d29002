"""
Exception hierarchy for the process supervisor.

Failures raised by work functions never surface here: they are handled by the
retry strategy inside the worker process. These exceptions cover misuse of the
supervisor API and invalid configuration.
"""

from typing import Any


class ForkedError(Exception):
    """
    Base exception for all supervisor errors.

    Example:
        try:
            manager.register(work)
        except ForkedError as e:
            lg.error(f"cannot register worker: {e}")
    """

    def __init__(self, message: str, **context: Any) -> None:
        """
        Initialize the exception with a message and optional context.

        Args:
            message: Human-readable error message
            **context: Additional context information (stored in self.context)
        """
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message


class ConfigError(ForkedError):
    """
    Invalid supervisor configuration.

    Examples:
        - Negative process timeout
        - Non-positive poll interval
        - Unreadable or malformed YAML file
    """

    pass


class WorkerError(ForkedError):
    """Invalid worker definition, e.g. a work function that is not callable."""

    pass


class ShutdownError(ForkedError):
    """Raised when a worker is registered after shutdown has begun."""

    pass
