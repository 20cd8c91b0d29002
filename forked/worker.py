"""
Worker descriptor: the immutable definition of one supervised worker.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .exceptions import WorkerError

if TYPE_CHECKING:
    from .retry import RetryStrategy
    from .shutdown import StopIndicator

_POSITIONAL = (
    inspect.Parameter.POSITIONAL_ONLY,
    inspect.Parameter.POSITIONAL_OR_KEYWORD,
    inspect.Parameter.VAR_POSITIONAL,
)


def noop(error: BaseException) -> None:
    """Default error callback."""
    pass


def accepts_stop_indicator(fn: Callable[..., Any]) -> bool:
    """
    Check whether a work function takes the stop indicator.

    A function accepts it when its signature has a positional parameter or
    *args. Callables without an inspectable signature are called with no
    arguments.
    """
    try:
        params = inspect.signature(fn).parameters.values()
    except (TypeError, ValueError):
        return False
    return any(p.kind in _POSITIONAL for p in params)


@dataclass(frozen=True)
class Worker:
    """
    Immutable description of a supervised worker.

    The same Worker is forked again verbatim whenever its process exits
    abnormally, so a respawned process always starts from identical
    configuration.

    Attributes:
        name: Human-readable name, used only for logging
        retry_strategy: Factory called as retry_strategy(lg=..., on_error=...)
        on_error: Called with each failure caught by the retry strategy
        work: The work function, optionally taking a StopIndicator
    """

    name: str | None
    retry_strategy: Callable[..., RetryStrategy]
    on_error: Callable[[BaseException], None]
    work: Callable[..., Any]

    def __post_init__(self) -> None:
        if not callable(self.work):
            raise WorkerError("work function must be callable", worker=self.name)
        if not callable(self.retry_strategy):
            raise WorkerError("retry strategy must be callable", worker=self.name)
        if not callable(self.on_error):
            raise WorkerError("on_error must be callable", worker=self.name)

    def label(self, pid: int | None = None) -> str:
        """Name for log messages: the worker name, else the pid."""
        if self.name:
            return self.name
        return str(pid) if pid is not None else "worker"

    def build_strategy(self, lg: Any) -> RetryStrategy:
        """Construct this worker's retry strategy bound to a logger."""
        return self.retry_strategy(lg=lg, on_error=self.on_error)

    def bind(self, stop: StopIndicator) -> Callable[[], Any]:
        """Return a zero-argument callable running the work function."""
        if accepts_stop_indicator(self.work):
            return lambda: self.work(stop)
        return self.work
