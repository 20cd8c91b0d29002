"""
Cooperative shutdown inside a worker process.

GracefulShutdown installs SIGTERM/SIGINT handlers that set a StopIndicator
and nothing else. The retry strategy and the work function poll the
indicator to finish their current unit of work and return, which lets the
worker process exit with status 0. A work function that ignores the
indicator is killed by the supervisor after its shutdown timeout.

Usage (this is what ProcessManager runs in each forked child):

    GracefulShutdown(lg).run(lambda stop: strategy.run(stop, work))

Or as a context manager:

    with GracefulShutdown(lg) as stop:
        while not stop:
            do_work()
"""

from __future__ import annotations

import signal
from collections.abc import Callable, Iterable
from types import FrameType
from typing import Any, TypeVar

T = TypeVar("T")

DEFAULT_SIGNALS = (signal.SIGTERM, signal.SIGINT)


class StopIndicator:
    """
    Per-process cooperative stop flag.

    Backed by a plain bool so it can be written from a signal handler.
    Work functions receive it read-only in practice: they call it, test it
    for truth, or use is_set().

        def work(stop):
            while not stop():
                step()
    """

    __slots__ = ("_set",)

    def __init__(self) -> None:
        self._set = False

    def set(self) -> None:
        """Request a stop. Safe to call from a signal handler."""
        self._set = True

    def is_set(self) -> bool:
        return self._set

    def __call__(self) -> bool:
        return self._set

    def __bool__(self) -> bool:
        return self._set

    def __repr__(self) -> str:
        return f"StopIndicator(set={self._set})"


class GracefulShutdown:
    """
    Scope that maps termination signals onto a StopIndicator.

    Previous handlers are restored when the scope exits, whether the block
    returned or raised.
    """

    def __init__(
        self,
        lg: Any,
        signals: Iterable[signal.Signals] = DEFAULT_SIGNALS,
        stop: StopIndicator | None = None,
    ) -> None:
        """
        Args:
            lg: Logger for lifecycle messages (never used inside the handler)
            signals: Signals that request a stop
            stop: Indicator to set; a fresh one is created by default
        """
        self._lg = lg
        self._signals = tuple(signals)
        self._stop = stop if stop is not None else StopIndicator()
        self._previous: dict[signal.Signals, Any] = {}

    @property
    def stop(self) -> StopIndicator:
        return self._stop

    def _handle_stop_signal(self, signum: int, frame: FrameType | None) -> None:
        self._stop.set()

    def __enter__(self) -> StopIndicator:
        for sig in self._signals:
            self._previous[sig] = signal.signal(sig, self._handle_stop_signal)
        return self._stop

    def __exit__(self, *args: object) -> None:
        while self._previous:
            sig, handler = self._previous.popitem()
            signal.signal(sig, handler if handler is not None else signal.SIG_DFL)

    def run(self, block: Callable[[StopIndicator], T]) -> T:
        """
        Run block(stop) with the stop handlers installed.

        Returns:
            Whatever block returns
        """
        with self as stop:
            result = block(stop)
        if stop.is_set():
            self._lg.info("worker stopped on request")
        return result
