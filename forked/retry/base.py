"""
Base class for retry strategies run inside a worker process.
"""

import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from ..shutdown import StopIndicator
from ..worker import noop

DEFAULT_SLEEP_GRANULARITY = 0.1


class RetryStrategy(ABC):
    """
    Policy for repeatedly calling a work function until asked to stop.

    A strategy is built once per worker process with a logger and an error
    callback. run() calls the work function in a loop: a normal return means
    the unit of work finished and the function is called again; an Exception
    is reported through on_error and retried according to the policy. The
    loop returns once the stop indicator is set, which ends the worker
    process cleanly.

    BaseException subclasses that are not Exceptions (KeyboardInterrupt,
    SystemExit) are not retried.
    """

    def __init__(
        self,
        lg: Any,
        on_error: Callable[[BaseException], None] = noop,
        sleep_granularity: float = DEFAULT_SLEEP_GRANULARITY,
        clock: Callable[[], float] = time.monotonic,
        sleeper: Callable[[float], Any] = time.sleep,
    ) -> None:
        """
        Args:
            lg: Logger for failures and retries
            on_error: Called with each caught failure
            sleep_granularity: Longest uninterrupted sleep; bounds how long a
                stop request can go unnoticed while backing off
            clock: Monotonic clock (injectable for tests)
            sleeper: Sleep function (injectable for tests)
        """
        self._lg = lg
        self._on_error = on_error
        self._granularity = sleep_granularity
        self._clock = clock
        self._sleeper = sleeper
        self.attempts = 0
        self.failures = 0

    @abstractmethod
    def run(self, stop: StopIndicator, work: Callable[[], Any]) -> None:
        """
        Call work() repeatedly until stop is set.

        Args:
            stop: Cooperative stop indicator of this worker process
            work: Zero-argument work callable
        """

    def _report(self, error: Exception) -> None:
        """Log a failure and hand it to the error callback."""
        self.failures += 1
        self._lg.error(
            "work failed",
            extra={
                "error": f"{error.__class__.__name__}: {error}",
                "attempt": self.attempts,
            },
        )
        try:
            self._on_error(error)
        except Exception:
            self._lg.exception("error in on_error callback")

    def _sleep(self, secs: float, stop: StopIndicator) -> float:
        """
        Sleep up to secs, in slices, returning early once stop is set.

        Returns:
            Seconds actually slept (measured with the strategy's clock)
        """
        start = self._clock()
        deadline = start + secs
        while not stop:
            remaining = deadline - self._clock()
            if remaining <= 0:
                break
            self._sleeper(min(remaining, self._granularity))
        return self._clock() - start
