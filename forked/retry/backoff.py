"""
Retry strategy with exponential backoff between consecutive failures.
"""

import collections
from collections.abc import Callable
from typing import Any

from ..shutdown import StopIndicator
from ..worker import noop
from .base import RetryStrategy


class ExponentialBackoff(RetryStrategy):
    """
    Retry failures after a delay that doubles with each consecutive failure.

    After the n-th consecutive failure the strategy sleeps

        min(base_delay * factor ** (n - 1), max_delay)

    The consecutive count resets once the worker has gone reset_after
    seconds without a failure: either successive normal returns spanning
    that long, or a single attempt that ran that long before failing. Brief
    successes between failures do not reset it, so a flapping dependency
    still backs off.

    The sleep is sliced so a stop request ends it within sleep_granularity.

    Example:
        import functools

        manager.register(
            poll_queue,
            retry_strategy=functools.partial(ExponentialBackoff, max_delay=30),
        )
    """

    # Number of recent delays kept for introspection
    HISTORY_SIZE = 100

    def __init__(
        self,
        lg: Any,
        on_error: Callable[[BaseException], None] = noop,
        base_delay: float = 1.0,
        factor: float = 2.0,
        max_delay: float = 60.0,
        reset_after: float = 60.0,
        **kwargs: Any,
    ) -> None:
        """
        Args:
            lg: Logger for failures and retries
            on_error: Called with each caught failure
            base_delay: Delay after the first failure (seconds)
            factor: Growth factor per consecutive failure
            max_delay: Upper bound for any delay (seconds)
            reset_after: Failure-free time after which the consecutive count
                resets (seconds)
            **kwargs: Passed to RetryStrategy (sleep_granularity, clock, sleeper)
        """
        super().__init__(lg, on_error, **kwargs)
        self.base_delay = base_delay
        self.factor = factor
        self.max_delay = max_delay
        self.reset_after = reset_after
        self.consecutive = 0
        # Start of the current failure-free stretch, None right after a failure
        self._healthy_since: float | None = None
        self.delays: collections.deque[float] = collections.deque(
            maxlen=self.HISTORY_SIZE
        )

    def delay_for(self, consecutive: int) -> float:
        """Delay to wait after the given number of consecutive failures."""
        if consecutive <= 0:
            return 0.0
        try:
            delay = self.base_delay * self.factor ** (consecutive - 1)
        except OverflowError:
            return self.max_delay
        return min(delay, self.max_delay)

    def run(self, stop: StopIndicator, work: Callable[[], Any]) -> None:
        while not stop:
            self.attempts += 1
            started = self._clock()
            try:
                work()
            except Exception as e:
                since = self._healthy_since
                if since is None:
                    since = started
                self._healthy_since = None
                if self._clock() - since >= self.reset_after:
                    self.consecutive = 0
                self.consecutive += 1
                self._report(e)
                self._backoff(stop)
            else:
                if self._healthy_since is None:
                    self._healthy_since = started
                if self._clock() - self._healthy_since >= self.reset_after:
                    self.consecutive = 0

    def _backoff(self, stop: StopIndicator) -> None:
        if stop:
            return
        delay = self.delay_for(self.consecutive)
        self.delays.append(delay)
        self._lg.info(
            "backing off before retry",
            extra={"delay": f"{delay:.2f}s", "failures": self.consecutive},
        )
        self._sleep(delay, stop)
