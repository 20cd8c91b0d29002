"""
Retry strategy that retries immediately, forever.
"""

from collections.abc import Callable
from typing import Any

from ..shutdown import StopIndicator
from .base import RetryStrategy


class Always(RetryStrategy):
    """
    Retry every failure immediately, with no delay.

    Suited to work functions whose failures are cheap and unrelated to each
    other. A function that fails instantly will spin at full speed, calling
    on_error each time, until the worker is asked to stop.
    """

    def run(self, stop: StopIndicator, work: Callable[[], Any]) -> None:
        while not stop:
            self.attempts += 1
            try:
                work()
            except Exception as e:
                self._report(e)
