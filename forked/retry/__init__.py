"""
Retry strategies: the in-process tier of worker resilience.

A strategy keeps one worker process alive across failures of its work
function. Failures that escape the strategy end the process, and the
supervisor respawns it.
"""

from .always import Always
from .backoff import ExponentialBackoff
from .base import RetryStrategy

__all__ = ["Always", "ExponentialBackoff", "RetryStrategy"]
