"""
forked: a single-node process supervisor.

Forks worker processes, keeps them running through failures (retry inside
the process, respawn when the process dies) and shuts them down with
TERM, a bounded grace period, then KILL.
"""

from importlib.metadata import PackageNotFoundError, version

from .config import SupervisorConfig
from .exceptions import ConfigError, ForkedError, ShutdownError, WorkerError
from .process import ExitStatus, ProcessManager, ProcessOps, ShutdownPhase
from .retry import Always, ExponentialBackoff, RetryStrategy
from .shutdown import GracefulShutdown, StopIndicator
from .worker import Worker, accepts_stop_indicator

try:
    __version__ = version("forked")
except PackageNotFoundError:
    # Package not installed (development checkout)
    __version__ = "0.1.0-dev"

__all__ = [
    "__version__",
    # Supervisor
    "ProcessManager",
    "ShutdownPhase",
    "ProcessOps",
    "ExitStatus",
    "SupervisorConfig",
    # Workers
    "Worker",
    "accepts_stop_indicator",
    "GracefulShutdown",
    "StopIndicator",
    # Retry strategies
    "RetryStrategy",
    "Always",
    "ExponentialBackoff",
    # Exceptions
    "ForkedError",
    "ConfigError",
    "ShutdownError",
    "WorkerError",
]
