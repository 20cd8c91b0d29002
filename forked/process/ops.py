"""
Operating system calls used by the process manager.

ProcessManager never calls os.fork, os.waitpid or os.kill directly; it goes
through a ProcessOps instance. Tests substitute a fake that scripts child
exits and advances a fake clock, so the respawn and shutdown logic can be
exercised without forking.
"""

import contextlib
import os
import signal
import sys
import time
from collections.abc import Callable
from typing import Any

# Handlers a forked child must not inherit from the supervisor
CHILD_RESET_SIGNALS = (signal.SIGTERM, signal.SIGINT)


def _exit_code(exc: SystemExit) -> int:
    if exc.code is None:
        return 0
    if isinstance(exc.code, int):
        return exc.code
    return 1


class ProcessOps:
    """Real process operations backed by the os module."""

    def fork(self, target: Callable[[], Any], lg: Any) -> int:
        """
        Fork a child that runs target() and exits.

        The child never returns into the caller's code: it leaves through
        os._exit() with status 0 when target returns, the SystemExit code if
        target raises SystemExit, and 1 for any other escaped exception.

        TERM and INT start out with their default action in the child, so a
        stop signal that arrives before the worker installs its own handlers
        ends the child instead of reaching a handler copied from the parent.
        Both signals stay blocked across the fork to close that gap.

        Returns:
            Child pid (in the parent)
        """
        mask = signal.pthread_sigmask(signal.SIG_BLOCK, CHILD_RESET_SIGNALS)
        try:
            pid = os.fork()
            if pid == 0:
                for sig in CHILD_RESET_SIGNALS:
                    signal.signal(sig, signal.SIG_DFL)
        finally:
            signal.pthread_sigmask(signal.SIG_SETMASK, mask)
        if pid != 0:
            return pid

        code = 1
        try:
            target()
            code = 0
        except SystemExit as e:
            code = _exit_code(e)
        except BaseException:
            lg.exception("worker process crashed", extra={"pid": os.getpid()})
        finally:
            for stream in (sys.stdout, sys.stderr):
                with contextlib.suppress(OSError, ValueError):
                    stream.flush()
            os._exit(code)

    def wait_any(self) -> tuple[int, int] | None:
        """
        Reap any exited child without blocking.

        Returns:
            (pid, raw status), or None if no child has exited or there are
            no children at all
        """
        try:
            pid, status = os.waitpid(-1, os.WNOHANG)
        except ChildProcessError:
            return None
        if pid == 0:
            return None
        return pid, status

    def wait(self, pid: int) -> int | None:
        """
        Block until the given child exits and reap it.

        Returns:
            Raw status, or None if the pid is not (or no longer) our child
        """
        try:
            _, status = os.waitpid(pid, 0)
        except ChildProcessError:
            return None
        return status

    def kill(self, pid: int, sig: int) -> None:
        """Send a signal. Raises ProcessLookupError if the process is gone."""
        os.kill(pid, sig)

    def sleep(self, secs: float) -> None:
        time.sleep(secs)

    def monotonic(self) -> float:
        return time.monotonic()
