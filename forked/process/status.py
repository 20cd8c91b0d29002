"""
Classification of child exit statuses returned by waitpid().
"""

from __future__ import annotations

import os
import signal
from dataclasses import dataclass


@dataclass(frozen=True)
class ExitStatus:
    """
    How a child process ended.

    Exactly one of code and signal is set for a normal waitpid() result.
    Both are None when the status could not be decoded.

    Attributes:
        pid: Process id of the reaped child
        code: Exit code if the process exited on its own
        signal: Signal number if the process was terminated by a signal
    """

    pid: int
    code: int | None = None
    signal: int | None = None

    @classmethod
    def from_wait_status(cls, pid: int, status: int) -> ExitStatus:
        """Decode a raw waitpid() status."""
        if os.WIFEXITED(status):
            return cls(pid, code=os.WEXITSTATUS(status))
        if os.WIFSIGNALED(status):
            return cls(pid, signal=os.WTERMSIG(status))
        return cls(pid)

    @property
    def clean(self) -> bool:
        """True only for exit code 0; anything else warrants a respawn."""
        return self.code == 0

    @property
    def signal_name(self) -> str | None:
        if self.signal is None:
            return None
        try:
            return signal.Signals(self.signal).name
        except ValueError:
            return str(self.signal)

    def describe(self) -> str:
        if self.code is not None:
            return f"exited with status {self.code}"
        if self.signal is not None:
            return f"terminated by {self.signal_name}"
        return "exited with unknown status"
