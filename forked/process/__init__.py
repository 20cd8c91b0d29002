"""
Process supervision: forking, reaping, respawning and shutting down workers.
"""

from .manager import ProcessManager, ShutdownPhase
from .ops import ProcessOps
from .status import ExitStatus

__all__ = ["ExitStatus", "ProcessManager", "ProcessOps", "ShutdownPhase"]
