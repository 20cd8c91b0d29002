"""
Process manager: forks workers, respawns them, and shuts them down.

Resilience has two tiers. Inside each worker process a RetryStrategy keeps
calling the work function across failures. When the process itself dies
with a nonzero status or a signal, the manager forks the same Worker again.
A clean exit (status 0) ends that worker for good.

Shutdown runs through these phases:

    RUNNING -> TERM_SENT -> GRACE_WAIT -> KILL_SENT -> REAPED -> STOPPED

TERM goes to every tracked worker at once; the manager then reaps exits
until all workers are gone or process_timeout has passed since the grace
wait began; survivors get KILL and are reaped with a blocking wait so no
zombies are left behind. KILL_SENT is skipped when every worker exited in
time. No worker is respawned once shutdown has begun.

Signal handlers only set a flag. The registry of pids is read and written
by the control loop alone.

Example:
    manager = ProcessManager(process_timeout=10)

    def consume(stop):
        while not stop():
            handle(queue.get(timeout=1))

    manager.register(consume, name="consumer")
    manager.register(lambda: heartbeat(), name="heartbeat")
    manager.wait_for_shutdown()  # until SIGTERM or SIGINT
"""

from __future__ import annotations

import enum
import signal
from collections.abc import Callable
from types import FrameType
from typing import Any

from ..config import SupervisorConfig
from ..exceptions import ShutdownError
from ..log import LoggerFactory
from ..retry import ExponentialBackoff, RetryStrategy
from ..shutdown import GracefulShutdown
from ..worker import Worker, noop
from .ops import ProcessOps
from .status import ExitStatus

SHUTDOWN_SIGNALS = (signal.SIGTERM, signal.SIGINT)


class ShutdownPhase(enum.Enum):
    """Phases of the supervisor's shutdown state machine."""

    RUNNING = "running"
    TERM_SENT = "term_sent"
    GRACE_WAIT = "grace_wait"
    KILL_SENT = "kill_sent"
    REAPED = "reaped"
    STOPPED = "stopped"


class ProcessManager:
    """
    Supervisor for a set of forked worker processes.

    Args:
        process_timeout: Seconds to wait for workers after TERM before KILL.
            Overrides config.process_timeout when given.
        lg: Logger with info/error/warning/debug methods. A console logger
            is created when omitted.
        config: Supervisor settings (timeouts and poll intervals)
        ops: OS operations; replaced by a fake in tests
    """

    def __init__(
        self,
        process_timeout: float | None = None,
        lg: Any | None = None,
        config: SupervisorConfig | None = None,
        ops: ProcessOps | None = None,
    ) -> None:
        config = config or SupervisorConfig()
        if process_timeout is not None:
            config = SupervisorConfig.from_params(
                process_timeout=process_timeout,
                poll_interval=config.poll_interval,
                grace_poll_interval=config.grace_poll_interval,
            )
        self._config = config
        self._lg = lg if lg is not None else LoggerFactory.create_root()
        self._ops = ops if ops is not None else ProcessOps()
        self._workers: dict[int, Worker] = {}
        self._shutdown_requested = False
        self.phase = ShutdownPhase.RUNNING
        self.phase_history: list[ShutdownPhase] = [ShutdownPhase.RUNNING]
        self.waiting_since: float | None = None

    @property
    def config(self) -> SupervisorConfig:
        return self._config

    @property
    def process_timeout(self) -> float:
        return self._config.process_timeout

    @property
    def shutdown_requested(self) -> bool:
        return self._shutdown_requested

    def register(
        self,
        work: Callable[..., Any],
        name: str | None = None,
        retry_strategy: Callable[..., RetryStrategy] = ExponentialBackoff,
        on_error: Callable[[BaseException], None] = noop,
    ) -> int:
        """
        Fork a new supervised worker.

        Args:
            work: Work function; receives the worker's StopIndicator if it
                takes a positional argument
            name: Name used in log messages
            retry_strategy: Strategy factory called with lg and on_error
            on_error: Called inside the worker with each caught failure

        Returns:
            Pid of the forked worker process

        Raises:
            ShutdownError: If shutdown has already begun
            WorkerError: If work, retry_strategy or on_error is not callable
        """
        if self.phase is not ShutdownPhase.RUNNING:
            raise ShutdownError(
                "cannot register worker after shutdown", phase=self.phase.value
            )
        worker = Worker(name, retry_strategy, on_error, work)
        return self._fork_worker(worker)

    fork = register

    def worker_pids(self) -> set[int]:
        """Snapshot of the pids currently under supervision."""
        return set(self._workers)

    def request_shutdown(self) -> None:
        """Ask wait_for_shutdown() to leave its loop and shut down."""
        self._shutdown_requested = True

    def wait_for_shutdown(self) -> None:
        """
        Supervise workers until SIGTERM or SIGINT, then shut down.

        Must be called from the main thread (signal handlers are installed
        there). Previous handlers are restored once shutdown completes.
        """
        previous = self._trap_shutdown_signals()
        try:
            self._handle_child_processes()
            self.shutdown()
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler if handler is not None else signal.SIG_DFL)

    def poll_once(self) -> ExitStatus | None:
        """
        Reap at most one exited child and apply the restart policy.

        Returns:
            The exit status of the reaped child, or None if none had exited
        """
        reaped = self._ops.wait_any()
        if reaped is None:
            return None
        status = ExitStatus.from_wait_status(*reaped)
        self._handle_child_exit(status)
        return status

    def shutdown(self) -> None:
        """
        Stop all workers: TERM, wait up to process_timeout, KILL, reap.

        Returns once no tracked worker remains. Calling it again after it
        has run is a no-op.
        """
        if self.phase is not ShutdownPhase.RUNNING:
            return
        self._shutdown_requested = True

        self._lg.info("supervisor shutting down", extra={"workers": len(self._workers)})
        self._send_signal_to_workers(signal.SIGTERM)
        self._set_phase(ShutdownPhase.TERM_SENT)

        self._wait_for_workers_until_timeout()

        if self._workers:
            self._lg.warning(
                "workers did not stop in time",
                extra={"pids": sorted(self._workers), "timeout": self.process_timeout},
            )
            self._send_signal_to_workers(signal.SIGKILL)
            self._set_phase(ShutdownPhase.KILL_SENT)

        self._reap_remaining()
        self._set_phase(ShutdownPhase.REAPED)
        self._set_phase(ShutdownPhase.STOPPED)
        self._lg.info("supervisor shutdown complete")

    # Worker lifecycle

    def _fork_worker(self, worker: Worker) -> int:
        strategy = worker.build_strategy(self._lg)
        pid = self._ops.fork(lambda: self._run_worker(worker, strategy), self._lg)
        self._workers[pid] = worker
        self._lg.info("worker started", extra={"worker": worker.label(pid), "pid": pid})
        return pid

    def _run_worker(self, worker: Worker, strategy: RetryStrategy) -> None:
        """Body of a forked worker process."""
        GracefulShutdown(self._lg).run(
            lambda stop: strategy.run(stop, worker.bind(stop))
        )

    def _handle_child_processes(self) -> None:
        while not self._shutdown_requested:
            self._reap_exited()
            if self._shutdown_requested:
                break
            self._ops.sleep(self._config.poll_interval)

    def _reap_exited(self) -> None:
        # Bounded by the worker count so a crash-looping worker cannot keep
        # this pass from returning.
        for _ in range(max(1, len(self._workers))):
            if self._shutdown_requested or self.poll_once() is None:
                break

    def _handle_child_exit(self, status: ExitStatus) -> None:
        worker = self._workers.pop(status.pid, None)
        if worker is None:
            self._lg.debug("reaped untracked child", extra={"pid": status.pid})
            return

        label = worker.label(status.pid)
        self._lg.info(
            f"worker {status.describe()}", extra={"worker": label, "pid": status.pid}
        )
        if status.clean:
            return

        self._lg.error("restarting worker", extra={"worker": label})
        self._fork_worker(worker)

    # Shutdown

    def _trap_shutdown_signals(self) -> dict[signal.Signals, Any]:
        return {
            sig: signal.signal(sig, self._handle_shutdown_signal)
            for sig in SHUTDOWN_SIGNALS
        }

    def _handle_shutdown_signal(self, signum: int, frame: FrameType | None) -> None:
        self._shutdown_requested = True

    def _set_phase(self, phase: ShutdownPhase) -> None:
        self.phase = phase
        self.phase_history.append(phase)
        self._lg.debug("shutdown phase", extra={"phase": phase.value})

    def _send_signal_to_workers(self, sig: signal.Signals) -> None:
        if not self._workers:
            return
        pids = sorted(self._workers)
        self._lg.info("signalling workers", extra={"signal": sig.name, "pids": pids})
        for pid in pids:
            try:
                self._ops.kill(pid, sig)
            except ProcessLookupError:
                # Already gone
                self._workers.pop(pid, None)

    def _wait_for_workers_until_timeout(self) -> None:
        self._set_phase(ShutdownPhase.GRACE_WAIT)
        self.waiting_since = self._ops.monotonic()
        deadline = self.waiting_since + self.process_timeout

        while self._workers and self._ops.monotonic() < deadline:
            reaped = self._ops.wait_any()
            if reaped is None:
                remaining = deadline - self._ops.monotonic()
                if remaining > 0:
                    self._ops.sleep(min(self._config.grace_poll_interval, remaining))
                continue
            status = ExitStatus.from_wait_status(*reaped)
            worker = self._workers.pop(status.pid, None)
            if worker is not None:
                self._lg.info(
                    f"worker {status.describe()}",
                    extra={"worker": worker.label(status.pid), "pid": status.pid},
                )

    def _reap_remaining(self) -> None:
        for pid in sorted(self._workers):
            self._ops.wait(pid)
            self._workers.pop(pid, None)
