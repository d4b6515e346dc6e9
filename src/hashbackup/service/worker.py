"""Single-worker service that runs scheduled and requested backup jobs."""

from __future__ import annotations

import logging
import queue
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Any, Callable, Literal, Optional

from hashbackup.archive import RestoreResult
from hashbackup.engine import BackupEngine, CycleReport

LOGGER = logging.getLogger(__name__)


class ServiceStoppedError(RuntimeError):
    """Raised for jobs submitted to a service that is not running, or pending when it stops."""


@dataclass(slots=True)
class _Job:
    """A unit of work drained by the worker thread."""

    kind: Literal["cycle", "restore"]
    future: Future = field(default_factory=Future)
    args: tuple[str, ...] = ()
    scheduled: bool = False


class BackupService:
    """Serialize periodic cycles, on-demand cycles, and restores on one thread.

    The periodic timer and operator requests both feed the same queue, so a
    cycle requested while another is running waits its turn instead of
    overlapping it.
    """

    def __init__(
        self,
        engine: BackupEngine,
        *,
        interval_seconds: float,
        run_immediately: bool = True,
        on_cycle: Optional[Callable[[CycleReport], None]] = None,
    ) -> None:
        """Initialize the service.

        Args:
            engine: Engine executing the jobs.
            interval_seconds: Delay between scheduled cycles.
            run_immediately: Run the first scheduled cycle as soon as the
                service starts rather than after one interval.
            on_cycle: Callable invoked with the report of every completed cycle.
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be greater than zero.")
        self._engine = engine
        self._interval = interval_seconds
        self._run_immediately = run_immediately
        self._on_cycle = on_cycle
        self._queue: queue.Queue[_Job | None] = queue.Queue()
        self._stop_event = threading.Event()
        self._submit_lock = threading.Lock()
        self._thread: threading.Thread | None = None

    # ------------------------------------------------------------------ #
    # Public API                                                         #
    # ------------------------------------------------------------------ #

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the worker thread.

        Raises:
            RuntimeError: If the service was already started.
        """
        if self._thread is not None:
            raise RuntimeError("BackupService is already running.")
        self._thread = threading.Thread(target=self._run_loop, name="hashbackup-worker", daemon=True)
        self._thread.start()
        LOGGER.info("Backup service started; cycles every %.0f second(s).", self._interval)

    def request_cycle(self) -> Future[CycleReport]:
        """Queue an on-demand cycle.

        Returns:
            Future[CycleReport]: Completes with the cycle report or its failure.

        Raises:
            ServiceStoppedError: If the service was never started or has been stopped.
        """
        return self._submit(_Job(kind="cycle"))

    def request_restore(self, world: str, container_name: str) -> Future[RestoreResult]:
        """Queue a restore so it never overlaps a cycle.

        Returns:
            Future[RestoreResult]: Completes with the restore result or its failure.

        Raises:
            ServiceStoppedError: If the service was never started or has been stopped.
        """
        return self._submit(_Job(kind="restore", args=(world, container_name)))

    def stop(self, timeout: float | None = None) -> None:
        """Stop the worker after its current job and fail pending jobs."""
        with self._submit_lock:
            self._stop_event.set()
            self._queue.put(None)
        if self._thread is not None:
            self._thread.join(timeout=timeout)
        LOGGER.info("Backup service stopped.")

    def join(self, timeout: float | None = None) -> None:
        """Block until the worker thread exits or ``timeout`` elapses."""
        if self._thread is not None:
            self._thread.join(timeout=timeout)

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #

    def _submit(self, job: _Job) -> Future[Any]:
        with self._submit_lock:
            if self._thread is None:
                raise ServiceStoppedError("Backup service has not been started.")
            if self._stop_event.is_set():
                raise ServiceStoppedError("Backup service is stopped.")
            self._queue.put(job)
        return job.future

    def _run_loop(self) -> None:
        next_due = time.monotonic() + (0.0 if self._run_immediately else self._interval)
        while not self._stop_event.is_set():
            remaining = next_due - time.monotonic()
            if remaining <= 0:
                self._execute(_Job(kind="cycle", scheduled=True))
                next_due = time.monotonic() + self._interval
                continue

            try:
                job = self._queue.get(timeout=remaining)
            except queue.Empty:
                continue
            if job is None:
                break
            self._execute(job)

        self._drain()

    def _drain(self) -> None:
        while True:
            try:
                job = self._queue.get_nowait()
            except queue.Empty:
                return
            if job is not None and job.future.set_running_or_notify_cancel():
                job.future.set_exception(ServiceStoppedError("Backup service stopped before the job ran."))

    def _execute(self, job: _Job) -> None:
        if not job.future.set_running_or_notify_cancel():
            return
        try:
            if job.kind == "restore":
                result: Any = self._engine.restore(*job.args)
            else:
                result = self._engine.run_cycle()
        except Exception as exc:
            if job.scheduled:
                LOGGER.exception("Scheduled backup cycle failed: %s", exc)
            job.future.set_exception(exc)
            return

        job.future.set_result(result)
        if job.kind == "cycle" and self._on_cycle is not None:
            try:
                self._on_cycle(result)
            except Exception:  # pragma: no cover - reporting must not stop the worker
                LOGGER.exception("Cycle callback failed.")
