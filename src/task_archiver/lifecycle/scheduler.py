"""Fixed-delay scheduler for the background loops."""

from __future__ import annotations

import logging
import signal
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PeriodicJob:
    """Action repeated forever, `interval_seconds` after each run completes."""

    name: str
    interval_seconds: float
    action: Callable[[], object]
    runs: int = 0


class PeriodicScheduler:
    """Runs each job on its own daemon thread with fixed-delay semantics.

    The first run is immediate. A job never overlaps with itself because the
    next run is only scheduled once the previous one returned; different jobs
    run concurrently. Exceptions from a run are logged and the job goes on.
    """

    def __init__(self) -> None:
        self._jobs: list[PeriodicJob] = []
        self._threads: list[threading.Thread] = []
        self._stop = threading.Event()

    @property
    def jobs(self) -> tuple[PeriodicJob, ...]:
        return tuple(self._jobs)

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def schedule(self, job: PeriodicJob) -> None:
        if job.interval_seconds <= 0:
            raise ValueError(
                f"Job {job.name} needs a positive interval, got {job.interval_seconds}",
            )
        if self._threads:
            raise RuntimeError("Cannot schedule jobs after the scheduler has started.")
        self._jobs.append(job)

    def start(self) -> None:
        if self._threads:
            return
        self._stop.clear()
        for job in self._jobs:
            thread = threading.Thread(
                target=self._job_loop,
                args=(job,),
                daemon=True,
                name=f"archiver-{job.name}",
            )
            self._threads.append(thread)
            thread.start()
            logger.info("Scheduled job %s every %ss", job.name, job.interval_seconds)

    def stop(self, timeout: float = 15.0) -> None:
        self._stop.set()
        for thread in self._threads:
            thread.join(timeout=timeout)
        self._threads = []
        logger.info("Scheduler stopped")

    def run_forever(self, poll_seconds: float = 0.5) -> None:
        """Block until stop() is called or SIGINT/SIGTERM arrives."""

        with self._signal_handlers():
            while not self._stop.wait(timeout=poll_seconds):
                pass
        self.stop()

    def _job_loop(self, job: PeriodicJob) -> None:
        while not self._stop.is_set():
            try:
                job.action()
            except Exception:  # noqa: BLE001
                logger.exception("Periodic job %s failed", job.name)
            job.runs += 1
            if self._stop.wait(timeout=job.interval_seconds):
                return

    @contextmanager
    def _signal_handlers(self) -> Iterator[None]:
        if not hasattr(signal, "SIGINT"):
            yield
            return

        original_sigint = signal.getsignal(signal.SIGINT)
        original_sigterm = signal.getsignal(signal.SIGTERM)

        def _handler(signum: int, _: object | None) -> None:
            try:
                name = signal.Signals(signum).name
            except ValueError:
                name = str(signum)
            logger.info("Received %s, stopping scheduler", name)
            self._stop.set()

        installed = False
        try:
            signal.signal(signal.SIGINT, _handler)
            signal.signal(signal.SIGTERM, _handler)
            installed = True
        except ValueError:
            # Signal handlers can only be installed in main thread.
            pass
        try:
            yield
        finally:
            if installed:
                signal.signal(signal.SIGINT, original_sigint)
                signal.signal(signal.SIGTERM, original_sigterm)
