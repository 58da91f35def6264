"""Background worker that runs an action at a fixed interval."""

from __future__ import annotations

import logging
import threading
from typing import Callable

logger = logging.getLogger(__name__)


class IntervalWorker:
    """Runs ``action`` every ``interval`` seconds on a daemon thread.

    Runs never overlap: a tick that arrives while the previous one is still in
    flight is skipped. ``start`` and ``stop`` are idempotent, and ``stop``
    waits for an in-flight tick to finish.
    """

    def __init__(self, interval: float, action: Callable[[], object], *, name: str = "dotf-worker") -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = interval
        self.action = action
        self.name = name
        self._lock = threading.Lock()
        self._in_flight = threading.Lock()
        self._stopping: threading.Event | None = None
        self._thread: threading.Thread | None = None

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._thread is not None

    def start(self) -> None:
        with self._lock:
            if self._thread is not None:
                return
            self._stopping = threading.Event()
            self._thread = threading.Thread(
                target=self._run,
                args=(self._stopping,),
                name=self.name,
                daemon=True,
            )
            self._thread.start()
        logger.info("Worker started with an interval of %ss", self.interval)

    def stop(self) -> None:
        with self._lock:
            thread, stopping = self._thread, self._stopping
            if thread is None or stopping is None:
                return
            stopping.set()
            thread.join()
            self._thread = None
            self._stopping = None
        logger.info("Worker stopped")

    def tick(self) -> bool:
        """Run the action once unless a run is already in progress.

        Returns ``True`` if the action ran. Errors raised by the action are
        logged; they never stop the worker.
        """

        if not self._in_flight.acquire(blocking=False):
            logger.info("Previous run still in progress; skipping")
            return False
        try:
            self.action()
        except Exception:  # noqa: BLE001
            logger.exception("Scheduled run failed")
        finally:
            self._in_flight.release()
        return True

    def _run(self, stopping: threading.Event) -> None:
        while not stopping.wait(self.interval):
            self.tick()
