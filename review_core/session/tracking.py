"""
Background tracking writer.

Grading never waits for persistence. Writes are put on a FIFO and drained by
one worker thread, so they reach the backend in the order the grades were
given. Each write is retried with exponential backoff; a write that still
fails is logged and recorded, never raised to the caller.
"""

from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple

from tenacity import Retrying, stop_after_attempt, wait_exponential

from review_core import config

logger = logging.getLogger(__name__)

MAX_BACKOFF_SECONDS = 30.0

WriteTask = Tuple[str, Callable[[], object]]

_STOP = object()


@dataclass(frozen=True)
class FailedWrite:
    label: str
    error: str


class TrackingWriter:
    """
    Ordered, retrying, fire-and-forget writer.

    Usage:
        writer = TrackingWriter()
        writer.enqueue("scheduling-state card-1", lambda: service.upsert_scheduling_state(s))
        writer.flush(timeout=5)
        writer.shutdown()
    """

    def __init__(
        self,
        max_attempts: Optional[int] = None,
        backoff_seconds: Optional[float] = None,
        name: str = "tracking-writer"
    ):
        self.max_attempts = max(1, max_attempts if max_attempts is not None
                                else config.get_tracking_max_attempts())
        self.backoff_seconds = max(0.0, backoff_seconds if backoff_seconds is not None
                                   else config.get_tracking_backoff_seconds())

        self._tasks: queue.Queue = queue.Queue()
        self._pending = 0
        self._idle = threading.Condition()
        self._failed: list[FailedWrite] = []
        self._failed_lock = threading.Lock()
        self._stopped = False

        self._worker = threading.Thread(target=self._run, name=name, daemon=True)
        self._worker.start()

    # ---- Public API ----

    def enqueue(self, label: str, write: Callable[[], object]) -> None:
        """Queue one write behind everything queued before it."""
        self._put([(label, write)])

    def enqueue_concurrent(self, writes: Sequence[WriteTask]) -> None:
        """
        Queue a batch whose writes run concurrently with each other.

        The batch as a whole keeps its FIFO position; every write in it is
        attempted even if another one fails.
        """
        if writes:
            self._put(list(writes))

    def flush(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until every queued write has finished (or failed).

        Returns False if the timeout expired first.
        """
        with self._idle:
            return self._idle.wait_for(lambda: self._pending == 0, timeout=timeout)

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None) -> None:
        """Stop accepting writes; by default drain the queue first."""
        with self._idle:
            if self._stopped:
                return
            self._stopped = True
            self._tasks.put(_STOP)
        if wait:
            self._worker.join(timeout)

    @property
    def failed_writes(self) -> list[FailedWrite]:
        with self._failed_lock:
            return list(self._failed)

    @property
    def pending(self) -> int:
        with self._idle:
            return self._pending

    # ---- Worker ----

    def _put(self, batch: list[WriteTask]) -> None:
        with self._idle:
            if self._stopped:
                raise RuntimeError("TrackingWriter has been shut down")
            self._pending += 1
            self._tasks.put(batch)

    def _run(self) -> None:
        while True:
            batch = self._tasks.get()
            if batch is _STOP:
                break
            try:
                if len(batch) == 1:
                    self._attempt(*batch[0])
                else:
                    with ThreadPoolExecutor(max_workers=len(batch)) as executor:
                        for future in [executor.submit(self._attempt, *task) for task in batch]:
                            future.result()
            finally:
                with self._idle:
                    self._pending -= 1
                    self._idle.notify_all()

    def _attempt(self, label: str, write: Callable[[], object]) -> None:
        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff_seconds, max=MAX_BACKOFF_SECONDS),
            before_sleep=lambda rs: logger.info(
                "Retrying %s (attempt %d failed: %s)",
                label, rs.attempt_number, rs.outcome.exception()
            ),
            reraise=True,
        )
        try:
            retrying(write)
        except Exception as exc:
            logger.error("Tracking write %s failed after %d attempts: %s",
                         label, self.max_attempts, exc)
            with self._failed_lock:
                self._failed.append(FailedWrite(label=label, error=str(exc)))
