"""Single-threaded work queue.

Every operation that mutates the link (connect, disconnect, send, link-lost
teardown) runs here, one at a time, in submission order.
"""
from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import Future
from typing import Callable, Optional, Tuple

logger = logging.getLogger(__name__)

Job = Tuple[Callable[[], object], Future]


class SerialWorker:
    """One daemon thread draining a FIFO of jobs.

    Example:
        >>> worker = SerialWorker(name="LinkWorker")
        >>> future = worker.submit(lambda: 42)
        >>> future.result(timeout=1.0)
        42
        >>> worker.shutdown()
    """

    def __init__(self, name: str = "LinkWorker"):
        self._name = name
        self._queue: queue.Queue[Optional[Job]] = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._closed = False

    def submit(self, fn: Callable[[], object]) -> Future:
        """Queue ``fn`` and return a Future for its result.

        Raises:
            RuntimeError: if the worker has been shut down
        """
        future: Future = Future()
        with self._lock:
            if self._closed:
                raise RuntimeError(f"{self._name} has been shut down")
            self._ensure_thread()
            self._queue.put((fn, future))
        return future

    def shutdown(self, timeout: Optional[float] = 1.0) -> None:
        """Let queued jobs finish, then stop the thread.

        Safe to call multiple times.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            thread = self._thread
            self._queue.put(None)  # Sentinel

        if thread and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning(f"{self._name} did not stop within {timeout}s")

    @property
    def is_worker_thread(self) -> bool:
        """True when called from the worker thread itself."""
        return self._thread is threading.current_thread()

    def _ensure_thread(self) -> None:
        if self._thread is None or not self._thread.is_alive():
            self._thread = threading.Thread(
                target=self._run,
                daemon=True,
                name=self._name,
            )
            self._thread.start()

    def _run(self) -> None:
        logger.debug(f"{self._name} started")
        while True:
            job = self._queue.get()
            if job is None:
                break

            fn, future = job
            if not future.set_running_or_notify_cancel():
                continue
            try:
                result = fn()
            except Exception as e:
                logger.error(f"Unhandled error in {self._name} job: {e}", exc_info=True)
                future.set_exception(e)
            else:
                future.set_result(result)
        logger.debug(f"{self._name} exiting")
