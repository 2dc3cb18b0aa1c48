"""Append-only, timestamped event log shared by the controller threads.

The worker thread and the reader thread both append here; the presentation
layer either polls (snapshot/entries_since), registers a push callback
(subscribe), or takes a queue (listen) that it drains on its own thread.

Appending never runs subscriber code. Each entry is queued for a single
dispatcher thread that calls the subscribers, so a slow callback delays
only later callbacks, never the reader or the worker.
"""
from __future__ import annotations

import logging
import queue
import threading
import time
from typing import Callable, List, Optional, Tuple

from .models import LogCategory, LogEntry

logger = logging.getLogger(__name__)


class EventLog:
    """Thread-safe ordered record of lifecycle and I/O events.

    Entries are never mutated, dropped or reordered. Subscribers are called
    on the log's dispatcher thread, one entry at a time in append order.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        """Initialize an empty log.

        Args:
            clock: Source of entry timestamps (epoch seconds)
        """
        self._clock = clock
        self._entries: List[LogEntry] = []
        self._callbacks: List[Callable[[LogEntry], None]] = []
        self._channels: List[queue.Queue] = []
        self._lock = threading.Lock()

        self._notify_queue: Optional[queue.Queue] = None
        self._dispatcher: Optional[threading.Thread] = None

    def append(self, category: LogCategory, message: str) -> LogEntry:
        """Record a new entry and queue it for subscribers.

        Args:
            category: Entry category
            message: Human-readable message

        Returns:
            The stored LogEntry
        """
        with self._lock:
            entry = LogEntry(timestamp=self._clock(), category=category, message=message)
            self._entries.append(entry)
            for channel in self._channels:
                channel.put_nowait(entry)
            if self._callbacks and self._notify_queue is not None:
                self._notify_queue.put_nowait((entry, tuple(self._callbacks)))
        return entry

    def info(self, message: str) -> LogEntry:
        return self.append(LogCategory.INFO, message)

    def error(self, message: str) -> LogEntry:
        return self.append(LogCategory.ERROR, message)

    def snapshot(self) -> Tuple[LogEntry, ...]:
        """Return all entries in append order."""
        with self._lock:
            return tuple(self._entries)

    def entries_since(self, index: int) -> Tuple[LogEntry, ...]:
        """Return entries appended after the first ``index`` entries.

        Pollers keep ``len()`` of what they have already rendered and pass it
        back here to get only the new entries.
        """
        with self._lock:
            return tuple(self._entries[index:])

    def subscribe(self, callback: Callable[[LogEntry], None]) -> Callable[[], None]:
        """Subscribe to new entries.

        The callback runs on the dispatcher thread. It may append to this log
        but must not wait on work that needs the log's other subscribers.

        Args:
            callback: Function invoked with each new LogEntry

        Returns:
            Unsubscribe function
        """
        with self._lock:
            self._callbacks.append(callback)
            self._start_dispatcher()

        def unsubscribe():
            with self._lock:
                if callback in self._callbacks:
                    self._callbacks.remove(callback)

        return unsubscribe

    def listen(self, replay: bool = False) -> "queue.Queue[LogEntry]":
        """Return an unbounded queue that receives every new entry.

        Args:
            replay: If True, the queue is pre-filled with the existing entries

        Returns:
            Queue to be drained by the consumer's own thread
        """
        channel: queue.Queue[LogEntry] = queue.Queue()
        with self._lock:
            if replay:
                for entry in self._entries:
                    channel.put_nowait(entry)
            self._channels.append(channel)
        return channel

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait until every entry appended so far has reached the subscribers.

        Returns:
            True if delivery caught up, False on timeout
        """
        with self._lock:
            notify_queue = self._notify_queue
            dispatcher = self._dispatcher
        if notify_queue is None or threading.current_thread() is dispatcher:
            return True

        delivered = threading.Event()
        notify_queue.put_nowait(delivered)
        return delivered.wait(timeout)

    def close(self, timeout: float = 1.0) -> None:
        """Deliver pending entries and stop the dispatcher thread.

        Subscribing again restarts it.
        """
        with self._lock:
            notify_queue, self._notify_queue = self._notify_queue, None
            dispatcher, self._dispatcher = self._dispatcher, None
        if notify_queue is None:
            return

        notify_queue.put_nowait(None)
        if dispatcher is not threading.current_thread():
            dispatcher.join(timeout=timeout)
            if dispatcher.is_alive():
                logger.warning("Event log dispatcher did not stop in time")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _start_dispatcher(self) -> None:
        # Caller holds self._lock
        if self._notify_queue is not None:
            return
        self._notify_queue = queue.Queue()
        self._dispatcher = threading.Thread(
            target=self._dispatch_loop,
            args=(self._notify_queue,),
            daemon=True,
            name="EventLogDispatcher",
        )
        self._dispatcher.start()
        logger.debug("Event log dispatcher started")

    def _dispatch_loop(self, notify_queue: queue.Queue) -> None:
        while True:
            item = notify_queue.get()
            if item is None:
                break
            if isinstance(item, threading.Event):
                item.set()
                continue

            entry, callbacks = item
            for callback in callbacks:
                try:
                    callback(entry)
                except Exception as e:
                    logger.error(f"Error in log subscriber: {e}")
        logger.debug("Event log dispatcher stopped")
