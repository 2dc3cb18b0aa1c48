"""Inbound reader thread.

Continuously pulls bytes from the transport, reassembles newline-delimited
lines and records each one in the event log until the stream closes, a
read fails, or a stop is requested.
"""
from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from ..config import DEFAULT_ENCODING, MAX_LINE_LENGTH, READ_CHUNK_SIZE
from ..eventlog import EventLog
from ..models import LogCategory, ReaderState
from ..transport.base import InputStream, Transport
from .buffer import LineBuffer

logger = logging.getLogger(__name__)

LINK_CLOSED_MESSAGE = "Bluetooth link closed"


class InboundReader:
    """One long-running read loop bound to one open transport.

    The reader borrows the transport: it closes it only when a read fails
    while no stop was requested. Stopping is cooperative: request_stop()
    marks the reader, the owner closes the transport so a blocked read
    returns, and join() waits a bounded time.

    The exit hook runs on the reader thread after the "link closed" entry
    has been recorded. It must not block on the owner's work queue.
    """

    def __init__(self,
                 stream: InputStream,
                 transport: Transport,
                 event_log: EventLog,
                 on_exit: Optional[Callable[[InboundReader], None]] = None,
                 chunk_size: int = READ_CHUNK_SIZE,
                 encoding: str = DEFAULT_ENCODING,
                 max_line_length: int = MAX_LINE_LENGTH,
                 name: str = "InboundReader"):
        """Initialize reader.

        Args:
            stream: Readable stream returned by transport.open()
            transport: Transport the stream belongs to
            event_log: Log receiving RECEIVED and "link closed" entries
            on_exit: Called with this reader once the loop has ended
            chunk_size: Maximum bytes requested per read
            encoding: Text encoding of inbound lines
            max_line_length: Cap on unterminated bytes kept between reads
            name: Thread name
        """
        self._stream = stream
        self._transport = transport
        self._event_log = event_log
        self._on_exit = on_exit
        self._chunk_size = chunk_size
        self._lines = LineBuffer(max_size=max_line_length, encoding=encoding)
        self._name = name

        self._state = ReaderState.STOPPED
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        # Held while leaving RUNNING; senders hold it to keep TX entries ahead of "link closed"
        self.exit_lock = threading.Lock()

    def start(self) -> None:
        """Start the background read loop."""
        if self._thread is not None:
            raise RuntimeError(f"{self._name} already started")
        self._state = ReaderState.RUNNING
        self._thread = threading.Thread(
            target=self._reader_loop,
            daemon=True,
            name=self._name,
        )
        self._thread.start()

    def request_stop(self) -> None:
        """Ask the loop to end. Does not wait and does not close the transport."""
        self._stop_event.set()
        with self.exit_lock:
            if self._state is ReaderState.RUNNING:
                self._state = ReaderState.STOPPING

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the loop to end.

        Returns:
            True if the thread has finished (or never started)
        """
        thread = self._thread
        if thread is None or thread is threading.current_thread():
            return True
        thread.join(timeout=timeout)
        return not thread.is_alive()

    def stop(self, timeout: Optional[float] = None) -> bool:
        """Request a stop, close the transport to unblock the read, and join."""
        self.request_stop()
        self._transport.close()
        return self.join(timeout=timeout)

    @property
    def state(self) -> ReaderState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is ReaderState.RUNNING

    @property
    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    def _reader_loop(self) -> None:
        logger.debug(f"{self._name} started")
        try:
            while not self._stop_event.is_set():
                try:
                    chunk = self._stream.read(self._chunk_size)
                except (OSError, ValueError) as e:
                    if not self._stop_event.is_set():
                        logger.error(f"Read error: {e}")
                        self._close_transport()
                    break

                if not chunk:
                    if not self._stop_event.is_set():
                        logger.info("Stream closed by peer")
                    break

                for line in self._lines.feed(chunk):
                    self._event_log.append(LogCategory.RECEIVED, line)
        finally:
            if self._lines.size:
                logger.debug(f"Discarding {self._lines.size} unterminated bytes")
                self._lines.clear()

            with self.exit_lock:
                self._state = ReaderState.STOPPED
                self._event_log.info(LINK_CLOSED_MESSAGE)

            logger.debug(f"{self._name} exiting")
            if self._on_exit is not None:
                try:
                    self._on_exit(self)
                except Exception as e:
                    logger.error(f"Error in reader exit hook: {e}")

    def _close_transport(self) -> None:
        try:
            self._transport.close()
        except OSError as e:
            logger.error(f"Error closing transport after read failure: {e}")
