"""Connection manager for the single serial link.

Owns the ConnectionState and the ActiveLink. Connect, disconnect, send and
the teardown that follows a dropped link all run on one SerialWorker, so
their mutations never interleave no matter how many threads call in. The
InboundReader runs on its own thread and only ever enqueues work here.
"""
from __future__ import annotations

import concurrent.futures
import logging
import threading
from concurrent.futures import Future
from dataclasses import dataclass, replace
from typing import Callable, List, Optional

from ..commands import validate_command
from ..config import LinkConfig
from ..errors import LinkError
from ..eventlog import EventLog
from ..models import ConnectionState, LinkResult, PeerDescriptor
from ..peers.base import PeerRegistry
from ..transport.base import InputStream, OutputStream, Transport
from .dispatcher import CommandDispatcher
from .reader import InboundReader
from .worker import SerialWorker

logger = logging.getLogger(__name__)

TransportFactory = Callable[[], Transport]


@dataclass
class ActiveLink:
    """Resources of one open link. Exists iff connected or leaving CONNECTED."""
    peer: PeerDescriptor
    transport: Transport
    reader_stream: InputStream
    writer: OutputStream
    reader: InboundReader


def _completed(result: LinkResult) -> Future:
    future: Future = Future()
    future.set_result(result)
    return future


class ConnectionManager:
    """Connects to the configured peer and keeps exactly one link.

    Every public operation returns immediately with a Future resolving to a
    LinkResult; the same outcome is recorded in the EventLog. Failures never
    raise out of connect(), disconnect() or send().

    Example:
        >>> manager = ConnectionManager(
        ...     registry=BluezPeerRegistry(),
        ...     transport_factory=RfcommTransport,
        ... )
        >>> manager.event_log.subscribe(lambda entry: print(entry.format()))
        >>> manager.connect().result()
        <LinkResult.OK: 'ok'>
        >>> manager.send("Box1_LED_ON")
        >>> manager.close()

    Peers without an RFCOMM channel are connected on
    ``config.rfcomm_channel``.

    Note: do not wait on a returned Future from inside a state callback;
    state callbacks run on the worker thread. Log subscribers run on the
    event log's dispatcher thread.
    """

    def __init__(self,
                 registry: PeerRegistry,
                 transport_factory: TransportFactory,
                 event_log: Optional[EventLog] = None,
                 config: Optional[LinkConfig] = None):
        """Initialize manager.

        Args:
            registry: Source of trusted peers
            transport_factory: Returns a fresh, unopened Transport per attempt
            event_log: Shared log, or None to create one
            config: Link settings (default: LinkConfig())
        """
        self._registry = registry
        self._transport_factory = transport_factory
        self._config = config or LinkConfig()
        self._owns_event_log = event_log is None
        self._event_log = event_log if event_log is not None else EventLog()
        self._dispatcher = CommandDispatcher(self._event_log, encoding=self._config.encoding)

        self._state = ConnectionState.DISCONNECTED
        self._state_lock = threading.Lock()
        self._state_callbacks: List[Callable[[ConnectionState], None]] = []

        self._link: Optional[ActiveLink] = None
        self._connect_pending = False
        self._closed = False
        self._worker = SerialWorker(name="LinkWorker")

    # --- Public API ---

    @property
    def event_log(self) -> EventLog:
        return self._event_log

    @property
    def config(self) -> LinkConfig:
        return self._config

    def current_state(self) -> ConnectionState:
        """Snapshot of the connection state; safe to poll from any thread."""
        return self._state

    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    @property
    def peer(self) -> Optional[PeerDescriptor]:
        """Peer of the active link, or None."""
        link = self._link
        return link.peer if link else None

    def subscribe_state(self, callback: Callable[[ConnectionState], None]) -> Callable[[], None]:
        """Subscribe to state transitions.

        Args:
            callback: Function invoked with each new ConnectionState, in order

        Returns:
            Unsubscribe function
        """
        with self._state_lock:
            self._state_callbacks.append(callback)

        def unsubscribe():
            with self._state_lock:
                if callback in self._state_callbacks:
                    self._state_callbacks.remove(callback)

        return unsubscribe

    def connect(self) -> Future:
        """Open a link to the configured peer.

        Returns:
            Future resolving to OK, ALREADY_ACTIVE, PEER_NOT_FOUND or
            TRANSPORT_OPEN_FAILED
        """
        with self._state_lock:
            rejected = (self._state in (ConnectionState.CONNECTING, ConnectionState.CONNECTED)
                        or self._connect_pending)
            if not rejected:
                self._connect_pending = True

        if rejected:
            logger.warning("Already connected or connecting")
            self._event_log.info("Already connected or connecting")
            return _completed(LinkResult.ALREADY_ACTIVE)

        try:
            return self._submit(self._do_connect)
        except LinkError:
            with self._state_lock:
                self._connect_pending = False
            raise

    def disconnect(self) -> Future:
        """Close the active link, if any.

        Returns:
            Future resolving to OK, or NOOP when there was no link
        """
        if self._closed:
            return _completed(LinkResult.NOOP)
        return self._submit(self._do_disconnect)

    def send(self, command: str) -> Future:
        """Queue one command for the active link.

        Raises:
            InvalidCommandError: if the command is empty or contains a line break

        Returns:
            Future resolving to OK, NOT_CONNECTED or TRANSPORT_WRITE_FAILED
        """
        validate_command(command)
        return self._submit(lambda: self._do_send(command))

    def close(self) -> None:
        """Disconnect and stop the worker thread. Safe to call multiple times."""
        if self._closed:
            return
        timeout = self._config.stop_timeout * 2
        try:
            self._submit(self._do_disconnect).result(timeout=timeout)
        except concurrent.futures.TimeoutError:
            logger.warning(f"Disconnect did not finish within {timeout}s")
        self._closed = True
        self._worker.shutdown(timeout=timeout)
        if self._owns_event_log:
            self._event_log.close()

    def __enter__(self) -> ConnectionManager:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager support - close on exit."""
        self.close()

    # --- Worker jobs ---

    def _do_connect(self) -> LinkResult:
        try:
            if self._link is not None:
                logger.warning("Already connected")
                self._event_log.info("Already connected or connecting")
                return LinkResult.ALREADY_ACTIVE

            name = self._config.device_name
            peer = self._resolve_peer(name)
            if peer is None:
                self._event_log.info(f"{name} not paired. Pair it in the system settings first.")
                return LinkResult.PEER_NOT_FOUND
            if peer.channel is None:
                peer = replace(peer, channel=self._config.rfcomm_channel)

            self._set_state(ConnectionState.CONNECTING)
            self._event_log.info(f"Connecting to {peer.name} ...")

            transport: Optional[Transport] = None
            try:
                transport = self._transport_factory()
                streams = transport.open(peer)
            except Exception as e:
                logger.error(f"Failed to connect to {peer.target}: {e}")
                if transport is not None:
                    self._close_transport(transport)
                self._set_state(ConnectionState.DISCONNECTED)
                self._event_log.error(f"Connection failed: {e}")
                return LinkResult.TRANSPORT_OPEN_FAILED

            reader = InboundReader(
                stream=streams.reader,
                transport=transport,
                event_log=self._event_log,
                on_exit=self._on_reader_exit,
                chunk_size=self._config.read_chunk_size,
                encoding=self._config.encoding,
                max_line_length=self._config.max_line_length,
                name=f"InboundReader-{peer.name}",
            )
            self._link = ActiveLink(
                peer=peer,
                transport=transport,
                reader_stream=streams.reader,
                writer=streams.writer,
                reader=reader,
            )
            self._set_state(ConnectionState.CONNECTED)
            self._event_log.info(f"Connected to {peer.name}")
            try:
                reader.start()
            except RuntimeError as e:
                logger.error(f"Failed to start reader for {peer.target}: {e}")
                self._link = None
                self._close_transport(transport)
                self._set_state(ConnectionState.DISCONNECTED)
                self._event_log.error(f"Connection failed: {e}")
                return LinkResult.TRANSPORT_OPEN_FAILED
            return LinkResult.OK
        finally:
            with self._state_lock:
                self._connect_pending = False

    def _do_disconnect(self) -> LinkResult:
        link = self._link
        if link is None:
            return LinkResult.NOOP

        self._set_state(ConnectionState.DISCONNECTING)
        self._teardown(link)
        self._set_state(ConnectionState.DISCONNECTED)
        self._event_log.info(f"Disconnected from {link.peer.name}")
        return LinkResult.OK

    def _do_send(self, command: str) -> LinkResult:
        link = self._link
        if link is None or self._state is not ConnectionState.CONNECTED:
            logger.warning(f"Cannot send '{command}', not connected")
            self._event_log.info(f"Connect to {self._config.device_name} first")
            return LinkResult.NOT_CONNECTED
        return self._dispatcher.dispatch(link, command)

    def _handle_link_lost(self, reader: InboundReader) -> LinkResult:
        link = self._link
        if link is None or link.reader is not reader:
            # Already torn down by disconnect() or superseded by a newer link
            return LinkResult.NOOP

        logger.info(f"Link to {link.peer.name} lost")
        self._teardown(link)
        self._set_state(ConnectionState.DISCONNECTED)
        return LinkResult.OK

    # --- Internal helpers ---

    def _submit(self, job: Callable[[], LinkResult]) -> Future:
        try:
            return self._worker.submit(job)
        except RuntimeError as e:
            raise LinkError("ConnectionManager is closed") from e

    def _resolve_peer(self, name: str) -> Optional[PeerDescriptor]:
        try:
            return self._registry.lookup(name)
        except Exception as e:
            logger.error(f"Peer lookup for {name} failed: {e}")
            return None

    def _teardown(self, link: ActiveLink) -> None:
        link.reader.request_stop()
        self._close_transport(link.transport)
        if not link.reader.join(timeout=self._config.stop_timeout):
            logger.warning(f"Reader did not stop within {self._config.stop_timeout}s")
        self._link = None

    def _close_transport(self, transport: Transport) -> None:
        try:
            transport.close()
        except Exception as e:
            logger.error(f"Error closing transport: {e}")

    def _on_reader_exit(self, reader: InboundReader) -> None:
        # Runs on the reader thread: enqueue only, never wait on the worker
        if reader.stop_requested:
            return
        try:
            self._worker.submit(lambda: self._handle_link_lost(reader))
        except RuntimeError:
            logger.debug("Worker closed; skipping link-lost teardown")

    def _set_state(self, state: ConnectionState) -> None:
        # Only the worker thread transitions, so notifications stay in order
        with self._state_lock:
            if self._state is state:
                return
            previous, self._state = self._state, state
            callbacks = list(self._state_callbacks)
        logger.info(f"Link state {previous.value} -> {state.value}")

        for callback in callbacks:
            try:
                callback(state)
            except Exception as e:
                logger.error(f"Error in state callback: {e}")
