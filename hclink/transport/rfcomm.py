"""RFCOMM socket transport for classic Bluetooth serial modules.

Uses the interpreter's native Bluetooth sockets (BlueZ on Linux, also
available on Windows builds). The peer must carry a MAC address.
"""
from __future__ import annotations

import logging
import socket
import threading
from typing import Optional

from ..config import CONNECT_TIMEOUT, DEFAULT_RFCOMM_CHANNEL
from ..errors import (
    AdapterUnavailableError,
    TransportOpenError,
    TransportReadError,
    TransportWriteError,
)
from ..models import PeerDescriptor
from .base import Streams, Transport

logger = logging.getLogger(__name__)


def bluetooth_sockets_supported() -> bool:
    """True if this interpreter was built with RFCOMM socket support."""
    return hasattr(socket, "AF_BLUETOOTH") and hasattr(socket, "BTPROTO_RFCOMM")


def create_rfcomm_socket() -> socket.socket:
    """Allocate an unconnected RFCOMM stream socket.

    Raises:
        AdapterUnavailableError: if the interpreter lacks Bluetooth socket support
        OSError: if the kernel refuses the socket (no adapter, no permission)
    """
    if not bluetooth_sockets_supported():
        raise AdapterUnavailableError(
            "Python bluetooth socket support is unavailable; ensure BlueZ headers are present"
        )
    return socket.socket(socket.AF_BLUETOOTH, socket.SOCK_STREAM, socket.BTPROTO_RFCOMM)


class _SocketReader:
    def __init__(self, sock: socket.socket):
        self._sock = sock

    def read(self, size: int) -> bytes:
        try:
            return self._sock.recv(size)
        except OSError as e:
            raise TransportReadError(f"RFCOMM read failed: {e}") from e


class _SocketWriter:
    def __init__(self, sock: socket.socket):
        self._sock = sock

    def write(self, data: bytes) -> int:
        try:
            self._sock.sendall(data)
        except OSError as e:
            raise TransportWriteError(f"RFCOMM write failed: {e}") from e
        return len(data)

    def flush(self) -> None:
        # sendall() has already handed everything to the kernel
        pass


class RfcommTransport(Transport):
    """Transport over a native RFCOMM socket.

    Example:
        >>> peer = PeerDescriptor(name="HC-05", address="98:D3:31:F5:2A:10")
        >>> transport = RfcommTransport()
        >>> reader, writer = transport.open(peer)
        >>> writer.write(b"Box1_LED_ON\\n")
        >>> transport.close()
    """

    def __init__(self,
                 connect_timeout: float = CONNECT_TIMEOUT,
                 channel: Optional[int] = None):
        """Initialize RFCOMM transport.

        Args:
            connect_timeout: Seconds to wait for the socket connect
            channel: RFCOMM channel override; defaults to the peer's channel
        """
        self._connect_timeout = connect_timeout
        self._channel = channel
        self._sock: Optional[socket.socket] = None
        self._lock = threading.Lock()

    def open(self, peer: PeerDescriptor) -> Streams:
        if not peer.address:
            raise TransportOpenError(f"Peer {peer.name} has no Bluetooth address")
        channel = self._channel or peer.channel or DEFAULT_RFCOMM_CHANNEL

        try:
            sock = create_rfcomm_socket()
        except (AdapterUnavailableError, OSError) as e:
            raise TransportOpenError(f"Failed to allocate RFCOMM socket: {e}") from e

        try:
            sock.settimeout(self._connect_timeout)
            sock.connect((peer.address, channel))
            # Reads block until data arrives or close() shuts the socket down
            sock.settimeout(None)
        except OSError as e:
            sock.close()
            raise TransportOpenError(f"RFCOMM connect to {peer.address} failed: {e}") from e

        with self._lock:
            self._sock = sock
        logger.info(f"RFCOMM connected to {peer.address} channel {channel}")
        return Streams(reader=_SocketReader(sock), writer=_SocketWriter(sock))

    def close(self) -> None:
        with self._lock:
            sock, self._sock = self._sock, None
        if sock is None:
            return

        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError as e:
            logger.debug(f"RFCOMM shutdown: {e}")
        try:
            sock.close()
        except OSError as e:
            logger.error(f"Error closing RFCOMM socket: {e}")
        logger.info("RFCOMM socket closed")

    @property
    def is_open(self) -> bool:
        return self._sock is not None
