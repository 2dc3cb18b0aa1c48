"""Serial port transport for Bluetooth modules exposed as SPP ports.

When the operating system binds a paired serial-port-profile device to a
port (``rfcomm bind`` on Linux gives ``/dev/rfcomm0``, Windows creates a
``COMx`` "Standard Serial over Bluetooth link"), the module is just another
serial port to pyserial.

Note: pyserial reads return b'' on timeout. The reader wrapper polls until
data arrives or the port is closed, so an empty read keeps its
"stream closed" meaning for the controller.
"""
from __future__ import annotations

import logging
import threading
from typing import Optional

import serial

from ..config import DEFAULT_BAUDRATE, SERIAL_READ_TIMEOUT
from ..errors import TransportOpenError, TransportReadError, TransportWriteError
from ..models import PeerDescriptor
from .base import Streams, Transport

logger = logging.getLogger(__name__)


class _SerialReader:
    def __init__(self, port: serial.Serial):
        self._port = port

    def read(self, size: int) -> bytes:
        while self._port.is_open:
            try:
                chunk = self._port.read(size)
            except serial.SerialException as e:
                if not self._port.is_open:
                    break
                raise TransportReadError(f"Serial read error: {e}") from e
            except (TypeError, AttributeError):
                # pyserial drops its file descriptor when closed mid-read
                break
            if chunk:
                return chunk
        return b""


class _SerialWriter:
    def __init__(self, port: serial.Serial):
        self._port = port

    def write(self, data: bytes) -> int:
        try:
            return self._port.write(data)
        except serial.SerialException as e:
            raise TransportWriteError(f"Serial write error: {e}") from e

    def flush(self) -> None:
        try:
            self._port.flush()
        except serial.SerialException as e:
            raise TransportWriteError(f"Serial flush error: {e}") from e


class SerialTransport(Transport):
    """Transport over a pyserial port bound to the peer.

    Example:
        >>> peer = PeerDescriptor(name="HC-05", port="/dev/rfcomm0")
        >>> transport = SerialTransport(baudrate=9600)
        >>> reader, writer = transport.open(peer)
        >>> writer.write(b"Box2_OPEN\\n")
        >>> transport.close()
    """

    def __init__(self,
                 baudrate: int = DEFAULT_BAUDRATE,
                 timeout: float = SERIAL_READ_TIMEOUT,
                 port: Optional[str] = None):
        """Initialize serial transport.

        Args:
            baudrate: Serial baud rate
            timeout: Read poll interval in seconds; bounds how long close() takes
                to unblock a pending read
            port: Port override; defaults to the peer's port
        """
        self._baudrate = baudrate
        self._timeout = timeout
        self._port_override = port
        self._serial: Optional[serial.Serial] = None
        self._lock = threading.Lock()

    def open(self, peer: PeerDescriptor) -> Streams:
        port = self._port_override or peer.port
        if not port:
            raise TransportOpenError(f"Peer {peer.name} has no serial port")

        try:
            ser = serial.Serial(
                port=port,
                baudrate=self._baudrate,
                timeout=self._timeout,
            )
        except serial.SerialException as e:
            raise TransportOpenError(f"Failed to open {port}: {e}") from e
        except (OSError, ValueError) as e:
            raise TransportOpenError(f"Unexpected error opening {port}: {e}") from e

        try:
            ser.reset_input_buffer()
            ser.reset_output_buffer()
        except serial.SerialException as e:
            ser.close()
            raise TransportOpenError(f"Failed to reset {port}: {e}") from e

        with self._lock:
            self._serial = ser
        logger.info(f"Opened {port} @ {self._baudrate} baud")
        return Streams(reader=_SerialReader(ser), writer=_SerialWriter(ser))

    def close(self) -> None:
        with self._lock:
            ser, self._serial = self._serial, None
        if ser is None:
            return

        try:
            ser.close()
        except serial.SerialException as e:
            logger.error(f"Error closing serial port: {e}")
        logger.info("Serial port closed")

    @property
    def is_open(self) -> bool:
        return self._serial is not None
