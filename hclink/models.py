"""Immutable data models for link state, peers and log entries.

All value models are frozen dataclasses so they can be handed across the
worker, reader and presentation threads without copying.
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Type


class ConnectionState(Enum):
    """Lifecycle of the single link owned by the ConnectionManager."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTING = "disconnecting"


class ReaderState(Enum):
    """Lifecycle of an InboundReader thread."""
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


class LogCategory(Enum):
    """Category of an event log entry."""
    INFO = "info"
    SENT = "sent"
    RECEIVED = "received"
    ERROR = "error"


_CATEGORY_PREFIX = {
    LogCategory.SENT: "TX: ",
    LogCategory.RECEIVED: "RX: ",
}


@dataclass(frozen=True)
class LogEntry:
    """One timestamped observation of a lifecycle or I/O event.

    Attributes:
        timestamp: Unix timestamp when the entry was appended
        category: INFO, SENT, RECEIVED or ERROR
        message: Human-readable text (the literal command/line for SENT/RECEIVED)
    """
    timestamp: float
    category: LogCategory
    message: str

    def format(self, time_format: str = "%H:%M:%S") -> str:
        """Render as a console line, e.g. ``[12:01:59] TX: Box1_LED_ON``."""
        stamp = time.strftime(time_format, time.localtime(self.timestamp))
        prefix = _CATEGORY_PREFIX.get(self.category, "")
        return f"[{stamp}] {prefix}{self.message}"


@dataclass(frozen=True)
class PeerDescriptor:
    """Identity of the remote module to connect to.

    Attributes:
        name: Advertised device name (e.g. 'HC-05')
        address: Bluetooth MAC address, or None if only a serial port is known
        port: Serial device bound to the peer (e.g. '/dev/rfcomm0', 'COM5'), or None
        channel: RFCOMM channel of the serial port profile, or None to use the
            configured default
    """
    name: str
    address: Optional[str] = None
    port: Optional[str] = None
    channel: Optional[int] = None

    @property
    def target(self) -> str:
        """Best identifier for log messages."""
        return self.address or self.port or self.name


class LinkResult(Enum):
    """Completion status reported by ConnectionManager operations."""
    OK = "ok"
    NOOP = "noop"
    ALREADY_ACTIVE = "already_active"
    PEER_NOT_FOUND = "peer_not_found"
    TRANSPORT_OPEN_FAILED = "transport_open_failed"
    NOT_CONNECTED = "not_connected"
    TRANSPORT_WRITE_FAILED = "transport_write_failed"

    @property
    def ok(self) -> bool:
        """True for results that are not failures."""
        return self in (LinkResult.OK, LinkResult.NOOP)

    @property
    def error_type(self) -> Optional[Type[Exception]]:
        """Exception class matching a failing result, or None."""
        from . import errors

        return {
            LinkResult.ALREADY_ACTIVE: errors.AlreadyActiveError,
            LinkResult.PEER_NOT_FOUND: errors.PeerNotFoundError,
            LinkResult.TRANSPORT_OPEN_FAILED: errors.TransportOpenError,
            LinkResult.NOT_CONNECTED: errors.NotConnectedError,
            LinkResult.TRANSPORT_WRITE_FAILED: errors.TransportWriteError,
        }.get(self)

    def raise_for_result(self) -> None:
        """Raise the matching exception if this result is a failure."""
        error_type = self.error_type
        if error_type is not None:
            raise error_type(self.value)
