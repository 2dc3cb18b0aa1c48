"""HC link controller - connection lifecycle, commands and inbound lines for a Bluetooth serial module."""

from .config import LinkConfig
from .errors import (
    AdapterUnavailableError,
    AlreadyActiveError,
    InvalidCommandError,
    LinkError,
    NotConnectedError,
    PeerNotFoundError,
    PermissionDeniedError,
    TransportOpenError,
    TransportReadError,
    TransportWriteError,
)
from .eventlog import EventLog
from .link import ConnectionManager
from .models import (
    ConnectionState,
    LinkResult,
    LogCategory,
    LogEntry,
    PeerDescriptor,
    ReaderState,
)
from .peers import BluezPeerRegistry, PeerRegistry, SerialPortPeerRegistry, StaticPeerRegistry
from .transport import RfcommTransport, SerialTransport, Transport

__all__ = [
    "LinkConfig",
    "AdapterUnavailableError",
    "AlreadyActiveError",
    "InvalidCommandError",
    "LinkError",
    "NotConnectedError",
    "PeerNotFoundError",
    "PermissionDeniedError",
    "TransportOpenError",
    "TransportReadError",
    "TransportWriteError",
    "EventLog",
    "ConnectionManager",
    "ConnectionState",
    "LinkResult",
    "LogCategory",
    "LogEntry",
    "PeerDescriptor",
    "ReaderState",
    "PeerRegistry",
    "StaticPeerRegistry",
    "BluezPeerRegistry",
    "SerialPortPeerRegistry",
    "Transport",
    "RfcommTransport",
    "SerialTransport",
]
