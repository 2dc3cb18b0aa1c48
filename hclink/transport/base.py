"""Abstract base class for the transport layer.

A Transport wraps one opaque byte-stream connection to a remote peer. The
controller only depends on this contract; the operating system's Bluetooth
stack sits behind the concrete implementations.

Key principles:
- One Transport instance per connection attempt
- open() either yields a reader/writer pair or raises TransportOpenError
- close() is idempotent and unblocks a read pending on another thread
- A read that returns b'' means the stream closed
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import NamedTuple, Protocol

from ..models import PeerDescriptor


class InputStream(Protocol):
    def read(self, size: int) -> bytes: ...


class OutputStream(Protocol):
    def write(self, data: bytes) -> int: ...

    def flush(self) -> None: ...


class Streams(NamedTuple):
    """Reader/writer pair handed out by Transport.open()."""
    reader: InputStream
    writer: OutputStream


class Transport(ABC):
    """Abstract byte-stream connection to a single peer.

    Transports are pure communication channels. They do not frame lines,
    log events or track link state; that is the ConnectionManager's job.
    """

    @abstractmethod
    def open(self, peer: PeerDescriptor) -> Streams:
        """Open the connection to the peer.

        Args:
            peer: Resolved descriptor of the remote module

        Returns:
            Streams(reader, writer) bound to the open connection

        Raises:
            TransportOpenError: if the connection cannot be established
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Close the connection and release its resources.

        Must be safe to call multiple times and from any thread. A read
        blocked on another thread must return (or raise) promptly.
        """
        pass

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """True between a successful open() and close()."""
        pass

    def __enter__(self) -> Transport:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager support - close on exit."""
        self.close()
