"""Transport layer for the serial link."""

from .base import InputStream, OutputStream, Streams, Transport
from .rfcomm import RfcommTransport, bluetooth_sockets_supported
from .serial import SerialTransport

__all__ = [
    "InputStream",
    "OutputStream",
    "Streams",
    "Transport",
    "RfcommTransport",
    "SerialTransport",
    "bluetooth_sockets_supported",
]
