"""Link configuration.

Module-level constants hold the defaults for the reference deployment (an
HC-05 module speaking the serial port profile). LinkConfig gathers them so
a caller can override any of them per controller.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
from typing import Dict

DEFAULT_DEVICE_NAME = "HC-05"
DEFAULT_RFCOMM_CHANNEL = 1

LINE_TERMINATOR = "\n"
DEFAULT_ENCODING = "utf-8"

READ_CHUNK_SIZE = 1024  # bytes
MAX_LINE_LENGTH = 64 * 1024  # bytes
STOP_TIMEOUT = 1.0  # seconds
CONNECT_TIMEOUT = 10.0  # seconds

DEFAULT_BAUDRATE = 9600  # HC-05 data mode default
SERIAL_READ_TIMEOUT = 0.1  # seconds


@dataclass(frozen=True)
class LinkConfig:
    """Tunables for a ConnectionManager and its transports.

    Attributes:
        device_name: Name of the trusted peer to connect to
        rfcomm_channel: RFCOMM channel used when the registry does not supply one
        encoding: Text encoding of commands and received lines
        read_chunk_size: Maximum bytes requested per transport read
        max_line_length: Pending bytes kept while waiting for a line terminator
        stop_timeout: Upper bound for joining the reader thread on disconnect
        connect_timeout: Socket connect timeout for RFCOMM transports
        baudrate: Baud rate for serial port transports
        serial_read_timeout: Poll interval of serial port reads
    """
    device_name: str = DEFAULT_DEVICE_NAME
    rfcomm_channel: int = DEFAULT_RFCOMM_CHANNEL
    encoding: str = DEFAULT_ENCODING
    read_chunk_size: int = READ_CHUNK_SIZE
    max_line_length: int = MAX_LINE_LENGTH
    stop_timeout: float = STOP_TIMEOUT
    connect_timeout: float = CONNECT_TIMEOUT
    baudrate: int = DEFAULT_BAUDRATE
    serial_read_timeout: float = SERIAL_READ_TIMEOUT

    def __post_init__(self):
        if not self.device_name:
            raise ValueError("device_name must not be empty")
        if not 1 <= self.rfcomm_channel <= 30:
            raise ValueError("RFCOMM channel must be between 1 and 30")
        if self.read_chunk_size <= 0:
            raise ValueError("read_chunk_size must be positive")
        if self.max_line_length < self.read_chunk_size:
            raise ValueError("max_line_length must be at least read_chunk_size")
        if self.stop_timeout <= 0 or self.connect_timeout <= 0:
            raise ValueError("timeouts must be positive")

    def with_overrides(self, **changes) -> LinkConfig:
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def to_dict(self) -> Dict:
        """Convert to serializable dict for JSON persistence."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict) -> LinkConfig:
        """Load from deserialized dict, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})
