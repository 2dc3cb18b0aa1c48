"""Line reassembly buffer for the inbound byte stream.

Bytes arrive in arbitrary chunks; a line may be split across reads. The
buffer keeps the unterminated tail until its terminator arrives.
"""
import logging
import threading
from typing import List

from ..config import DEFAULT_ENCODING, MAX_LINE_LENGTH

logger = logging.getLogger(__name__)


class LineBuffer:
    """Thread-safe byte buffer that yields complete, trimmed text lines."""

    def __init__(self, max_size: int = MAX_LINE_LENGTH, encoding: str = DEFAULT_ENCODING):
        """Initialize buffer.

        Args:
            max_size: Maximum unterminated bytes kept. If exceeded, oldest data is dropped.
            encoding: Text encoding of the lines
        """
        self._max_size = max_size
        self._encoding = encoding
        self._buffer = bytearray()
        self._lock = threading.Lock()
        self._overflow_count = 0

    def feed(self, data: bytes) -> List[str]:
        """Append a chunk and return the lines it completes.

        Lines are split on b'\\n', decoded, stripped of surrounding whitespace
        (including a trailing '\\r'); empty lines are discarded.
        """
        if not data:
            return []

        with self._lock:
            self._buffer.extend(data)

            lines: List[str] = []
            while True:
                idx = self._buffer.find(b'\n')
                if idx == -1:
                    break
                raw = bytes(self._buffer[:idx])
                del self._buffer[:idx + 1]
                text = raw.decode(self._encoding, errors='replace').strip()
                if text:
                    lines.append(text)

            if len(self._buffer) > self._max_size:
                drop_count = len(self._buffer) - self._max_size
                del self._buffer[:drop_count]
                self._overflow_count += 1
                if self._overflow_count % 100 == 1:  # Log periodically
                    logger.warning(f"Line buffer overflow: Dropped {drop_count} bytes of unterminated data.")

            return lines

    @property
    def pending(self) -> bytes:
        """Bytes received after the last terminator."""
        with self._lock:
            return bytes(self._buffer)

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._buffer)

    def clear(self) -> None:
        with self._lock:
            self._buffer.clear()
