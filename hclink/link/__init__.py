"""Link layer: connection lifecycle, command writes and the inbound reader.

This module provides:
- Connection lifecycle and state ownership (ConnectionManager)
- Serialized command writes (CommandDispatcher)
- The continuous read loop (InboundReader) and line reassembly (LineBuffer)
- The single-threaded work queue everything above runs on (SerialWorker)
"""

from .buffer import LineBuffer
from .dispatcher import CommandDispatcher
from .manager import ActiveLink, ConnectionManager
from .reader import LINK_CLOSED_MESSAGE, InboundReader
from .worker import SerialWorker

__all__ = [
    'ActiveLink',
    'CommandDispatcher',
    'ConnectionManager',
    'InboundReader',
    'LineBuffer',
    'LINK_CLOSED_MESSAGE',
    'SerialWorker',
]
