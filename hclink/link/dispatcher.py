"""Outbound command writer.

Runs on the link worker thread, so writes never interleave with each
other or with connect/disconnect.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..commands import encode_command
from ..config import DEFAULT_ENCODING
from ..eventlog import EventLog
from ..models import LinkResult, LogCategory

if TYPE_CHECKING:
    from .manager import ActiveLink

logger = logging.getLogger(__name__)


class CommandDispatcher:
    """Frames commands and writes them through an active link.

    A failed write is reported, not acted on: the link stays up until the
    caller disconnects or the reader notices the dead stream.
    """

    def __init__(self, event_log: EventLog, encoding: str = DEFAULT_ENCODING):
        self._event_log = event_log
        self._encoding = encoding

    def dispatch(self, link: ActiveLink, command: str) -> LinkResult:
        """Write one command line and flush.

        Args:
            link: Link owned by the ConnectionManager
            command: Validated command text without terminator

        Returns:
            OK, NOT_CONNECTED if the reader has already left the link,
            or TRANSPORT_WRITE_FAILED
        """
        data = encode_command(command, self._encoding)

        with link.reader.exit_lock:
            if not link.reader.is_running:
                logger.warning(f"Cannot send '{command}', link is closing")
                self._event_log.info(f"Connect to {link.peer.name} first")
                return LinkResult.NOT_CONNECTED

            try:
                link.writer.write(data)
                link.writer.flush()
            except (OSError, ValueError) as e:
                logger.error(f"Send error: {e}")
                self._event_log.error(f"Failed to send '{command}': {e}")
                return LinkResult.TRANSPORT_WRITE_FAILED

            self._event_log.append(LogCategory.SENT, command)

        logger.debug(f"Sent {data!r}")
        return LinkResult.OK
