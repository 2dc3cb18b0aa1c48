"""Registry of Bluetooth serial ports enumerated by pyserial."""
from __future__ import annotations

import logging
from typing import Callable, List, Optional

from serial.tools import list_ports

from ..errors import MultiplePeersError
from ..models import PeerDescriptor
from .base import PeerRegistry

logger = logging.getLogger(__name__)


def _port_to_peer(port, name: str) -> PeerDescriptor:
    """Convert pyserial's ListPortInfo to a PeerDescriptor."""
    return PeerDescriptor(name=name, port=port.device)


def is_matching_port(port, name: str) -> bool:
    """
    Decide whether a pyserial port belongs to the named peer.

    Matches the device path exactly, or the name as a case-insensitive
    substring of the description, product or hardware id string.
    """
    if port.device == name:
        return True

    needle = name.lower()
    for text in (port.description, port.product, port.hwid):
        if text and needle in text.lower():
            return True
    return False


class SerialPortPeerRegistry(PeerRegistry):
    """Peers bound to serial ports, such as ``/dev/rfcomm0`` or ``COM5``.

    pyserial cannot enumerate device names for Bluetooth ports on every
    platform, so ``aliases`` maps a peer name to a known port.
    """

    def __init__(self,
                 aliases: Optional[dict] = None,
                 matcher: Optional[Callable[[object, str], bool]] = None):
        """
        Args:
            aliases: Mapping of peer name to port path
            matcher: Custom ``matcher(port_info, name) -> bool`` predicate
        """
        self._aliases = dict(aliases or {})
        self._matcher = matcher or is_matching_port

    def peers(self) -> List[PeerDescriptor]:
        ports = {port.device for port in list_ports.comports()}
        return [
            PeerDescriptor(name=name, port=device)
            for name, device in self._aliases.items()
            if device in ports
        ]

    def find(self, name: str) -> List[PeerDescriptor]:
        """Return every port that matches the name."""
        if name in self._aliases:
            return [peer for peer in self.peers() if peer.name == name]
        return [
            _port_to_peer(port, name)
            for port in list_ports.comports()
            if self._matcher(port, name)
        ]

    def find_single(self, name: str) -> Optional[PeerDescriptor]:
        """
        Find exactly one port for the name.

        Behaviour:
            - 0 matches  -> None
            - 1 match    -> return it
            - >1 matches -> MultiplePeersError
        """
        matches = self.find(name)
        if len(matches) > 1:
            logger.error(
                "Multiple matching ports found; refusing to choose automatically. "
                "Ports: %s",
                matches,
            )
            raise MultiplePeersError(
                f"Multiple ports match {name} ({len(matches)} ports)",
                peers=matches,
            )
        if not matches:
            return None
        return matches[0]

    def lookup(self, name: str) -> Optional[PeerDescriptor]:
        try:
            return self.find_single(name)
        except MultiplePeersError:
            return None
