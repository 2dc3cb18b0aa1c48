"""Peer registry interface and the caller-supplied static registry."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from ..models import PeerDescriptor


class PeerRegistry(ABC):
    """Source of already-bonded/trusted peers.

    The controller never pairs or scans; it only looks up a peer the
    platform already trusts.
    """

    @abstractmethod
    def peers(self) -> List[PeerDescriptor]:
        """Return every trusted peer currently known."""
        pass

    def lookup(self, name: str) -> Optional[PeerDescriptor]:
        """Return the first trusted peer whose name matches exactly, or None."""
        for peer in self.peers():
            if peer.name == name:
                return peer
        return None


class StaticPeerRegistry(PeerRegistry):
    """Registry over a fixed list of trusted peers."""

    def __init__(self, peers: Iterable[PeerDescriptor] = ()):
        self._peers = list(peers)

    def add(self, peer: PeerDescriptor) -> None:
        self._peers.append(peer)

    def peers(self) -> List[PeerDescriptor]:
        return list(self._peers)
