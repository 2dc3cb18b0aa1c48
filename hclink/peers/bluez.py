"""Paired-device registry backed by BlueZ's ``bluetoothctl``.

``bluetoothctl devices Paired`` prints one line per bonded device::

    Device 98:D3:31:F5:2A:10 HC-05
"""
from __future__ import annotations

import logging
import re
import subprocess
from typing import List, Optional, Sequence

from ..models import PeerDescriptor
from .base import PeerRegistry

logger = logging.getLogger(__name__)

DEVICE_PATTERN = re.compile(r"^Device\s+([0-9A-Fa-f]{2}(?::[0-9A-Fa-f]{2}){5})\s+(.+)$")
BLUETOOTHCTL_COMMAND = ("bluetoothctl", "devices", "Paired")
BLUETOOTHCTL_TIMEOUT = 5.0  # seconds


def parse_devices_output(output: str, channel: Optional[int] = None) -> List[PeerDescriptor]:
    """Parse ``bluetoothctl devices`` output into peer descriptors.

    Lines that are not device records (prompts, agent chatter) are ignored.
    """
    peers: List[PeerDescriptor] = []
    for line in output.splitlines():
        match = DEVICE_PATTERN.match(line.strip())
        if match:
            peers.append(PeerDescriptor(
                name=match.group(2).strip(),
                address=match.group(1).upper(),
                channel=channel,
            ))
    return peers


class BluezPeerRegistry(PeerRegistry):
    """Registry of devices bonded with the local BlueZ adapter."""

    def __init__(self,
                 command: Sequence[str] = BLUETOOTHCTL_COMMAND,
                 timeout: float = BLUETOOTHCTL_TIMEOUT,
                 channel: Optional[int] = None):
        self._command = list(command)
        self._timeout = timeout
        self._channel = channel

    def peers(self) -> List[PeerDescriptor]:
        try:
            result = subprocess.run(
                self._command,
                capture_output=True,
                text=True,
                timeout=self._timeout,
                check=True,
            )
        except FileNotFoundError:
            logger.error(f"{self._command[0]} not found; is BlueZ installed?")
            return []
        except subprocess.TimeoutExpired:
            logger.error(f"{' '.join(self._command)} timed out after {self._timeout}s")
            return []
        except subprocess.CalledProcessError as e:
            logger.error(f"{' '.join(self._command)} failed with exit code {e.returncode}")
            return []

        peers = parse_devices_output(result.stdout, channel=self._channel)
        logger.debug(f"Paired devices: {peers}")
        return peers
