from .base import PeerRegistry, StaticPeerRegistry
from .bluez import BluezPeerRegistry, parse_devices_output
from .serial_ports import SerialPortPeerRegistry, is_matching_port

__all__ = [
    "PeerRegistry",
    "StaticPeerRegistry",
    "BluezPeerRegistry",
    "SerialPortPeerRegistry",
    "parse_devices_output",
    "is_matching_port",
]
