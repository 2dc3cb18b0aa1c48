"""Command vocabulary and wire framing.

Commands are opaque text tokens. The reference deployment drives three
boxes, each with an LED and a lid, using tokens such as ``Box1_LED_ON``;
the helpers here build those, but the controller accepts any valid token.
"""
from __future__ import annotations

from enum import Enum
from typing import Tuple

from .config import DEFAULT_ENCODING, LINE_TERMINATOR
from .errors import InvalidCommandError

BOX_IDS = (1, 2, 3)


class BoxAction(Enum):
    """Actuator instructions understood by the reference box firmware."""
    LED_ON = "LED_ON"
    LED_OFF = "LED_OFF"
    OPEN = "OPEN"
    CLOSE = "CLOSE"


def box_command(box: int, action: BoxAction) -> str:
    """Build the token for one box action, e.g. ``box_command(1, BoxAction.OPEN)``."""
    if box not in BOX_IDS:
        raise InvalidCommandError(f"Unknown box {box}, expected one of {BOX_IDS}")
    return f"Box{box}_{action.value}"


DEFAULT_COMMANDS: Tuple[str, ...] = tuple(
    box_command(box, action) for action in BoxAction for box in BOX_IDS
)


def validate_command(command: str) -> str:
    """Check that a command can be framed as a single line.

    Returns:
        The command, unchanged

    Raises:
        InvalidCommandError: if the command is not a non-empty str without line breaks
    """
    if not isinstance(command, str):
        raise InvalidCommandError(f"Command must be str, got {type(command).__name__}")
    if not command:
        raise InvalidCommandError("Command must not be empty")
    if "\n" in command or "\r" in command:
        raise InvalidCommandError(f"Command must not contain line breaks: {command!r}")
    return command


def encode_command(command: str, encoding: str = DEFAULT_ENCODING) -> bytes:
    """Serialize a command to bytes with the line terminator appended."""
    return (validate_command(command) + LINE_TERMINATOR).encode(encoding)
