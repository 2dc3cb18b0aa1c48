"""Caller-side checks to run before ConnectionManager.connect().

The controller treats a missing adapter or a missing permission as an
ordinary open failure. A front end that wants a dedicated message calls
preflight() first and reports AdapterUnavailableError or
PermissionDeniedError itself.
"""
from __future__ import annotations

import errno
import logging

from .errors import AdapterUnavailableError, PermissionDeniedError
from .transport.rfcomm import create_rfcomm_socket

logger = logging.getLogger(__name__)

_NO_ADAPTER_ERRNOS = {
    errno.EAFNOSUPPORT,
    errno.EPROTONOSUPPORT,
    errno.ENODEV,
}


def check_adapter() -> None:
    """Verify that an RFCOMM socket can be allocated.

    Raises:
        AdapterUnavailableError: if Bluetooth sockets or the adapter are unavailable
        PermissionDeniedError: if the process lacks permission to use Bluetooth
    """
    try:
        sock = create_rfcomm_socket()
    except PermissionError as e:
        raise PermissionDeniedError(f"Bluetooth permission is required: {e}") from e
    except OSError as e:
        if e.errno in _NO_ADAPTER_ERRNOS:
            raise AdapterUnavailableError(f"Bluetooth adapter unavailable: {e}") from e
        raise AdapterUnavailableError(f"Unable to open a Bluetooth socket: {e}") from e
    sock.close()


def preflight(use_rfcomm: bool = True) -> None:
    """Run every precondition for the chosen transport.

    Serial port transports need no Bluetooth socket support, so the adapter
    check only runs for RFCOMM.
    """
    if use_rfcomm:
        check_adapter()
    logger.debug("Preflight checks passed")
