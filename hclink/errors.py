"""Exception taxonomy for the link controller."""


class LinkError(RuntimeError):
    """Base class for link controller failures."""
    pass


class AlreadyActiveError(LinkError):
    """Raised when a connect is requested while connecting or connected."""
    pass


class PeerNotFoundError(LinkError):
    """Raised when no trusted peer matches the configured name."""
    pass


class MultiplePeersError(PeerNotFoundError):
    """Raised when more than one trusted peer matches the configured name."""
    def __init__(self, message, peers):
        super().__init__(message)
        self.peers = peers


class NotConnectedError(LinkError):
    """Raised when a command is sent without an active link."""
    pass


class PreconditionError(LinkError):
    """Caller-side precondition for connecting is not met."""
    pass


class AdapterUnavailableError(PreconditionError):
    """Raised when no usable Bluetooth adapter is present or enabled."""
    pass


class PermissionDeniedError(PreconditionError):
    """Raised when the process may not open Bluetooth sockets."""
    pass


class TransportError(OSError):
    """Base class for transport I/O failures."""
    pass


class TransportOpenError(TransportError):
    """Raised when the transport cannot be opened to the peer."""
    pass


class TransportWriteError(TransportError):
    """Raised when writing to an open transport fails."""
    pass


class TransportReadError(TransportError):
    """Raised when reading from an open transport fails mid-stream."""
    pass


class InvalidCommandError(ValueError):
    """Raised for commands that cannot be framed on the wire."""
    pass
