"""Exceptions raised by sensorlink."""

from typing import Optional


class SensorLinkError(Exception):
    """Base class for all sensorlink errors."""


class OpenError(SensorLinkError, ConnectionError):
    """Opening a connection to the device failed."""


class AddressParseError(OpenError, ValueError):
    """The address is not a dotted-quad IPv4 literal."""


class SocketCreateError(OpenError):
    """The TCP socket could not be created."""


class ConnectError(OpenError):
    """The connect call failed outright."""

    def __init__(self, message: str, errno: Optional[int] = None):
        super().__init__(message)
        self.errno = errno


class ConnectTimeout(OpenError, TimeoutError):
    """The handshake did not complete within the connect timeout."""


class ConnectRejected(OpenError):
    """The handshake completed with a pending socket error."""

    def __init__(self, message: str, errno: Optional[int] = None):
        super().__init__(message)
        self.errno = errno
