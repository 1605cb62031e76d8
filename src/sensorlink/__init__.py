"""Buffered TCP transport for line-oriented sensor devices."""

import logging

from sensorlink.buffers.ring_buffer import RingBuffer
from sensorlink.config.settings import ClientConfig
from sensorlink.errors import (
    AddressParseError,
    ConnectError,
    ConnectRejected,
    ConnectTimeout,
    OpenError,
    SensorLinkError,
    SocketCreateError,
)
from sensorlink.transports.tcp.buffered_client import BufferedTCPClient

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"
__all__ = [
    "BufferedTCPClient",
    "ClientConfig",
    "RingBuffer",
    "SensorLinkError",
    "OpenError",
    "AddressParseError",
    "SocketCreateError",
    "ConnectError",
    "ConnectTimeout",
    "ConnectRejected",
    "__version__",
]
