"""Bounded-time TCP connection establishment."""

import errno
import ipaddress
import logging
import os
import select
import socket
from typing import Tuple

from sensorlink.errors import (
    AddressParseError,
    ConnectError,
    ConnectRejected,
    ConnectTimeout,
    SocketCreateError,
)

logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT = 2.0

# EAGAIN from a POSIX connect means no free local port, not a pending handshake
_IN_PROGRESS = {errno.EINPROGRESS}
if hasattr(errno, "WSAEWOULDBLOCK"):
    _IN_PROGRESS.add(errno.WSAEWOULDBLOCK)


def parse_address(text: str) -> str:
    """
    Normalize a numeric IPv4 address.

    Only dotted-quad literals are accepted, plus ``localhost`` which maps
    to the loopback address. No name resolution is done.

    Args:
        text: Address literal

    Returns:
        Dotted-quad address string

    Raises:
        AddressParseError: If the text is not a dotted-quad literal
    """
    if text == "localhost":
        return "127.0.0.1"
    try:
        return str(ipaddress.IPv4Address(text))
    except ValueError as e:
        raise AddressParseError(f"Invalid IPv4 address: {text!r}") from e


def _describe(code: int) -> str:
    return f"{os.strerror(code)} (errno {code})"


def _wait_connected(
    sock: socket.socket, address: Tuple[str, int], timeout: float
) -> None:
    """Wait for an in-progress connect to finish and check its outcome."""
    try:
        readable, writable, failed = select.select([sock], [sock], [sock], timeout)
    except OSError as e:
        raise ConnectError(f"Waiting for {address} failed: {e}", e.errno) from e

    if not (readable or writable or failed):
        raise ConnectTimeout(f"Connect to {address} timed out after {timeout}s")

    try:
        code = sock.getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)
    except OSError as e:
        raise ConnectRejected(
            f"Cannot read connect status for {address}: {e}", e.errno
        ) from e
    if code != 0:
        raise ConnectRejected(f"Connect to {address} rejected: {_describe(code)}", code)


def connect(
    host: str, port: int, timeout: float = DEFAULT_CONNECT_TIMEOUT
) -> socket.socket:
    """
    Open a TCP connection within a bounded time.

    The connect is issued on a non-blocking socket and completion is
    awaited with select, so the call never waits longer than ``timeout``.
    The returned socket is in blocking mode. On failure the socket is
    closed before the exception propagates.

    Args:
        host: Dotted-quad IPv4 address or ``localhost``
        port: TCP port
        timeout: Connect timeout in seconds

    Returns:
        Connected socket

    Raises:
        SocketCreateError: If the socket cannot be created
        AddressParseError: If the host or port is invalid
        ConnectError: If connect fails without going in progress
        ConnectTimeout: If the handshake does not finish in time
        ConnectRejected: If the handshake finishes with an error
    """
    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    except OSError as e:
        logger.warning("Cannot create socket: %s", e)
        raise SocketCreateError(f"Cannot create socket: {e}") from e

    try:
        if not 0 <= port <= 0xFFFF:
            raise AddressParseError(f"Invalid port: {port}")
        address = (parse_address(host), port)

        sock.setblocking(False)
        try:
            code = sock.connect_ex(address)
        except OSError as e:
            raise ConnectError(f"Connect to {address} failed: {e}", e.errno) from e

        if code != 0:
            if code not in _IN_PROGRESS:
                raise ConnectError(
                    f"Connect to {address} failed: {_describe(code)}", code
                )
            _wait_connected(sock, address, timeout)

        sock.setblocking(True)
    except BaseException as e:
        logger.warning("Connection to %s:%s failed: %s", host, port, e)
        sock.close()
        raise

    logger.info("Connected to %s:%d", address[0], port)
    return sock
