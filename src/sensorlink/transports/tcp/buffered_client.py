"""Buffered, timeout-aware TCP client for line-oriented devices."""

import logging
import socket
from typing import Optional

from sensorlink.buffers.ring_buffer import RingBuffer
from sensorlink.config.settings import ClientConfig
from sensorlink.errors import OpenError
from sensorlink.platform import ensure_network_started
from sensorlink.transports.tcp.connector import DEFAULT_CONNECT_TIMEOUT, connect

logger = logging.getLogger(__name__)

LINE_TERMINATORS = (b"\r", b"\n")


class BufferedTCPClient:
    """
    TCP client with a ring buffer between the socket and the reader.

    Reads are served from the ring buffer first, then from data already
    queued by the OS (without blocking), and finally by one blocking
    receive bounded by the caller's timeout. Socket errors during reads
    and writes are reported through return values, not exceptions.
    """

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 10940,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        read_timeout_ms: int = 1000,
        line_capacity: int = 256,
        buffer_bits: int = 16,
    ):
        """
        Initialize TCP client.

        Args:
            host: Device IPv4 address or ``localhost``
            port: Device port
            connect_timeout: Connect timeout in seconds
            read_timeout_ms: Default read timeout in milliseconds
            line_capacity: Default readline capacity in bytes
            buffer_bits: Ring buffer holds ``1 << buffer_bits`` bytes
        """
        self.host = host
        self.port = port
        self.connect_timeout = connect_timeout
        self.read_timeout_ms = read_timeout_ms
        self.line_capacity = line_capacity
        self.socket: Optional[socket.socket] = None
        self.buffer = RingBuffer(buffer_bits)
        self._pushback: Optional[int] = None
        self._error = ""

    @classmethod
    def from_config(cls, config: ClientConfig) -> "BufferedTCPClient":
        """Create a client from a ClientConfig."""
        return cls(
            host=config.host,
            port=config.port,
            connect_timeout=config.connect_timeout,
            read_timeout_ms=config.read_timeout_ms,
            line_capacity=config.line_capacity,
            buffer_bits=config.buffer_bits,
        )

    @property
    def is_open(self) -> bool:
        """Whether the client holds an open socket."""
        return self.socket is not None

    @property
    def buffered(self) -> int:
        """Number of received bytes waiting in the ring buffer."""
        return self.buffer.size()

    @property
    def pushback(self) -> Optional[int]:
        """Byte held back by the last truncated readline, if any."""
        return self._pushback

    @property
    def error_message(self) -> str:
        """Description of the most recent failure, empty if none."""
        return self._error

    def _record_error(self, message: str) -> None:
        self._error = message
        logger.warning(message)

    def open(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        connect_timeout: Optional[float] = None,
    ) -> None:
        """
        Connect to the device.

        Reopening an open client closes the old connection first. The ring
        buffer and pushback byte are reset.

        Args:
            host: Overrides the configured host
            port: Overrides the configured port
            connect_timeout: Overrides the configured connect timeout

        Raises:
            OpenError: If the connection cannot be established. The client
                is left unopened.
        """
        if host is not None:
            self.host = host
        if port is not None:
            self.port = port
        if connect_timeout is not None:
            self.connect_timeout = connect_timeout

        self.close()
        self.buffer.reset()
        self._pushback = None
        self._error = ""
        ensure_network_started()

        try:
            self.socket = connect(self.host, self.port, self.connect_timeout)
        except OpenError as e:
            self._error = str(e)
            raise

    def close(self) -> None:
        """Close connection. Buffered data is kept until the next open."""
        if self.socket:
            self.socket.close()
            self.socket = None
            logger.info("Closed connection to %s:%s", self.host, self.port)

    def write(self, data: bytes) -> int:
        """
        Send data with a single blocking send call.

        Args:
            data: Bytes to send

        Returns:
            Number of bytes sent, or -1 if not connected or on a socket error
        """
        if not self.socket:
            self._record_error("Not connected")
            return -1
        try:
            return self.socket.send(data)
        except OSError as e:
            self._record_error(f"Send failed: {e}")
            return -1

    def _recv_nowait(self, size: int) -> bytes:
        if hasattr(socket, "MSG_DONTWAIT"):
            return self.socket.recv(size, socket.MSG_DONTWAIT)
        self.socket.setblocking(False)
        try:
            return self.socket.recv(size)
        finally:
            self.socket.setblocking(True)

    def read(self, size: int, timeout_ms: Optional[int] = None) -> bytes:
        """
        Read up to ``size`` bytes.

        A short result means the timeout lapsed, the peer closed the
        connection or a socket error occurred. Callers that need an exact
        count must call again for the rest.

        Args:
            size: Number of bytes wanted
            timeout_ms: Timeout for the blocking receive, in milliseconds

        Returns:
            Between 0 and ``size`` bytes
        """
        if size <= 0:
            return b""
        if timeout_ms is None:
            timeout_ms = self.read_timeout_ms

        data = self.buffer.read(size)
        if len(data) == size or not self.socket:
            return data

        room = self.buffer.free()
        if room > 0:
            try:
                chunk = self._recv_nowait(room)
            except (BlockingIOError, InterruptedError):
                chunk = None
            except OSError as e:
                self._record_error(f"Receive failed: {e}")
                return data
            if chunk is not None:
                if not chunk:
                    logger.debug("Connection closed by peer")
                    return data
                self.buffer.write(chunk)
                data += self.buffer.read(size - len(data))
                if len(data) == size:
                    return data

        remaining = size - len(data)
        try:
            self.socket.settimeout(max(timeout_ms, 0) / 1000.0)
            try:
                chunk = self.socket.recv(remaining)
            finally:
                self.socket.settimeout(None)
        except (socket.timeout, BlockingIOError):
            logger.debug("Read timed out with %d of %d bytes", len(data), size)
            return data
        except OSError as e:
            self._record_error(f"Receive failed: {e}")
            return data

        return data + chunk

    def readline(
        self, capacity: Optional[int] = None, timeout_ms: Optional[int] = None
    ) -> Optional[bytes]:
        """
        Read one CR or LF terminated line.

        The terminator is consumed and not returned. If ``capacity`` bytes
        arrive without a terminator, the last of them is held back and
        returned first by the next call, so a line is split into chunks of
        at most ``capacity - 1`` bytes without losing data.

        Args:
            capacity: Line buffer size in bytes, at least 2
            timeout_ms: Timeout for each byte, in milliseconds

        Returns:
            The line without terminator, or None if no byte could be read
        """
        if capacity is None:
            capacity = self.line_capacity
        if capacity < 2:
            raise ValueError(f"capacity must be at least 2, got {capacity}")

        line = bytearray()
        if self._pushback is not None:
            line.append(self._pushback)
            self._pushback = None

        got = 0
        while len(line) < capacity:
            ch = self.read(1, timeout_ms)
            got = len(ch)
            if not ch:
                break
            if ch in LINE_TERMINATORS:
                break
            line += ch

        if len(line) >= capacity:
            self._pushback = line.pop()

        if not line and got <= 0:
            return None
        return bytes(line)

    def __enter__(self):
        """Context manager entry."""
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
