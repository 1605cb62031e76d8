"""Fixed-capacity circular byte buffer."""

import logging
from typing import Optional

logger = logging.getLogger(__name__)


class RingBuffer:
    """
    FIFO byte store over a fixed power-of-two sized bytearray.

    Writes that exceed the free space are truncated to the free space;
    reads return at most the number of bytes held. Neither operation
    blocks or raises.
    """

    def __init__(self, bits: int = 16):
        """
        Initialize ring buffer.

        Args:
            bits: Capacity exponent, the buffer holds ``1 << bits`` bytes
        """
        if bits < 0:
            raise ValueError(f"bits must be non-negative, got {bits}")
        self.capacity = 1 << bits
        self._buffer = bytearray(self.capacity)
        self._head = 0
        self._size = 0

    def __len__(self) -> int:
        return self._size

    def _mask(self, position: int) -> int:
        """Wrap an absolute position onto the backing storage."""
        return position & (self.capacity - 1)

    def size(self) -> int:
        """Return the number of bytes currently held."""
        return self._size

    def free(self) -> int:
        """Return the number of bytes that can still be written."""
        return self.capacity - self._size

    def reset(self) -> None:
        """Discard the contents. Storage is not zeroed."""
        self._head = 0
        self._size = 0

    def write(self, data: bytes, n: Optional[int] = None) -> int:
        """
        Copy bytes into the buffer.

        Args:
            data: Source bytes
            n: Number of bytes of ``data`` to write, defaults to all of it

        Returns:
            Number of bytes actually written, which is limited by free space
        """
        requested = len(data) if n is None else min(n, len(data))
        n = min(requested, self.free())
        if n < requested:
            logger.debug("Ring buffer truncated write to %d of %d bytes", n, requested)
        if n <= 0:
            return 0

        tail = self._mask(self._head + self._size)
        first = min(n, self.capacity - tail)
        view = memoryview(data)
        self._buffer[tail:tail + first] = view[:first]
        if first < n:
            self._buffer[:n - first] = view[first:n]

        self._size += n
        return n

    def read(self, n: int) -> bytes:
        """
        Remove bytes from the front of the buffer.

        Args:
            n: Maximum number of bytes to read

        Returns:
            Up to ``n`` bytes in the order they were written
        """
        n = min(n, self._size)
        if n <= 0:
            return b""

        first = min(n, self.capacity - self._head)
        result = bytes(self._buffer[self._head:self._head + first])
        if first < n:
            result += bytes(self._buffer[:n - first])

        self._head = self._mask(self._head + n)
        self._size -= n
        return result
