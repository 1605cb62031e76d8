"""Client configuration settings."""

from dataclasses import dataclass


@dataclass
class ClientConfig:
    """Device connection configuration."""

    host: str = "127.0.0.1"
    port: int = 10940
    connect_timeout: float = 2.0

    # Read settings
    read_timeout_ms: int = 1000
    line_capacity: int = 256

    # Ring buffer holds 1 << buffer_bits bytes
    buffer_bits: int = 16

    @property
    def buffer_size(self) -> int:
        """Ring buffer capacity in bytes."""
        return 1 << self.buffer_bits
