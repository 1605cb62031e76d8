"""Byte buffers used by the transports."""

from sensorlink.buffers.ring_buffer import RingBuffer

__all__ = ["RingBuffer"]
