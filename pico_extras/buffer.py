"""Wrappers around blocks of memory used as sample storage."""

from __future__ import annotations

from dataclasses import dataclass, field

__all__ = ["MemBuffer", "alloc_buffer", "wrap_buffer"]


@dataclass(eq=False)
class MemBuffer:
    """A block of memory, either freshly allocated or wrapping existing storage."""

    bytes: bytearray | memoryview
    flags: int = 0
    size: int = field(init=False)

    def __post_init__(self) -> None:
        self.size = len(self.bytes)

    def __len__(self) -> int:
        return self.size


def alloc_buffer(size: int) -> MemBuffer:
    """Allocate a zero-filled buffer of ``size`` bytes."""
    if size < 0:
        raise ValueError(f"buffer size must not be negative, got {size}")
    return MemBuffer(bytearray(size))


def wrap_buffer(data: bytearray | memoryview) -> MemBuffer:
    """Wrap existing writable storage without copying it."""
    if isinstance(data, bytes):
        raise TypeError("wrapped storage must be writable, not bytes")
    return MemBuffer(data)