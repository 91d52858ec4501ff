"""Audio buffer pools and the connections that move buffers between them."""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass
from enum import Enum, IntEnum

from .buffer import MemBuffer, alloc_buffer

__all__ = [
    "BufferFormat",
    "CorrectionMode",
    "PoolType",
    "AudioFormat",
    "AudioBufferFormat",
    "AudioBuffer",
    "AudioBufferPool",
    "AudioConnection",
    "new_buffer",
    "new_wrapping_buffer",
    "new_producer_pool",
    "new_consumer_pool",
    "complete_connection",
]


class BufferFormat(IntEnum):
    """Sample encodings understood by the pools."""

    PCM_S16 = 1
    PCM_S8 = 2
    PCM_U16 = 3
    PCM_U8 = 4


class CorrectionMode(IntEnum):
    """Correction applied when quantising samples for output."""

    NONE = 0
    FIXED_DITHER = 1
    DITHER = 2
    NOISE_SHAPED_DITHER = 3


class PoolType(Enum):
    """Which side of a connection a pool sits on."""

    PRODUCER = "producer"
    CONSUMER = "consumer"


@dataclass
class AudioFormat:
    """Sample frequency, encoding and channel count of a stream."""

    sample_freq: int
    format: int
    channel_count: int


@dataclass
class AudioBufferFormat:
    """An audio format together with the byte stride of one sample frame."""

    format: AudioFormat
    sample_stride: int


@dataclass(eq=False)
class AudioBuffer:
    """A buffer of sample frames; ``user_data`` is only valid while held by a user."""

    buffer: MemBuffer
    format: AudioBufferFormat
    max_sample_count: int
    sample_count: int = 0
    user_data: int = 0


def new_buffer(format: AudioBufferFormat, sample_count: int) -> AudioBuffer:
    """Allocate a zeroed buffer able to hold ``sample_count`` frames."""
    if sample_count < 0:
        raise ValueError(f"sample count must not be negative, got {sample_count}")
    return AudioBuffer(
        buffer=alloc_buffer(sample_count * format.sample_stride),
        format=format,
        max_sample_count=sample_count,
    )


def new_wrapping_buffer(format: AudioBufferFormat, buffer: MemBuffer) -> AudioBuffer:
    """Make an audio buffer over existing memory."""
    if format.sample_stride <= 0:
        raise ValueError("sample stride must be positive")
    return AudioBuffer(
        buffer=buffer,
        format=format,
        max_sample_count=buffer.size // format.sample_stride,
    )


class AudioConnection:
    """Moves buffers between a producer pool and a consumer pool.

    The default behaviour hands producers free buffers from, and queues their
    full buffers onto, the producer pool; consumers take full buffers from and
    return free buffers to the consumer pool. Subclasses override a method to
    do the real work of a particular connection.
    """

    def __init__(self) -> None:
        self.producer_pool: AudioBufferPool | None = None
        self.consumer_pool: AudioBufferPool | None = None

    def _producer(self) -> AudioBufferPool:
        if self.producer_pool is None:
            raise RuntimeError("connection has no producer pool")
        return self.producer_pool

    def _consumer(self) -> AudioBufferPool:
        if self.consumer_pool is None:
            raise RuntimeError("connection has no consumer pool")
        return self.consumer_pool

    def producer_pool_take(self, block: bool) -> AudioBuffer | None:
        return self._producer().get_free_buffer(block)

    def producer_pool_give(self, buffer: AudioBuffer) -> None:
        self._producer().queue_full_buffer(buffer)

    def consumer_pool_take(self, block: bool) -> AudioBuffer | None:
        return self._consumer().get_full_buffer(block)

    def consumer_pool_give(self, buffer: AudioBuffer) -> None:
        self._consumer().queue_free_buffer(buffer)


class AudioBufferPool:
    """A set of buffers split between a free list and a prepared (full) list.

    Free buffers are handed out last-in first-out; prepared buffers first-in
    first-out. Both lists are safe to use from several threads.
    """

    def __init__(
        self,
        pool_type: PoolType,
        buffer_format: AudioBufferFormat,
        buffer_count: int = 0,
        buffer_sample_count: int = 0,
    ) -> None:
        if buffer_count < 0:
            raise ValueError(f"buffer count must not be negative, got {buffer_count}")
        self.type = pool_type
        self.format: AudioFormat = buffer_format.format
        self.buffers: tuple[AudioBuffer, ...] = tuple(
            new_buffer(buffer_format, buffer_sample_count) for _ in range(buffer_count)
        )
        self.connection: AudioConnection = AudioConnection()
        self._free: deque[AudioBuffer] = deque(self.buffers)
        self._prepared: deque[AudioBuffer] = deque()
        self._free_ready = threading.Condition()
        self._prepared_ready = threading.Condition()

    @staticmethod
    def _pop(items: deque[AudioBuffer], ready: threading.Condition, block: bool) -> AudioBuffer | None:
        with ready:
            while not items:
                if not block:
                    return None
                ready.wait()
            return items.popleft()

    def _check_unqueued(self, buffer: AudioBuffer) -> None:
        if any(b is buffer for b in self._free) or any(b is buffer for b in self._prepared):
            raise ValueError("buffer is already queued in this pool")

    def get_free_buffer(self, block: bool) -> AudioBuffer | None:
        """Take the most recently freed buffer, or None when empty and not blocking."""
        return self._pop(self._free, self._free_ready, block)

    def queue_free_buffer(self, buffer: AudioBuffer) -> None:
        """Return a buffer to the front of the free list."""
        with self._free_ready:
            self._check_unqueued(buffer)
            self._free.appendleft(buffer)
            self._free_ready.notify_all()

    def get_full_buffer(self, block: bool) -> AudioBuffer | None:
        """Take the oldest prepared buffer, or None when empty and not blocking."""
        return self._pop(self._prepared, self._prepared_ready, block)

    def queue_full_buffer(self, buffer: AudioBuffer) -> None:
        """Append a buffer to the end of the prepared list."""
        with self._prepared_ready:
            self._check_unqueued(buffer)
            self._prepared.append(buffer)
            self._prepared_ready.notify_all()

    def give(self, buffer: AudioBuffer) -> None:
        """Hand a buffer back through this pool's connection."""
        buffer.user_data = 0
        if self.type is PoolType.PRODUCER:
            self.connection.producer_pool_give(buffer)
        else:
            self.connection.consumer_pool_give(buffer)

    def take(self, block: bool) -> AudioBuffer | None:
        """Obtain a buffer through this pool's connection."""
        if self.type is PoolType.PRODUCER:
            return self.connection.producer_pool_take(block)
        return self.connection.consumer_pool_take(block)

    def release(self, buffer: AudioBuffer) -> None:
        """Give back a buffer emptied of samples."""
        buffer.sample_count = 0
        self.give(buffer)


def new_producer_pool(
    format: AudioBufferFormat, buffer_count: int, buffer_sample_count: int
) -> AudioBufferPool:
    """Create a pool for the producing side of a connection."""
    return AudioBufferPool(PoolType.PRODUCER, format, buffer_count, buffer_sample_count)


def new_consumer_pool(
    format: AudioBufferFormat, buffer_count: int, buffer_sample_count: int
) -> AudioBufferPool:
    """Create a pool for the consuming side of a connection."""
    return AudioBufferPool(PoolType.CONSUMER, format, buffer_count, buffer_sample_count)


def complete_connection(
    connection: AudioConnection,
    producer_pool: AudioBufferPool,
    consumer_pool: AudioBufferPool,
) -> None:
    """Join a producer pool and a consumer pool through ``connection``."""
    if producer_pool.type is not PoolType.PRODUCER:
        raise ValueError("first pool must be a producer pool")
    if consumer_pool.type is not PoolType.CONSUMER:
        raise ValueError("second pool must be a consumer pool")
    producer_pool.connection = connection
    consumer_pool.connection = connection
    connection.producer_pool = producer_pool
    connection.consumer_pool = consumer_pool