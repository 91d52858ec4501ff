"""Sample format conversion and the buffer-copying audio connections."""

from __future__ import annotations

import struct
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from .audio import AudioBuffer, AudioBufferPool, AudioConnection

__all__ = [
    "SampleType",
    "ChannelFormat",
    "BufferCopyingOnConsumerTakeConnection",
    "ProducerPoolBlockingGiveConnection",
    "mono",
    "stereo",
    "convert_sample",
    "converting_copy",
    "read_samples",
    "write_samples",
    "mono_to_mono_connection",
    "stereo_to_stereo_connection",
    "mono_to_stereo_connection",
    "mono_s8_to_mono_connection",
    "mono_s8_to_stereo_connection",
    "stereo_to_stereo_give_connection",
]


class SampleType(Enum):
    """A PCM sample type: its struct code, width in bytes and signedness."""

    U8 = ("B", 1, False)
    S8 = ("b", 1, True)
    U16 = ("H", 2, False)
    S16 = ("h", 2, True)

    def __init__(self, code: str, size: int, signed: bool) -> None:
        self.code = code
        self.size = size
        self.signed = signed

    @property
    def min(self) -> int:
        return -(1 << (8 * self.size - 1)) if self.signed else 0

    @property
    def max(self) -> int:
        bits = 8 * self.size
        return (1 << (bits - 1)) - 1 if self.signed else (1 << bits) - 1


@dataclass(frozen=True)
class ChannelFormat:
    """Frames of ``channel_count`` samples of one type, stored back to back."""

    sample_type: SampleType
    channel_count: int

    @property
    def frame_stride(self) -> int:
        return self.channel_count * self.sample_type.size


def mono(sample_type: SampleType) -> ChannelFormat:
    """One-channel format of ``sample_type``."""
    return ChannelFormat(sample_type, 1)


def stereo(sample_type: SampleType) -> ChannelFormat:
    """Two-channel format of ``sample_type``."""
    return ChannelFormat(sample_type, 2)


def _to_offset16(sample_type: SampleType, sample: int) -> int:
    """Express a sample as unsigned 16-bit offset binary."""
    if sample_type is SampleType.U16:
        return sample
    if sample_type is SampleType.S16:
        return (sample & 0xFFFF) ^ 0x8000
    if sample_type is SampleType.U8:
        return sample << 8
    return ((sample & 0xFF) ^ 0x80) << 8


def _from_offset16(sample_type: SampleType, value: int) -> int:
    if sample_type is SampleType.U16:
        return value
    if sample_type is SampleType.S16:
        signed = value ^ 0x8000
        return signed - 0x10000 if signed & 0x8000 else signed
    high = value >> 8
    if sample_type is SampleType.U8:
        return high
    signed = high ^ 0x80
    return signed - 0x100 if signed & 0x80 else signed


def convert_sample(to_type: SampleType, from_type: SampleType, sample: int) -> int:
    """Convert one sample between PCM types, keeping the top bits."""
    if not from_type.min <= sample <= from_type.max:
        raise ValueError(f"sample {sample} out of range for {from_type.name}")
    if to_type is from_type:
        return sample
    return _from_offset16(to_type, _to_offset16(from_type, sample))


def _average(a: int, b: int) -> int:
    total = a + b
    return total // 2 if total >= 0 else -((-total) // 2)


def converting_copy(
    to_format: ChannelFormat,
    from_format: ChannelFormat,
    src: Sequence[int],
    sample_count: int,
) -> list[int]:
    """Convert ``sample_count`` frames of interleaved samples between formats."""
    needed = sample_count * from_format.channel_count
    if len(src) < needed:
        raise ValueError(f"need {needed} source samples, got {len(src)}")
    to_type, from_type = to_format.sample_type, from_format.sample_type
    if to_format.channel_count == from_format.channel_count:
        return [convert_sample(to_type, from_type, s) for s in src[:needed]]
    if from_format.channel_count == 1 and to_format.channel_count == 2:
        out: list[int] = []
        for s in src[:needed]:
            converted = convert_sample(to_type, from_type, s)
            out.extend((converted, converted))
        return out
    if from_format.channel_count == 2 and to_format.channel_count == 1:
        pairs = zip(src[0:needed:2], src[1:needed:2])
        return [convert_sample(to_type, from_type, _average(a, b)) for a, b in pairs]
    raise ValueError(
        f"no conversion from {from_format.channel_count} to {to_format.channel_count} channels"
    )


def _check_span(buffer: AudioBuffer, fmt: ChannelFormat, start: int, frames: int) -> None:
    if start < 0 or frames < 0:
        raise ValueError("frame positions must not be negative")
    end = (start + frames) * fmt.frame_stride
    if end > buffer.buffer.size:
        raise ValueError(f"frames {start}..{start + frames} do not fit in the buffer")


def read_samples(buffer: AudioBuffer, fmt: ChannelFormat, start: int, count: int) -> list[int]:
    """Read ``count`` frames from frame ``start`` as a flat list of samples."""
    _check_span(buffer, fmt, start, count)
    layout = f"<{count * fmt.channel_count}{fmt.sample_type.code}"
    return list(struct.unpack_from(layout, buffer.buffer.bytes, start * fmt.frame_stride))


def write_samples(
    buffer: AudioBuffer, fmt: ChannelFormat, start: int, samples: Sequence[int]
) -> None:
    """Write interleaved samples into the buffer beginning at frame ``start``."""
    if len(samples) % fmt.channel_count:
        raise ValueError("sample count is not a whole number of frames")
    _check_span(buffer, fmt, start, len(samples) // fmt.channel_count)
    layout = f"<{len(samples)}{fmt.sample_type.code}"
    try:
        struct.pack_into(layout, buffer.buffer.bytes, start * fmt.frame_stride, *samples)
    except struct.error as exc:
        raise ValueError(str(exc)) from exc


def _check_buffer_format(buffer: AudioBuffer, fmt: ChannelFormat, check_channels: bool) -> None:
    if buffer.format.sample_stride != fmt.frame_stride:
        raise ValueError(
            f"buffer stride {buffer.format.sample_stride} does not match frame stride {fmt.frame_stride}"
        )
    if check_channels and buffer.format.format.channel_count != fmt.channel_count:
        raise ValueError(
            f"buffer has {buffer.format.format.channel_count} channels, expected {fmt.channel_count}"
        )


class _ConvertingConnection(AudioConnection):
    def __init__(self, to_format: ChannelFormat, from_format: ChannelFormat) -> None:
        super().__init__()
        self.to_format = to_format
        self.from_format = from_format

    def _copy(
        self,
        dest: AudioBuffer,
        dest_pos: int,
        src: AudioBuffer,
        src_pos: int,
        sample_count: int,
    ) -> None:
        samples = read_samples(src, self.from_format, src_pos, sample_count)
        converted = converting_copy(self.to_format, self.from_format, samples, sample_count)
        write_samples(dest, self.to_format, dest_pos, converted)


class BufferCopyingOnConsumerTakeConnection(_ConvertingConnection):
    """Fills a consumer buffer from producer buffers when the consumer takes one."""

    def __init__(self, to_format: ChannelFormat, from_format: ChannelFormat) -> None:
        super().__init__(to_format, from_format)
        self.current_producer_buffer: AudioBuffer | None = None
        self.current_producer_buffer_pos = 0

    def consumer_pool_take(self, block: bool) -> AudioBuffer | None:
        consumer: AudioBufferPool = self._consumer()
        producer: AudioBufferPool = self._producer()
        buffer = consumer.get_free_buffer(block)
        if buffer is None:
            return None
        _check_buffer_format(buffer, self.to_format, check_channels=False)

        pos = 0
        while pos < buffer.max_sample_count:
            if self.current_producer_buffer is None:
                current = producer.get_full_buffer(block)
                if current is None:
                    if not pos:
                        consumer.queue_free_buffer(buffer)
                        return None
                    break
                _check_buffer_format(current, self.from_format, check_channels=True)
                self.current_producer_buffer = current
                self.current_producer_buffer_pos = 0
            current = self.current_producer_buffer
            count = min(
                buffer.max_sample_count - pos,
                current.sample_count - self.current_producer_buffer_pos,
            )
            self._copy(buffer, pos, current, self.current_producer_buffer_pos, count)
            pos += count
            self.current_producer_buffer_pos += count
            if self.current_producer_buffer_pos == current.sample_count:
                producer.queue_free_buffer(current)
                self.current_producer_buffer = None
        buffer.sample_count = pos
        return buffer


class ProducerPoolBlockingGiveConnection(_ConvertingConnection):
    """Copies a producer's buffer into consumer buffers as it is given, blocking for space.

    With ``synchronize_buffers`` a partly filled consumer buffer is queued at the
    end of every give instead of waiting for more samples.
    """

    def __init__(
        self,
        to_format: ChannelFormat,
        from_format: ChannelFormat,
        synchronize_buffers: bool = False,
    ) -> None:
        super().__init__(to_format, from_format)
        self.synchronize_buffers = synchronize_buffers
        self.current_consumer_buffer: AudioBuffer | None = None
        self.current_consumer_buffer_pos = 0

    def producer_pool_give(self, buffer: AudioBuffer) -> None:
        consumer = self._consumer()
        producer = self._producer()
        if buffer.sample_count:
            _check_buffer_format(buffer, self.from_format, check_channels=True)
        pos = 0
        while pos < buffer.sample_count:
            if self.current_consumer_buffer is None:
                current = consumer.get_free_buffer(True)
                if current is None or current.max_sample_count == 0:
                    raise RuntimeError("consumer pool has no buffer space")
                self.current_consumer_buffer = current
                self.current_consumer_buffer_pos = 0
            current = self.current_consumer_buffer
            count = min(
                buffer.sample_count - pos,
                current.max_sample_count - self.current_consumer_buffer_pos,
            )
            self._copy(current, self.current_consumer_buffer_pos, buffer, pos, count)
            pos += count
            self.current_consumer_buffer_pos += count
            if self.current_consumer_buffer_pos == current.max_sample_count:
                current.sample_count = current.max_sample_count
                consumer.queue_full_buffer(current)
                self.current_consumer_buffer = None
        if self.synchronize_buffers and self.current_consumer_buffer is not None:
            current = self.current_consumer_buffer
            current.sample_count = self.current_consumer_buffer_pos
            consumer.queue_full_buffer(current)
            self.current_consumer_buffer = None
        producer.queue_free_buffer(buffer)


def mono_to_mono_connection() -> BufferCopyingOnConsumerTakeConnection:
    """Mono S16 to mono S16, copied on consumer take."""
    return BufferCopyingOnConsumerTakeConnection(mono(SampleType.S16), mono(SampleType.S16))


def stereo_to_stereo_connection() -> BufferCopyingOnConsumerTakeConnection:
    """Stereo S16 to stereo S16, copied on consumer take."""
    return BufferCopyingOnConsumerTakeConnection(stereo(SampleType.S16), stereo(SampleType.S16))


def mono_to_stereo_connection() -> BufferCopyingOnConsumerTakeConnection:
    """Mono S16 duplicated into stereo S16, copied on consumer take."""
    return BufferCopyingOnConsumerTakeConnection(stereo(SampleType.S16), mono(SampleType.S16))


def mono_s8_to_mono_connection() -> BufferCopyingOnConsumerTakeConnection:
    """Mono S8 widened to mono S16, copied on consumer take."""
    return BufferCopyingOnConsumerTakeConnection(mono(SampleType.S16), mono(SampleType.S8))


def mono_s8_to_stereo_connection() -> BufferCopyingOnConsumerTakeConnection:
    """Mono S8 widened into stereo S16, copied on consumer take."""
    return BufferCopyingOnConsumerTakeConnection(stereo(SampleType.S16), mono(SampleType.S8))


def stereo_to_stereo_give_connection() -> ProducerPoolBlockingGiveConnection:
    """Stereo S16 to stereo S16, copied as the producer gives."""
    return ProducerPoolBlockingGiveConnection(stereo(SampleType.S16), stereo(SampleType.S16))