"""Encoding of PCM samples into PIO PWM command words.

Each sample becomes one 32-bit command word. The low 14 bits hold the
quantised 7-bit level and its complement; the bits above them carry a
per-cycle dither pattern that the PWM program uses to add one extra step
of duty on selected cycles.
"""

from __future__ import annotations

import struct
from collections.abc import Sequence

from .audio import AudioBuffer, AudioBufferFormat, AudioFormat, CorrectionMode
from .buffer import alloc_buffer
from .conversion import ChannelFormat, SampleType, convert_sample, mono

__all__ = [
    "PwmEncoder",
    "make_cmd",
    "silence_buffer",
    "FRACTIONAL_BITS",
    "QUANTIZED_BITS",
    "CMD_BITS",
    "DITHER_BITS",
    "CYCLES_PER_SAMPLE",
    "CYCLES_PER_WORD",
    "OUTER_LOOP_COUNT",
    "SILENCE_LEVEL",
    "SILENCE_CMD",
    "FIXED_DITHER_TABLE",
    "AUDIO_CARRIER_FREQ",
    "PWM_SAMPLE_FREQ",
    "AUDIO_BUFFER_FORMAT_PIO_PWM_CMD1",
    "AUDIO_BUFFER_FORMAT_PIO_PWM_CMD3",
    "SILENCE_BUFFER_SAMPLE_LENGTH",
]

FRACTIONAL_BITS = 9
QUANTIZED_BITS = 7
FRACTIONAL_MASK = (1 << FRACTIONAL_BITS) - 1
QUANTIZED_MAX = (1 << QUANTIZED_BITS) - 1
QUANTIZED_MASK = QUANTIZED_MAX
CMD_BITS = QUANTIZED_BITS * 2
DITHER_BITS = 1
CYCLES_PER_SAMPLE = 16
CYCLES_PER_WORD = CYCLES_PER_SAMPLE // DITHER_BITS
OUTER_LOOP_COUNT = DITHER_BITS

SILENCE_LEVEL = 0x40

AUDIO_CARRIER_FREQ = 350364
PWM_SAMPLE_FREQ = 22058
AUDIO_BUFFER_FORMAT_PIO_PWM_FIRST = 1000
AUDIO_BUFFER_FORMAT_PIO_PWM_CMD1 = AUDIO_BUFFER_FORMAT_PIO_PWM_FIRST
AUDIO_BUFFER_FORMAT_PIO_PWM_CMD3 = AUDIO_BUFFER_FORMAT_PIO_PWM_FIRST + 1
SILENCE_BUFFER_SAMPLE_LENGTH = 256

_CMD_SIZE = 4
_FIXED_DITHER_LEVELS = 16
_FIXED_DITHER_CYCLES = 15


def make_cmd(quant: int) -> int:
    """Build the command word for a 7-bit level: the level and its complement."""
    if not 0 <= quant <= QUANTIZED_MAX:
        raise ValueError(f"level must be between 0 and {QUANTIZED_MAX}, got {quant}")
    return quant | ((QUANTIZED_MAX - quant) << QUANTIZED_BITS)


SILENCE_CMD = make_cmd(SILENCE_LEVEL)


def _fixed_dither_pattern(level: int) -> int:
    """Spread ``level`` sixteenths of extra duty evenly over the dither cycles."""
    error = 0
    bits = 0
    for _ in range(_FIXED_DITHER_CYCLES):
        error += level
        bits <<= 1
        if error >= _FIXED_DITHER_LEVELS:
            bits |= 1
            error -= _FIXED_DITHER_LEVELS
    return bits << CMD_BITS


FIXED_DITHER_TABLE: tuple[int, ...] = tuple(
    _fixed_dither_pattern(level) for level in range(_FIXED_DITHER_LEVELS)
)


def _first_channel(
    samples: Sequence[int], from_format: ChannelFormat | SampleType
) -> tuple[SampleType, list[int]]:
    fmt = mono(from_format) if isinstance(from_format, SampleType) else from_format
    values = list(samples)
    if len(values) % fmt.channel_count:
        raise ValueError("sample count is not a whole number of frames")
    return fmt.sample_type, values[:: fmt.channel_count]


def _quantize_s16(sample: int) -> int:
    """Top seven bits of a signed 16-bit sample, offset to 0..127."""
    return (((sample & 0xFFFF) ^ 0x8000) >> FRACTIONAL_BITS) & QUANTIZED_MASK


class PwmEncoder:
    """Turns PCM samples into PWM command words using a chosen correction mode.

    Error diffusion carries its residual error from one call to the next, so
    a stream may be encoded in pieces.
    """

    def __init__(self, correction_mode: CorrectionMode = CorrectionMode.DITHER) -> None:
        self.correction_mode = CorrectionMode.DITHER
        self.dither_error = 0
        self.set_correction_mode(correction_mode)

    def set_correction_mode(self, mode: CorrectionMode) -> None:
        """Select plain quantisation, fixed dither or error-diffusion dither."""
        mode = CorrectionMode(mode)
        if mode not in (CorrectionMode.NONE, CorrectionMode.DITHER, CorrectionMode.FIXED_DITHER):
            raise ValueError(f"correction mode {mode.name} is not supported")
        self.correction_mode = mode

    def encode(self, samples: Sequence[int], from_format: ChannelFormat | SampleType) -> list[int]:
        """Encode the first channel of each frame with the current correction mode."""
        if self.correction_mode is CorrectionMode.DITHER:
            return self.encode_dither(samples, from_format)
        if self.correction_mode is CorrectionMode.FIXED_DITHER:
            return self.encode_fixed_dither(samples, from_format)
        return self.encode_none(samples, from_format)

    def encode_none(
        self, samples: Sequence[int], from_format: ChannelFormat | SampleType
    ) -> list[int]:
        """Quantise each sample to seven bits with no dither."""
        sample_type, values = _first_channel(samples, from_format)
        words: list[int] = []
        for value in values:
            cmd = make_cmd(_quantize_s16(convert_sample(SampleType.S16, sample_type, value)))
            words.extend([cmd] * OUTER_LOOP_COUNT)
        return words

    def encode_fixed_dither(
        self, samples: Sequence[int], from_format: ChannelFormat | SampleType
    ) -> list[int]:
        """Quantise each sample and add a fixed pattern chosen by its fraction."""
        sample_type, values = _first_channel(samples, from_format)
        shift = FRACTIONAL_BITS - 4
        words: list[int] = []
        for value in values:
            s16 = convert_sample(SampleType.S16, sample_type, value)
            pattern = FIXED_DITHER_TABLE[(s16 >> shift) & (_FIXED_DITHER_LEVELS - 1)]
            cmd = make_cmd(_quantize_s16(s16))
            words.extend([cmd | pattern] * OUTER_LOOP_COUNT)
        return words

    def encode_dither(
        self, samples: Sequence[int], from_format: ChannelFormat | SampleType
    ) -> list[int]:
        """Quantise each sample and diffuse its fraction over the PWM cycles."""
        sample_type, values = _first_channel(samples, from_format)
        acc = self.dither_error
        last_sample_error = 0
        words: list[int] = []
        for value in values:
            sample = convert_sample(SampleType.U16, sample_type, value)
            sample_error = sample & FRACTIONAL_MASK
            acc += sample_error - last_sample_error
            last_sample_error = sample_error
            quant0 = (sample >> FRACTIONAL_BITS) & QUANTIZED_MASK
            for _ in range(OUTER_LOOP_COUNT):
                cmd = make_cmd(quant0)
                bit = CMD_BITS + DITHER_BITS - 1
                for _ in range(CYCLES_PER_WORD):
                    if acc >> FRACTIONAL_BITS:
                        cmd |= 1 << bit
                    acc = (acc & FRACTIONAL_MASK) + sample_error
                    bit += DITHER_BITS
                words.append(cmd)
        self.dither_error = acc - last_sample_error
        return words


def silence_buffer(sample_count: int = SILENCE_BUFFER_SAMPLE_LENGTH) -> AudioBuffer:
    """A buffer of ``sample_count`` silent PWM commands in the native PWM format."""
    if sample_count <= 0:
        raise ValueError(f"sample count must be positive, got {sample_count}")
    buffer_format = AudioBufferFormat(
        format=AudioFormat(
            sample_freq=PWM_SAMPLE_FREQ,
            format=AUDIO_BUFFER_FORMAT_PIO_PWM_CMD1,
            channel_count=1,
        ),
        sample_stride=_CMD_SIZE,
    )
    memory = alloc_buffer(sample_count * _CMD_SIZE)
    struct.pack_into(f"<{sample_count}I", memory.bytes, 0, *([SILENCE_CMD] * sample_count))
    return AudioBuffer(
        buffer=memory,
        format=buffer_format,
        max_sample_count=sample_count,
        sample_count=sample_count,
    )