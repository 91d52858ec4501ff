import struct

import pytest

from pico_extras.audio import CorrectionMode
from pico_extras.conversion import SampleType, mono, stereo
from pico_extras.pwm_encoding import (
    AUDIO_BUFFER_FORMAT_PIO_PWM_CMD1,
    CMD_BITS,
    FIXED_DITHER_TABLE,
    SILENCE_CMD,
    SILENCE_LEVEL,
    PwmEncoder,
    make_cmd,
    silence_buffer,
)


def _dither_bits(word):
    return bin(word >> CMD_BITS).count("1")


def _fixed_patterns():
    encoder = PwmEncoder(CorrectionMode.FIXED_DITHER)
    words = encoder.encode_fixed_dither([k << 5 for k in range(16)], SampleType.S16)
    assert all(w & ((1 << CMD_BITS) - 1) == make_cmd(64) for w in words)
    return [w >> CMD_BITS for w in words]


@pytest.mark.parametrize("quant", [0, 1, 63, 64, 127])
def test_make_cmd_holds_level_and_complement(quant):
    cmd = make_cmd(quant)
    assert cmd & 0x7F == quant
    assert cmd >> 7 == 127 - quant


def test_make_cmd_rejects_out_of_range():
    with pytest.raises(ValueError):
        make_cmd(128)
    with pytest.raises(ValueError):
        make_cmd(-1)


def test_silence_cmd_is_silence_level():
    assert SILENCE_CMD == make_cmd(SILENCE_LEVEL)
    assert SILENCE_CMD & 0x7F == 0x40


def test_fixed_dither_patterns_match_source_entries():
    patterns = _fixed_patterns()
    assert len(patterns) == 16
    assert patterns[0] == 0
    assert patterns[2] == 0b000000010000000
    assert patterns[3] == 0b000001000010000
    assert patterns[8] == 0b010101010101010
    assert patterns[13] == 0b011110111101111
    assert patterns[15] == 0b011111111111111
    assert [p << CMD_BITS for p in patterns] == list(FIXED_DITHER_TABLE)


def test_fixed_dither_density_grows_with_fraction():
    counts = [bin(p).count("1") for p in _fixed_patterns()]
    assert counts == sorted(counts)
    assert counts[0] == 0
    assert counts[-1] == 14


def test_default_mode_is_dither():
    assert PwmEncoder().correction_mode is CorrectionMode.DITHER


def test_noise_shaping_is_rejected():
    encoder = PwmEncoder()
    with pytest.raises(ValueError):
        encoder.set_correction_mode(CorrectionMode.NOISE_SHAPED_DITHER)
    assert encoder.correction_mode is CorrectionMode.DITHER


def test_encode_none_extremes():
    encoder = PwmEncoder(CorrectionMode.NONE)
    words = encoder.encode([0, -32768, 32767], SampleType.S16)
    assert words == [make_cmd(64), make_cmd(0), make_cmd(127)]


def test_encode_none_s8_matches_s16():
    encoder = PwmEncoder(CorrectionMode.NONE)
    s8 = [-128, -1, 0, 5, 127]
    assert encoder.encode_none(s8, mono(SampleType.S8)) == encoder.encode_none(
        [v << 8 for v in s8], mono(SampleType.S16)
    )


def test_encode_none_unsigned_matches_signed():
    encoder = PwmEncoder(CorrectionMode.NONE)
    s16 = [-20000, -1, 0, 1234, 30000]
    u16 = [(v & 0xFFFF) ^ 0x8000 for v in s16]
    assert encoder.encode_none(u16, SampleType.U16) == encoder.encode_none(s16, SampleType.S16)


def test_stereo_uses_first_channel_only():
    encoder = PwmEncoder(CorrectionMode.NONE)
    assert encoder.encode([100, -30000, 9000, 1], stereo(SampleType.S16)) == encoder.encode(
        [100, 9000], mono(SampleType.S16)
    )


def test_ragged_stereo_rejected():
    with pytest.raises(ValueError):
        PwmEncoder().encode([1, 2, 3], stereo(SampleType.S16))


def test_out_of_range_sample_rejected():
    with pytest.raises(ValueError):
        PwmEncoder().encode([40000], SampleType.S16)


def test_fixed_dither_pattern_from_fraction():
    encoder = PwmEncoder(CorrectionMode.FIXED_DITHER)
    words = encoder.encode([0, 0x100], SampleType.S16)
    assert words[0] == make_cmd(64)
    assert words[1] == make_cmd(64) | (0b010101010101010 << CMD_BITS)


def test_dither_zero_fraction_has_no_dither_bits():
    encoder = PwmEncoder()
    words = encoder.encode([0, 0x200, -0x400], SampleType.S16)
    assert words == encoder.encode_none([0, 0x200, -0x400], SampleType.S16)
    assert encoder.dither_error == 0


def test_dither_half_fraction_sets_half_the_bits():
    encoder = PwmEncoder()
    words = encoder.encode([0x100] * 4, SampleType.S16)
    assert all(w & 0x3FFF == make_cmd(64) for w in words)
    assert all(_dither_bits(w) == 8 for w in words)


@pytest.mark.parametrize("fraction", [1, 37, 200, 511])
def test_dither_average_tracks_fraction(fraction):
    encoder = PwmEncoder()
    count = 50
    words = encoder.encode([fraction] * count, SampleType.S16)
    ones = sum(_dither_bits(w) for w in words)
    assert abs(ones - count * 16 * fraction / 512) <= 1


def test_dither_state_carries_between_calls():
    samples = [3, 170, -900, 4095, 511, 12, -7]
    whole = PwmEncoder().encode(samples, SampleType.S16)
    split = PwmEncoder()
    parts = split.encode(samples[:3], SampleType.S16) + split.encode(samples[3:], SampleType.S16)
    assert parts == whole


def test_encode_dispatches_on_mode():
    samples = [17, -300, 1000]
    encoder = PwmEncoder()
    encoder.set_correction_mode(CorrectionMode.FIXED_DITHER)
    assert encoder.encode(samples, SampleType.S16) == PwmEncoder().encode_fixed_dither(
        samples, SampleType.S16
    )
    encoder.set_correction_mode(CorrectionMode.NONE)
    assert encoder.encode(samples, SampleType.S16) == PwmEncoder().encode_none(
        samples, SampleType.S16
    )


def test_silence_buffer_contents():
    buffer = silence_buffer(8)
    assert buffer.sample_count == 8
    assert buffer.max_sample_count == 8
    assert buffer.format.sample_stride == 4
    assert buffer.format.format.format == AUDIO_BUFFER_FORMAT_PIO_PWM_CMD1
    words = struct.unpack("<8I", bytes(buffer.buffer.bytes))
    assert set(words) == {SILENCE_CMD}


def test_silence_buffer_default_length():
    assert silence_buffer().sample_count == 256


def test_silence_buffer_rejects_empty():
    with pytest.raises(ValueError):
        silence_buffer(0)