import pytest

from pico_extras.platypus import DecodedRows, decompress_row


def _word(lo: int, hi: int) -> int:
    return lo | (hi << 16)


def test_pixels_split_words():
    colour = 0x1234
    data = bytes([colour & 0xFF, colour >> 8, 0x00, 0x00])
    top, bottom = decompress_row(data, 2).pixels()
    assert top == [colour, colour]
    assert bottom == [colour, colour]


def test_decoded_rows_pixels_low_half_first():
    rows = DecodedRows([_word(7, 9)], [_word(3, 5)], 0)
    assert rows.pixels() == ([7, 9], [3, 5])


def test_raw_block_555_copies_eight_bytes():
    data = bytes([0x11, 0x82, 0x33, 0x84, 0x55, 0x66, 0x77, 0x08])
    rows = decompress_row(data, 2)
    assert rows.row0 == [int.from_bytes(data[0:4], "little")]
    assert rows.row1 == [int.from_bytes(data[4:8], "little")]
    assert rows.next_offset == len(data)


def test_raw_block_565_copies_eight_bytes():
    data = bytes([0x21, 0x02, 0x20, 0x04, 0x05, 0x06, 0x07, 0x08])
    rows = decompress_row(data, 2, rgb565=True)
    assert rows.row0 == [int.from_bytes(data[0:4], "little")]
    assert rows.row1 == [int.from_bytes(data[4:8], "little")]


def test_pair_block_555_without_extra_bits():
    data = bytes([0x00, 0x80, 0x00, 0x00, 0x00, 0x00, 0x00, 0xEE])
    rows = decompress_row(data, 2)
    assert rows.row0 == [int.from_bytes(data[0:4], "little")]
    assert rows.row1 == [0]
    # seven bytes consumed, rounded up to the word boundary
    assert rows.next_offset == 8


def test_pair_block_565_without_extra_bits():
    data = bytes([0x20, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0xEE])
    rows = decompress_row(data, 2, rgb565=True)
    assert rows.row0 == [int.from_bytes(data[0:4], "little")]
    assert rows.row1 == [0]
    assert rows.next_offset == 8


@pytest.mark.parametrize("rgb565,code", [(False, 0x01), (True, 0x04)])
def test_222_delta_adds_table_entry(rgb565, code):
    colour = 0x0102
    data = bytes([colour & 0xFF, colour >> 8, code, 0x00])
    rows = decompress_row(data, 2, rgb565=rgb565)
    base = _word(colour, colour)
    assert rows.row0 == [base]
    assert rows.row1 == [base + 0x00000001]
    assert rows.next_offset == 4


def test_5_delta_555_consumes_four_bytes():
    colour = 0x0102
    data = bytes([colour & 0xFF, colour >> 8, 0x80, 0x01])
    rows = decompress_row(data, 2)
    base = _word(colour, colour)
    assert rows.row0 == [base]
    assert rows.row1 == [base + 0x00000001]
    assert rows.next_offset == 4


def test_mixed_blocks_round_offset_up():
    colour = 0x0102
    block4 = bytes([colour & 0xFF, colour >> 8, 0x80, 0x00])
    block3 = bytes([colour & 0xFF, colour >> 8, 0x00])
    data = block4 + block3 + b"\xff"
    rows = decompress_row(data, 4)
    assert len(rows.row0) == 2
    assert len(rows.row1) == 2
    assert rows.row0 == [_word(colour, colour)] * 2
    assert rows.next_offset == len(data)


def test_odd_width_decodes_whole_blocks():
    colour = 0x0102
    block = bytes([colour & 0xFF, colour >> 8, 0x00])
    data = block * 2 + b"\x00\x00"
    rows = decompress_row(data, 3)
    assert len(rows.row0) == 2
    assert rows.row1 == rows.row0


def test_offset_skips_prefix():
    colour = 0x0405
    body = bytes([colour & 0xFF, colour >> 8, 0x00, 0x00])
    direct = decompress_row(body, 2)
    shifted = decompress_row(b"\xaa\xbb\xcc\xdd" + body, 2, offset=4)
    assert shifted.row0 == direct.row0
    assert shifted.row1 == direct.row1
    assert shifted.next_offset == direct.next_offset + 4


def test_consecutive_rows_chain_by_offset():
    first = bytes([0x02, 0x01, 0x00, 0x00])
    second = bytes([0x04, 0x03, 0x00, 0x00])
    rows_a = decompress_row(first + second, 2)
    rows_b = decompress_row(first + second, 2, offset=rows_a.next_offset)
    assert rows_b.row0 == decompress_row(second, 2).row0
    assert rows_b.next_offset == len(first + second)


def test_zero_width_gives_empty_rows():
    rows = decompress_row(b"\x00\x00\x00\x00", 0, offset=1)
    assert rows.row0 == []
    assert rows.row1 == []
    assert rows.next_offset == 4


def test_truncated_data_raises():
    with pytest.raises(ValueError):
        decompress_row(b"\x00\x80\x00", 2)


def test_truncated_four_byte_block_raises():
    with pytest.raises(ValueError):
        decompress_row(b"\x00\x00\x80", 2)


def test_out_of_range_delta_code_raises():
    with pytest.raises(ValueError):
        decompress_row(b"\x00\x00\x40\x00", 2)


def test_negative_width_raises():
    with pytest.raises(ValueError):
        decompress_row(b"\x00\x00\x00\x00", -2)


def test_offset_outside_data_raises():
    with pytest.raises(ValueError):
        decompress_row(b"\x00\x00\x00\x00", 2, offset=5)


@pytest.mark.parametrize("rgb565", [False, True])
def test_words_fit_in_32_bits(rgb565):
    data = bytes(range(0x10, 0x10 + 64))
    rows = decompress_row(data, 2, rgb565=rgb565)
    assert all(0 <= word <= 0xFFFFFFFF for word in rows.row0 + rows.row1)
    assert rows.next_offset % 4 == 0