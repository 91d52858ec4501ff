"""Decoder for rows of the 2x2-block compressed "platypus" image format.

Each block encodes two horizontally adjacent pixels on two consecutive
lines. A decoded block gives one 32-bit word per line, holding the left
pixel in the low half and the right pixel in the high half. Pixels are
RGB555 by default, or RGB565 when ``rgb565`` is set.
"""

from __future__ import annotations

from dataclasses import dataclass

__all__ = ["DecodedRows", "decompress_row"]

_MASK32 = 0xFFFFFFFF

# Per-code deltas applied to one colour component of a 2x2 block, written as
# the four digits: line 0 left, line 0 right, line 1 left, line 1 right.
_DELTA_CODES = (
    "0000 0010 0111 0110 1110 0100 0011 0121 "
    "0021 0211 0122 0101 1010 1120 1100 1210 "
    "0212 1020 2210 1200 0020 1021 0112 0201 "
    "0222 0022 2120 0132 0032 0133 0120 1011"
).split()


def _delta_pair(code: int) -> tuple[int, int]:
    l0, r0, l1, r1 = (int(digit) for digit in _DELTA_CODES[code])
    return l0 | (r0 << 16), l1 | (r1 << 16)


def _build_row_5_table() -> tuple[int, ...]:
    return tuple(word for code in range(len(_DELTA_CODES)) for word in _delta_pair(code))


def _build_row_222_table(gshift: int, bshift: int) -> tuple[int, ...]:
    words: list[int] = []
    for v in range(64):
        row0 = row1 = 0
        for shift, code in ((0, v & 3), (gshift, (v >> 2) & 3), (bshift, (v >> 4) & 3)):
            d0, d1 = _delta_pair(code)
            row0 += d0 << shift
            row1 += d1 << shift
        words.extend((row0, row1))
    return tuple(words)


_ROW_5_TABLE = _build_row_5_table()
_ROW_222_TABLE_555 = _build_row_222_table(5, 10)
_ROW_222_TABLE_565 = _build_row_222_table(6, 11)

_PIXEL_RSHIFT = 0


@dataclass
class DecodedRows:
    """Two decoded lines of words and the byte offset where the next row starts.

    Each word holds two pixels, the left one in the low 16 bits.
    ``next_offset`` is rounded up to a multiple of four.
    """

    row0: list[int]
    row1: list[int]
    next_offset: int

    @staticmethod
    def _split(words: list[int]) -> list[int]:
        pixels: list[int] = []
        for word in words:
            pixels.extend((word & 0xFFFF, word >> 16))
        return pixels

    def pixels(self) -> tuple[list[int], list[int]]:
        """The two lines as flat lists of 16-bit pixels."""
        return self._split(self.row0), self._split(self.row1)


class _Reader:
    def __init__(self, data: bytes, pos: int) -> None:
        self.data = data
        self.pos = pos

    def peek(self, count: int) -> bytes:
        end = self.pos + count
        if end > len(self.data):
            raise ValueError(
                f"compressed data ends at byte {len(self.data)}, block needs bytes up to {end}"
            )
        return self.data[self.pos:end]


def _decode_pair(block: bytes, rgb565: bool) -> tuple[int, int, int]:
    """Decode a block carrying two explicit colours; returns (row0, row1, length)."""
    first = int.from_bytes(block[0:2], "little")
    second = int.from_bytes(block[2:4], "little")
    top = (second << 16) | first
    is_raw = (block[2] & 0x20) if rgb565 else (block[3] & 0x80)
    if is_raw:
        return top, int.from_bytes(block[4:8], "little"), 8

    bottom = int.from_bytes(block[4:7], "little")
    if rgb565:
        mask = 0xFF210821
        high = bottom & mask
        bottom ^= high
        low = top & ((mask << 16) & _MASK32)
        top ^= low
        high |= low >> 13
        high ^= high >> 10
        high = ((high << 1) + ((high >> 11) & 1)) & _MASK32
        bottom |= (high << 24) & _MASK32
    else:
        mask = 0xFF018401
        high = bottom & mask
        bottom ^= high
        low = top & ((mask << 16) & _MASK32)
        top ^= low
        high |= low >> 15
        bottom |= ((high >> 10) << 24) & _MASK32
        bottom |= (high << 27) & _MASK32
    return top & _MASK32, bottom & _MASK32, 7


def _decode_delta(reader: _Reader, rgb565: bool) -> tuple[int, int, int]:
    """Decode a block of one colour plus per-pixel deltas; returns (row0, row1, length)."""
    head = reader.peek(3)
    base = int.from_bytes(head[0:2], "little")
    top = bottom = base | (base << 16)
    code = head[2]
    gshift, bshift = (6, 11) if rgb565 else (5, 10)

    wide = (code & 0x01) if rgb565 else (code & 0x80)
    if wide:
        extra = reader.peek(4)[3]
        code = (code >> 1) | (extra << 7) if rgb565 else (code << 8) | extra
        code <<= 1
        for shift, index in (
            (_PIXEL_RSHIFT, code & 0x3E),
            (gshift, (code >> 5) & 0x3E),
            (bshift, (code >> 10) & 0x3E),
        ):
            top += _ROW_5_TABLE[index] << shift
            bottom += _ROW_5_TABLE[index + 1] << shift
        return top & _MASK32, bottom & _MASK32, 4

    table = _ROW_222_TABLE_565 if rgb565 else _ROW_222_TABLE_555
    if rgb565:
        code >>= 2
    if code * 2 + 1 >= len(table):
        raise ValueError(f"delta code {code:#x} is out of range")
    top += table[code * 2]
    bottom += table[code * 2 + 1]
    return top & _MASK32, bottom & _MASK32, 3


def decompress_row(
    data: bytes | bytearray | memoryview,
    width: int,
    offset: int = 0,
    rgb565: bool = False,
) -> DecodedRows:
    """Decode ``width`` pixels of two lines starting at byte ``offset`` of ``data``.

    ``data`` is assumed to start on a word boundary; the returned offset of
    the next row is rounded up to a multiple of four bytes.
    """
    if width < 0:
        raise ValueError(f"width must not be negative, got {width}")
    buf = bytes(data)
    if not 0 <= offset <= len(buf):
        raise ValueError(f"offset {offset} lies outside the data")

    reader = _Reader(buf, offset)
    row0: list[int] = []
    row1: list[int] = []
    for _ in range(0, width, 2):
        flags = reader.peek(2)
        paired = (flags[0] & 0x20) if rgb565 else (flags[1] & 0x80)
        if paired:
            block = reader.peek(4)
            long_form = (block[2] & 0x20) if rgb565 else (block[3] & 0x80)
            word0, word1, length = _decode_pair(reader.peek(8 if long_form else 7), rgb565)
        else:
            word0, word1, length = _decode_delta(reader, rgb565)
        reader.pos += length
        row0.append(word0)
        row1.append(word1)

    end = reader.pos + ((-reader.pos) & 3)
    return DecodedRows(row0, row1, end)