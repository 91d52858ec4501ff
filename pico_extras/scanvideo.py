"""Scan-out video types: timings, modes, scanline buffers and pixel packing."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum

__all__ = [
    "ScanlineStatus",
    "ScanvideoTiming",
    "ScanvideoMode",
    "ScanlineBuffer",
    "frame_number",
    "scanline_number",
    "pixel_from_rgb8",
    "pixel_from_rgb5",
    "r5_from_pixel",
    "g5_from_pixel",
    "b5_from_pixel",
]

BPP = 16
PLANE_COUNT = 1
SCANLINE_BUFFER_COUNT = 8
MAX_SCANLINE_BUFFER_WORDS = 180

PIXEL_RSHIFT = 0
PIXEL_GSHIFT = 5
PIXEL_BSHIFT = 10


class ScanlineStatus(IntEnum):
    """Outcome reported for a generated scanline."""

    OK = 1
    ERROR = 2
    SKIPPED = 3


@dataclass(frozen=True)
class ScanvideoTiming:
    """Pixel clock and horizontal/vertical sync timing of a video signal."""

    clock_freq: int
    h_active: int
    v_active: int
    h_front_porch: int
    h_pulse: int
    h_total: int
    h_sync_polarity: int
    v_front_porch: int
    v_pulse: int
    v_total: int
    v_sync_polarity: int
    enable_clock: int = 0
    clock_polarity: int = 0
    enable_den: int = 0


@dataclass(frozen=True)
class ScanvideoMode:
    """A display resolution scaled up onto a timing.

    ``yscale_denominator`` above 1 divides ``yscale`` to give a fractional
    vertical stretch.
    """

    default_timing: ScanvideoTiming
    pio_program: str
    width: int
    height: int
    xscale: int
    yscale: int
    yscale_denominator: int = 0


@dataclass(eq=False)
class ScanlineBuffer:
    """Words of scanline data for one plane, with the id of the line they show."""

    scanline_id: int = 0
    data: list[int] = field(default_factory=lambda: [0] * MAX_SCANLINE_BUFFER_WORDS)
    data_used: int = 0
    user_data: object = None
    status: int = 0

    @property
    def data_max(self) -> int:
        return len(self.data)

    @property
    def frame_number(self) -> int:
        return frame_number(self.scanline_id)

    @property
    def scanline_number(self) -> int:
        return scanline_number(self.scanline_id)


def frame_number(scanline_id: int) -> int:
    """Frame number held in the top half of a scanline id; it wraps at 16 bits."""
    return (scanline_id >> 16) & 0xFFFF


def scanline_number(scanline_id: int) -> int:
    """Line number held in the bottom half of a scanline id."""
    return scanline_id & 0xFFFF


def _check_range(name: str, value: int, limit: int) -> None:
    if not 0 <= value <= limit:
        raise ValueError(f"{name} must be between 0 and {limit}, got {value}")


def pixel_from_rgb8(r: int, g: int, b: int) -> int:
    """Pack 8-bit components into a pixel, keeping the top five bits of each."""
    for name, value in (("r", r), ("g", g), ("b", b)):
        _check_range(name, value, 0xFF)
    return ((b >> 3) << PIXEL_BSHIFT) | ((g >> 3) << PIXEL_GSHIFT) | ((r >> 3) << PIXEL_RSHIFT)


def pixel_from_rgb5(r: int, g: int, b: int) -> int:
    """Pack 5-bit components into a pixel."""
    for name, value in (("r", r), ("g", g), ("b", b)):
        _check_range(name, value, 0x1F)
    return (b << PIXEL_BSHIFT) | (g << PIXEL_GSHIFT) | (r << PIXEL_RSHIFT)


def r5_from_pixel(pixel: int) -> int:
    """Red component of a pixel, 0..31."""
    return (pixel >> PIXEL_RSHIFT) & 0x1F


def g5_from_pixel(pixel: int) -> int:
    """Green component of a pixel, 0..31."""
    return (pixel >> PIXEL_GSHIFT) & 0x1F


def b5_from_pixel(pixel: int) -> int:
    """Blue component of a pixel, 0..31."""
    return (pixel >> PIXEL_BSHIFT) & 0x1F