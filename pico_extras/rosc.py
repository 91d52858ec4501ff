"""Ring oscillator frequency code arithmetic and frequency search."""

from __future__ import annotations

from collections.abc import Callable, Iterator

__all__ = ["next_rosc_code", "rosc_codes", "find_freq", "check_div"]

MAX_ROSC_CODE = 0x77777777
MIN_DIV = 1
MAX_DIV = 31


def next_rosc_code(code: int) -> int:
    """Return the next numerically higher delay-stage code.

    Each nibble holds a drive strength of 0..7; the top bit of the result is
    set when called on the maximum code.
    """
    return ((code | 0x08888888) + 1) & 0xF7777777


def rosc_codes() -> Iterator[int]:
    """Yield every delay-stage code from 0 up to the maximum in order."""
    code = 0
    while code <= MAX_ROSC_CODE:
        yield code
        code = next_rosc_code(code)


def find_freq(low_mhz: int, high_mhz: int, measure_mhz: Callable[[int], int]) -> int | None:
    """Step through codes until ``measure_mhz(code)`` lands in ``[low_mhz, high_mhz]``.

    ``measure_mhz`` applies a code to the oscillator and returns the measured
    frequency in whole MHz. Returns that frequency, or None if no code fits.
    """
    for code in rosc_codes():
        mhz = measure_mhz(code)
        if low_mhz <= mhz <= high_mhz:
            return mhz
    return None


def check_div(div: int) -> int:
    """Validate a divider value, which must lie in 1..31."""
    if not MIN_DIV <= div <= MAX_DIV:
        raise ValueError(f"divider must be between {MIN_DIV} and {MAX_DIV}, got {div}")
    return div