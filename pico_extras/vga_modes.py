"""Built-in video timings and the display modes that use them."""

from __future__ import annotations

from functools import lru_cache

from .scanvideo import ScanvideoMode, ScanvideoTiming

__all__ = ["timings", "modes", "get_mode", "get_timing"]

PIO_PROGRAM = "video_24mhz_composable"

_TIMING_PREFIX = "vga_timing_"
_MODE_PREFIX = "vga_mode_"


def _timing(
    clock_freq: int,
    h: tuple[int, int, int, int],
    v: tuple[int, int, int, int],
    h_active: int,
    v_active: int,
    *,
    enable_clock: int = 0,
    enable_den: int = 0,
) -> ScanvideoTiming:
    h_front_porch, h_pulse, h_total, h_sync_polarity = h
    v_front_porch, v_pulse, v_total, v_sync_polarity = v
    return ScanvideoTiming(
        clock_freq=clock_freq,
        h_active=h_active,
        v_active=v_active,
        h_front_porch=h_front_porch,
        h_pulse=h_pulse,
        h_total=h_total,
        h_sync_polarity=h_sync_polarity,
        v_front_porch=v_front_porch,
        v_pulse=v_pulse,
        v_total=v_total,
        v_sync_polarity=v_sync_polarity,
        enable_clock=enable_clock,
        clock_polarity=0,
        enable_den=enable_den,
    )


def _mode(timing: ScanvideoTiming, width: int, height: int, xscale: int, yscale: int) -> ScanvideoMode:
    return ScanvideoMode(
        default_timing=timing,
        pio_program=PIO_PROGRAM,
        width=width,
        height=height,
        xscale=xscale,
        yscale=yscale,
    )


@lru_cache(maxsize=None)
def _tables(use_48mhz: bool) -> tuple[dict[str, ScanvideoTiming], dict[str, ScanvideoMode]]:
    t: dict[str, ScanvideoTiming] = {}
    m: dict[str, ScanvideoMode] = {}

    if use_48mhz:
        t["640x480_60_default"] = _timing(24000000, (16, 64, 800, 1), (1, 2, 500, 1), 640, 480)
        t["800x600_54_default"] = _timing(24000000, (24, 80, 1008, 0), (1, 3, 619, 0), 800, 600)
        t["800x600_60_default"] = _timing(38400000, (32, 80, 1024, 0), (1, 3, 625, 0), 800, 600)
        t["1024x768_63_default"] = _timing(24000000, (56, 104, 1344, 0), (1, 3, 797, 0), 1024, 768)
        t["1280x1024_40_default"] = _timing(24000000, (56, 128, 1648, 0), (1, 3, 1048, 0), 1280, 1024)
        t["648x480_60_alt1"] = _timing(24000000, (16, 48, 768, 1), (10, 2, 523, 1), 640, 480)
        t["648x480_50ish"] = _timing(24000000, (56, 72, 896, 1), (30, 2, 536, 1), 640, 480)
        t["648x480_50ish2"] = _timing(24000000, (32, 64, 832, 1), (27, 2, 577, 1), 640, 480)
        t["648x480_50ish3"] = _timing(24000000, (72, 96, 928, 1), (8, 2, 518, 1), 640, 480)
        t["wide_480_50"] = _timing(
            24000000, (32, 48, 960, 0), (1, 2, 500, 0), 800, 480, enable_clock=1, enable_den=1
        )
        t["512x576_50_attempt1"] = _timing(24000000, (64, 64, 768, 1), (30, 2, 612, 1), 512, 576)
        t["512x576_60_attempt1"] = _timing(24000000, (64, 64, 768, 1), (30, 2, 612, 1), 512, 576)
        t["800x600_38"] = _timing(24000000, (24, 80, 1008, 1), (3, 4, 621, 1), 800, 600)

        timing_50 = t["648x480_50ish3"]
        m["tft_800x480_50"] = _mode(t["wide_480_50"], 800, 480, 1, 1)
        m["tft_400x240_50"] = _mode(t["wide_480_50"], 400, 240, 2, 2)
        m["256x192_50"] = _mode(t["512x576_50_attempt1"], 256, 192, 2, 3)
        m["800x600_38"] = _mode(t["800x600_38"], 800, 600, 1, 1)
        m["800x600_54"] = _mode(t["800x600_54_default"], 800, 600, 1, 1)
        m["800x600_60"] = _mode(t["800x600_60_default"], 800, 600, 1, 1)
        m["1024x768_63"] = _mode(t["1024x768_63_default"], 1024, 768, 1, 1)
        m["1280x1024_40"] = _mode(t["1280x1024_40_default"], 1280, 1024, 1, 1)
        m["640x480_50"] = _mode(timing_50, 640, 480, 1, 1)
        m["320x240_50"] = _mode(timing_50, 320, 240, 2, 2)
    else:
        t["640x480_60_default"] = _timing(25000000, (16, 64, 800, 1), (1, 2, 523, 1), 640, 480)

    vga = t["640x480_60_default"]
    m["160x120_60"] = _mode(vga, 160, 120, 4, 4)
    m["213x160_60"] = _mode(vga, 213, 160, 3, 3)
    m["320x240_60"] = _mode(vga, 320, 240, 2, 2)
    m["640x480_60"] = _mode(vga, 640, 480, 1, 1)

    t["1024x768_60_default"] = _timing(65000000, (24, 136, 1344, 0), (3, 6, 806, 1), 1024, 768)
    m["1024x768_60"] = _mode(t["1024x768_60_default"], 1024, 768, 1, 1)

    t["1280x720_60_default"] = _timing(74250000, (110, 40, 1650, 1), (5, 5, 750, 1), 1280, 720)
    m["720p_60"] = _mode(t["1280x720_60_default"], 1280, 720, 1, 1)

    t["1920x1080_60_default"] = _timing(148500000, (88, 44, 2200, 1), (4, 5, 1125, 1), 1920, 1080)
    m["1080p_60"] = _mode(t["1920x1080_60_default"], 1920, 1080, 1, 1)

    t["1280x1024_60_default"] = _timing(108000000, (48, 112, 1688, 0), (1, 3, 1066, 0), 1280, 1024)
    # The 1280x1024 mode is defined over the 1080p timing.
    m["1280x1024_60"] = _mode(t["1920x1080_60_default"], 1280, 1024, 1, 1)

    t["1920x1440_60_default"] = _timing(234000000, (128, 208, 2600, 1), (1, 3, 1500, 0), 1920, 1440)
    m["1440p_60"] = _mode(t["1920x1440_60_default"], 1920, 1440, 1, 1)

    return (
        {_TIMING_PREFIX + name: timing for name, timing in t.items()},
        {_MODE_PREFIX + name: mode for name, mode in m.items()},
    )


def timings(use_48mhz: bool = False) -> dict[str, ScanvideoTiming]:
    """All timings available for the chosen clock configuration, by name."""
    return dict(_tables(bool(use_48mhz))[0])


def modes(use_48mhz: bool = False) -> dict[str, ScanvideoMode]:
    """All modes available for the chosen clock configuration, by name."""
    return dict(_tables(bool(use_48mhz))[1])


def _lookup(table: dict, prefix: str, name: str, kind: str):
    for key in (name, prefix + name):
        if key in table:
            return table[key]
    raise KeyError(f"unknown {kind} {name!r}")


def get_mode(name: str, use_48mhz: bool = False) -> ScanvideoMode:
    """Look up a mode by full name (``vga_mode_640x480_60``) or short name (``640x480_60``)."""
    return _lookup(_tables(bool(use_48mhz))[1], _MODE_PREFIX, name, "mode")


def get_timing(name: str, use_48mhz: bool = False) -> ScanvideoTiming:
    """Look up a timing by full or short name."""
    return _lookup(_tables(bool(use_48mhz))[0], _TIMING_PREFIX, name, "timing")