"""Packed 0xAARRGGBB pixel helpers.

Functions accept plain ints or numpy arrays; array inputs are handled
element-wise so the same arithmetic serves the scalar and vectorised paths.
"""

import numpy as np

BINARY_THRESHOLD = 128


def argb(a: int, r: int, g: int, b: int) -> int:
    """Pack four 8-bit channels into one 32-bit ARGB value."""
    return ((a & 0xFF) << 24) | ((r & 0xFF) << 16) | ((g & 0xFF) << 8) | (b & 0xFF)


def get_a(color):
    return (color >> 24) & 0xFF


def get_r(color):
    return (color >> 16) & 0xFF


def get_g(color):
    return (color >> 8) & 0xFF


def get_b(color):
    return color & 0xFF


def unpack_argb(color: int) -> tuple[int, int, int, int]:
    """Split a packed pixel into ``(a, r, g, b)``."""
    color = int(color)
    return get_a(color), get_r(color), get_g(color), get_b(color)


def luminance(r, g, b):
    """Truncated ITU-R 601 luma: ``floor(0.299R + 0.587G + 0.114B)``.

    Evaluated in float64, left to right, then truncated toward zero. Every
    grayscale and bitmap conversion goes through here so PGM output,
    GRAYSCALE8 export and the PBM threshold always agree.
    """
    if isinstance(r, np.ndarray):
        value = 0.299 * r.astype(np.float64) + 0.587 * g.astype(np.float64) + 0.114 * b.astype(np.float64)
        return value.astype(np.uint8)
    return int(0.299 * r + 0.587 * g + 0.114 * b)


def is_dark(gray):
    """PBM convention: a pixel is black (bit set) when its luminance is below 128."""
    return gray < BINARY_THRESHOLD


BACKGROUND_COLOR = argb(255, 0, 0, 0)  # opaque black
WHITE = argb(255, 255, 255, 255)
