"""Straight-alpha "over" compositing onto an opaque black background.

The arithmetic is integer-only and truncating::

    out = (fg * alpha + bg * (255 - alpha)) // 255

with exact pass-through when ``alpha`` is 0 (background kept) or 255
(foreground kept). A blended pixel is always written back fully opaque, so the
flattened result never carries partial transparency.
"""

from typing import Iterator, Sequence

import numpy as np

from rasterstack.core.color import BACKGROUND_COLOR, argb, get_a, get_b, get_g, get_r


def blend_pixels(bg: int, fg: int) -> int:
    """Blend one packed foreground pixel over one packed background pixel."""
    alpha = get_a(fg)
    if alpha == 0:
        return bg
    if alpha == 255:
        return fg
    inv_alpha = 255 - alpha
    r = (get_r(fg) * alpha + get_r(bg) * inv_alpha) // 255
    g = (get_g(fg) * alpha + get_g(bg) * inv_alpha) // 255
    b = (get_b(fg) * alpha + get_b(bg) * inv_alpha) // 255
    return argb(255, r, g, b)


def blend_arrays(bg: np.ndarray, fg: np.ndarray) -> np.ndarray:
    """Element-wise ``blend_pixels`` over ``uint32`` arrays of equal shape."""
    bg = bg.astype(np.uint32, copy=False)
    fg = fg.astype(np.uint32, copy=False)
    alpha = get_a(fg)
    inv_alpha = 255 - alpha
    r = (get_r(fg) * alpha + get_r(bg) * inv_alpha) // 255
    g = (get_g(fg) * alpha + get_g(bg) * inv_alpha) // 255
    b = (get_b(fg) * alpha + get_b(bg) * inv_alpha) // 255
    blended = (np.uint32(0xFF000000) | (r << 16) | (g << 8) | b).astype(np.uint32)
    return np.where(alpha == 0, bg, np.where(alpha == 255, fg, blended)).astype(np.uint32)


def composite_stack(layers: Sequence, pixel_index: int) -> int:
    """Flatten a single pixel (row-major index) through the whole stack, bottom first."""
    color = BACKGROUND_COLOR
    for layer in layers:
        color = blend_pixels(color, int(layer.pixels.flat[pixel_index]))
    return color


def flatten_rows(layers: Sequence, width: int, height: int) -> Iterator[np.ndarray]:
    """Yield flattened rows top to bottom; each row is independent of the others."""
    for y in range(height):
        row = np.full(width, BACKGROUND_COLOR, dtype=np.uint32)
        for layer in layers:
            row = blend_arrays(row, layer.pixels[y])
        yield row


def flatten_layers(layers: Sequence, width: int, height: int) -> np.ndarray:
    """Composite the stack into a ``(height, width)`` ``uint32`` array.

    Recomputed on every call; nothing is cached between calls.
    """
    result = np.full((height, width), BACKGROUND_COLOR, dtype=np.uint32)
    for layer in layers:
        result = blend_arrays(result, layer.pixels)
    return result
