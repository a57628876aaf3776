import logging

import numpy as np
from PIL import Image

from rasterstack.errors import AllocationFailure, LayerReleasedError

from .color import argb, get_a, get_b, get_g, get_r

logger = logging.getLogger(__name__)


def _validate_size(width: int, height: int) -> None:
    for name, value in (("width", width), ("height", height)):
        if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
            raise TypeError(f"{name} must be an int, got {type(value).__name__}")
        if value <= 0:
            raise ValueError(f"{name} must be positive, got {value}")


class Layer:
    """A reference-counted ARGB pixel buffer.

    A new layer starts with one owner, its creator. Every ``retain()`` must be
    balanced by a ``release()``; the buffer is dropped synchronously when the
    count reaches zero and any later pixel access raises
    ``LayerReleasedError``.

    Pixels are stored row-major as a ``(height, width)`` ``uint32`` array of
    packed ``0xAARRGGBB`` values.
    """

    def __init__(self, width: int, height: int) -> None:
        """
        Args:
            width: Layer width in pixels, positive.
            height: Layer height in pixels, positive.

        Raises:
            AllocationFailure: If the ``width * height`` buffer cannot be allocated.
        """
        _validate_size(width, height)
        try:
            pixels = np.zeros((height, width), dtype=np.uint32)
        except (MemoryError, ValueError, OverflowError) as err:
            # numpy reports sizes beyond the address space as ValueError ("array is too big")
            raise AllocationFailure(f"Unable to allocate {width}x{height} layer buffer") from err
        self.width = int(width)
        self.height = int(height)
        self._pixels: np.ndarray | None = pixels
        self._refcount = 1

    @property
    def refcount(self) -> int:
        return self._refcount

    @property
    def released(self) -> bool:
        return self._pixels is None

    @property
    def size(self) -> tuple[int, int]:
        """(width, height), PIL order."""
        return self.width, self.height

    @property
    def pixels(self) -> np.ndarray:
        """Writable ``(height, width)`` view of the buffer."""
        if self._pixels is None:
            raise LayerReleasedError(f"{self!r} was used after its last owner released it")
        return self._pixels

    def retain(self) -> "Layer":
        """Add one owner.

        Returns:
            The layer itself, so ``kept = image[0].retain()`` reads naturally.

        Raises:
            LayerReleasedError: If the layer has already been freed.
        """
        if self._pixels is None:
            raise LayerReleasedError(f"Cannot retain {self!r}: already released")
        self._refcount += 1
        return self

    def release(self) -> None:
        """Drop one owner; frees the buffer when no owners remain."""
        if self._pixels is None:
            raise LayerReleasedError(f"Cannot release {self!r}: already released")
        self._refcount -= 1
        if self._refcount <= 0:
            self._refcount = 0
            logger.debug(f"Freeing {self.width}x{self.height} layer buffer")
            self._pixels = None

    def set_pixel(self, x: int, y: int, color: int) -> None:
        """Write one pixel; coordinates outside the layer are ignored."""
        if 0 <= x < self.width and 0 <= y < self.height:
            self.pixels[y, x] = color

    def get_pixel(self, x: int, y: int) -> int:
        """Read one packed ARGB pixel.

        Raises:
            IndexError: If ``(x, y)`` lies outside the layer.
        """
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"Pixel ({x}, {y}) outside {self.width}x{self.height} layer")
        return int(self.pixels[y, x])

    def fill(self, color: int) -> None:
        """Set every pixel to ``color`` (packed ARGB)."""
        self.pixels[...] = color

    @classmethod
    def from_pil(cls, image: Image.Image) -> "Layer":
        """Build a layer from a PIL image; the caller owns the single reference."""
        rgba = np.asarray(image.convert("RGBA"), dtype=np.uint32)
        layer = cls(image.width, image.height)
        layer.pixels[...] = argb(rgba[..., 3], rgba[..., 0], rgba[..., 1], rgba[..., 2])
        return layer

    def to_pil(self) -> Image.Image:
        """Copy the buffer into a new RGBA PIL image, alpha included."""
        pixels = self.pixels
        rgba = np.stack([get_r(pixels), get_g(pixels), get_b(pixels), get_a(pixels)], axis=-1).astype(np.uint8)
        return Image.fromarray(rgba)

    def __enter__(self) -> "Layer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        # Ends the creator's ownership; a container that retained the layer keeps it alive.
        if not self.released:
            self.release()

    def __repr__(self) -> str:
        state = "released" if self.released else f"refcount={self._refcount}"
        return f"Layer({self.width}x{self.height}, {state})"


def create_layer(width: int, height: int) -> Layer:
    """Create a transparent black layer owned once by the caller.

    Args:
        width: Layer width in pixels.
        height: Layer height in pixels.

    Returns:
        New ``Layer`` with refcount 1.
    """
    return Layer(width, height)


def retain_layer(layer: Layer | None) -> None:
    """``layer.retain()`` that tolerates ``None``."""
    if layer is not None:
        layer.retain()


def release_layer(layer: Layer | None) -> None:
    """``layer.release()`` that tolerates ``None``."""
    if layer is not None:
        layer.release()
