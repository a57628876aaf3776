import logging
from typing import Iterator

import numpy as np
from PIL import Image

from rasterstack.compositing.blend import flatten_layers
from rasterstack.errors import AllocationFailure, DimensionMismatch, ImageDestroyedError, InvalidIndex

from .color import get_b, get_g, get_r
from .layer import Layer, _validate_size

logger = logging.getLogger(__name__)

INITIAL_LAYER_CAPACITY = 4
LAYER_GROWTH_FACTOR = 2


class LayeredImage:
    """A fixed-size canvas holding an ordered stack of shared layers.

    Index 0 is the bottom of the stack and the last index is the top; this is
    also the compositing order. The image owns one reference to every layer it
    holds and gives it back on ``remove_layer`` or ``destroy``.
    """

    def __init__(self, width: int, height: int) -> None:
        _validate_size(width, height)
        self.width = int(width)
        self.height = int(height)
        self._layers: list[Layer] | None = []
        self._capacity = INITIAL_LAYER_CAPACITY

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    @property
    def capacity(self) -> int:
        """Nominal stack capacity: starts at 4 and doubles when a push overflows it.

        Bookkeeping only. The backing ``list`` manages its own storage, so this
        number does not correspond to any reserved memory.
        """
        return self._capacity

    @property
    def destroyed(self) -> bool:
        return self._layers is None

    @property
    def layers(self) -> tuple[Layer, ...]:
        """Snapshot of the stack, bottom first. Holding it does not retain anything."""
        return tuple(self._checked_layers())

    @property
    def num_layers(self) -> int:
        return len(self._checked_layers())

    def _checked_layers(self) -> list[Layer]:
        if self._layers is None:
            raise ImageDestroyedError("Image was used after destroy()")
        return self._layers

    def add_existing_layer(self, layer: Layer) -> Layer:
        """Push ``layer`` on top of the stack and take a reference to it.

        The caller keeps its own reference and is expected to release it once
        the image should be the sole owner.

        Raises:
            DimensionMismatch: If the layer size differs from the image size.
            AllocationFailure: If the stack could not grow.
        """
        layers = self._checked_layers()
        if layer.size != self.size:
            logger.warning(f"Layer size {layer.size} does not match image size {self.size}")
            raise DimensionMismatch(
                f"Layer is {layer.width}x{layer.height} but image is {self.width}x{self.height}"
            )
        layer.retain()
        try:
            layers.append(layer)
        except MemoryError as err:
            layer.release()
            raise AllocationFailure("Unable to grow layer stack") from err
        if len(layers) > self._capacity:
            self._capacity *= LAYER_GROWTH_FACTOR
        logger.debug(f"Added layer at index {len(layers) - 1}")
        return layer

    def add_layer(self) -> Layer:
        """Create a blank layer sized to the image and push it on top.

        The returned layer is owned by the image only (refcount 1). Callers
        that keep it past ``remove_layer`` or ``destroy`` must ``retain()`` it.
        """
        layer = Layer(self.width, self.height)
        with layer:
            self.add_existing_layer(layer)
        return layer

    def remove_layer(self, index: int) -> None:
        """Release the layer at ``index`` and shift the ones above it down."""
        layers = self._checked_layers()
        if not 0 <= index < len(layers):
            logger.warning(f"Invalid layer index {index}")
            raise InvalidIndex(f"Layer index {index} out of range [0, {len(layers)})")
        layer = layers.pop(index)
        layer.release()
        logger.debug(f"Removed layer at index {index}")

    def destroy(self) -> None:
        """Release every held layer. The image cannot be used afterwards."""
        layers = self._checked_layers()
        for layer in layers:
            layer.release()
        self._layers = None
        logger.debug(f"Destroyed {self.width}x{self.height} image")

    def flatten(self) -> np.ndarray:
        """Composite the whole stack into a ``(height, width)`` ``uint32`` array."""
        return flatten_layers(self._checked_layers(), self.width, self.height)

    def to_pil(self) -> Image.Image:
        """Flattened RGB PIL image."""
        flat = self.flatten()
        rgb = np.stack([get_r(flat), get_g(flat), get_b(flat)], axis=-1).astype(np.uint8)
        return Image.fromarray(rgb)

    def describe(self) -> str:
        """Human-readable summary of the stack.

        Returns:
            One header line with the image size and layer count, then one line
            per layer (bottom first) with its size and refcount.
        """
        layers = self._checked_layers()
        lines = [f"Image: {self.width}x{self.height}, Layers: {len(layers)}"]
        for i, layer in enumerate(layers):
            lines.append(f"  Layer {i}: {layer.width}x{layer.height}, Refcount: {layer.refcount}")
        return "\n".join(lines)

    def log_info(self) -> None:
        """Log ``describe()`` line by line at INFO."""
        for line in self.describe().splitlines():
            logger.info(line)

    def __len__(self) -> int:
        return self.num_layers

    def __getitem__(self, index: int) -> Layer:
        return self._checked_layers()[index]

    def __iter__(self) -> Iterator[Layer]:
        return iter(self.layers)

    def __enter__(self) -> "LayeredImage":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if not self.destroyed:
            self.destroy()

    def __repr__(self) -> str:
        if self.destroyed:
            return f"LayeredImage({self.width}x{self.height}, destroyed)"
        return f"LayeredImage({self.width}x{self.height}, layers={len(self._layers)})"


def create_image(width: int, height: int) -> LayeredImage:
    """Create an empty image with a fixed canvas size.

    Args:
        width: Canvas width in pixels.
        height: Canvas height in pixels.

    Returns:
        ``LayeredImage`` with no layers.
    """
    return LayeredImage(width, height)
