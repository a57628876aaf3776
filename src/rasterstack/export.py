"""In-memory raw exports of a flattened image."""

import logging
from enum import Enum

import numpy as np

from rasterstack.core.color import get_b, get_g, get_r, is_dark, luminance
from rasterstack.core.image import LayeredImage
from rasterstack.errors import AllocationFailure

logger = logging.getLogger(__name__)


class ArrayDataFormat(Enum):
    RGBA32 = "rgba32"  # one uint32 0xAARRGGBB per pixel
    RGB24 = "rgb24"  # R, G, B bytes per pixel
    GRAYSCALE8 = "grayscale8"  # one luminance byte per pixel
    BINARY1 = "binary1"  # one bit per pixel, MSB first, 1 = black


def export_to_array(image: LayeredImage, fmt: ArrayDataFormat) -> np.ndarray:
    """Flatten ``image`` and return it as a 1-D array in the requested encoding.

    Array lengths: RGBA32 ``w*h`` (``uint32``), RGB24 ``w*h*3``, GRAYSCALE8
    ``w*h`` and BINARY1 ``ceil(w*h/8)`` (``uint8``). BINARY1 packs the whole
    image as one bit stream, so rows are not byte-aligned as they are in PBM.

    Raises:
        ValueError: If ``image`` is None or ``fmt`` is unknown.
        AllocationFailure: If the output array could not be allocated.
    """
    if image is None:
        raise ValueError("image is required")
    fmt = ArrayDataFormat(fmt)
    try:
        flat = image.flatten().reshape(-1)
        if fmt is ArrayDataFormat.RGBA32:
            return flat.copy()
        r, g, b = get_r(flat), get_g(flat), get_b(flat)
        if fmt is ArrayDataFormat.RGB24:
            return np.stack([r, g, b], axis=-1).astype(np.uint8).reshape(-1)
        gray = luminance(r, g, b)
        if fmt is ArrayDataFormat.GRAYSCALE8:
            return gray
        return np.packbits(is_dark(gray))
    except MemoryError as err:
        logger.warning(f"Out of memory exporting {image.width}x{image.height} image as {fmt.name}")
        raise AllocationFailure(f"Unable to allocate {fmt.name} export array") from err
