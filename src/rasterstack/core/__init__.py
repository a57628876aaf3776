"""Layer and image containers with explicit shared ownership."""

from .color import BACKGROUND_COLOR, argb, luminance, unpack_argb
from .layer import Layer, create_layer, release_layer, retain_layer
from .image import LayeredImage, create_image

__all__ = [
    "BACKGROUND_COLOR",
    "argb",
    "luminance",
    "unpack_argb",
    "Layer",
    "create_layer",
    "release_layer",
    "retain_layer",
    "LayeredImage",
    "create_image",
]
