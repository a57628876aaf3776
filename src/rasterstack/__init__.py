"""Layered ARGB raster images, alpha flattening and a binary Netpbm codec."""

from .core import Layer, LayeredImage, argb, create_image, create_layer, release_layer, retain_layer
from .errors import (
    AllocationFailure,
    DimensionMismatch,
    ImageDestroyedError,
    InvalidIndex,
    IoFailure,
    LayerReleasedError,
    MalformedHeader,
    RasterStackError,
    UnsupportedFormat,
)
from .export import ArrayDataFormat, export_to_array
from .netpbm import FileType, decode, encode_image, read_image_file, save_image, write_image

__version__ = "0.1.0"

__all__ = [
    "Layer",
    "LayeredImage",
    "argb",
    "create_image",
    "create_layer",
    "release_layer",
    "retain_layer",
    "AllocationFailure",
    "DimensionMismatch",
    "ImageDestroyedError",
    "InvalidIndex",
    "IoFailure",
    "LayerReleasedError",
    "MalformedHeader",
    "RasterStackError",
    "UnsupportedFormat",
    "ArrayDataFormat",
    "export_to_array",
    "FileType",
    "decode",
    "encode_image",
    "read_image_file",
    "save_image",
    "write_image",
]
