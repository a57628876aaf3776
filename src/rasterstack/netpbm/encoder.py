"""Flatten a ``LayeredImage`` and serialise it as binary PBM, PGM or PPM."""

import io
import logging
import os
from typing import BinaryIO

import numpy as np
from tqdm import tqdm

from rasterstack.compositing.blend import flatten_rows
from rasterstack.core.color import get_b, get_g, get_r, is_dark, luminance
from rasterstack.core.image import LayeredImage
from rasterstack.errors import IoFailure, UnsupportedFormat

from .types import ENCODABLE_TYPES, FileType

logger = logging.getLogger(__name__)


def format_header(file_type: FileType, width: int, height: int) -> bytes:
    """``P6\\n{w} {h}\\n255\\n`` style header; PBM has no maxval line."""
    header = file_type.magic + f"\n{width} {height}\n".encode("ascii")
    if file_type.has_maxval:
        header += b"255\n"
    return header


def encode_row(row: np.ndarray, file_type: FileType) -> bytes:
    """Serialise one row of flattened ``uint32`` pixels."""
    r, g, b = get_r(row), get_g(row), get_b(row)
    if file_type is FileType.PPM:
        return np.stack([r, g, b], axis=-1).astype(np.uint8).tobytes()
    gray = luminance(r, g, b)
    if file_type is FileType.PGM:
        return gray.tobytes()
    # packbits zero-fills the unused low bits of the last byte
    return np.packbits(is_dark(gray)).tobytes()


def _write(stream: BinaryIO, data: bytes) -> None:
    try:
        written = stream.write(data)
    except OSError as err:
        raise IoFailure(f"Failed to write image data: {err}") from err
    if written is not None and written != len(data):
        raise IoFailure(f"Short write: {written} of {len(data)} bytes")


def write_image(image: LayeredImage, stream: BinaryIO, file_type: FileType, progress: bool = False) -> None:
    """Write ``image`` to an open binary stream.

    Rows are flattened and written one at a time. A failed or short write
    raises ``IoFailure`` and whatever was already written stays in the stream.
    """
    if image is None:
        raise ValueError("image is required")
    file_type = FileType.from_magic_digit(int(file_type))
    if file_type not in ENCODABLE_TYPES:
        raise UnsupportedFormat(f"Cannot encode file type {file_type!r}", file_type=file_type)

    _write(stream, format_header(file_type, image.width, image.height))
    rows = flatten_rows(image.layers, image.width, image.height)
    for row in tqdm(rows, total=image.height, desc=f"Writing {file_type.name}", disable=not progress):
        _write(stream, encode_row(row, file_type))


def save_image(
    image: LayeredImage,
    path: str | os.PathLike,
    file_type: FileType | None = None,
    progress: bool = False,
) -> None:
    """Flatten ``image`` and save it to ``path``.

    Args:
        image: Image to flatten.
        path: Destination file. Opened in binary mode and truncated.
        file_type: Output format. Inferred from the file suffix when omitted.
        progress: Show a tqdm progress bar over rows.
    """
    if file_type is None:
        file_type = FileType.from_suffix(path)
    file_type = FileType.from_magic_digit(int(file_type))
    if file_type not in ENCODABLE_TYPES:
        raise UnsupportedFormat(f"Cannot encode {path} as {file_type.name}", file_type=file_type)
    try:
        fp = open(path, "wb")
    except OSError as err:
        logger.warning(f"Could not open {path} for writing")
        raise IoFailure(f"Could not open {path} for writing: {err}") from err
    with fp:
        try:
            write_image(image, fp, file_type, progress=progress)
        except IoFailure as err:
            logger.warning(f"Failed to save {path}: {err}")
            raise
    logger.debug(f"Saved {image.width}x{image.height} {file_type.name} to {path}")


def encode_image(image: LayeredImage, file_type: FileType) -> bytes:
    """Encoded file contents as ``bytes``."""
    buffer = io.BytesIO()
    write_image(image, buffer, file_type)
    return buffer.getvalue()
