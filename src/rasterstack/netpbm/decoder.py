"""Binary Netpbm (P4/P5/P6) reader.

Header grammar: optional whitespace and ``#`` comments (to end of line) may
precede or separate tokens. Tokens are the ``P<digit>`` magic, width, height
and, for PGM/PPM only, maxval. Exactly one whitespace byte separates the last
token from the raw samples.
"""

import logging
import os
from typing import BinaryIO

import numpy as np

from rasterstack.core.color import BACKGROUND_COLOR, WHITE, argb
from rasterstack.core.layer import Layer
from rasterstack.errors import AllocationFailure, IoFailure, MalformedHeader, UnsupportedFormat

from .types import FileType, NetpbmHeader

logger = logging.getLogger(__name__)

COMMENT_CHAR = b"#"
MAX_SUPPORTED_MAXVAL = 255
READ_CHUNK_SIZE = 1 << 20


class _HeaderReader:
    """Byte-at-a-time tokenizer with a single byte of push-back."""

    def __init__(self, stream: BinaryIO) -> None:
        self.stream = stream
        self._pushback = b""

    def read_byte(self) -> bytes:
        if self._pushback:
            ch, self._pushback = self._pushback, b""
            return ch
        try:
            return self.stream.read(1)
        except OSError as err:
            raise IoFailure(f"Failed to read Netpbm header: {err}") from err

    def unread(self, ch: bytes) -> None:
        self._pushback = ch

    def skip_whitespace_and_comments(self) -> None:
        while True:
            ch = self.read_byte()
            if not ch:
                return
            if ch.isspace():
                continue
            if ch == COMMENT_CHAR:
                while ch and ch != b"\n":
                    ch = self.read_byte()
                continue
            self.unread(ch)
            return

    def skip_whitespace(self) -> None:
        ch = self.read_byte()
        while ch and ch.isspace():
            ch = self.read_byte()
        if ch:
            self.unread(ch)

    def read_digits(self) -> bytes:
        digits = b""
        while True:
            ch = self.read_byte()
            if ch and ch.isdigit():
                digits += ch
                continue
            if ch:
                self.unread(ch)
            return digits

    def read_uint(self, what: str) -> int:
        self.skip_whitespace_and_comments()
        digits = self.read_digits()
        if not digits:
            found = self.read_byte()
            raise MalformedHeader(f"Expected {what}, found {found!r}")
        return int(digits)


def read_header(stream: BinaryIO) -> NetpbmHeader:
    """Parse a header and leave ``stream`` positioned at the first sample byte.

    Raises:
        MalformedHeader: A token is missing or not what the grammar expects.
        UnsupportedFormat: The magic is not one of P4, P5 or P6, or maxval
            needs two bytes per sample.
    """
    reader = _HeaderReader(stream)
    reader.skip_whitespace_and_comments()
    if reader.read_byte() != b"P":
        raise MalformedHeader("Missing 'P' magic prefix")
    # whitespace, but not comments, may sit between 'P' and its digit
    reader.skip_whitespace()
    digits = reader.read_digits()
    if not digits:
        raise MalformedHeader("Missing digit after 'P' magic prefix")
    file_type = FileType.from_magic_digit(int(digits))
    if file_type is FileType.UNKNOWN:
        raise UnsupportedFormat(f"Unsupported Netpbm magic P{digits.decode()}", file_type=file_type)

    width = reader.read_uint("width")
    height = reader.read_uint("height")
    if width == 0 or height == 0:
        raise MalformedHeader(f"Image size must be positive, got {width}x{height}")

    maxval = None
    if file_type.has_maxval:
        maxval = reader.read_uint("maxval")
        if maxval == 0:
            raise MalformedHeader("maxval must be at least 1")
        if maxval > MAX_SUPPORTED_MAXVAL:
            raise UnsupportedFormat(f"Two-byte samples (maxval {maxval}) are not supported", file_type=file_type)

    delimiter = reader.read_byte()
    if not delimiter.isspace():
        raise MalformedHeader(f"Expected a single whitespace byte before samples, found {delimiter!r}")

    return NetpbmHeader(file_type, width, height, maxval)


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    """Read exactly ``size`` bytes, at most ``READ_CHUNK_SIZE`` per call.

    Raises:
        IoFailure: The stream ends first or the read fails.
    """
    chunks = []
    remaining = size
    while remaining > 0:
        try:
            chunk = stream.read(min(remaining, READ_CHUNK_SIZE))
        except MemoryError as err:
            raise AllocationFailure(f"Unable to buffer {size} sample bytes") from err
        except OSError as err:
            raise IoFailure(f"Failed to read samples: {err}") from err
        if not chunk:
            raise IoFailure(f"Truncated sample data: expected {size} bytes, got {size - remaining}")
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


def _scale_samples(samples: np.ndarray, maxval: int) -> np.ndarray:
    """Map samples in ``0..maxval`` onto ``0..255`` with rounding."""
    if samples.size and int(samples.max()) > maxval:
        raise MalformedHeader(f"Sample value {int(samples.max())} exceeds maxval {maxval}")
    samples = samples.astype(np.uint32)
    if maxval == 255:
        return samples
    return (samples * 255 + maxval // 2) // maxval


def _decode_pixels(header: NetpbmHeader, stream: BinaryIO) -> np.ndarray:
    width, height = header.width, header.height
    if header.file_type is FileType.PPM:
        raw = _read_exact(stream, width * height * 3)
        rgb = _scale_samples(np.frombuffer(raw, dtype=np.uint8).reshape(height, width, 3), header.maxval)
        return argb(255, rgb[..., 0], rgb[..., 1], rgb[..., 2])
    if header.file_type is FileType.PGM:
        raw = _read_exact(stream, width * height)
        gray = _scale_samples(np.frombuffer(raw, dtype=np.uint8).reshape(height, width), header.maxval)
        return argb(255, gray, gray, gray)
    # PBM: MSB first, rows padded to a whole byte, 1 = black
    row_bytes = (width + 7) // 8
    raw = _read_exact(stream, row_bytes * height)
    bits = np.unpackbits(np.frombuffer(raw, dtype=np.uint8).reshape(height, row_bytes), axis=1)[:, :width]
    return np.where(bits == 1, np.uint32(BACKGROUND_COLOR), np.uint32(WHITE))


def decode(stream: BinaryIO) -> tuple[Layer, FileType]:
    """Decode one binary Netpbm image from ``stream`` into a new layer.

    The caller receives the layer's only reference. To hand it to an image,
    ``add_existing_layer`` it and then ``release()`` it.
    """
    header = read_header(stream)
    try:
        pixels = _decode_pixels(header, stream)
    except MemoryError as err:
        raise AllocationFailure(f"Unable to decode {header.width}x{header.height} image") from err
    layer = Layer(header.width, header.height)
    layer.pixels[...] = pixels
    logger.debug(f"Decoded {header.file_type.name} {header.width}x{header.height}")
    return layer, header.file_type


def read_image_file(path: str | os.PathLike) -> tuple[Layer, FileType]:
    try:
        fp = open(path, "rb")
    except OSError as err:
        logger.warning(f"Could not open {path} for reading")
        raise IoFailure(f"Could not open {path} for reading: {err}") from err
    with fp:
        try:
            return decode(fp)
        except (MalformedHeader, UnsupportedFormat, IoFailure, AllocationFailure) as err:
            logger.warning(f"Failed to decode {path}: {err}")
            raise
