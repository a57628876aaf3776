"""Exception hierarchy for rasterstack.

Every failure kind also derives from the closest builtin exception so callers
can catch either ``MalformedHeader`` or a plain ``ValueError``.
"""


class RasterStackError(Exception):
    """Base class for all rasterstack errors."""


class AllocationFailure(RasterStackError, MemoryError):
    """A pixel buffer or output array could not be allocated."""


class IoFailure(RasterStackError, OSError):
    """Reading or writing a stream failed, including short reads and writes."""


class MalformedHeader(RasterStackError, ValueError):
    """A Netpbm header token did not match the expected grammar."""


class DimensionMismatch(RasterStackError, ValueError):
    """A layer's size differs from the image it is attached to."""


class InvalidIndex(RasterStackError, IndexError):
    """A layer index is outside ``[0, num_layers)``."""


class UnsupportedFormat(RasterStackError, ValueError):
    """The file type is recognised (or not) but cannot be decoded."""

    def __init__(self, message: str, file_type: object = None) -> None:
        super().__init__(message)
        self.file_type = file_type


class LayerReleasedError(RasterStackError, RuntimeError):
    """A layer was used after its last owner released it."""


class ImageDestroyedError(RasterStackError, RuntimeError):
    """An image was used after ``destroy()``."""
