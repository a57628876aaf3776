"""Binary Netpbm codec: P4 (PBM), P5 (PGM) and P6 (PPM)."""

from .decoder import decode, read_header, read_image_file
from .encoder import encode_image, encode_row, format_header, save_image, write_image
from .types import FileType, NetpbmHeader

__all__ = [
    "FileType",
    "NetpbmHeader",
    "decode",
    "read_header",
    "read_image_file",
    "encode_image",
    "encode_row",
    "format_header",
    "save_image",
    "write_image",
]
