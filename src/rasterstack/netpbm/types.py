import os
from enum import IntEnum
from typing import NamedTuple


class FileType(IntEnum):
    """Netpbm binary formats, valued after the digit in their ``P<digit>`` magic."""

    UNKNOWN = 0
    PBM = 4
    PGM = 5
    PPM = 6

    @property
    def magic(self) -> bytes:
        if self is FileType.UNKNOWN:
            raise ValueError("UNKNOWN has no magic number")
        return f"P{int(self)}".encode("ascii")

    @property
    def has_maxval(self) -> bool:
        return self in (FileType.PGM, FileType.PPM)

    @classmethod
    def from_magic_digit(cls, digit: int) -> "FileType":
        try:
            return cls(digit) if digit != 0 else cls.UNKNOWN
        except ValueError:
            return cls.UNKNOWN

    @classmethod
    def from_suffix(cls, path: str | os.PathLike) -> "FileType":
        suffix = os.path.splitext(os.fspath(path))[1].lower().lstrip(".")
        return _SUFFIXES.get(suffix, cls.UNKNOWN)


_SUFFIXES = {"pbm": FileType.PBM, "pgm": FileType.PGM, "ppm": FileType.PPM}

ENCODABLE_TYPES = (FileType.PBM, FileType.PGM, FileType.PPM)


class NetpbmHeader(NamedTuple):
    file_type: FileType
    width: int
    height: int
    maxval: int | None  # None for PBM
