"""Validation of datatype widths shared by the compiler and the runtime codecs."""

from .errors import NotByteAligned, SizeMismatch, UnsupportedSigning, UnsupportedWidth
from .types import FLOAT_WIDTHS, INTEGER_WIDTHS, Const, Integer, Signing


def check_const(bits: int, datatype: Const, **location) -> None:
    if bits != len(datatype.data) * 8:
        raise SizeMismatch(bits, datatype.data, **location)


def check_integer(bits: int, datatype: Integer, **location) -> None:
    if bits not in INTEGER_WIDTHS:
        raise UnsupportedWidth(bits, INTEGER_WIDTHS, **location)
    if datatype.signing == Signing.ONES_COMPLEMENT:
        raise UnsupportedSigning("one's complement integers are not supported", **location)


def check_float(bits: int, **location) -> None:
    if bits not in FLOAT_WIDTHS:
        raise UnsupportedWidth(bits, FLOAT_WIDTHS, **location)


def check_string(bits: int, **location) -> None:
    # UTF-8 text never splits a byte
    if bits % 8 != 0:
        raise NotByteAligned(bits, **location)


def check_length_prefix(bits: int, **location) -> None:
    if bits not in INTEGER_WIDTHS:
        raise UnsupportedWidth(bits, INTEGER_WIDTHS, **location)


def byte_len(bits: int) -> int:
    """Number of bytes needed to hold `bits` bits."""
    return (bits + 7) // 8
