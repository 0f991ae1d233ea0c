"""Bit-oriented access to a byte stream.

This is the reference implementation of the transport contract generated
drivers rely on: a byte stream plus up to 7 leftover bits of a partially
filled byte. Bits are packed most significant first.
"""

from typing import BinaryIO


class BitStreamError(RuntimeError):
    """Raised when a bit stream operation fails."""


class BitStream:
    """Reads and writes bit runs on a binary stream.

    A stream is used for either writing or reading; the leftover state holds
    pending output bits when writing and unread input bits when reading.

    Example:
        buf = io.BytesIO()
        bits = BitStream(buf)
        bits.write_bits(0b101, 3)
        bits.write_bytes(b"\\xff")
        bits.flush()
        buf.getvalue()  # b"\\xbf\\xe0"
    """

    def __init__(self, stream: BinaryIO):
        self._stream = stream
        self._leftover = 0
        self._leftover_bits = 0

    @property
    def leftover_bits(self) -> int:
        """Number of bits pending in the partially filled byte (0-7)."""
        return self._leftover_bits

    @property
    def aligned(self) -> bool:
        return self._leftover_bits == 0

    def write_bits(self, value: int, nbits: int) -> int:
        """Write the low `nbits` bits of `value`. Returns the bits written."""
        if nbits < 0:
            raise BitStreamError(f"Can't write {nbits} bits")
        if value < 0 or value >> nbits:
            raise BitStreamError(f"{value} does not fit in {nbits} bits")

        total = self._leftover_bits + nbits
        acc = (self._leftover << nbits) | value
        whole, rest = divmod(total, 8)
        if whole:
            self._stream.write((acc >> rest).to_bytes(whole, "big"))
        self._leftover = acc & ((1 << rest) - 1)
        self._leftover_bits = rest
        return nbits

    def write_bytes(self, data: bytes) -> int:
        """Write whole bytes. Returns the bits written."""
        if self.aligned:
            self._stream.write(data)
            return len(data) * 8
        return self.write_bits(int.from_bytes(data, "big"), len(data) * 8)

    def flush(self) -> int:
        """Pad pending bits with zeros to a whole byte. Returns the padding written."""
        if self.aligned:
            return 0
        padding = 8 - self._leftover_bits
        self.write_bits(0, padding)
        return padding

    def read_bits(self, nbits: int) -> int:
        """Read `nbits` bits as an unsigned integer."""
        if nbits < 0:
            raise BitStreamError(f"Can't read {nbits} bits")

        missing = nbits - self._leftover_bits
        acc = self._leftover
        have = self._leftover_bits
        if missing > 0:
            count = (missing + 7) // 8
            data = self._stream.read(count)
            if data is None or len(data) < count:
                raise BitStreamError(f"Stream ended while reading {nbits} bits")
            acc = (acc << (count * 8)) | int.from_bytes(data, "big")
            have += count * 8

        rest = have - nbits
        self._leftover = acc & ((1 << rest) - 1)
        self._leftover_bits = rest
        return acc >> rest

    def read_bytes(self, count: int) -> bytes:
        """Read `count` whole bytes."""
        if self.aligned:
            data = self._stream.read(count)
            if data is None or len(data) < count:
                raise BitStreamError(f"Stream ended while reading {count} bytes")
            return bytes(data)
        return self.read_bits(count * 8).to_bytes(count, "big")

    def align(self) -> int:
        """Drop unread bits of the current byte. Returns the bits dropped."""
        dropped = self._leftover_bits
        self._leftover = 0
        self._leftover_bits = 0
        return dropped
