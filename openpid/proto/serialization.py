"""Serialization of schema datatypes over a bit stream.

Each wire datatype has a codec that can both put (encode) and get (decode)
values, so encoding and decoding share the bit accounting of `BitStream`.
The codecs apply the same width rules as the code generator.
"""

import struct as _struct
from collections.abc import Mapping
from io import BytesIO
from typing import Any, Protocol, TypeVar

from ..generator.checks import (
    byte_len,
    check_const,
    check_float,
    check_integer,
    check_length_prefix,
    check_string,
)
from ..generator.errors import UnsupportedTermination
from ..generator.resolver import CompileContext, StructResolver
from ..generator.types import (
    Array,
    Const,
    Delimiter,
    Endianness,
    FloatIEEE,
    Integer,
    LengthPrefixed,
    PacketSegment,
    Raw,
    ReusableStruct,
    Schema,
    Signing,
    SizedSegment,
    StringUTF8,
    StructSegment,
    UnsizedRaw,
    UnsizedSegment,
    UnsizedStringUTF8,
)
from .bitstream import BitStream

T_contra = TypeVar("T_contra", contravariant=True)
T_co = TypeVar("T_co", covariant=True)


class SerializationError(RuntimeError):
    """Raised when a value can't be serialized or deserialized."""


class Put(Protocol[T_contra]):
    """Writes a logical value as a wire datatype."""

    def put(self, stream: BitStream, value: T_contra) -> int:
        """Write `value`, returning the number of bits written."""
        ...


class Get(Protocol[T_co]):
    """Reads a wire datatype as a logical value."""

    def get(self, stream: BitStream) -> T_co: ...


ENDIAN_PREFIX = {
    Endianness.BIG: ">",
    Endianness.LITTLE: "<",
}

# (bits, signed) -> struct format character
INTEGER_FORMATS = {
    (8, False): "B",
    (8, True): "b",
    (16, False): "H",
    (16, True): "h",
    (32, False): "I",
    (32, True): "i",
    (64, False): "Q",
    (64, True): "q",
}

FLOAT_FORMATS = {32: "f", 64: "d"}


class RawCodec:
    """Raw bits; values are `ceil(bits / 8)` bytes whose leading `bits` bits are sent."""

    def __init__(self, bits: int):
        self.bits = bits
        self.size = byte_len(bits)
        self._padding = self.size * 8 - bits

    def put(self, stream: BitStream, value: bytes) -> int:
        if len(value) != self.size:
            raise SerializationError(f"raw value must be {self.size} bytes, got {len(value)}")
        if not self._padding:
            return stream.write_bytes(value)
        return stream.write_bits(int.from_bytes(value, "big") >> self._padding, self.bits)

    def get(self, stream: BitStream) -> bytes:
        if not self._padding:
            return stream.read_bytes(self.size)
        return (stream.read_bits(self.bits) << self._padding).to_bytes(self.size, "big")


class ConstCodec:
    """Literal bytes. Values passed to `put` are ignored."""

    def __init__(self, data: bytes):
        self.data = data

    def put(self, stream: BitStream, value: Any = None) -> int:
        return stream.write_bytes(self.data)

    def get(self, stream: BitStream) -> bytes:
        data = stream.read_bytes(len(self.data))
        if data != self.data:
            raise SerializationError(f"expected constant {self.data.hex()}, got {data.hex()}")
        return data


class IntegerCodec:
    def __init__(self, bits: int, endianness: Endianness, signing: Signing):
        self.bits = bits
        self.signed = signing == Signing.TWOS_COMPLEMENT
        self._format = ENDIAN_PREFIX[endianness] + INTEGER_FORMATS[(bits, self.signed)]
        if self.signed:
            self.min = -(1 << (bits - 1))
            self.max = (1 << (bits - 1)) - 1
        else:
            self.min = 0
            self.max = (1 << bits) - 1

    def put(self, stream: BitStream, value: int) -> int:
        if not self.min <= value <= self.max:
            raise SerializationError(f"{value} out of range [{self.min}, {self.max}]")
        return stream.write_bytes(_struct.pack(self._format, value))

    def get(self, stream: BitStream) -> int:
        return _struct.unpack(self._format, stream.read_bytes(self.bits // 8))[0]


class FloatCodec:
    def __init__(self, bits: int, endianness: Endianness):
        self.bits = bits
        self._format = ENDIAN_PREFIX[endianness] + FLOAT_FORMATS[bits]

    def put(self, stream: BitStream, value: float) -> int:
        try:
            data = _struct.pack(self._format, value)
        except OverflowError as e:
            raise SerializationError(f"{value} does not fit in a {self.bits} bit float") from e
        return stream.write_bytes(data)

    def get(self, stream: BitStream) -> float:
        return _struct.unpack(self._format, stream.read_bytes(self.bits // 8))[0]


class StringCodec:
    """UTF-8 text zero padded to a fixed number of bytes.

    Trailing zero bytes are stripped when reading.
    """

    def __init__(self, bits: int):
        self.size = bits // 8

    def put(self, stream: BitStream, value: str) -> int:
        data = _to_bytes(value, text=True)
        if len(data) > self.size:
            raise SerializationError(f"string of {len(data)} bytes exceeds {self.size} bytes")
        return stream.write_bytes(data + b"\x00" * (self.size - len(data)))

    def get(self, stream: BitStream) -> str:
        data = stream.read_bytes(self.size)
        try:
            return data.rstrip(b"\x00").decode("utf-8")
        except UnicodeDecodeError as e:
            raise SerializationError(f"invalid UTF-8 string: {e}") from e


def _to_bytes(value: str | bytes, text: bool) -> bytes:
    if text:
        if not isinstance(value, str):
            raise SerializationError(f"expected str, got {type(value).__name__}")
        return value.encode("utf-8")
    if not isinstance(value, (bytes, bytearray, memoryview)):
        raise SerializationError(f"expected bytes, got {type(value).__name__}")
    return bytes(value)


def _from_bytes(data: bytes, text: bool) -> str | bytes:
    if not text:
        return data
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise SerializationError(f"invalid UTF-8 string: {e}") from e


class LengthPrefixedCodec:
    """Bytes or text preceded by their length in bytes."""

    def __init__(self, termination: LengthPrefixed, text: bool):
        self.text = text
        self.prefix = IntegerCodec(termination.bits, termination.endianness, Signing.UNSIGNED)

    def put(self, stream: BitStream, value: str | bytes) -> int:
        data = _to_bytes(value, self.text)
        if len(data) > self.prefix.max:
            raise SerializationError(f"length {len(data)} exceeds {self.prefix.max}")
        return self.prefix.put(stream, len(data)) + stream.write_bytes(data)

    def get(self, stream: BitStream) -> str | bytes:
        length = self.prefix.get(stream)
        return _from_bytes(stream.read_bytes(length), self.text)


class DelimitedCodec:
    """Bytes or text followed by a delimiter byte they must not contain."""

    def __init__(self, termination: Delimiter, text: bool):
        self.text = text
        self.delimiter = termination.byte

    def put(self, stream: BitStream, value: str | bytes) -> int:
        data = _to_bytes(value, self.text)
        if self.delimiter in data:
            raise SerializationError(f"value contains delimiter 0x{self.delimiter:02X}")
        return stream.write_bytes(data + bytes([self.delimiter]))

    def get(self, stream: BitStream) -> str | bytes:
        data = bytearray()
        while True:
            byte = stream.read_bytes(1)[0]
            if byte == self.delimiter:
                return _from_bytes(bytes(data), self.text)
            data.append(byte)


class StructCodec:
    """An ordered group of fields. Values are mappings of field name to value.

    Const fields are written without a value and left out when reading.
    """

    def __init__(self, fields: list[tuple[str, Any]]):
        self.fields = fields

    def put(self, stream: BitStream, value: Mapping[str, Any]) -> int:
        written = 0
        for name, codec in self.fields:
            if isinstance(codec, ConstCodec):
                written += codec.put(stream)
                continue
            if name not in value:
                raise SerializationError(f"missing value for field '{name}'")
            written += codec.put(stream, value[name])
        return written

    def get(self, stream: BitStream) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for name, codec in self.fields:
            item = codec.get(stream)
            if not isinstance(codec, ConstCodec):
                result[name] = item
        return result


class ArrayCodec:
    """Struct instances preceded by their count."""

    def __init__(self, termination: LengthPrefixed, item: StructCodec):
        self.count = IntegerCodec(termination.bits, termination.endianness, Signing.UNSIGNED)
        self.item = item

    def put(self, stream: BitStream, value: list[Mapping[str, Any]]) -> int:
        if len(value) > self.count.max:
            raise SerializationError(f"{len(value)} items exceed {self.count.max}")
        written = self.count.put(stream, len(value))
        for item in value:
            written += self.item.put(stream, item)
        return written

    def get(self, stream: BitStream) -> list[dict[str, Any]]:
        return [self.item.get(stream) for _ in range(self.count.get(stream))]


def _sized_codec(seg: SizedSegment, ctx: CompileContext) -> Any:
    location = {"payload": ctx.payload, "field": ctx.qualify(seg.name)}
    datatype = seg.datatype

    if isinstance(datatype, Raw):
        return RawCodec(seg.bits)
    if isinstance(datatype, Const):
        check_const(seg.bits, datatype, **location)
        return ConstCodec(datatype.data)
    if isinstance(datatype, Integer):
        check_integer(seg.bits, datatype, **location)
        return IntegerCodec(seg.bits, datatype.endianness, datatype.signing)
    if isinstance(datatype, StringUTF8):
        check_string(seg.bits, **location)
        return StringCodec(seg.bits)
    if isinstance(datatype, FloatIEEE):
        check_float(seg.bits, **location)
        return FloatCodec(seg.bits, datatype.endianness)
    raise TypeError(f"Unknown sized datatype {datatype!r}")


def _unsized_codec(resolver: StructResolver, seg: UnsizedSegment, ctx: CompileContext) -> Any:
    location = {"payload": ctx.payload, "field": ctx.qualify(seg.name)}
    termination = seg.termination
    if isinstance(termination, LengthPrefixed):
        check_length_prefix(termination.bits, **location)

    if isinstance(seg.datatype, Array):
        if isinstance(termination, Delimiter):
            raise UnsupportedTermination(
                "arrays of structs can't be delimiter terminated", **location
            )
        rs = resolver.resolve(seg.datatype.item_struct, seg.name, ctx)
        return ArrayCodec(termination, struct_codec(resolver, rs, ctx.enter(seg.name, rs.name)))

    if not isinstance(seg.datatype, (UnsizedStringUTF8, UnsizedRaw)):
        raise TypeError(f"Unknown unsized datatype {seg.datatype!r}")
    text = isinstance(seg.datatype, UnsizedStringUTF8)
    if isinstance(termination, LengthPrefixed):
        return LengthPrefixedCodec(termination, text)
    return DelimitedCodec(termination, text)


def codec_for(resolver: StructResolver, seg: PacketSegment, ctx: CompileContext) -> Any:
    """Build the codec for a segment.

    Raises:
        CodegenError: the segment violates the same rules the code generator checks.
    """
    if isinstance(seg, SizedSegment):
        return _sized_codec(seg, ctx)
    if isinstance(seg, UnsizedSegment):
        return _unsized_codec(resolver, seg, ctx)
    if isinstance(seg, StructSegment):
        rs = resolver.resolve(seg.struct_name, seg.name, ctx)
        return struct_codec(resolver, rs, ctx.enter(seg.name, rs.name))
    raise TypeError(f"Unknown segment {seg!r}")


def struct_codec(resolver: StructResolver, rs: ReusableStruct, ctx: CompileContext) -> StructCodec:
    return StructCodec([(seg.name, codec_for(resolver, seg, ctx)) for seg in rs.fields])


def payload_codec(schema: Schema, name: str) -> StructCodec:
    payload = schema.payloads[name]
    resolver = StructResolver(schema)
    ctx = CompileContext(payload=name)
    return StructCodec([(seg.name, codec_for(resolver, seg, ctx)) for seg in payload.segments])


def encode_payload(schema: Schema, name: str, values: Mapping[str, Any]) -> bytes:
    """Encode a payload the way its generated write method does.

    Struct fields take a mapping of their own fields, arrays a list of
    mappings. Pending bits are zero padded at the end.
    """
    buf = BytesIO()
    stream = BitStream(buf)
    payload_codec(schema, name).put(stream, values)
    stream.flush()
    return buf.getvalue()


def decode_payload(schema: Schema, name: str, data: bytes) -> dict[str, Any]:
    """Decode a payload produced by `encode_payload` or a generated driver."""
    return payload_codec(schema, name).get(BitStream(BytesIO(data)))
