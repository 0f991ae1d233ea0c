"""Tests for serialization"""

from io import BytesIO

from pytest import approx, raises

from openpid.generator import loads
from openpid.generator.errors import UnsupportedTermination, UnsupportedWidth
from openpid.generator.resolver import CompileContext, StructResolver
from openpid.generator.types import (
    Array,
    Delimiter,
    DeviceInfo,
    Endianness,
    Integer,
    LengthPrefixed,
    Schema,
    Signing,
    SizedSegment,
    UnsizedSegment,
)
from openpid.proto import BitStream, SerializationError, codec_for, decode_payload, encode_payload
from openpid.proto.serialization import (
    DelimitedCodec,
    FloatCodec,
    IntegerCodec,
    StringCodec,
)


def put(codec, value) -> bytes:
    buf = BytesIO()
    stream = BitStream(buf)
    codec.put(stream, value)
    stream.flush()
    return buf.getvalue()


def get(codec, data: bytes):
    return codec.get(BitStream(BytesIO(data)))


FRAME = """
[device_info]
name = "dev"

[[structs.Point.fields]]
name = "x"
bits = 8
type = "integer"

[[structs.Point.fields]]
name = "y"
bits = 8
type = "integer"

[[payloads.frame.segments]]
name = "header"
bits = 16
type = "const"
data = [171, 205]

[[payloads.frame.segments]]
name = "mode"
bits = 4
type = "raw"

[[payloads.frame.segments]]
name = "flags"
bits = 4
type = "raw"

[[payloads.frame.segments]]
name = "offset"
bits = 16
type = "integer"
signing = "twos_complement"

[[payloads.frame.segments]]
name = "label"
type = "string"
termination = { length_prefix = 8 }

[[payloads.unaligned.segments]]
name = "tag"
bits = 12
type = "raw"

[[payloads.unaligned.segments]]
name = "level"
bits = 8
type = "integer"

[[payloads.path.segments]]
name = "points"
type = "array"
item = "Point"
termination = { length_prefix = 8 }

[[payloads.line.segments]]
name = "origin"
struct = "Point"

[[payloads.line.segments]]
name = "note"
type = "raw"
termination = { delimiter = 0 }
"""


def describe_integers():
    def encodes_by_endianness(expect):
        big = IntegerCodec(16, Endianness.BIG, Signing.UNSIGNED)
        little = IntegerCodec(16, Endianness.LITTLE, Signing.UNSIGNED)
        expect(put(big, 0x1234)) == b"\x12\x34"
        expect(put(little, 0x1234)) == b"\x34\x12"

    def round_trips_boundaries(expect):
        for bits in (8, 16, 32, 64):
            for endianness in Endianness:
                unsigned = IntegerCodec(bits, endianness, Signing.UNSIGNED)
                for value in (0, unsigned.max):
                    expect(get(unsigned, put(unsigned, value))) == value

                signed = IntegerCodec(bits, endianness, Signing.TWOS_COMPLEMENT)
                for value in (signed.min, -1, 0, signed.max):
                    expect(get(signed, put(signed, value))) == value

    def encodes_twos_complement(expect):
        codec = IntegerCodec(16, Endianness.BIG, Signing.TWOS_COMPLEMENT)
        expect(put(codec, -2)) == b"\xff\xfe"

    def rejects_out_of_range_values(expect):
        codec = IntegerCodec(8, Endianness.BIG, Signing.UNSIGNED)
        with raises(SerializationError):
            put(codec, 256)
        with raises(SerializationError):
            put(codec, -1)


def describe_floats():
    def round_trips_values(expect):
        single = FloatCodec(32, Endianness.LITTLE)
        expect(get(single, put(single, -1.23))) == approx(-1.23)

        double = FloatCodec(64, Endianness.BIG)
        expect(put(double, 1.0)) == b"\x3f\xf0\x00\x00\x00\x00\x00\x00"
        expect(get(double, put(double, 1e300))) == 1e300

    def rejects_values_too_large(expect):
        with raises(SerializationError):
            put(FloatCodec(32, Endianness.BIG), 1e300)


def describe_strings():
    def pads_to_width(expect):
        codec = StringCodec(64)
        expect(put(codec, "hey")) == b"hey\x00\x00\x00\x00\x00"
        expect(get(codec, b"hey\x00\x00\x00\x00\x00")) == "hey"

    def rejects_long_strings(expect):
        with raises(SerializationError):
            put(StringCodec(16), "hey")

    def rejects_delimiter_in_value(expect):
        codec = DelimitedCodec(Delimiter(10), text=True)
        expect(put(codec, "ok")) == b"ok\n"
        with raises(SerializationError):
            put(codec, "two\nlines")


def describe_payloads():
    def encodes_mixed_segments(expect):
        schema = loads(FRAME)
        data = encode_payload(
            schema,
            "frame",
            {"mode": b"\xa0", "flags": b"\x50", "offset": -2, "label": "hi"},
        )
        expect(data) == bytes.fromhex("abcda5fffe026869")

    def decodes_mixed_segments(expect):
        schema = loads(FRAME)
        expect(decode_payload(schema, "frame", bytes.fromhex("abcda5fffe026869"))) == {
            "mode": b"\xa0",
            "flags": b"\x50",
            "offset": -2,
            "label": "hi",
        }

    def merges_bytes_after_unaligned_raw(expect):
        schema = loads(FRAME)
        data = encode_payload(schema, "unaligned", {"tag": b"\xab\xc0", "level": 0xFF})
        expect(data) == bytes.fromhex("abcff0")
        expect(decode_payload(schema, "unaligned", data)) == {"tag": b"\xab\xc0", "level": 0xFF}

    def encodes_arrays_with_item_count(expect):
        schema = loads(FRAME)
        points = [{"x": 1, "y": 2}, {"x": 3, "y": 4}]
        data = encode_payload(schema, "path", {"points": points})
        expect(data) == bytes.fromhex("0201020304")
        expect(decode_payload(schema, "path", data)) == {"points": points}

    def encodes_nested_structs(expect):
        schema = loads(FRAME)
        values = {"origin": {"x": 7, "y": 9}, "note": b"abc"}
        data = encode_payload(schema, "line", values)
        expect(data) == b"\x07\x09abc\x00"
        expect(decode_payload(schema, "line", data)) == values

    def rejects_values_of_the_wrong_type(expect):
        schema = loads(FRAME)
        values = {"mode": b"\xa0", "flags": b"\x50", "offset": -2}
        with raises(SerializationError):
            encode_payload(schema, "frame", {**values, "label": b"hi"})
        with raises(SerializationError):
            encode_payload(schema, "line", {"origin": {"x": 7, "y": 9}, "note": 3})
        with raises(SerializationError):
            put(StringCodec(32), b"hey")

    def rejects_wrong_constant(expect):
        schema = loads(FRAME)
        with raises(SerializationError):
            decode_payload(schema, "frame", bytes.fromhex("abcea5fffe026869"))

    def rejects_missing_values(expect):
        schema = loads(FRAME)
        with raises(SerializationError):
            encode_payload(schema, "frame", {"mode": b"\xa0", "flags": b"\x50"})


def describe_codec_for():
    def applies_width_rules(expect):
        schema = Schema(DeviceInfo("dev", ""))
        seg = SizedSegment("x", 24, Integer(Endianness.BIG, Signing.UNSIGNED))
        with raises(UnsupportedWidth) as e:
            codec_for(StructResolver(schema), seg, CompileContext(payload="p"))
        expect(e.value.field) == "x"

    def rejects_delimited_arrays(expect):
        schema = loads(FRAME)
        seg = UnsizedSegment("points", Array("Point"), Delimiter(0))
        with raises(UnsupportedTermination):
            codec_for(StructResolver(schema), seg, CompileContext(payload="p"))

    def rejects_odd_length_prefixes(expect):
        schema = loads(FRAME)
        seg = UnsizedSegment("points", Array("Point"), LengthPrefixed(24))
        with raises(UnsupportedWidth):
            codec_for(StructResolver(schema), seg, CompileContext(payload="p"))
