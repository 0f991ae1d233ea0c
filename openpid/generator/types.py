"""Type definitions for protocol schemas and code generation."""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Union

from dataclasses_json import DataClassJsonMixin


class Endianness(StrEnum):
    """Byte order of a multi-byte value on the wire."""

    BIG = "big"
    LITTLE = "little"


class Signing(StrEnum):
    """Representation of signed integers."""

    UNSIGNED = "unsigned"
    TWOS_COMPLEMENT = "twos_complement"
    ONES_COMPLEMENT = "ones_complement"


@dataclass(frozen=True)
class DeviceInfo(DataClassJsonMixin):
    """Describes the device a schema was written for."""

    name: str
    description: str
    doc_version: str | None = None


# Sized datatypes


@dataclass(frozen=True)
class Raw:
    """Uninterpreted bits."""


@dataclass(frozen=True)
class Const:
    """Literal bytes written verbatim."""

    data: bytes


@dataclass(frozen=True)
class Integer:
    endianness: Endianness
    signing: Signing


@dataclass(frozen=True)
class StringUTF8:
    """UTF-8 text in a fixed number of bytes."""


@dataclass(frozen=True)
class FloatIEEE:
    endianness: Endianness


SizedDataType = Union[Raw, Const, Integer, StringUTF8, FloatIEEE]


# Unsized datatypes


@dataclass(frozen=True)
class Array:
    """A variable number of struct instances."""

    item_struct: str


@dataclass(frozen=True)
class UnsizedStringUTF8:
    """UTF-8 text of variable length."""


@dataclass(frozen=True)
class UnsizedRaw:
    """Bytes of variable length."""


UnsizedDataType = Union[Array, UnsizedStringUTF8, UnsizedRaw]


# Termination policies for unsized segments


@dataclass(frozen=True)
class LengthPrefixed:
    """The value is preceded by its length as an unsigned integer.

    For arrays the length counts items, otherwise it counts bytes.
    """

    bits: int
    endianness: Endianness = Endianness.BIG


@dataclass(frozen=True)
class Delimiter:
    """The value is followed by a sentinel byte it must not contain."""

    byte: int


Termination = Union[LengthPrefixed, Delimiter]


# Packet segments


@dataclass(frozen=True)
class SizedSegment:
    """A fixed-width field."""

    name: str
    bits: int
    datatype: SizedDataType
    description: str | None = None


@dataclass(frozen=True)
class UnsizedSegment:
    """A variable-width field with a termination policy."""

    name: str
    datatype: UnsizedDataType
    termination: Termination
    description: str | None = None


@dataclass(frozen=True)
class StructSegment:
    """Embeds a named reusable struct inline."""

    name: str
    struct_name: str


PacketSegment = Union[SizedSegment, UnsizedSegment, StructSegment]


@dataclass(frozen=True)
class ReusableStruct:
    """A named group of segments embeddable in payloads and other structs."""

    name: str
    fields: tuple[PacketSegment, ...]
    description: str | None = None


@dataclass(frozen=True)
class Payload:
    """One message to serialize."""

    name: str
    description: str
    segments: tuple[PacketSegment, ...]


@dataclass(frozen=True)
class Schema:
    """A complete protocol description.

    `structs` and `payloads` keep declaration order, which is the order
    generated code is emitted in.
    """

    device_info: DeviceInfo
    structs: dict[str, ReusableStruct] = field(default_factory=dict)
    payloads: dict[str, Payload] = field(default_factory=dict)


# Code generation


@dataclass(frozen=True)
class Var(DataClassJsonMixin):
    """A logical variable used by generated code.

    Inputs of a compiled payload become the parameters of the generated
    function, in order.
    """

    name: str
    datatype: str
    description: str | None = None


@dataclass(frozen=True)
class CodeChunk(DataClassJsonMixin):
    """A generated code fragment and the variables it depends on."""

    code: str = ""
    inputs: tuple[Var, ...] = ()
    # Variables produced by the code, reserved for the read path
    outputs: tuple[Var, ...] = ()

    def __add__(self, other: "CodeChunk") -> "CodeChunk":
        return CodeChunk(
            code=self.code + other.code,
            inputs=self.inputs + other.inputs,
            outputs=self.outputs + other.outputs,
        )

    @classmethod
    def join(cls, chunks: "list[CodeChunk]") -> "CodeChunk":
        """Concatenate chunks in order."""
        result = cls()
        for chunk in chunks:
            result = result + chunk
        return result


INTEGER_WIDTHS = (8, 16, 32, 64)
FLOAT_WIDTHS = (32, 64)
