"""Size calculation for structs and payloads."""

from dataclasses import dataclass
from enum import StrEnum, auto

from dataclasses_json import DataClassJsonMixin

from .checks import byte_len
from .resolver import CompileContext, StructResolver
from .types import Array, Delimiter, PacketSegment, Schema, SizedSegment, StructSegment


class SizeKind(StrEnum):
    """Classification of size characteristics."""

    FIXED = auto()  # Min == Max, no variable components
    UNBOUNDED = auto()  # Contains a variable length segment


@dataclass(frozen=True)
class SizeInfo(DataClassJsonMixin):
    """Size information in bits for a segment, struct or payload."""

    min_bits: int
    max_bits: int | None  # None means unbounded
    kind: SizeKind

    @property
    def is_fixed(self) -> bool:
        return self.kind == SizeKind.FIXED

    @property
    def min_bytes(self) -> int:
        return byte_len(self.min_bits)

    @property
    def max_bytes(self) -> int | None:
        return None if self.max_bits is None else byte_len(self.max_bits)

    def __add__(self, other: "SizeInfo") -> "SizeInfo":
        if self.max_bits is None or other.max_bits is None:
            max_bits = None
        else:
            max_bits = self.max_bits + other.max_bits
        kind = SizeKind.FIXED if self.is_fixed and other.is_fixed else SizeKind.UNBOUNDED
        return SizeInfo(self.min_bits + other.min_bits, max_bits, kind)


EMPTY = SizeInfo(0, 0, SizeKind.FIXED)


@dataclass(frozen=True)
class SchemaSizeInfo:
    """Size information for an entire schema."""

    structs: dict[str, SizeInfo]
    payloads: dict[str, SizeInfo]

    @property
    def max_payload_bytes(self) -> int | None:
        """Largest payload in bytes, None if any payload is unbounded."""
        sizes = [s.max_bytes for s in self.payloads.values()]
        if any(s is None for s in sizes):
            return None
        return max((s for s in sizes if s is not None), default=0)


class SizeCalculator:
    """Calculate wire sizes of schema elements."""

    def __init__(self, schema: Schema):
        self.schema = schema
        self.resolver = StructResolver(schema)
        self._cache: dict[str, SizeInfo] = {}

    def calc_segment_size(self, seg: PacketSegment, ctx: CompileContext) -> SizeInfo:
        if isinstance(seg, SizedSegment):
            return SizeInfo(seg.bits, seg.bits, SizeKind.FIXED)

        if isinstance(seg, StructSegment):
            rs = self.resolver.resolve(seg.struct_name, seg.name, ctx)
            return self.calc_struct_size(rs.name, ctx.enter(seg.name, rs.name))

        if isinstance(seg.datatype, Array):
            # Arrays need their item struct to exist even though the count is open
            self.resolver.resolve(seg.datatype.item_struct, seg.name, ctx)

        # Length prefix or trailing delimiter, then any number of bytes
        if isinstance(seg.termination, Delimiter):
            overhead = 8
        else:
            overhead = seg.termination.bits
        return SizeInfo(overhead, None, SizeKind.UNBOUNDED)

    def calc_struct_size(self, name: str, ctx: CompileContext | None = None) -> SizeInfo:
        """Calculate size for a struct (with caching)."""
        if name in self._cache:
            return self._cache[name]

        if ctx is None:
            ctx = CompileContext(payload=name, ancestors=(name,))
        rs = self.schema.structs[name]

        size = EMPTY
        for seg in rs.fields:
            size = size + self.calc_segment_size(seg, ctx)

        self._cache[name] = size
        return size

    def calc_payload_size(self, name: str) -> SizeInfo:
        payload = self.schema.payloads[name]
        ctx = CompileContext(payload=name)

        size = EMPTY
        for seg in payload.segments:
            size = size + self.calc_segment_size(seg, ctx)
        return size

    def calc_schema_info(self) -> SchemaSizeInfo:
        return SchemaSizeInfo(
            structs={name: self.calc_struct_size(name) for name in self.schema.structs},
            payloads={name: self.calc_payload_size(name) for name in self.schema.payloads},
        )


def calculate_sizes(schema: Schema) -> SchemaSizeInfo:
    """Calculate size information for a schema."""
    return SizeCalculator(schema).calc_schema_info()
