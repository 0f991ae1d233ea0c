"""Compile packet segments into Rust write statements.

Each wire datatype has its own writer function. Writers return a new
`CodeChunk` holding unindented statements and the variables the statements
read; nothing is accumulated in shared state, so segments can be compiled in
any order and the result only depends on the segment and its context.
"""

from collections.abc import Callable
from textwrap import indent

from .checks import (
    byte_len,
    check_const,
    check_float,
    check_integer,
    check_length_prefix,
    check_string,
)
from .errors import UnsupportedTermination
from .resolver import CompileContext, StructResolver
from .types import (
    Array,
    CodeChunk,
    Const,
    Delimiter,
    Endianness,
    FloatIEEE,
    Integer,
    LengthPrefixed,
    PacketSegment,
    Raw,
    ReusableStruct,
    Signing,
    SizedSegment,
    StringUTF8,
    StructSegment,
    UnsizedRaw,
    UnsizedSegment,
    UnsizedStringUTF8,
    Var,
)
from .util import rust_ident, to_camel_case

TAB = "    "

BYTES_FUNCTIONS = {
    Endianness.BIG: "to_be_bytes",
    Endianness.LITTLE: "to_le_bytes",
}


def _location(seg: PacketSegment, ctx: CompileContext) -> dict[str, str]:
    return {"payload": ctx.payload, "field": ctx.qualify(seg.name)}


def _var(seg: SizedSegment | UnsizedSegment, datatype: str, ctx: CompileContext) -> Var:
    return Var(ctx.qualify(rust_ident(seg.name)), datatype, seg.description)


def integer_type(bits: int, signing: Signing) -> str:
    """Rust type of an integer segment."""
    return f"{'u' if signing == Signing.UNSIGNED else 'i'}{bits}"


def _write_raw(seg: SizedSegment, ctx: CompileContext) -> CodeChunk:
    var = _var(seg, f"&[u8; {byte_len(seg.bits)}]", ctx)
    if seg.bits % 8 == 0:
        code = f"self.stream.write({var.name})?;\n"
    else:
        code = f"self.stream.write_bits({var.name}, {seg.bits})?;\n"
    return CodeChunk(code, (var,))


def _write_const(seg: SizedSegment, ctx: CompileContext) -> CodeChunk:
    datatype = seg.datatype
    assert isinstance(datatype, Const)
    check_const(seg.bits, datatype, **_location(seg, ctx))

    data = ", ".join(f"0x{b:02X}" for b in datatype.data)
    label = " ".join(ctx.qualify(seg.name).split())
    return CodeChunk(f"// {label}\nself.stream.write(&[{data}])?;\n")


def _write_integer(seg: SizedSegment, ctx: CompileContext) -> CodeChunk:
    datatype = seg.datatype
    assert isinstance(datatype, Integer)
    check_integer(seg.bits, datatype, **_location(seg, ctx))

    var = _var(seg, integer_type(seg.bits, datatype.signing), ctx)
    bytes_function = BYTES_FUNCTIONS[datatype.endianness]
    return CodeChunk(f"self.stream.write(&{var.name}.{bytes_function}())?;\n", (var,))


def _write_string(seg: SizedSegment, ctx: CompileContext) -> CodeChunk:
    check_string(seg.bits, **_location(seg, ctx))

    var = _var(seg, "&str", ctx)
    # Shorter strings are zero padded, longer ones are rejected at runtime
    return CodeChunk(f"self.stream.write_str({var.name}, {seg.bits // 8})?;\n", (var,))


def _write_float(seg: SizedSegment, ctx: CompileContext) -> CodeChunk:
    datatype = seg.datatype
    assert isinstance(datatype, FloatIEEE)
    check_float(seg.bits, **_location(seg, ctx))

    var = _var(seg, f"f{seg.bits}", ctx)
    bytes_function = BYTES_FUNCTIONS[datatype.endianness]
    return CodeChunk(f"self.stream.write(&{var.name}.{bytes_function}())?;\n", (var,))


SIZED_WRITERS: dict[type, Callable[[SizedSegment, CompileContext], CodeChunk]] = {
    Raw: _write_raw,
    Const: _write_const,
    Integer: _write_integer,
    StringUTF8: _write_string,
    FloatIEEE: _write_float,
}


def _write_length(expr: str, termination: LengthPrefixed) -> str:
    bytes_function = BYTES_FUNCTIONS[termination.endianness]
    return (
        f"self.stream.write(&u{termination.bits}::try_from({expr}.len())"
        f".map_err(|_| Error::LengthOverflow)?.{bytes_function}())?;\n"
    )


def _write_unsized_bytes(seg: UnsizedSegment, ctx: CompileContext) -> CodeChunk:
    if isinstance(seg.datatype, UnsizedStringUTF8):
        var = _var(seg, "&str", ctx)
        expr = f"{var.name}.as_bytes()"
    else:
        var = _var(seg, "&[u8]", ctx)
        expr = var.name

    termination = seg.termination
    if isinstance(termination, LengthPrefixed):
        check_length_prefix(termination.bits, **_location(seg, ctx))
        code = _write_length(expr, termination) + f"self.stream.write({expr})?;\n"
    else:
        code = f"self.stream.write_delimited({expr}, 0x{termination.byte:02X})?;\n"
    return CodeChunk(code, (var,))


def _write_array(resolver: StructResolver, seg: UnsizedSegment, ctx: CompileContext) -> CodeChunk:
    datatype = seg.datatype
    assert isinstance(datatype, Array)
    termination = seg.termination
    if isinstance(termination, Delimiter):
        raise UnsupportedTermination(
            "arrays of structs can't be delimiter terminated", **_location(seg, ctx)
        )
    check_length_prefix(termination.bits, **_location(seg, ctx))

    item = resolver.resolve(datatype.item_struct, seg.name, ctx)
    var = _var(seg, f"&[{to_camel_case(item.name)}]", ctx)

    # Item fields are read through the loop variable, not the enclosing prefix
    loop_var = f"{seg.name}_item"
    item_ctx = CompileContext(
        payload=ctx.payload, prefix=f"{loop_var}.", ancestors=(*ctx.ancestors, item.name)
    )
    body = compile_struct_fields(resolver, item, item_ctx)

    code = (
        _write_length(var.name, termination)
        + f"for {loop_var} in {var.name}.iter() {{\n"
        + indent(body.code, TAB)
        + "}\n"
    )
    return CodeChunk(code, (var,), body.outputs)


def _write_struct(resolver: StructResolver, seg: StructSegment, ctx: CompileContext) -> CodeChunk:
    rs = resolver.resolve(seg.struct_name, seg.name, ctx)
    field_name = rust_ident(seg.name)
    body = compile_struct_fields(resolver, rs, ctx.enter(field_name, rs.name))

    # The struct instance is the only input; its fields stay inside the fragment
    var = Var(ctx.qualify(field_name), f"&{to_camel_case(rs.name)}", rs.description)
    return CodeChunk(body.code, (var,), body.outputs)


def compile_struct_fields(
    resolver: StructResolver, rs: ReusableStruct, ctx: CompileContext
) -> CodeChunk:
    """Compile every field of `rs` under `ctx`, in declaration order."""
    return CodeChunk.join([compile_segment(resolver, seg, ctx) for seg in rs.fields])


def compile_segment(
    resolver: StructResolver, seg: PacketSegment, ctx: CompileContext
) -> CodeChunk:
    """Compile one segment into write statements.

    Args:
        resolver: Resolves struct names referenced by the segment.
        seg: The segment to compile.
        ctx: Payload being compiled, variable prefix and the structs being
             expanded.

    Raises:
        CodegenError: the segment can't be compiled.
    """
    if isinstance(seg, SizedSegment):
        writer = SIZED_WRITERS.get(type(seg.datatype))
        if writer is None:
            raise TypeError(f"Unknown sized datatype {seg.datatype!r}")
        return writer(seg, ctx)
    if isinstance(seg, UnsizedSegment):
        if isinstance(seg.datatype, Array):
            return _write_array(resolver, seg, ctx)
        if isinstance(seg.datatype, (UnsizedStringUTF8, UnsizedRaw)):
            return _write_unsized_bytes(seg, ctx)
        raise TypeError(f"Unknown unsized datatype {seg.datatype!r}")
    if isinstance(seg, StructSegment):
        return _write_struct(resolver, seg, ctx)
    raise TypeError(f"Unknown segment {seg!r}")
