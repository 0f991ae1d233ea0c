"""Assemble compiled segments into payload functions and struct declarations."""

from textwrap import indent

from .errors import DuplicateVariable
from .resolver import CompileContext, StructResolver
from .segments import TAB, compile_segment
from .types import (
    Array,
    CodeChunk,
    PacketSegment,
    Payload,
    Raw,
    ReusableStruct,
    SizedSegment,
    StringUTF8,
    StructSegment,
    UnsizedSegment,
    Var,
)
from .util import doc_lines, method_name, rust_ident, to_camel_case


def _check_unique(inputs: tuple[Var, ...], payload: str) -> None:
    seen: set[str] = set()
    for var in inputs:
        if var.name in seen:
            raise DuplicateVariable(
                "more than one segment produces this variable", payload=payload, field=var.name
            )
        seen.add(var.name)


def _payload_docs(payload: Payload, inputs: tuple[Var, ...]) -> list[str]:
    lines = doc_lines(payload.description)

    # Inputs without a description are still parameters, just undocumented
    arg_lines = []
    for var in inputs:
        desc = doc_lines(var.description, prefix="///   ")
        if not desc:
            continue
        first = desc[0].removeprefix("///   ")
        arg_lines.append(f"/// * `{var.name}` - {first}")
        arg_lines.extend(desc[1:])

    if arg_lines:
        if lines:
            lines.append("///")
        lines.append("/// # Arguments")
        lines.extend(arg_lines)
    return lines


def compile_payload(resolver: StructResolver, payload: Payload) -> CodeChunk:
    """Compile a payload into one write method.

    The method's parameters are the inputs of the returned chunk, in the
    order segments first use them. Any failing segment aborts the payload.
    """
    ctx = CompileContext(payload=payload.name)
    body = CodeChunk.join([compile_segment(resolver, seg, ctx) for seg in payload.segments])
    _check_unique(body.inputs, payload.name)

    args = ", ".join(["&mut self", *(f"{v.name}: {v.datatype}" for v in body.inputs)])
    lines = [
        *_payload_docs(payload, body.inputs),
        f"pub fn {method_name(payload.name)}({args}) -> Result<(), Error<W::Error>> {{",
    ]
    code = (
        "\n".join(lines)
        + "\n"
        + indent(body.code, TAB)
        + f"{TAB}self.stream.flush()?;\n"
        + f"{TAB}Ok(())\n"
        + "}\n"
    )
    return CodeChunk(code, body.inputs, body.outputs)


def struct_borrows(resolver: StructResolver, rs: ReusableStruct, ctx: CompileContext) -> bool:
    """Whether the declaration of `rs` holds references and needs a lifetime."""
    for seg in rs.fields:
        if isinstance(seg, UnsizedSegment):
            return True
        if isinstance(seg, SizedSegment) and isinstance(seg.datatype, (Raw, StringUTF8)):
            return True
        if isinstance(seg, StructSegment):
            inner = resolver.resolve(seg.struct_name, seg.name, ctx)
            if struct_borrows(resolver, inner, ctx.enter(seg.name, inner.name)):
                return True
    return False


def _type_name(resolver: StructResolver, struct_name: str, field: str, ctx: CompileContext) -> str:
    rs = resolver.resolve(struct_name, field, ctx)
    lifetime = "<'a>" if struct_borrows(resolver, rs, ctx.enter(field, rs.name)) else ""
    return f"{to_camel_case(rs.name)}{lifetime}"


def _field_type(
    resolver: StructResolver, seg: PacketSegment, var: Var, ctx: CompileContext
) -> str:
    if isinstance(seg, StructSegment):
        # Nested structs are stored by value
        return _type_name(resolver, seg.struct_name, seg.name, ctx)
    if isinstance(seg, UnsizedSegment) and isinstance(seg.datatype, Array):
        return f"&'a [{_type_name(resolver, seg.datatype.item_struct, seg.name, ctx)}]"
    if var.datatype.startswith("&"):
        return f"&'a {var.datatype[1:]}"
    return var.datatype


def compile_struct(resolver: StructResolver, rs: ReusableStruct) -> CodeChunk:
    """Compile the Rust declaration of a reusable struct.

    Const fields are written by the serializer and have no storage. The
    chunk's inputs and outputs are the declared fields.
    """
    ctx = CompileContext(payload=rs.name, ancestors=(rs.name,))

    fields: list[Var] = []
    field_lines: list[str] = []
    for seg in rs.fields:
        chunk = compile_segment(resolver, seg, ctx)
        if not chunk.inputs:
            continue
        var = chunk.inputs[0]
        field_type = _field_type(resolver, seg, var, ctx)
        field_lines.extend(doc_lines(var.description))
        field_lines.append(f"pub {rust_ident(seg.name)}: {field_type},")
        fields.append(Var(var.name, field_type, var.description))

    lifetime = "<'a>" if struct_borrows(resolver, rs, ctx) else ""
    lines = [
        *doc_lines(rs.description),
        "#[derive(Debug, Clone, Copy, PartialEq)]",
        f"pub struct {to_camel_case(rs.name)}{lifetime} {{",
        *(f"{TAB}{line}" for line in field_lines),
        "}",
    ]
    code = "\n".join(lines) + "\n"
    return CodeChunk(code, tuple(fields), tuple(fields))
