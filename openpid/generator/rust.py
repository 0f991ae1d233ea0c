"""Rust embedded driver generator for OpenPID schemas."""

from dataclasses import dataclass
from pathlib import Path

from jinja2 import Environment, PackageLoader

from .errors import NameCollision
from .payloads import compile_payload, compile_struct
from .resolver import StructResolver
from .types import CodeChunk, DeviceInfo, Schema
from .util import doc_lines, method_name, to_camel_case, to_snake_case, toml_escape

DEFAULT_VERSION = "0.1.0"

# Items every generated lib.rs defines or relies on
RUNTIME_TYPES = ("Error", "BitStream", "BigEndian", "LittleEndian", "Put", "Get", "Result", "Self")
DRIVER_METHODS = ("new", "release")

env = Environment(
    loader=PackageLoader("openpid.generator", "templates"),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    line_comment_prefix="%%",
    line_statement_prefix="%",
)
env.filters["toml_escape"] = toml_escape
env.filters["doc"] = doc_lines


@dataclass(frozen=True)
class CompiledSchema:
    """All generated fragments of a schema, in schema order."""

    device_info: DeviceInfo
    structs: tuple[CodeChunk, ...]
    payloads: tuple[CodeChunk, ...]


def check_names(schema: Schema) -> None:
    """Reject structs and payloads whose Rust names clash.

    Raises:
        NameCollision: a struct type or payload method name is taken.
    """
    types = {name: "the runtime" for name in RUNTIME_TYPES}
    device_type = to_camel_case(schema.device_info.name)
    if device_type in types:
        raise NameCollision(device_type, types[device_type])
    types[device_type] = "the device driver"
    for rs in schema.structs.values():
        type_name = to_camel_case(rs.name)
        if type_name in types:
            raise NameCollision(type_name, types[type_name], payload=rs.name)
        types[type_name] = f"struct '{rs.name}'"

    methods = {name: "the device driver" for name in DRIVER_METHODS}
    for payload in schema.payloads.values():
        name = method_name(payload.name)
        if name in methods:
            raise NameCollision(name, methods[name], payload=payload.name)
        methods[name] = f"payload '{payload.name}'"


def compile_schema(schema: Schema) -> CompiledSchema:
    """Compile every struct and payload of a schema.

    Raises:
        CodegenError: on the first struct or payload that fails to compile.
    """
    check_names(schema)
    resolver = StructResolver(schema)
    return CompiledSchema(
        device_info=schema.device_info,
        structs=tuple(compile_struct(resolver, rs) for rs in schema.structs.values()),
        payloads=tuple(compile_payload(resolver, p) for p in schema.payloads.values()),
    )


def crate_name(info: DeviceInfo) -> str:
    return to_snake_case(info.name).replace("_", "-")


def crate_version(info: DeviceInfo) -> str:
    return info.doc_version or DEFAULT_VERSION


def render_lib(compiled: CompiledSchema) -> str:
    """Render `src/lib.rs` for a compiled schema."""
    template = env.get_template("lib.rs.j2")
    return template.render(
        device=compiled.device_info,
        device_type=to_camel_case(compiled.device_info.name),
        structs=compiled.structs,
        payloads=compiled.payloads,
    )


def render_cargo_toml(info: DeviceInfo) -> str:
    template = env.get_template("Cargo.toml.j2")
    return template.render(
        name=crate_name(info),
        version=crate_version(info),
        description=info.description,
    )


def render_gitignore() -> str:
    return env.get_template("gitignore.j2").render()


def render(schema: Schema) -> dict[str, str]:
    """Render a schema to crate files as a dict of relative path -> content."""
    compiled = compile_schema(schema)
    return {
        "Cargo.toml": render_cargo_toml(schema.device_info),
        ".gitignore": render_gitignore(),
        "src/lib.rs": render_lib(compiled),
    }


def scaffold(schema: Schema, target: str | Path) -> list[Path]:
    """Write a Cargo crate for `schema` under `target`.

    Nothing is written if the schema fails to compile. I/O errors propagate.

    Returns:
        The paths written.
    """
    files = render(schema)

    target = Path(target)
    written: list[Path] = []
    for relative, content in files.items():
        path = target / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        written.append(path)
    return written
