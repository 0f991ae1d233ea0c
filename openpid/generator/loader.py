"""OpenPID schema loader.

Schemas are TOML documents::

    doc_version = "1.0.0"

    [device_info]
    name = "thermostat"
    description = "Serial thermostat controller"

    [structs.Point]
    description = "A 2D point"

    [[structs.Point.fields]]
    name = "x"
    bits = 16
    type = "integer"
    endianness = "big"
    signing = "twos_complement"

    [payloads.move_to]
    description = "Move the head to a point"

    [[payloads.move_to.segments]]
    name = "target"
    struct = "Point"

A segment with `struct` embeds a struct, a segment with `bits` is fixed
width, anything else is variable width and needs a `termination`.
"""

from pathlib import Path
from typing import Any

import toml

from .errors import SchemaError
from .types import (
    Array,
    Const,
    Delimiter,
    DeviceInfo,
    Endianness,
    FloatIEEE,
    Integer,
    LengthPrefixed,
    PacketSegment,
    Payload,
    Raw,
    ReusableStruct,
    Schema,
    Signing,
    SizedDataType,
    SizedSegment,
    StringUTF8,
    StructSegment,
    Termination,
    UnsizedDataType,
    UnsizedRaw,
    UnsizedSegment,
    UnsizedStringUTF8,
)


def _table(value: Any, where: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise SchemaError(f"{where}: expected a table, got {value!r}")
    return value


def _text(table: dict[str, Any], key: str, where: str) -> str | None:
    value = table.get(key)
    if value is not None and not isinstance(value, str):
        raise SchemaError(f"{where}: '{key}' must be a string, got {value!r}")
    return value


def _require(table: dict[str, Any], key: str, where: str) -> Any:
    if key not in table:
        raise SchemaError(f"{where}: missing '{key}'")
    return table[key]


def _enum(enum_type: type, value: Any, where: str) -> Any:
    try:
        return enum_type(str(value).lower())
    except ValueError:
        choices = ", ".join(e.value for e in enum_type)
        raise SchemaError(f"{where}: '{value}' is not one of {choices}") from None


def _byte(value: Any, where: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or not 0 <= value <= 255:
        raise SchemaError(f"{where}: {value!r} is not a byte value")
    return value


def _sized_datatype(table: dict[str, Any], where: str) -> SizedDataType:
    kind = _require(table, "type", where)
    if kind == "raw":
        return Raw()
    if kind == "const":
        data = _require(table, "data", where)
        if isinstance(data, str):
            return Const(data.encode("utf-8"))
        if not isinstance(data, list):
            raise SchemaError(f"{where}: const data must be a string or an array of bytes")
        return Const(bytes(_byte(b, where) for b in data))
    if kind == "integer":
        return Integer(
            endianness=_enum(Endianness, table.get("endianness", "big"), where),
            signing=_enum(Signing, table.get("signing", "unsigned"), where),
        )
    if kind == "string":
        return StringUTF8()
    if kind == "float":
        return FloatIEEE(endianness=_enum(Endianness, table.get("endianness", "big"), where))
    raise SchemaError(f"{where}: unknown fixed width type '{kind}'")


def _unsized_datatype(table: dict[str, Any], where: str) -> UnsizedDataType:
    kind = _require(table, "type", where)
    if kind == "array":
        return Array(item_struct=str(_require(table, "item", where)))
    if kind == "string":
        return UnsizedStringUTF8()
    if kind == "raw":
        return UnsizedRaw()
    raise SchemaError(f"{where}: unknown variable width type '{kind}'")


def _termination(table: dict[str, Any], where: str) -> Termination:
    termination = _table(_require(table, "termination", where), f"{where} termination")
    if "length_prefix" in termination and "delimiter" in termination:
        raise SchemaError(f"{where}: termination can't be both length prefixed and delimited")
    if "length_prefix" in termination:
        bits = termination["length_prefix"]
        if not isinstance(bits, int) or isinstance(bits, bool):
            raise SchemaError(f"{where}: length_prefix must be an integer width, got {bits!r}")
        return LengthPrefixed(
            bits=bits,
            endianness=_enum(Endianness, termination.get("endianness", "big"), where),
        )
    if "delimiter" in termination:
        return Delimiter(byte=_byte(termination["delimiter"], where))
    raise SchemaError(f"{where}: termination needs 'length_prefix' or 'delimiter'")


def _segment(table: Any, where: str) -> PacketSegment:
    table = _table(table, where)
    name = str(_require(table, "name", where))
    where = f"{where} '{name}'"
    description = _text(table, "description", where)

    if "struct" in table:
        return StructSegment(name=name, struct_name=str(table["struct"]))
    if "bits" in table:
        bits = table["bits"]
        if not isinstance(bits, int) or isinstance(bits, bool) or bits <= 0:
            raise SchemaError(f"{where}: bits must be a positive integer")
        return SizedSegment(
            name=name,
            bits=bits,
            datatype=_sized_datatype(table, where),
            description=description,
        )
    return UnsizedSegment(
        name=name,
        datatype=_unsized_datatype(table, where),
        termination=_termination(table, where),
        description=description,
    )


def _segments(tables: Any, where: str) -> tuple[PacketSegment, ...]:
    if not isinstance(tables, list):
        raise SchemaError(f"{where}: segments must be an array of tables")
    return tuple(_segment(t, f"{where} segment") for t in tables)


def from_dict(data: dict[str, Any]) -> Schema:
    """Build a schema from a parsed TOML document."""
    info = _table(_require(data, "device_info", "schema"), "device_info")
    doc_version = _text(data, "doc_version", "schema")
    if doc_version is None:
        doc_version = _text(info, "doc_version", "device_info")
    device_info = DeviceInfo(
        name=str(_require(info, "name", "device_info")),
        description=_text(info, "description", "device_info") or "",
        doc_version=doc_version,
    )

    structs: dict[str, ReusableStruct] = {}
    for name, table in _table(data.get("structs", {}), "structs").items():
        where = f"struct '{name}'"
        table = _table(table, where)
        structs[name] = ReusableStruct(
            name=name,
            fields=_segments(table.get("fields", []), where),
            description=_text(table, "description", where),
        )

    payloads: dict[str, Payload] = {}
    for name, table in _table(data.get("payloads", {}), "payloads").items():
        where = f"payload '{name}'"
        table = _table(table, where)
        payloads[name] = Payload(
            name=name,
            description=_text(table, "description", where) or "",
            segments=_segments(table.get("segments", []), where),
        )

    return Schema(device_info=device_info, structs=structs, payloads=payloads)


def loads(text: str) -> Schema:
    """Parse a schema from TOML text."""
    try:
        data = toml.loads(text)
    except toml.TomlDecodeError as e:
        raise SchemaError(f"invalid TOML: {e}") from e
    return from_dict(data)


def load(path: str | Path) -> Schema:
    """Load a schema from a TOML file."""
    with open(path, encoding="utf-8") as f:
        return loads(f.read())
