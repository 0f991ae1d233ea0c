"""Struct lookup for nested segments."""

from dataclasses import dataclass, field

from .errors import CyclicReference, UnresolvedStruct
from .types import ReusableStruct, Schema


@dataclass(frozen=True)
class CompileContext:
    """Where in the schema a segment is being compiled.

    `prefix` is prepended to variable names of fields that live inside a
    struct instance. `ancestors` lists the structs currently being expanded,
    outermost first.
    """

    payload: str
    prefix: str = ""
    ancestors: tuple[str, ...] = field(default=())

    def qualify(self, name: str) -> str:
        return f"{self.prefix}{name}"

    def enter(self, field_name: str, struct_name: str) -> "CompileContext":
        """Return the context for the fields of struct `struct_name` stored in `field_name`."""
        return CompileContext(
            payload=self.payload,
            prefix=f"{self.prefix}{field_name}.",
            ancestors=(*self.ancestors, struct_name),
        )


class StructResolver:
    """Resolve struct names against a schema."""

    def __init__(self, schema: Schema):
        self.schema = schema

    def resolve(self, struct_name: str, field_name: str, ctx: CompileContext) -> ReusableStruct:
        """Look up `struct_name`, requested by `field_name` under `ctx`.

        Raises:
            UnresolvedStruct: the schema has no such struct.
            CyclicReference: the struct is already being expanded.
        """
        if struct_name in ctx.ancestors:
            raise CyclicReference(
                payload=ctx.payload,
                field=ctx.qualify(field_name),
                struct_name=struct_name,
                chain=ctx.ancestors,
            )

        rs = self.schema.structs.get(struct_name)
        if rs is None:
            raise UnresolvedStruct(
                payload=ctx.payload, field=ctx.qualify(field_name), struct_name=struct_name
            )
        return rs
