"""Errors raised while loading and compiling protocol schemas."""


class SchemaError(RuntimeError):
    """Raised when a schema file cannot be turned into a schema model."""


class CodegenError(RuntimeError):
    """Base class for compile-time errors.

    Every error is tagged with the payload (or struct) being compiled and the
    field that caused it, so a failed compilation can be traced back to the
    schema.
    """

    def __init__(self, message: str, *, payload: str | None = None, field: str | None = None):
        self.payload = payload
        self.field = field
        self.reason = message
        super().__init__(self._format())

    def _format(self) -> str:
        location = []
        if self.payload is not None:
            location.append(f"payload '{self.payload}'")
        if self.field is not None:
            location.append(f"field '{self.field}'")
        if not location:
            return self.reason
        return f"{', '.join(location)}: {self.reason}"


class UnresolvedStruct(CodegenError):
    """A struct segment names a struct absent from the schema."""

    def __init__(self, *, payload: str, field: str, struct_name: str):
        self.struct_name = struct_name
        super().__init__(f"struct '{struct_name}' is not defined", payload=payload, field=field)


class CyclicReference(CodegenError):
    """A struct embeds itself, directly or through other structs."""

    def __init__(self, *, payload: str, field: str, struct_name: str, chain: tuple[str, ...]):
        self.struct_name = struct_name
        self.chain = chain
        path = " -> ".join((*chain, struct_name))
        super().__init__(f"cyclic struct reference {path}", payload=payload, field=field)


class UnsupportedWidth(CodegenError):
    """An integer or float is declared with a width the target can't represent."""

    def __init__(self, bits: int, supported: tuple[int, ...], **kwargs):
        self.bits = bits
        self.supported = supported
        widths = ", ".join(str(w) for w in supported)
        super().__init__(f"width of {bits} bits is not one of {widths}", **kwargs)


class UnsupportedSigning(CodegenError):
    """One's complement integers are not implemented."""


class SizeMismatch(CodegenError):
    """A declared width disagrees with the size of a literal."""

    def __init__(self, bits: int, data: bytes, **kwargs):
        self.bits = bits
        self.data = data
        super().__init__(
            f"declared {bits} bits but literal is {len(data)} bytes ({len(data) * 8} bits)",
            **kwargs,
        )


class NotByteAligned(CodegenError):
    """A byte-oriented datatype is declared with a width that splits a byte."""

    def __init__(self, bits: int, **kwargs):
        self.bits = bits
        super().__init__(f"width of {bits} bits is not a multiple of 8", **kwargs)


class UnsupportedTermination(CodegenError):
    """A termination policy can't be applied to the segment's datatype."""


class DuplicateVariable(CodegenError):
    """Two segments of one payload produce a variable with the same name."""


class NameCollision(CodegenError):
    """Two schema items, or a schema item and a runtime item, map to one Rust name."""

    def __init__(self, rust_name: str, owner: str, **kwargs):
        self.rust_name = rust_name
        self.owner = owner
        super().__init__(f"Rust name '{rust_name}' is already used by {owner}", **kwargs)
