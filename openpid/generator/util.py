"""Naming and escaping helpers for generated Rust."""

import re

_WORD_SPLIT = re.compile(r"[^0-9A-Za-z]+")
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def _words(name: str) -> list[str]:
    words: list[str] = []
    for part in _WORD_SPLIT.split(name):
        words.extend(w for w in _CAMEL_BOUNDARY.split(part) if w)
    return words


def to_camel_case(name: str) -> str:
    """Convert a schema name to a Rust type name, e.g. `gps_fix` -> `GpsFix`."""
    return "".join(w[:1].upper() + w[1:] for w in _words(name))


def to_snake_case(name: str) -> str:
    """Convert a schema name to a Rust function or field name, e.g. `SetPoint` -> `set_point`."""
    return "_".join(w.lower() for w in _words(name))


def doc_lines(text: str | None, prefix: str = "/// ") -> list[str]:
    """Render free text as Rust doc comment lines."""
    if not text:
        return []
    return [f"{prefix}{line}".rstrip() for line in text.strip().splitlines()]


def toml_escape(value: str) -> str:
    """Escape a user-supplied string for a TOML basic string."""
    out = []
    for ch in value:
        if ch == "\\":
            out.append("\\\\")
        elif ch == '"':
            out.append('\\"')
        elif ch == "\n":
            out.append("\\n")
        elif ch == "\t":
            out.append("\\t")
        elif ord(ch) < 0x20 or ord(ch) == 0x7F:
            out.append(f"\\u{ord(ch):04X}")
        else:
            out.append(ch)
    return "".join(out)


RUST_KEYWORDS = frozenset(
    """as async await break const continue crate dyn else enum extern false fn for if impl in
    let loop match mod move mut pub ref return static struct super trait true type unsafe use
    where while abstract become box do final macro override priv try typeof unsized virtual
    yield""".split()
)


def rust_ident(name: str) -> str:
    """Make a schema name usable as a Rust identifier."""
    # These can't be raw identifiers
    if name in ("crate", "self", "Self", "super"):
        return f"{name}_"
    if name in RUST_KEYWORDS:
        return f"r#{name}"
    return name


def method_name(name: str) -> str:
    """Rust method name of a payload, e.g. `SetPoint` -> `set_point`, `move` -> `r#move`."""
    return rust_ident(to_snake_case(name))
