"""Command-line interface for openpid code generation."""

from __future__ import annotations

import json
import sys
from typing import TYPE_CHECKING

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from openpid.generator import rust
from openpid.generator.errors import CodegenError, SchemaError
from openpid.generator.loader import load
from openpid.generator.sizes import calculate_sizes

if TYPE_CHECKING:
    from openpid.generator.rust import CompiledSchema
    from openpid.generator.sizes import SchemaSizeInfo, SizeInfo
    from openpid.generator.types import Schema

console = Console()
err_console = Console(stderr=True)


def _load_and_compile(input_file: str) -> tuple[Schema, CompiledSchema]:
    """Load and compile a schema, exiting with status 1 on schema errors."""
    try:
        schema = load(input_file)
        return schema, rust.compile_schema(schema)
    except (SchemaError, CodegenError) as e:
        err_console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        sys.exit(1)


@click.group()
def cli() -> None:
    """OpenPID driver code generator."""


@cli.command()
@click.option("--input", "-i", "input_file", required=True, help="Input schema file")
@click.option("--output", "-o", "output_path", required=True, help="Output crate directory")
def gen(input_file: str, output_path: str) -> None:
    """Generate a Rust driver crate from a schema."""
    schema, _ = _load_and_compile(input_file)

    if schema.device_info.doc_version is None:
        err_console.print(
            "[yellow]Warning:[/yellow] No document version provided. Defaulting crate "
            f"version to {rust.DEFAULT_VERSION}, which may cause problems with cargo publish."
        )

    for path in rust.scaffold(schema, output_path):
        console.print(f"Wrote {path}")


@cli.command()
@click.option("--input", "-i", "input_file", required=True, help="Input schema file")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def info(input_file: str, output_json: bool) -> None:
    """Display payload signatures and sizes."""
    schema, compiled = _load_and_compile(input_file)
    size_info = calculate_sizes(schema)

    if output_json:
        _output_json(schema, compiled, size_info)
    else:
        _output_plain(schema, compiled, size_info)


def _format_bits(size: SizeInfo) -> str:
    """Format a size range in bits, handling None for unbounded."""
    if size.max_bits is None:
        return f"{size.min_bits}+ bits"
    if size.min_bits == size.max_bits:
        return f"{size.min_bits} bits"
    return f"{size.min_bits}-{size.max_bits} bits"


def _output_json(schema: Schema, compiled: CompiledSchema, size_info: SchemaSizeInfo) -> None:
    """Output schema info as JSON."""
    data: dict = {
        "device": schema.device_info.to_dict(),
        "structs": {},
        "payloads": {},
    }

    for rs, chunk in zip(schema.structs.values(), compiled.structs):
        data["structs"][rs.name] = {
            "fields": [v.to_dict() for v in chunk.inputs],
            "size": size_info.structs[rs.name].to_dict(),
        }

    for payload, chunk in zip(schema.payloads.values(), compiled.payloads):
        data["payloads"][payload.name] = {
            "parameters": [v.to_dict() for v in chunk.inputs],
            "size": size_info.payloads[payload.name].to_dict(),
        }

    print(json.dumps(data, indent=2))


def _output_plain(schema: Schema, compiled: CompiledSchema, size_info: SchemaSizeInfo) -> None:
    """Output schema info using rich text formatting."""
    info = schema.device_info
    console.print(f"[bold cyan]{escape(info.name)}[/bold cyan] {escape(info.doc_version or '')}")
    if info.description:
        console.print(escape(info.description), style="dim")
    console.print()

    console.print("[bold cyan]Structs[/bold cyan]")
    struct_table = Table(show_header=True, box=None, padding=(0, 2, 0, 0))
    struct_table.add_column("Name", style="white", no_wrap=True)
    struct_table.add_column("Size", style="yellow", justify="right", no_wrap=True)
    struct_table.add_column("Fields", style="dim")

    for rs, chunk in zip(schema.structs.values(), compiled.structs):
        fields = escape(", ".join(f"{v.name}: {v.datatype}" for v in chunk.inputs))
        struct_table.add_row(rs.name, _format_bits(size_info.structs[rs.name]), fields)

    console.print(struct_table)
    console.print()

    console.print("[bold cyan]Payloads[/bold cyan]")
    payload_table = Table(show_header=True, box=None, padding=(0, 2, 0, 0))
    payload_table.add_column("Name", style="white", no_wrap=True)
    payload_table.add_column("Size", style="yellow", justify="right", no_wrap=True)
    payload_table.add_column("Parameters", style="green")

    for payload, chunk in zip(schema.payloads.values(), compiled.payloads):
        params = escape(", ".join(f"{v.name}: {v.datatype}" for v in chunk.inputs))
        payload_table.add_row(payload.name, _format_bits(size_info.payloads[payload.name]), params)

    console.print(payload_table)


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
