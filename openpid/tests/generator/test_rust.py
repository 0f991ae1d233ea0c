"""Tests for whole-schema compilation and crate scaffolding."""

import os
from dataclasses import replace

import pytest

from openpid.generator import load, loads
from openpid.generator.errors import NameCollision, UnresolvedStruct, UnsupportedWidth
from openpid.generator.rust import compile_schema, render, scaffold
from openpid.generator.types import DeviceInfo

FILE_DIR = os.path.dirname(os.path.realpath(__file__))
SCHEMA_FILE = f"{FILE_DIR}/thermostat.toml"


def describe_compile_schema():
    def compiles_structs_and_payloads_in_order(expect):
        compiled = compile_schema(load(SCHEMA_FILE))
        expect([c.code.split("pub struct ")[1].split(" ")[0] for c in compiled.structs]) == [
            "Setpoint",
            "Schedule<'a>",
        ]
        expect([v.name for v in compiled.payloads[0].inputs]) == ["target", "fan", "reserved"]
        expect([v.name for v in compiled.payloads[1].inputs]) == ["schedule", "gain"]

    def fails_on_unresolved_struct(expect):
        schema = loads(
            """
[device_info]
name = "dev"

[[payloads.send.segments]]
name = "target"
struct = "Nowhere"
"""
        )
        with pytest.raises(UnresolvedStruct) as e:
            compile_schema(schema)
        expect(e.value.payload) == "send"
        expect(e.value.field) == "target"


def describe_check_names():
    def rejects_payloads_shadowing_driver_methods(expect):
        schema = loads('[device_info]\nname = "dev"\n\n[payloads.release]\ndescription = ""\n')
        with pytest.raises(NameCollision) as e:
            compile_schema(schema)
        expect(e.value.payload) == "release"
        expect(e.value.rust_name) == "release"

    def rejects_payloads_with_the_same_method_name(expect):
        schema = loads(
            '[device_info]\nname = "dev"\n\n'
            '[payloads.SetPoint]\ndescription = ""\n\n'
            '[payloads.set_point]\ndescription = ""\n'
        )
        with pytest.raises(NameCollision) as e:
            compile_schema(schema)
        expect(e.value.payload) == "set_point"
        expect(e.value.owner) == "payload 'SetPoint'"

    def rejects_structs_shadowing_runtime_types(expect):
        for name in ("Error", "BitStream", "Put"):
            schema = loads(
                f'[device_info]\nname = "dev"\n\n'
                f'[[structs.{name}.fields]]\nname = "x"\nbits = 8\ntype = "integer"\n'
            )
            with pytest.raises(NameCollision) as e:
                compile_schema(schema)
            expect(e.value.owner) == "the runtime"

    def rejects_structs_named_like_the_device(expect):
        schema = loads(
            '[device_info]\nname = "smart_meter"\n\n'
            '[[structs.SmartMeter.fields]]\nname = "x"\nbits = 8\ntype = "integer"\n'
        )
        with pytest.raises(NameCollision) as e:
            compile_schema(schema)
        expect(e.value.owner) == "the device driver"

    def rejects_devices_named_like_runtime_types(expect):
        with pytest.raises(NameCollision):
            compile_schema(loads('[device_info]\nname = "bit_stream"\n'))


def describe_render():
    def is_deterministic(expect):
        first = render(load(SCHEMA_FILE))
        second = render(load(SCHEMA_FILE))
        expect(first) == second

    def renders_lib(expect):
        lib = render(load(SCHEMA_FILE))["src/lib.rs"]
        expect(lib.startswith("//! Driver for thermostat.\n//! Serial thermostat controller.\n")) == True
        expect("#![no_std]\n" in lib) == True
        expect("pub struct BitStream<S> {\n" in lib) == True
        expect("pub struct Setpoint {\n" in lib) == True
        expect("pub struct Thermostat<W> {\n" in lib) == True
        expect("impl<W: Write> Thermostat<W> {\n" in lib) == True

    def renders_payload_methods_inside_impl(expect):
        lib = render(load(SCHEMA_FILE))["src/lib.rs"]
        expect(
            "    /// Set the current target temperature\n"
            "    ///\n"
            "    /// # Arguments\n"
            "    /// * `target` - A temperature target\n"
            "    /// * `fan` - Fan mode bits\n"
            "    pub fn set_target(&mut self, target: &Setpoint, fan: &[u8; 1], reserved: &[u8; 1])"
            " -> Result<(), Error<W::Error>> {\n"
            "        // header\n"
            "        self.stream.write(&[0xAA, 0x55])?;\n"
            "        self.stream.write(&target.celsius.to_be_bytes())?;\n"
            "        self.stream.write(&target.hold.to_be_bytes())?;\n"
            "        self.stream.write_bits(fan, 4)?;\n"
            "        self.stream.write_bits(reserved, 4)?;\n"
            "        self.stream.flush()?;\n"
            "        Ok(())\n"
            "    }\n"
            in lib
        ) == True

    def renders_nested_array_loops(expect):
        lib = render(load(SCHEMA_FILE))["src/lib.rs"]
        expect("        for points_item in schedule.points.iter() {\n" in lib) == True
        expect("            self.stream.write(&points_item.celsius.to_be_bytes())?;\n" in lib) == True

    def renders_cargo_manifest(expect):
        manifest = render(load(SCHEMA_FILE))["Cargo.toml"]
        expect('name = "thermostat"\n' in manifest) == True
        expect('version = "1.2.0"\n' in manifest) == True
        expect('description = "Serial thermostat controller.\\nSpeaks a binary protocol over UART."' in manifest) == True
        expect('embedded-io = "0.6.1"' in manifest) == True

    def escapes_manifest_strings(expect):
        schema = load(SCHEMA_FILE)
        schema = replace(
            schema,
            device_info=DeviceInfo(name="Smart Meter", description='A "smart" meter\\'),
        )
        manifest = render(schema)["Cargo.toml"]
        expect('name = "smart-meter"\n' in manifest) == True
        expect('description = "A \\"smart\\" meter\\\\"\n' in manifest) == True

    def defaults_version(expect):
        schema = load(SCHEMA_FILE)
        schema = replace(schema, device_info=replace(schema.device_info, doc_version=None))
        manifest = render(schema)["Cargo.toml"]
        expect('version = "0.1.0"\n' in manifest) == True

    def renders_gitignore(expect):
        expect("target/\n" in render(load(SCHEMA_FILE))[".gitignore"]) == True


def describe_scaffold():
    def writes_crate_layout(expect, tmp_path):
        written = scaffold(load(SCHEMA_FILE), tmp_path / "crate")
        expect(sorted(p.relative_to(tmp_path).as_posix() for p in written)) == [
            "crate/.gitignore",
            "crate/Cargo.toml",
            "crate/src/lib.rs",
        ]
        expect((tmp_path / "crate" / "src" / "lib.rs").read_text()) == render(
            load(SCHEMA_FILE)
        )["src/lib.rs"]

    def writes_nothing_for_failing_schema(expect, tmp_path):
        schema = loads(
            """
[device_info]
name = "dev"

[[payloads.send.segments]]
name = "x"
bits = 12
type = "integer"
"""
        )
        with pytest.raises(UnsupportedWidth):
            scaffold(schema, tmp_path / "crate")
        expect((tmp_path / "crate").exists()) == False
