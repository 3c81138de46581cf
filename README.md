# mavbindgen

Read MAVLink dialect XML definition files into Python objects, and produce
the pieces needed for Rust bindings of them: field types with their Rust
read/write fragments, each message's `CRC_EXTRA` byte, and the `mod.rs`
that declares one feature-gated module per dialect.

## Installation

```
pip install .
```

## Reading a dialect

```python
from mavbindgen.xmlparse import parse_profile
from mavbindgen.model import extra_crc

profile = parse_profile("definitions", "common.xml")
for name, message in sorted(profile.messages.items()):
    print(message.id, name, extra_crc(message), message.encoded_len())
```

`mavbindgen.xmlparse.parse_profile(definitions_dir, definition_file, parsed_files=None)`
reads a definition file and every file named by its `<include>` elements
(each file at most once; `parsed_files` collects the paths read). It returns
a `mavbindgen.model.MavProfile` holding:

- `messages`: `MavMessage` objects keyed by name, with `id`, `name`,
  `description` and `fields`. Fields are in wire order: sorted by element
  size, largest first. Fields after an `<extensions/>` marker are dropped.
- `enums`: `MavEnum` objects keyed by their PascalCase name, with their
  `entries`. Enums defined in several files are merged. An enum used by a
  field with `display="bitmask"` gets `bitfield` set to the Rust type of that
  field.

A field named `type` is stored as `mavtype`.

## Other pieces

- `mavbindgen.types.parse_type` parses a type such as `uint16_t` or
  `char[16]` into a `MavType`, which gives its encoded size, C and Rust type
  names, Rust zero value, and Rust statements that read it from or write it
  to a buffer (`rust_reader`, `rust_writer`).
- `mavbindgen.model.extra_crc` computes a message's `CRC_EXTRA` byte;
  `mavbindgen.model.crc16_mcrf4xx` is the underlying CRC-16/MCRF4XX.
- `mavbindgen.binder.generate(modules, out)` writes, to a text stream, a
  `pub mod` declaration gated on a feature of the same name for each module
  name.
- `mavbindgen.naming.to_module_name` turns a file name such as
  `common.xml` into a module name; `to_pascal_case` turns `MAV_CMD` into
  `MavCmd`.

## Errors

Failures are raised as subclasses of `mavbindgen.errors.BindGenError`, each
carrying `path` and `source`. `parse_profile` raises
`CouldNotReadDefinitionFile` when a file cannot be read and `DefinitionError`
when a file is malformed (unknown element or type, an element in the wrong
place, conflicting message definitions, duplicate enum entries).

## What this package does not do

- It has no command line tool.
- It does not render complete Rust modules for a dialect (message structs,
  enums, the message dispatch code), and so writes no per-dialect `.rs`
  files; only `mod.rs` declarations are produced.
- It does not run `rustfmt` or print Cargo build-script messages.

## Running the tests

```
pip install .[test]
pytest
```