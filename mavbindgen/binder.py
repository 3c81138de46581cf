"""Writing the top-level module that declares every generated dialect module."""

from __future__ import annotations

from typing import Iterable, TextIO

_ALLOWS = (
    "non_camel_case_types",
    "clippy::derive_partial_eq_without_eq",
    "clippy::field_reassign_with_default",
    "non_snake_case",
    "clippy::unnecessary_cast",
    "clippy::bad_bit_mask",
)


def _module_declaration(module: str) -> str:
    if not module.isidentifier():
        raise ValueError(f"{module!r} is not a valid module identifier")
    lines = [f"#[allow({lint})]" for lint in _ALLOWS]
    lines.append(f'#[cfg(feature = "{module}")]')
    lines.append(f"pub mod {module};")
    return "\n".join(lines)


def generate(modules: Iterable[str], out: TextIO) -> None:
    """Write a declaration, gated on a feature of the same name, for each module.

    Raises ValueError if a module name is not a valid identifier.
    """
    declarations = [_module_declaration(module) for module in modules]
    out.write("\n".join(declarations))
    out.write("\n")