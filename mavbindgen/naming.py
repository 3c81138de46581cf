"""Name conversions used for generated modules and types."""

from __future__ import annotations

import os
from pathlib import PurePath
from typing import Union


def to_module_name(file_name: Union[str, "os.PathLike[str]"]) -> str:
    """Turn a definition file name into a module name.

    The extension is dropped, the rest lowered, and every character that is
    not alphanumeric replaced with an underscore.
    """
    path = PurePath(file_name)
    if path.name in ("", ".", ".."):
        raise ValueError(f"{os.fspath(file_name)!r} has no file name")
    stem = path.stem.lower()
    return "".join(c if c.isalnum() else "_" for c in stem)


def capitalize_word(text: str) -> str:
    """Upper-case the first character and ASCII-lower-case the rest."""
    if not text:
        return ""
    first, rest = text[0], text[1:]
    return first.upper() + "".join(c.lower() if c.isascii() else c for c in rest)


def to_pascal_case(text: Union[str, bytes]) -> str:
    """Convert an underscore separated name such as ``MAV_CMD`` to PascalCase."""
    if isinstance(text, str):
        text = text.encode("utf-8")
    return "".join(
        capitalize_word(part.decode("utf-8", errors="replace"))
        for part in text.split(b"_")
    )