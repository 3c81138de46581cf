"""Errors raised while generating bindings from MAVLink definitions."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Union

PathLike = Union[str, "os.PathLike[str]"]


class BindGenError(Exception):
    """Base class of every failure reported by the binding generator."""

    _template = "{path}: {source}"

    def __init__(self, path: PathLike, source: Union[BaseException, str]) -> None:
        self.path = Path(path)
        self.source = source
        super().__init__(self._template.format(path=self.path, source=source))


class CouldNotReadDefinitionsDirectory(BindGenError):
    """The MAVLink definitions directory could not be read."""

    _template = "Could not read definitions directory {path}: {source}"


class CouldNotReadDefinitionFile(BindGenError):
    """A MAVLink definition file could not be read."""

    _template = "Could not read definition file {path}: {source}"


class CouldNotReadDirectoryEntryInDefinitionsDirectory(BindGenError):
    """An entry of the MAVLink definitions directory could not be read."""

    _template = "Could not read MAVLink definitions directory entry {path}: {source}"


class CouldNotCreateRustBindingsFile(BindGenError):
    """A file for the generated bindings could not be created."""

    _template = "Could not create Rust bindings file {path}: {source}"

    @property
    def dest_path(self) -> Path:
        """The path of the file that could not be created."""
        return self.path


class DefinitionError(BindGenError):
    """A definition file is malformed or contradicts another definition."""

    _template = "Invalid MAVLink definition {path}: {source}"