"""MAVLink field types and the code fragments they produce."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Primitive(Enum):
    """A scalar MAVLink wire type, keyed by its definition-file spelling."""

    UINT8_MAVLINK_VERSION = "uint8_t_mavlink_version"
    UINT8 = "uint8_t"
    UINT16 = "uint16_t"
    UINT32 = "uint32_t"
    UINT64 = "uint64_t"
    INT8 = "int8_t"
    INT16 = "int16_t"
    INT32 = "int32_t"
    INT64 = "int64_t"
    CHAR = "char"
    FLOAT = "float"
    DOUBLE = "double"

    @property
    def size(self) -> int:
        """Encoded size in bytes."""
        return _INFO[self].size

    @property
    def c_type(self) -> str:
        """The C type name used in checksum calculation."""
        return _INFO[self].c_type

    @property
    def rust_type(self) -> str:
        """The Rust type used for struct fields."""
        return _INFO[self].rust_type

    @property
    def accessor(self) -> str:
        """Suffix of the buffer get/put methods for this type."""
        return _INFO[self].accessor

    @property
    def default_value(self) -> str:
        """Rust literal of the zero value."""
        return _INFO[self].default


@dataclass(frozen=True)
class _Info:
    c_type: str
    rust_type: str
    size: int
    accessor: str
    default: str


_INFO = {
    Primitive.UINT8_MAVLINK_VERSION: _Info("uint8_t", "u8", 1, "u8", "0_u8"),
    Primitive.UINT8: _Info("uint8_t", "u8", 1, "u8", "0_u8"),
    Primitive.UINT16: _Info("uint16_t", "u16", 2, "u16_le", "0_u16"),
    Primitive.UINT32: _Info("uint32_t", "u32", 4, "u32_le", "0_u32"),
    Primitive.UINT64: _Info("uint64_t", "u64", 8, "u64_le", "0_u64"),
    Primitive.INT8: _Info("int8_t", "i8", 1, "i8", "0_i8"),
    Primitive.INT16: _Info("int16_t", "i16", 2, "i16_le", "0_i16"),
    Primitive.INT32: _Info("int32_t", "i32", 4, "i32_le", "0_i32"),
    Primitive.INT64: _Info("int64_t", "i64", 8, "i64_le", "0_i64"),
    Primitive.CHAR: _Info("char", "u8", 1, "u8", "0_u8"),
    Primitive.FLOAT: _Info("float", "f32", 4, "f32_le", "0.0_f32"),
    Primitive.DOUBLE: _Info("double", "f64", 8, "f64_le", "0.0_f64"),
}

_SPELLINGS = {p.value: p for p in Primitive} | {"Double": Primitive.DOUBLE}
_SIZE_RE = re.compile(r"\+?[0-9]+")
_USIZE_MAX = 2**64 - 1


@dataclass(frozen=True)
class MavType:
    """A field type: a primitive, or a fixed-length array of one."""

    element: Primitive = Primitive.UINT8
    length: Optional[int] = None

    def is_array(self) -> bool:
        return self.length is not None

    def _scalar(self) -> MavType:
        return MavType(self.element)

    def encoded_len(self) -> int:
        """Number of bytes the type takes on the wire."""
        if self.length is None:
            return self.element.size
        return self.element.size * self.length

    def order_len(self) -> int:
        """Size used to order fields: the element size for arrays."""
        return self.element.size

    def primitive_type(self) -> str:
        """C name of the type (of the element, for arrays), used for checksums."""
        return self.element.c_type

    def rust_type(self) -> str:
        if self.length is None:
            return self.element.rust_type
        return f"[{self.element.rust_type};{self.length}]"

    def rust_primitive_type(self) -> str:
        """Rust type of the element for arrays, of the type itself otherwise."""
        return self.element.rust_type

    def default_value(self) -> str:
        """Rust expression of the zero value."""
        if self.length is None:
            return self.element.default_value
        return f"[{self.element.default_value}; {self.length}]"

    def rust_reader(self, val: str, buf: str) -> str:
        """Rust statements that read a value of this type from ``buf`` into ``val``."""
        if self.length is None:
            return f"{val} = {buf}.get_{self.element.accessor}();"
        inner = self._scalar().rust_reader("let val", buf)
        return f"for v in &mut {val} {{\n    {inner}\n    *v = val;\n}}"

    def rust_writer(self, val: str, buf: str) -> str:
        """Rust statements that write ``val`` of this type into ``buf``."""
        if self.length is None:
            return f"{buf}.put_{self.element.accessor}({val});"
        inner = self._scalar().rust_writer("*val", buf)
        return f"for val in &{val} {{\n    {inner}\n}}"

    def compare(self, other: MavType) -> int:
        """Order for field sorting: larger types first.

        Returns a negative number, zero or a positive number.
        """
        mine, theirs = self.order_len(), other.order_len()
        return (mine < theirs) - (mine > theirs)


def parse_type(s: str) -> Optional[MavType]:
    """Parse a type as written in a definition file, or return None."""
    primitive = _SPELLINGS.get(s)
    if primitive is not None:
        return MavType(primitive)
    if not s.endswith("]"):
        return None
    start = s.find("[")
    if start < 0:
        return None
    size_text = s[start + 1 : -1]
    if not _SIZE_RE.fullmatch(size_text):
        return None
    size = int(size_text)
    if size > _USIZE_MAX:
        return None
    element = _SPELLINGS.get(s[:start])
    if element is None:
        return None
    return MavType(element, size)