"""The in-memory description of a MAVLink dialect: enums, messages and fields."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from functools import cmp_to_key
from typing import Dict, Iterable, List, Optional, Union

from .types import MavType

_CRC_INIT = 0xFFFF


@dataclass
class MavEnumEntry:
    """One named value of an enum."""

    value: Optional[int] = None
    name: str = ""
    description: Optional[str] = None
    params: Optional[List[str]] = None


@dataclass
class MavEnum:
    """An enum, or a set of bit flags when ``bitfield`` names a width."""

    name: str = ""
    description: Optional[str] = None
    entries: List[MavEnumEntry] = field(default_factory=list)
    bitfield: Optional[str] = None

    def try_combine(self, other: MavEnum) -> None:
        """Append the entries of an enum of the same name defined elsewhere.

        Raises ValueError when an entry with the same name and value is
        already present.
        """
        if self.name != other.name:
            return
        for new_entry in other.entries:
            for existing in self.entries:
                if existing.name != new_entry.name:
                    continue
                if existing.value is None or new_entry.value is None:
                    raise ValueError(
                        f"Enum entry {existing.name} of {self.name} has no value"
                    )
                if existing.value == new_entry.value:
                    raise ValueError(f"Enum entry {existing.name} already exists")
            self.entries.append(copy.deepcopy(new_entry))


@dataclass
class MavField:
    """A field of a message."""

    mavtype: MavType = field(default_factory=MavType)
    name: str = ""
    description: Optional[str] = None
    enumtype: Optional[str] = None
    display: Optional[str] = None
    is_extension: bool = False


@dataclass
class MavMessage:
    """A message with its numeric id and its fields in wire order."""

    id: int = 0
    name: str = ""
    description: Optional[str] = None
    fields: List[MavField] = field(default_factory=list)

    def struct_name(self) -> str:
        """Name of the generated payload struct."""
        return f"{self.name}_DATA"

    def encoded_len(self) -> int:
        """Total number of payload bytes of all fields."""
        return sum(f.mavtype.encoded_len() for f in self.fields)


@dataclass
class MavProfile:
    """All messages and enums of a dialect, keyed by name."""

    messages: Dict[str, MavMessage] = field(default_factory=dict)
    enums: Dict[str, MavEnum] = field(default_factory=dict)

    def add_message(self, message: MavMessage) -> None:
        """Add a message; a second definition must be identical to the first."""
        existing = self.messages.get(message.name)
        if existing is None:
            self.messages[message.name] = copy.deepcopy(message)
        elif existing != message:
            raise ValueError(
                f"Message '{message.name}' defined twice but definitions are different"
            )

    def add_enum(self, enm: MavEnum) -> None:
        """Add an enum, merging its entries into one of the same name."""
        existing = self.enums.get(enm.name)
        if existing is None:
            self.enums[enm.name] = copy.deepcopy(enm)
        else:
            existing.try_combine(enm)

    def update_enums(self) -> MavProfile:
        """Mark enums used by bitmask fields as bit flags of the field's width."""
        for message in self.messages.values():
            for fld in message.fields:
                if fld.enumtype is None or fld.display != "bitmask":
                    continue
                for enm in self.enums.values():
                    if enm.name == fld.enumtype:
                        enm.bitfield = fld.mavtype.rust_primitive_type()
        return self


def crc16_mcrf4xx(data: Union[bytes, bytearray, Iterable[int]], crc: int = _CRC_INIT) -> int:
    """Accumulate the CRC-16/MCRF4XX checksum used by MAVLink over ``data``."""
    for byte in bytes(data):
        tmp = byte ^ (crc & 0xFF)
        tmp = (tmp ^ (tmp << 4)) & 0xFF
        crc = ((crc >> 8) ^ (tmp << 8) ^ (tmp << 3) ^ (tmp >> 4)) & 0xFFFF
    return crc


def _sorted_fields(fields: Iterable[MavField]) -> List[MavField]:
    return sorted(fields, key=cmp_to_key(lambda a, b: a.mavtype.compare(b.mavtype)))


def extra_crc(message: MavMessage) -> int:
    """The 8-bit checksum over a message's name and its base fields.

    Extension fields are left out, and a field renamed to ``mavtype`` is
    counted under its original name ``type``.
    """
    crc = crc16_mcrf4xx(message.name.encode("utf-8"))
    crc = crc16_mcrf4xx(b" ", crc)
    base_fields = _sorted_fields(f for f in message.fields if not f.is_extension)
    for fld in base_fields:
        crc = crc16_mcrf4xx(fld.mavtype.primitive_type().encode("utf-8"), crc)
        crc = crc16_mcrf4xx(b" ", crc)
        name = "type" if fld.name == "mavtype" else fld.name
        crc = crc16_mcrf4xx(name.encode("utf-8"), crc)
        crc = crc16_mcrf4xx(b" ", crc)
        if fld.mavtype.length is not None:
            crc = crc16_mcrf4xx(bytes([fld.mavtype.length & 0xFF]), crc)
    return ((crc & 0xFF) ^ (crc >> 8)) & 0xFF