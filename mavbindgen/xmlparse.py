"""Reading MAVLink dialect definition files into a :class:`MavProfile`."""

from __future__ import annotations

import copy
import logging
import os
import re
from enum import Enum
from pathlib import Path
from typing import Iterable, Iterator, List, NamedTuple, Optional, Set, Tuple, Union
from xml.parsers import expat

from .errors import CouldNotReadDefinitionFile, DefinitionError
from .model import MavEnum, MavEnumEntry, MavField, MavMessage, MavProfile
from .naming import to_pascal_case
from .types import parse_type

_log = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]

_UNUSED_PARAM = (
    "The use of this parameter (if any), must be defined in the requested message. "
    "By default assumed not used (0)."
)


class MavXmlElement(Enum):
    """The elements that may appear in a definition file."""

    VERSION = "version"
    MAVLINK = "mavlink"
    DIALECT = "dialect"
    INCLUDE = "include"
    ENUMS = "enums"
    ENUM = "enum"
    ENTRY = "entry"
    DESCRIPTION = "description"
    PARAM = "param"
    MESSAGES = "messages"
    MESSAGE = "message"
    FIELD = "field"
    DEPRECATED = "deprecated"
    WIP = "wip"
    EXTENSIONS = "extensions"


_E = MavXmlElement

_VALID_PARENTS = {
    _E.VERSION: {_E.MAVLINK},
    _E.MAVLINK: {None},
    _E.DIALECT: {_E.MAVLINK},
    _E.INCLUDE: {_E.MAVLINK},
    _E.ENUMS: {_E.MAVLINK},
    _E.ENUM: {_E.ENUMS},
    _E.ENTRY: {_E.ENUM},
    _E.DESCRIPTION: {_E.ENTRY, _E.MESSAGE, _E.ENUM},
    _E.PARAM: {_E.ENTRY},
    _E.MESSAGES: {_E.MAVLINK},
    _E.MESSAGE: {_E.MESSAGES},
    _E.FIELD: {_E.MESSAGE},
    _E.DEPRECATED: {_E.ENTRY, _E.MESSAGE, _E.ENUM},
    _E.WIP: {_E.ENTRY, _E.MESSAGE, _E.ENUM},
    _E.EXTENSIONS: {_E.MESSAGE},
}


def identify_element(name: Union[str, bytes]) -> Optional[MavXmlElement]:
    """Return the element a tag name stands for, or None if it is unknown."""
    if isinstance(name, bytes):
        name = name.decode("utf-8", errors="replace")
    try:
        return MavXmlElement(name)
    except ValueError:
        return None


def is_valid_parent(parent: Optional[MavXmlElement], element: MavXmlElement) -> bool:
    """Whether ``element`` may appear directly inside ``parent`` (None: at the root)."""
    return parent in _VALID_PARENTS[element]


# Event kinds produced by the reader.
_START = "start"
_EMPTY = "empty"
_END = "end"
_TEXT = "text"
_ERROR = "error"


class _Event(NamedTuple):
    kind: str
    name: str = ""
    attrs: Tuple[Tuple[str, str], ...] = ()
    text: str = ""


_START_TAG = re.compile(
    rb"<[^\s/>]+(?:\s+[^\s=/>]+\s*=\s*(?:\"[^\"]*\"|'[^']*'))*\s*(/?)>"
)
_XML_SPACE = " \t\r\n"


def _read_events(data: bytes) -> List[_Event]:
    """Turn a document into start, empty, end, text and error events.

    Text is trimmed and whitespace-only text dropped; self-closing elements
    give a single empty event and no end event; CDATA sections are skipped.
    """
    events: List[_Event] = []
    text_parts: List[str] = []
    empties: List[bool] = []
    in_cdata = False
    parser = expat.ParserCreate()
    parser.ordered_attributes = True

    def flush(*_ignored: object) -> None:
        text = "".join(text_parts).strip(_XML_SPACE)
        text_parts.clear()
        if text:
            events.append(_Event(_TEXT, text=text))

    def on_start(name: str, attrs: List[str]) -> None:
        flush()
        match = _START_TAG.match(data, parser.CurrentByteIndex)
        empty = bool(match and match.group(1))
        pairs = tuple(zip(attrs[::2], attrs[1::2]))
        events.append(_Event(_EMPTY if empty else _START, name, pairs))
        empties.append(empty)

    def on_end(name: str) -> None:
        flush()
        if not empties.pop():
            events.append(_Event(_END, name))

    def on_chars(text: str) -> None:
        if not in_cdata:
            text_parts.append(text)

    def on_cdata_start() -> None:
        nonlocal in_cdata
        flush()
        in_cdata = True

    def on_cdata_end() -> None:
        nonlocal in_cdata
        in_cdata = False

    parser.StartElementHandler = on_start
    parser.EndElementHandler = on_end
    parser.CharacterDataHandler = on_chars
    parser.StartCdataSectionHandler = on_cdata_start
    parser.EndCdataSectionHandler = on_cdata_end
    parser.CommentHandler = flush
    parser.ProcessingInstructionHandler = flush
    try:
        parser.Parse(data, True)
    except expat.ExpatError as exc:
        events.append(_Event(_ERROR, text=str(exc)))
    else:
        flush()
    return events


def filter_extensions(events: Iterable[_Event]) -> Iterator[_Event]:
    """Drop everything from an ``extensions`` marker up to the end of its message.

    Raises ValueError on an unknown element or on a reading error.
    """
    inside = False
    for event in events:
        if event.kind == _ERROR:
            raise ValueError(f"Failed to filter XML: {event.text}")
        if event.kind in (_START, _EMPTY, _END):
            element = identify_element(event.name)
            if element is None:
                raise ValueError(f"unexpected element {event.name!r}")
            if event.kind != _END and element is _E.EXTENSIONS:
                inside = True
            elif event.kind == _END and element is _E.MESSAGE:
                inside = False
        if not inside:
            yield event


def _parse_u32(text: str, hexadecimal: bool = False) -> Optional[int]:
    pattern = r"\+?[0-9a-fA-F]+" if hexadecimal else r"\+?[0-9]+"
    if not re.fullmatch(pattern, text):
        return None
    value = int(text, 16 if hexadecimal else 10)
    return value if value <= 0xFFFFFFFF else None


class _ProfileBuilder:
    """Walks the events of one file and collects its enums and messages."""

    def __init__(self, definitions_dir: Path, parsed_files: Set[Path]):
        self.definitions_dir = definitions_dir
        self.parsed_files = parsed_files
        self.profile = MavProfile()
        self.stack: List[MavXmlElement] = []
        self.field = MavField()
        self.message = MavMessage()
        self.mavenum = MavEnum()
        self.entry = MavEnumEntry()
        self.include = ""
        self.paramid: Optional[int] = None
        self.in_extension = False

    def build(self, events: Iterable[_Event]) -> MavProfile:
        for event in events:
            if event.kind == _START:
                self._start(event)
            elif event.kind == _EMPTY:
                self._empty(event)
            elif event.kind == _TEXT:
                self._text(event.text)
            elif event.kind == _END:
                self._end()
            elif event.kind == _ERROR:
                _log.error("Error: %s", event.text)
                break
        return self.profile.update_enums()

    def _start(self, event: _Event) -> None:
        element = identify_element(event.name)
        if element is None:
            raise ValueError(f"unexpected element {event.name!r}")
        parent = self.stack[-1] if self.stack else None
        if not is_valid_parent(parent, element):
            raise ValueError(f"not valid parent {parent} of {element}")

        if element is _E.EXTENSIONS:
            self.in_extension = True
        elif element is _E.MESSAGE:
            self.message = MavMessage()
        elif element is _E.FIELD:
            self.field = MavField(is_extension=self.in_extension)
        elif element is _E.ENUM:
            self.mavenum = MavEnum()
        elif element is _E.ENTRY:
            self.entry = MavEnumEntry()
        elif element is _E.INCLUDE:
            self.include = ""
        elif element is _E.PARAM:
            self.paramid = None

        self.stack.append(element)
        for key, value in event.attrs:
            self._attribute(element, key, value)

    def _attribute(self, element: MavXmlElement, key: str, value: str) -> None:
        if element is _E.ENUM:
            if key == "name":
                self.mavenum.name = to_pascal_case(value)
        elif element is _E.ENTRY:
            if key == "name":
                self.entry.name = value
            elif key == "value":
                if value.startswith("0x"):
                    self.entry.value = _parse_u32(value[2:], hexadecimal=True)
                else:
                    self.entry.value = _parse_u32(value)
        elif element is _E.MESSAGE:
            if key == "name":
                self.message.name = value
            elif key == "id":
                message_id = _parse_u32(value)
                if message_id is None:
                    raise ValueError(f"invalid message id {value!r}")
                self.message.id = message_id
        elif element is _E.FIELD:
            if key == "name":
                self.field.name = "mavtype" if value == "type" else value
            elif key == "type":
                mavtype = parse_type(value)
                if mavtype is None:
                    raise ValueError(f"unknown field type {value!r}")
                self.field.mavtype = mavtype
            elif key == "enum":
                self.field.enumtype = to_pascal_case(value)
            elif key == "display":
                self.field.display = value
        elif element is _E.PARAM:
            if self.entry.params is None:
                self.entry.params = []
            if key == "index":
                if not re.fullmatch(r"\+?[0-9]+", value):
                    raise ValueError(f"invalid param index {value!r}")
                self.paramid = int(value)

    def _empty(self, event: _Event) -> None:
        if event.name == "extensions":
            self.in_extension = True
        elif event.name == "entry":
            self.entry = MavEnumEntry()
            for key, value in event.attrs:
                if key == "name":
                    self.entry.name = value
                elif key == "value":
                    number = _parse_u32(value)
                    if number is None:
                        raise ValueError(f"invalid entry value {value!r}")
                    self.entry.value = number
            self.mavenum.entries.append(copy.deepcopy(self.entry))

    def _text(self, text: str) -> None:
        top = self.stack[-1] if self.stack else None
        parent = self.stack[-2] if len(self.stack) >= 2 else None
        flat = text.replace("\n", " ")
        if top is _E.DESCRIPTION and parent is _E.MESSAGE:
            self.message.description = flat
        elif top is _E.FIELD and parent is _E.MESSAGE:
            self.field.description = flat
        elif top is _E.DESCRIPTION and parent is _E.ENUM:
            self.mavenum.description = flat
        elif top is _E.DESCRIPTION and parent is _E.ENTRY:
            self.entry.description = flat
        elif top is _E.PARAM and parent is _E.ENTRY:
            self._param_text(text)
        elif top is _E.INCLUDE and parent is _E.MAVLINK:
            self.include = text.replace("\n", "")
        elif top is _E.VERSION and parent is _E.MAVLINK:
            _log.debug("version %r", text)
        elif top is _E.DIALECT and parent is _E.MAVLINK:
            _log.debug("dialect %r", text)
        elif top is _E.DEPRECATED:
            _log.debug("deprecated %r", text)
        else:
            raise ValueError(f"unexpected text data ({top}, {parent}) reading {text!r}")

    def _param_text(self, text: str) -> None:
        params = self.entry.params
        if params is None:
            return
        if self.paramid is None:
            raise ValueError(f"param of entry {self.entry.name} has no index")
        if self.paramid < 1:
            raise ValueError(f"param of entry {self.entry.name} has index 0")
        if len(params) < self.paramid:
            params.extend([_UNUSED_PARAM] * (self.paramid - len(params)))
        params[self.paramid - 1] = text

    def _end(self) -> None:
        top = self.stack[-1] if self.stack else None
        if top is _E.FIELD:
            self.message.fields.append(copy.deepcopy(self.field))
        elif top is _E.ENTRY:
            self.mavenum.entries.append(copy.deepcopy(self.entry))
        elif top is _E.MESSAGE:
            self.in_extension = False
            base = [f for f in self.message.fields if not f.is_extension]
            extensions = [f for f in self.message.fields if f.is_extension]
            base.sort(key=lambda f: -f.mavtype.order_len())
            ordered = MavMessage(
                id=self.message.id,
                name=self.message.name,
                description=self.message.description,
                fields=base + extensions,
            )
            self.profile.add_message(ordered)
        elif top is _E.ENUM:
            self.profile.add_enum(self.mavenum)
        elif top is _E.INCLUDE:
            include_file = self.definitions_dir / self.include
            if include_file not in self.parsed_files:
                included = parse_profile(
                    self.definitions_dir, self.include, self.parsed_files
                )
                for message in included.messages.values():
                    self.profile.add_message(message)
                for enm in included.enums.values():
                    self.profile.add_enum(enm)
        if self.stack:
            self.stack.pop()


def parse_profile(
    definitions_dir: PathLike,
    definition_file: PathLike,
    parsed_files: Optional[Set[Path]] = None,
) -> MavProfile:
    """Parse a definition file and every file it includes.

    ``parsed_files`` collects the paths read so far, so that each file is read
    once. Extension fields are dropped.
    """
    definitions_dir = Path(definitions_dir)
    if parsed_files is None:
        parsed_files = set()
    in_path = definitions_dir / definition_file
    parsed_files.add(in_path)

    try:
        data = in_path.read_bytes()
    except OSError as exc:
        raise CouldNotReadDefinitionFile(in_path, exc) from exc

    events = _read_events(data)
    builder = _ProfileBuilder(definitions_dir, parsed_files)
    try:
        return builder.build(list(filter_extensions(events)))
    except ValueError as exc:
        raise DefinitionError(in_path, str(exc)) from exc