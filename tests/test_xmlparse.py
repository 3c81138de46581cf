from pathlib import Path

import pytest

from mavbindgen.errors import CouldNotReadDefinitionFile, DefinitionError
from mavbindgen.xmlparse import (
    MavXmlElement,
    _read_events,
    filter_extensions,
    identify_element,
    is_valid_parent,
    parse_profile,
)

UNUSED = (
    "The use of this parameter (if any), must be defined in the requested message. "
    "By default assumed not used (0)."
)


def write(directory: Path, name: str, body: str) -> Path:
    path = directory / name
    path.write_text(f'<?xml version="1.0"?>\n<mavlink>\n{body}\n</mavlink>\n')
    return path


BASIC = """
<version>3</version>
<enums>
  <enum name="MAV_STATE">
    <description>Vehicle
state</description>
    <entry value="0" name="MAV_STATE_UNINIT"><description>Uninitialized</description></entry>
    <entry value="0x10" name="MAV_STATE_HEX"></entry>
    <entry value="3" name="MAV_STATE_EMPTY"/>
  </enum>
</enums>
<messages>
  <message id="7" name="SAMPLE">
    <description>A sample</description>
    <field type="uint8_t" name="a">first</field>
    <field type="uint32_t" name="b">second</field>
    <field type="uint16_t" name="c">third</field>
    <field type="float[4]" name="d">fourth</field>
    <field type="uint8_t" name="type">kind</field>
    <field type="uint8_t" name="z"/>
  </message>
</messages>
"""


def test_identify_element():
    assert identify_element("message") is MavXmlElement.MESSAGE
    assert identify_element(b"field") is MavXmlElement.FIELD
    assert identify_element("bogus") is None


def test_is_valid_parent():
    assert is_valid_parent(None, MavXmlElement.MAVLINK)
    assert is_valid_parent(MavXmlElement.MESSAGES, MavXmlElement.MESSAGE)
    assert not is_valid_parent(MavXmlElement.ENUMS, MavXmlElement.MESSAGE)
    assert is_valid_parent(MavXmlElement.ENUM, MavXmlElement.DESCRIPTION)
    assert not is_valid_parent(MavXmlElement.FIELD, MavXmlElement.DESCRIPTION)
    assert not is_valid_parent(MavXmlElement.MAVLINK, MavXmlElement.MAVLINK)


def test_parse_enum(tmp_path):
    write(tmp_path, "basic.xml", BASIC)
    profile = parse_profile(tmp_path, "basic.xml")
    assert list(profile.enums) == ["MavState"]
    enm = profile.enums["MavState"]
    assert enm.description == "Vehicle state"
    assert [e.name for e in enm.entries] == [
        "MAV_STATE_UNINIT",
        "MAV_STATE_HEX",
        "MAV_STATE_EMPTY",
    ]
    assert [e.value for e in enm.entries] == [0, 16, 3]
    assert enm.entries[0].description == "Uninitialized"
    assert enm.bitfield is None


def test_parse_message_orders_fields(tmp_path):
    write(tmp_path, "basic.xml", BASIC)
    message = parse_profile(tmp_path, "basic.xml").messages["SAMPLE"]
    assert message.id == 7
    assert message.description == "A sample"
    assert [f.name for f in message.fields] == ["b", "d", "c", "a", "mavtype"]
    assert message.fields[3].description == "first"
    assert message.fields[1].mavtype.length == 4


def test_parsed_files_records_path(tmp_path):
    write(tmp_path, "basic.xml", BASIC)
    seen = set()
    parse_profile(tmp_path, "basic.xml", seen)
    assert seen == {tmp_path / "basic.xml"}


def test_bad_hex_in_start_entry_gives_no_value(tmp_path):
    write(
        tmp_path,
        "e.xml",
        '<enums><enum name="E"><entry value="0xZZ" name="E_A"></entry></enum></enums>',
    )
    assert parse_profile(tmp_path, "e.xml").enums["E"].entries[0].value is None


def test_params_are_padded(tmp_path):
    write(
        tmp_path,
        "p.xml",
        '<enums><enum name="MAV_CMD"><entry value="1" name="CMD">'
        '<description>d</description><param index="3">Third</param>'
        "</entry></enum></enums>",
    )
    entry = parse_profile(tmp_path, "p.xml").enums["MavCmd"].entries[0]
    assert entry.params == [UNUSED, UNUSED, "Third"]


def test_param_index_zero_is_an_error(tmp_path):
    write(
        tmp_path,
        "p.xml",
        '<enums><enum name="E"><entry value="1" name="E_A">'
        '<param index="0">x</param></entry></enum></enums>',
    )
    with pytest.raises(DefinitionError):
        parse_profile(tmp_path, "p.xml")


def test_bitmask_enum_gets_width(tmp_path):
    write(
        tmp_path,
        "b.xml",
        '<enums><enum name="MY_FLAGS"><entry value="1" name="F_A"></entry></enum></enums>'
        '<messages><message id="1" name="M">'
        '<field type="uint16_t" name="flags" enum="MY_FLAGS" display="bitmask">f</field>'
        "</message></messages>",
    )
    profile = parse_profile(tmp_path, "b.xml")
    assert profile.enums["MyFlags"].bitfield == "u16"
    assert profile.messages["M"].fields[0].enumtype == "MyFlags"


EXT = (
    '<messages><message id="2" name="EXT">'
    '<field type="uint8_t" name="base">x</field>'
    "<extensions/>"
    '<field type="uint32_t" name="ext">y</field>'
    "</message></messages>"
)


def test_extensions_dropped_by_default(tmp_path):
    write(tmp_path, "x.xml", EXT)
    fields = parse_profile(tmp_path, "x.xml").messages["EXT"].fields
    assert [f.name for f in fields] == ["base"]
    assert [f.is_extension for f in fields] == [False]


def test_filter_extensions_events():
    events = _read_events(
        b"<mavlink><messages><message><field>a</field><extensions/>"
        b"<field>b</field></message></messages></mavlink>"
    )
    assert [e.text for e in events if e.kind == "text"] == ["a", "b"]
    filtered = list(filter_extensions(events))
    assert [e.text for e in filtered if e.kind == "text"] == ["a"]
    assert [e.name for e in filtered if e.kind == "end"][-1] == "mavlink"


def test_filter_extensions_rejects_unknown_element():
    with pytest.raises(ValueError):
        list(filter_extensions(_read_events(b"<mavlink><bogus/></mavlink>")))


def test_include_merges_enums(tmp_path):
    write(
        tmp_path,
        "common.xml",
        '<enums><enum name="SHARED"><entry value="1" name="X"></entry></enum></enums>'
        '<messages><message id="1" name="COMMON_MSG">'
        '<field type="uint8_t" name="v">v</field></message></messages>',
    )
    write(
        tmp_path,
        "dialect.xml",
        "<include>common.xml</include>"
        '<enums><enum name="SHARED"><entry value="2" name="Y"></entry></enum></enums>',
    )
    seen = set()
    profile = parse_profile(tmp_path, "dialect.xml", seen)
    assert [e.name for e in profile.enums["Shared"].entries] == ["X", "Y"]
    assert "COMMON_MSG" in profile.messages
    assert seen == {tmp_path / "dialect.xml", tmp_path / "common.xml"}


def test_include_cycle_terminates(tmp_path):
    write(
        tmp_path,
        "a.xml",
        '<include>b.xml</include><messages><message id="1" name="A">'
        '<field type="uint8_t" name="v">v</field></message></messages>',
    )
    write(
        tmp_path,
        "b.xml",
        '<include>a.xml</include><messages><message id="2" name="B">'
        '<field type="uint8_t" name="v">v</field></message></messages>',
    )
    profile = parse_profile(tmp_path, "a.xml")
    assert sorted(profile.messages) == ["A", "B"]


def test_duplicate_enum_entry_is_an_error(tmp_path):
    write(
        tmp_path,
        "common.xml",
        '<enums><enum name="E"><entry value="1" name="E_A"></entry></enum></enums>',
    )
    write(
        tmp_path,
        "dialect.xml",
        "<include>common.xml</include>"
        '<enums><enum name="E"><entry value="1" name="E_A"></entry></enum></enums>',
    )
    with pytest.raises(DefinitionError):
        parse_profile(tmp_path, "dialect.xml")


def test_conflicting_messages_are_an_error(tmp_path):
    write(
        tmp_path,
        "m.xml",
        '<messages><message id="1" name="M"><field type="uint8_t" name="v">v</field></message>'
        '<message id="2" name="M"><field type="uint8_t" name="v">v</field></message></messages>',
    )
    with pytest.raises(DefinitionError):
        parse_profile(tmp_path, "m.xml")


def test_missing_file(tmp_path):
    with pytest.raises(CouldNotReadDefinitionFile) as info:
        parse_profile(tmp_path, "absent.xml")
    assert info.value.path == tmp_path / "absent.xml"


@pytest.mark.parametrize(
    "body",
    [
        "<bogus></bogus>",
        '<enums><message id="1" name="X"></message></enums>',
        '<messages><message id="1" name="M"><field type="uint128_t" name="v">v</field>'
        "</message></messages>",
        '<messages><message id="one" name="M"></message></messages>',
        '<enums><enum name="E"><entry value="0x10" name="E_A"/></enum></enums>',
        "<messages>stray</messages>",
        "<enums>",
    ],
)
def test_malformed_definitions(tmp_path, body):
    write(tmp_path, "bad.xml", body)
    with pytest.raises(DefinitionError):
        parse_profile(tmp_path, "bad.xml")


def test_read_error_is_reported_by_the_filter(tmp_path):
    (tmp_path / "broken.xml").write_text(
        '<mavlink><enums><enum name="E"><entry value="1" name="E_A"></entry></enum></mavlink>'
    )
    with pytest.raises(DefinitionError):
        parse_profile(tmp_path, "broken.xml")