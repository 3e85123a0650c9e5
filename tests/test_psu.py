import struct
from datetime import datetime

import pytest

from psukit.psu import (
    DIR_ID,
    FILE_ID,
    PAGE_SIZE,
    PSU,
    PSUEntry,
    PSUEntryKind,
    PSUFormatError,
    parse_psu,
    write_psu,
)

STAMP = datetime(2024, 10, 10, 10, 30, 15)
ENTRY_HEADER = 512


def _defaults(name="APP_FOOBAR"):
    psu = PSU()
    psu.add_defaults(name, STAMP)
    return psu


def test_add_defaults_layout():
    psu = _defaults()
    assert [e.name for e in psu.entries] == ["APP_FOOBAR", ".", ".."]
    assert [e.size for e in psu.entries] == [2, 0, 0]
    assert all(e.kind is PSUEntryKind.DIRECTORY for e in psu.entries)
    assert all(e.id == DIR_ID for e in psu.entries)


def test_directory_entries_are_one_header_each():
    data = write_psu(_defaults())
    assert len(data) == 3 * ENTRY_HEADER
    assert data[:2] == b"\x27\x84"


def test_timestamp_wire_layout():
    data = _defaults().to_bytes()
    expected = bytes([0, STAMP.second, STAMP.minute, STAMP.hour, STAMP.day, STAMP.month])
    assert data[8:14] == expected
    assert struct.unpack("<H", data[14:16])[0] == STAMP.year


def test_round_trip_directories():
    psu = _defaults()
    parsed = parse_psu(write_psu(psu))
    assert parsed.entries == psu.entries


def test_add_file_and_round_trip(tmp_path):
    source = tmp_path / "icon.sys"
    source.write_bytes(b"PS2D" + bytes(100))
    psu = _defaults()
    psu.add_file(source)

    assert psu.entries[0].size == 3
    added = psu.entries[-1]
    assert added.name == "icon.sys"
    assert added.kind is PSUEntryKind.FILE
    assert added.id == FILE_ID
    assert added.contents == source.read_bytes()

    data = psu.to_bytes()
    assert len(data) == 4 * ENTRY_HEADER + PAGE_SIZE

    parsed = parse_psu(data)
    assert [e.name for e in parsed.entries] == [e.name for e in psu.entries]
    assert parsed.entries[-1].contents == added.contents
    assert parsed.entries[-1].size == added.size
    assert parsed.entries[-1].modified == added.modified.replace(microsecond=0)


def test_page_sized_file_has_no_padding(tmp_path):
    source = tmp_path / "data.bin"
    source.write_bytes(b"\x01" * PAGE_SIZE)
    psu = _defaults()
    psu.add_file(str(source))
    assert len(psu.to_bytes()) == 4 * ENTRY_HEADER + PAGE_SIZE


def test_empty_file_round_trip(tmp_path):
    source = tmp_path / "empty.cfg"
    source.write_bytes(b"")
    psu = _defaults()
    psu.add_file(source)
    parsed = parse_psu(psu.to_bytes())
    assert parsed.entries[-1].contents == b""
    assert parsed.entries[-1].kind is PSUEntryKind.FILE


def test_add_missing_file_raises(tmp_path):
    psu = _defaults()
    with pytest.raises(FileNotFoundError):
        psu.add_file(tmp_path / "missing.elf")
    assert len(psu.entries) == 3


def test_remove_entry(tmp_path):
    source = tmp_path / "list.icn"
    source.write_bytes(b"abc")
    psu = _defaults()
    psu.add_file(source)
    psu.remove_entry("list.icn")
    assert [e.name for e in psu.entries] == ["APP_FOOBAR", ".", ".."]
    assert psu.entries[0].size == 2


def test_remove_missing_entry_raises():
    psu = _defaults()
    with pytest.raises(KeyError):
        psu.remove_entry("nothing")
    assert psu.entries[0].size == 2


def test_display_table():
    lines = str(_defaults()).splitlines()
    assert lines[1] == "-" * 99
    assert len(lines) == 5
    cells = [cell.strip() for cell in lines[2].split("|")]
    assert cells == [
        "directory",
        "APP_FOOBAR",
        "2",
        STAMP.strftime("%Y-%m-%d %H:%M:%S"),
        STAMP.strftime("%Y-%m-%d %H:%M:%S"),
    ]


def test_name_too_long_raises():
    psu = PSU([PSUEntry(DIR_ID, 0, STAMP, 0, STAMP, "x" * 449, PSUEntryKind.DIRECTORY)])
    with pytest.raises(ValueError):
        write_psu(psu)


def test_file_entry_without_contents_raises():
    psu = PSU([PSUEntry(FILE_ID, 4, STAMP, 0, STAMP, "a.bin", PSUEntryKind.FILE)])
    with pytest.raises(ValueError):
        write_psu(psu)


def test_truncated_header_raises():
    data = write_psu(_defaults())
    with pytest.raises(PSUFormatError):
        parse_psu(data[:-10])


def test_truncated_contents_raise(tmp_path):
    source = tmp_path / "big.bin"
    source.write_bytes(b"\x02" * 300)
    psu = _defaults()
    psu.add_file(source)
    data = psu.to_bytes()
    with pytest.raises(PSUFormatError):
        parse_psu(data[: 4 * ENTRY_HEADER + 100])


def test_invalid_timestamp_raises():
    data = bytearray(write_psu(_defaults()))
    data[13] = 13  # month of the first entry's creation time
    with pytest.raises(PSUFormatError):
        parse_psu(bytes(data))


def test_parse_empty_data():
    assert parse_psu(b"").entries == []


def test_kind_names_in_display_of_parsed_archive(tmp_path):
    source = tmp_path / "boot.elf"
    source.write_bytes(b"\x7fELF")
    psu = _defaults()
    psu.add_file(source)
    parsed = parse_psu(psu.to_bytes())
    rows = str(parsed).splitlines()[2:]
    kinds = [row.split("|")[0].strip() for row in rows]
    assert kinds == ["directory", "directory", "directory", "file"]