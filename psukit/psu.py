"""Reading, editing and writing PS2 ``.psu`` save archives."""

from __future__ import annotations

import os
import struct
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path

from .text import parse_cstring

__all__ = [
    "DIR_ID",
    "FILE_ID",
    "PAGE_SIZE",
    "PSUFormatError",
    "PSUEntryKind",
    "PSUEntry",
    "PSU",
    "parse_psu",
    "write_psu",
]

DIR_ID = 0x8427
FILE_ID = 0x8497
PAGE_SIZE = 0x400
NAME_SIZE = 448

_HEADER = struct.Struct("<HHI8sHHI8s32x448s")
_TIMESTAMP = struct.Struct("<6BH")
_DISPLAY_FORMAT = "%Y-%m-%d %H:%M:%S"


class PSUFormatError(ValueError):
    """Raised when PSU data is malformed."""


class PSUEntryKind(Enum):
    DIRECTORY = "directory"
    FILE = "file"

    def __str__(self) -> str:
        return self.value


@dataclass
class PSUEntry:
    """One entry of a PSU archive: a directory record or a file with its data."""

    id: int
    size: int
    created: datetime
    sector: int
    modified: datetime
    name: str
    kind: PSUEntryKind
    contents: bytes | None = None


def _directory(name: str, size: int, timestamp: datetime) -> PSUEntry:
    return PSUEntry(
        id=DIR_ID,
        size=size,
        created=timestamp,
        sector=0,
        modified=timestamp,
        name=name,
        kind=PSUEntryKind.DIRECTORY,
    )


@dataclass
class PSU:
    """A PSU archive as an ordered list of entries."""

    entries: list[PSUEntry] = field(default_factory=list)

    def add_defaults(self, name: str, timestamp: datetime) -> None:
        """Add the root directory together with its ``.`` and ``..`` entries."""
        # The root's size counts every entry in it, including . and ..
        self.entries.append(_directory(name, 2, timestamp))
        self.entries.append(_directory(".", 0, timestamp))
        self.entries.append(_directory("..", 0, timestamp))

    def add_file(self, path: str | os.PathLike[str]) -> None:
        """Append a file read from disk and count it in the root directory."""
        file_path = Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"file doesn't exist: {file_path}")

        data = file_path.read_bytes()
        stat = file_path.stat()
        created = getattr(stat, "st_birthtime", stat.st_ctime)

        self.entries.append(
            PSUEntry(
                id=FILE_ID,
                size=len(data),
                created=datetime.fromtimestamp(created),
                sector=0,
                modified=datetime.fromtimestamp(stat.st_mtime),
                name=file_path.name,
                kind=PSUEntryKind.FILE,
                contents=data,
            )
        )
        self.entries[0].size += 1

    def remove_entry(self, name: str) -> None:
        """Remove every entry with the given name."""
        if not any(entry.name == name for entry in self.entries):
            raise KeyError(f"entry does not exist: {name}")
        self.entries = [entry for entry in self.entries if entry.name != name]
        self.entries[0].size -= 1

    def to_bytes(self) -> bytes:
        return write_psu(self)

    def __str__(self) -> str:
        lines = [
            f"{'Type':12}| {'Name':16}| {'Size':9}| {'Created':25}| {'Modified':25}",
            "-" * 99,
        ]
        for entry in self.entries:
            created = entry.created.strftime(_DISPLAY_FORMAT)
            modified = entry.modified.strftime(_DISPLAY_FORMAT)
            lines.append(
                f"{str(entry.kind):12}| {entry.name:16}| {entry.size:9}| "
                f"{created:25}| {modified:25}"
            )
        return "\n".join(lines)


def _padding(size: int) -> int:
    remainder = PAGE_SIZE - size % PAGE_SIZE
    return 0 if remainder == PAGE_SIZE else remainder


def _decode_timestamp(raw: bytes) -> datetime:
    _, second, minute, hour, day, month, year = _TIMESTAMP.unpack(raw)
    try:
        return datetime(year, month, day, hour, minute, second)
    except ValueError as exc:
        raise PSUFormatError(f"invalid timestamp: {exc}") from exc


def _encode_timestamp(timestamp: datetime) -> bytes:
    return _TIMESTAMP.pack(
        0,
        timestamp.second,
        timestamp.minute,
        timestamp.hour,
        timestamp.day,
        timestamp.month,
        timestamp.year & 0xFFFF,
    )


def _read_entry(data: bytes, offset: int) -> tuple[PSUEntry, int]:
    end = offset + _HEADER.size
    if end > len(data):
        raise PSUFormatError(f"truncated entry header at offset {offset}")
    entry_id, _, size, created, sector, _, _, modified, name = _HEADER.unpack_from(
        data, offset
    )
    offset = end

    contents = None
    if entry_id == FILE_ID:
        end = offset + size
        if end > len(data):
            raise PSUFormatError(f"truncated contents at offset {offset}")
        contents = data[offset:end]
        offset = end + _padding(size)

    entry = PSUEntry(
        id=entry_id,
        size=size,
        created=_decode_timestamp(created),
        sector=sector,
        modified=_decode_timestamp(modified),
        name=parse_cstring(name),
        kind=PSUEntryKind.DIRECTORY if entry_id == DIR_ID else PSUEntryKind.FILE,
        contents=contents,
    )
    return entry, offset


def parse_psu(data: bytes) -> PSU:
    """Parse a whole PSU archive."""
    raw = bytes(data)
    entries = []
    offset = 0
    while offset < len(raw):
        entry, offset = _read_entry(raw, offset)
        entries.append(entry)
    return PSU(entries)


def _encode_name(name: str) -> bytes:
    byte_length = len(name.encode("utf-8"))
    if byte_length > NAME_SIZE:
        raise ValueError(f"entry name longer than {NAME_SIZE} bytes: {name!r}")
    return bytes(ord(char) & 0xFF for char in name) + bytes(NAME_SIZE - byte_length)


def _write_entry(entry: PSUEntry) -> bytes:
    header = struct.pack(
        "<HHI8sHHI8s32x",
        entry.id,
        0,
        entry.size,
        _encode_timestamp(entry.created),
        entry.sector,
        0,
        0,
        _encode_timestamp(entry.modified),
    )
    parts = [header, _encode_name(entry.name)]
    if entry.id == FILE_ID:
        if entry.contents is None:
            raise ValueError(f"file entry {entry.name!r} has no contents")
        parts.append(bytes(entry.contents))
        parts.append(bytes(_padding(entry.size)))
    return b"".join(parts)


def write_psu(psu: PSU) -> bytes:
    """Serialise a PSU archive to bytes."""
    return b"".join(_write_entry(entry) for entry in psu.entries)