"""Reading and writing ``icon.sys`` save metadata files."""

from __future__ import annotations

import struct
from dataclasses import dataclass

from .color import Color
from .text import decode_sjis, encode_sjis, parse_cstring

__all__ = [
    "ICON_SYS_MAGIC",
    "TITLE_SIZE",
    "FILE_NAME_SIZE",
    "IconSysFormatError",
    "ColorF",
    "Vector",
    "IconSys",
    "parse_icon_sys",
    "split_title",
    "join_title_lines",
]

ICON_SYS_MAGIC = b"PS2D"
TITLE_SIZE = 68
FILE_NAME_SIZE = 64
_TRAILER_SIZE = 512

_PREAMBLE = struct.Struct("<4sHHII")
_COLOR = struct.Struct("<4I")
_FLOATS = struct.Struct("<4f")
_STRINGS = struct.Struct(f"<{TITLE_SIZE}s{FILE_NAME_SIZE}s{FILE_NAME_SIZE}s{FILE_NAME_SIZE}s")


class IconSysFormatError(ValueError):
    """Raised when icon.sys data is malformed or cannot be written."""


@dataclass(frozen=True)
class ColorF:
    """A colour with floating-point channels."""

    r: float
    g: float
    b: float
    a: float

    def to_bytes(self) -> bytes:
        return _FLOATS.pack(self.r, self.g, self.b, self.a)


@dataclass(frozen=True)
class Vector:
    """A four-component direction vector."""

    x: float
    y: float
    z: float
    w: float

    def to_bytes(self) -> bytes:
        return _FLOATS.pack(self.x, self.y, self.z, self.w)


def split_title(linebreak_pos: int, title: str) -> tuple[str, str]:
    """Split a title into two display lines at ``linebreak_pos``."""
    if linebreak_pos >= len(title):
        return title, ""
    return title[:linebreak_pos], title[linebreak_pos:]


def join_title_lines(line1: str, line2: str) -> str:
    """Join the two display lines of a title back into one string."""
    if not line2:
        return line1
    return line1 + line2


def _padded(data: bytes, size: int) -> bytes:
    return data + bytes(max(0, size - len(data)))


@dataclass
class IconSys:
    """The contents of an icon.sys file.

    Flags: 0 save file, 1 software, 3 PocketStation software, 4 settings,
    5 system driver; other values are unrecognised by the browser.
    """

    flags: int
    linebreak_pos: int
    background_transparency: int
    background_colors: tuple[Color, Color, Color, Color]
    light_directions: tuple[Vector, Vector, Vector]
    light_colors: tuple[ColorF, ColorF, ColorF]
    ambient_color: ColorF
    title_line1: str
    title_line2: str
    icon_file: str
    icon_copy_file: str
    icon_delete_file: str

    def to_bytes(self) -> bytes:
        """Serialise to the on-card layout."""
        title = encode_sjis(join_title_lines(self.title_line1, self.title_line2))
        if len(title) > TITLE_SIZE:
            raise IconSysFormatError(f"Title length exceeds {TITLE_SIZE} bytes")

        parts = [
            _PREAMBLE.pack(
                ICON_SYS_MAGIC,
                self.flags,
                self.linebreak_pos * 2,
                0,
                self.background_transparency,
            )
        ]
        parts.extend(color.to_bytes() for color in self.background_colors)
        parts.extend(direction.to_bytes() for direction in self.light_directions)
        parts.extend(color.to_bytes() for color in self.light_colors)
        parts.append(self.ambient_color.to_bytes())
        parts.append(_padded(title, TITLE_SIZE))
        for name in (self.icon_file, self.icon_copy_file, self.icon_delete_file):
            parts.append(_padded(name.encode("utf-8"), FILE_NAME_SIZE))
        parts.append(bytes(_TRAILER_SIZE))
        return b"".join(parts)


class _Reader:
    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self._offset = 0

    def unpack(self, layout: struct.Struct) -> tuple:
        end = self._offset + layout.size
        if end > len(self._data):
            raise IconSysFormatError(f"unexpected end of data at offset {self._offset}")
        values = layout.unpack_from(self._data, self._offset)
        self._offset = end
        return values


def _read_color(reader: _Reader) -> Color:
    r, g, b, a = (channel & 0xFF for channel in reader.unpack(_COLOR))
    return Color(r, g, b, a)


def parse_icon_sys(data: bytes) -> IconSys:
    """Parse an icon.sys file."""
    reader = _Reader(data)
    _, flags, linebreak, _, transparency = reader.unpack(_PREAMBLE)
    linebreak_pos = linebreak // 2

    background_colors = tuple(_read_color(reader) for _ in range(4))
    light_directions = tuple(Vector(*reader.unpack(_FLOATS)) for _ in range(3))
    light_colors = tuple(ColorF(*reader.unpack(_FLOATS)) for _ in range(3))
    ambient_color = ColorF(*reader.unpack(_FLOATS))

    title_raw, icon_raw, copy_raw, delete_raw = reader.unpack(_STRINGS)
    title = parse_cstring(decode_sjis(title_raw).encode("ascii"))
    title_line1, title_line2 = split_title(linebreak_pos, title)

    return IconSys(
        flags=flags,
        linebreak_pos=linebreak_pos,
        background_transparency=transparency,
        background_colors=background_colors,
        light_directions=light_directions,
        light_colors=light_colors,
        ambient_color=ambient_color,
        title_line1=title_line1,
        title_line2=title_line2,
        icon_file=parse_cstring(icon_raw),
        icon_copy_file=parse_cstring(copy_raw),
        icon_delete_file=parse_cstring(delete_raw),
    )