"""RGBA colours and the 16-bit packed colour format of PS2 icons."""

from __future__ import annotations

import struct
from dataclasses import dataclass

__all__ = ["Color", "WHITE", "color_from_u16"]

_CHANNELS = struct.Struct("<4I")


@dataclass(frozen=True)
class Color:
    """An 8-bit-per-channel RGBA colour."""

    r: int
    g: int
    b: int
    a: int

    def to_bytes(self) -> bytes:
        """Each channel as a little-endian 32-bit integer."""
        return _CHANNELS.pack(self.r, self.g, self.b, self.a)

    def to_u16(self) -> int:
        """Pack as 5-5-5 RGB with the top bit set when alpha is non-zero."""
        r = (self.r * 31 // 255) & 0x1F
        g = (self.g * 31 // 255) & 0x1F
        b = (self.b * 31 // 255) & 0x1F
        a = 0x8000 if self.a > 0 else 0
        return r | (g << 5) | (b << 10) | a

    def to_rgba(self) -> tuple[int, int, int, int]:
        return (self.r, self.g, self.b, self.a)


WHITE = Color(255, 255, 255, 255)


def color_from_u16(value: int) -> Color:
    """Unpack a 5-5-5 colour with a one-bit alpha."""
    r = value & 0x1F
    g = (value >> 5) & 0x1F
    b = (value >> 10) & 0x1F
    a = 255 if value & 0x8000 else 0
    return Color(r * 255 // 31, g * 255 // 31, b * 255 // 31, a)