"""Helpers for the fixed-size strings found in PS2 save data."""

from __future__ import annotations

__all__ = ["parse_cstring", "encode_sjis", "decode_sjis"]

_SJIS_PUNCTUATION = {
    ord(" "): 0x40,
    ord(":"): 0x46,
    ord("/"): 0x5E,
    ord("("): 0x69,
    ord(")"): 0x6A,
    ord("["): 0x6D,
    ord("]"): 0x6E,
    ord("{"): 0x6F,
    ord("}"): 0x70,
}
_SJIS_PUNCTUATION_REVERSE = {code: char for char, code in _SJIS_PUNCTUATION.items()}
_UNKNOWN = ord("?")


def parse_cstring(data: bytes) -> str:
    """Decode bytes up to the first NUL, replacing invalid UTF-8."""
    raw = bytes(data)
    end = raw.find(b"\x00")
    if end != -1:
        raw = raw[:end]
    return raw.decode("utf-8", errors="replace")


def _encode_byte(byte: int) -> tuple[int, int]:
    if byte in _SJIS_PUNCTUATION:
        return 0x81, _SJIS_PUNCTUATION[byte]
    if 48 <= byte <= 90:
        return 0x82, byte + 31
    if 97 <= byte <= 122:
        return 0x82, byte + 32
    return 0x00, 0x00


def encode_sjis(text: str) -> bytes:
    """Encode text as the full-width Shift-JIS subset used by icon.sys titles."""
    return bytes(part for byte in text.encode("utf-8") for part in _encode_byte(byte))


def _decode_pair(lead: int, trail: int) -> int:
    if lead == 0x00:
        return 0x00 if trail == 0x00 else _UNKNOWN
    if lead == 0x0D:
        return ord("\n") if trail == 0x0A else _UNKNOWN
    if lead == 0x81:
        return _SJIS_PUNCTUATION_REVERSE.get(trail, _UNKNOWN)
    if lead == 0x82:
        if 0x4F <= trail <= 0x7A:
            return trail - 31
        if 0x81 <= trail <= 0x99:
            return trail - 32
        if trail == 0x3F:
            return ord(" ")
    return _UNKNOWN


def decode_sjis(data: bytes) -> str:
    """Decode full-width Shift-JIS pairs.

    The result has as many characters as the input has bytes; positions past
    the decoded pairs are NUL characters.
    """
    raw = bytes(data)
    decoded = [_decode_pair(lead, trail) for lead, trail in zip(raw[0::2], raw[1::2])]
    decoded.extend([0] * (len(raw) - len(decoded)))
    return bytes(decoded).decode("ascii")