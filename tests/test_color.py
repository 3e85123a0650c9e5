import struct

import pytest

from psukit.color import WHITE, Color, color_from_u16


def test_all_bits_set_is_white():
    assert color_from_u16(0xFFFF) == WHITE


def test_zero_is_transparent_black():
    assert color_from_u16(0) == Color(0, 0, 0, 0)


def test_alpha_bit_controls_alpha_only():
    opaque = color_from_u16(0xFFFF)
    clear = color_from_u16(0x7FFF)
    assert clear.a == 0
    assert (opaque.r, opaque.g, opaque.b) == (clear.r, clear.g, clear.b)


@pytest.mark.parametrize(
    "value",
    [0x0000, 0x8000, 0x801F, 0x83E0, 0xFC00, 0x7FFF, 0xFFFF, 0x7C1F],
)
def test_saturated_channels_round_trip(value):
    assert color_from_u16(value).to_u16() == value


def test_to_u16_of_white():
    assert WHITE.to_u16() == 0xFFFF


def test_to_bytes_uses_32_bit_little_endian_channels():
    color = Color(1, 2, 3, 4)
    data = color.to_bytes()
    assert len(data) == 16
    assert struct.unpack("<4I", data) == (1, 2, 3, 4)


def test_white_to_bytes():
    assert WHITE.to_bytes() == b"\xff\x00\x00\x00" * 4


def test_to_rgba():
    assert Color(10, 20, 30, 40).to_rgba() == (10, 20, 30, 40)