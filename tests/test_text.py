import pytest

from psukit.text import decode_sjis, encode_sjis, parse_cstring


def test_parse_cstring_stops_at_first_nul():
    assert parse_cstring(b"abc\x00def") == "abc"


def test_parse_cstring_without_nul_keeps_everything():
    assert parse_cstring(b"hello") == "hello"


def test_parse_cstring_empty_and_leading_nul():
    assert parse_cstring(b"") == ""
    assert parse_cstring(b"\x00abc") == ""


def test_parse_cstring_replaces_invalid_utf8():
    assert parse_cstring(b"a\xffb\x00") == "a\ufffdb"


def test_encode_space_uses_fullwidth_pair():
    assert encode_sjis(" ") == b"\x81\x40"


def test_encode_unknown_character_is_zero_pair():
    assert encode_sjis("#") == b"\x00\x00"


def test_encoded_length_is_twice_byte_length():
    text = "Save Data (1/2)"
    assert len(encode_sjis(text)) == 2 * len(text)


@pytest.mark.parametrize(
    "text",
    ["Hello World", "SAVE 09", "A:B/C", "(x)[y]{w}", "Yo"],
)
def test_round_trip_pads_with_nul(text):
    assert decode_sjis(encode_sjis(text)) == text + "\x00" * len(text)


def test_lowercase_z_does_not_round_trip():
    assert decode_sjis(encode_sjis("z")) == "?\x00"


def test_decode_zero_pair_and_unknown_lead():
    assert decode_sjis(b"\x00\x00") == "\x00\x00"
    assert decode_sjis(b"\x00\x01") == "?\x00"
    assert decode_sjis(b"\x90\x40") == "?\x00"


def test_decode_line_break_pair():
    assert decode_sjis(b"\x0d\x0a") == "\n\x00"
    assert decode_sjis(b"\x0d\x0b") == "?\x00"


def test_decode_fullwidth_space_variant():
    assert decode_sjis(b"\x82\x3f") == " \x00"


def test_decode_ignores_trailing_odd_byte():
    assert decode_sjis(b"\x81\x40\x41") == " \x00\x00"