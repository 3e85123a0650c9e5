import pytest

from psukit.title_cfg import (
    MANDATORY_KEYS,
    TitleCfg,
    TitleCfgFormatError,
    parse_title_cfg,
)

COMPLETE = (
    "title=My Game\n"
    "Description=A homebrew\n"
    "boot=game.elf\n"
    "Release=2024\n"
    "Developer=Someone\n"
    "source=local\n"
    "Version=1.0\n"
)


def test_parse_keeps_order_and_values():
    cfg = parse_title_cfg("title=My Game\nboot=game.elf\n")
    assert list(cfg.index_map.items()) == [("title", "My Game"), ("boot", "game.elf")]


def test_str_round_trip():
    cfg = parse_title_cfg(COMPLETE)
    assert str(cfg) == COMPLETE


def test_value_stops_at_second_equals():
    cfg = parse_title_cfg("key=a=b\n")
    assert cfg.index_map["key"] == "a"


def test_duplicate_key_keeps_first_position_and_last_value():
    cfg = parse_title_cfg("a=1\nb=2\na=3\n")
    assert list(cfg.index_map.items()) == [("a", "3"), ("b", "2")]


def test_crlf_lines():
    cfg = parse_title_cfg("title=X\r\nboot=y.elf\r\n")
    assert cfg.index_map == {"title": "X", "boot": "y.elf"}


def test_line_without_equals_raises():
    with pytest.raises(TitleCfgFormatError):
        TitleCfg("title=X\nbroken\n")


def test_mandatory_fields():
    assert parse_title_cfg(COMPLETE).has_mandatory_fields() is True
    assert parse_title_cfg("title=X\n").has_mandatory_fields() is False


def test_add_missing_fields():
    cfg = parse_title_cfg("boot=game.elf\nextra=1\n")
    result = cfg.add_missing_fields()
    assert result is cfg
    assert cfg.has_mandatory_fields()
    assert cfg.index_map["boot"] == "game.elf"
    assert cfg.index_map["extra"] == "1"
    missing = [key for key in MANDATORY_KEYS if key != "boot"]
    assert list(cfg.index_map)[2:] == missing
    assert all(cfg.index_map[key] == "" for key in missing)


def test_sync_index_map_to_contents():
    cfg = parse_title_cfg("title=X\n")
    cfg.index_map["boot"] = "run.elf"
    cfg.sync_index_map_to_contents()
    assert cfg.contents == "title=X\nboot=run.elf\n"


def test_sync_contents_to_index_map():
    cfg = parse_title_cfg("title=X\n")
    cfg.contents = "Version=2\n"
    cfg.sync_contents_to_index_map()
    assert cfg.index_map == {"Version": "2"}


def test_empty_contents():
    cfg = parse_title_cfg("")
    assert cfg.index_map == {}
    assert str(cfg) == ""