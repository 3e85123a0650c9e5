"""Editing ``title.cfg`` key/value launcher configuration files."""

from __future__ import annotations

__all__ = ["MANDATORY_KEYS", "TitleCfgFormatError", "TitleCfg", "parse_title_cfg"]

MANDATORY_KEYS = (
    "title",
    "Description",
    "boot",
    "Release",
    "Developer",
    "source",
    "Version",
)


class TitleCfgFormatError(ValueError):
    """Raised when a title.cfg line is not a ``key=value`` pair."""


def _lines(contents: str):
    parts = contents.split("\n")
    if parts and parts[-1] == "":
        parts.pop()
    for line in parts:
        yield line[:-1] if line.endswith("\r") else line


def _to_index_map(contents: str) -> dict[str, str]:
    index_map: dict[str, str] = {}
    for line in _lines(contents):
        pair = line.split("=")
        if len(pair) < 2:
            raise TitleCfgFormatError(f"line is not a key=value pair: {line!r}")
        index_map[pair[0]] = pair[1]
    return index_map


class TitleCfg:
    """A title.cfg file kept both as text and as an ordered key/value map."""

    def __init__(self, contents: str) -> None:
        self.contents = contents
        self.index_map = _to_index_map(contents)

    def sync_index_map_to_contents(self) -> None:
        """Regenerate the text from the key/value map."""
        self.contents = str(self)

    def sync_contents_to_index_map(self) -> None:
        """Rebuild the key/value map from the text."""
        self.index_map = _to_index_map(self.contents)

    def has_mandatory_fields(self) -> bool:
        return all(key in self.index_map for key in MANDATORY_KEYS)

    def add_missing_fields(self) -> TitleCfg:
        """Add every missing mandatory key with an empty value."""
        for key in MANDATORY_KEYS:
            self.index_map.setdefault(key, "")
        return self

    def __str__(self) -> str:
        return "".join(f"{key}={value}\n" for key, value in self.index_map.items())


def parse_title_cfg(contents: str) -> TitleCfg:
    """Parse title.cfg text."""
    return TitleCfg(contents)