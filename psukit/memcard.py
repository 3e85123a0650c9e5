"""Reading the FAT file system of raw PS2 memory card images."""

from __future__ import annotations

import argparse
import struct
import sys
from collections.abc import Iterator
from dataclasses import dataclass

__all__ = [
    "DF_READ",
    "DF_WRITE",
    "DF_EXECUTE",
    "DF_PROTECTED",
    "DF_FILE",
    "DF_DIRECTORY",
    "DF_0400",
    "DF_EXISTS",
    "DF_HIDDEN",
    "END_OF_CHAIN",
    "DIR_ENTRY_SIZE",
    "MemcardFormatError",
    "CardTimestamp",
    "DirEntry",
    "Superblock",
    "Memcard",
    "parse_dir_entry",
    "parse_superblock",
    "main",
]

DF_READ = 0x0001
DF_WRITE = 0x0002
DF_EXECUTE = 0x0004
DF_PROTECTED = 0x0008
DF_FILE = 0x0010
DF_DIRECTORY = 0x0020
DF_0400 = 0x0400
DF_EXISTS = 0x8000
DF_HIDDEN = 0x2000

END_OF_CHAIN = 0x7FFFFFFF
DIR_ENTRY_SIZE = 512

_UNUSED = 0xFFFFFFFF
_HIGH_BIT = 0x80000000
_DELETED_MARK = 0xE5
_DEFAULT_CARD = "../NewCard.ps2"

_TIMESTAMP = struct.Struct("<x5BH")
_DIR_ENTRY = struct.Struct("<HHI8sII8sI28x32s")
_SUPERBLOCK = struct.Struct("<28s12sHHHHIIIIII8x32I32IBB")


class MemcardFormatError(ValueError):
    """Raised when a memory card image is malformed."""


@dataclass(frozen=True)
class CardTimestamp:
    """A timestamp as stored in a directory entry."""

    seconds: int
    minutes: int
    hours: int
    days: int
    months: int
    years: int


def _parse_timestamp(raw: bytes) -> CardTimestamp:
    return CardTimestamp(*_TIMESTAMP.unpack(raw))


@dataclass(frozen=True)
class DirEntry:
    """One 512-byte directory entry."""

    mode: int
    length: int
    created: CardTimestamp
    cluster: int
    dir_entry: int
    modified: CardTimestamp
    attributes: int
    name: bytes

    def is_empty(self) -> bool:
        return self.name[0] == 0x00

    def is_deleted(self) -> bool:
        return self.name[0] == _DELETED_MARK

    def name_as_string(self) -> str:
        """The name decoded leniently, with trailing NULs removed."""
        return self.name.decode("utf-8", errors="replace").rstrip("\x00")

    def is_directory(self) -> bool:
        return bool(self.mode & DF_DIRECTORY)


def parse_dir_entry(data: bytes) -> DirEntry:
    """Parse a directory entry from the start of ``data``."""
    raw = bytes(data)
    if len(raw) < _DIR_ENTRY.size:
        raise MemcardFormatError(
            f"directory entry needs {_DIR_ENTRY.size} bytes, got {len(raw)}"
        )
    mode, _, length, created, cluster, dir_entry, modified, attributes, name = (
        _DIR_ENTRY.unpack_from(raw)
    )
    return DirEntry(
        mode=mode,
        length=length,
        created=_parse_timestamp(created),
        cluster=cluster,
        dir_entry=dir_entry,
        modified=_parse_timestamp(modified),
        attributes=attributes,
        name=name,
    )


@dataclass(frozen=True)
class Superblock:
    """The header found at the start of a memory card image."""

    magic: bytes
    version: bytes
    page_size: int
    pages_per_cluster: int
    pages_per_block: int
    clusters_per_card: int
    alloc_offset: int
    alloc_end: int
    rootdir_cluster: int
    backup_block1: int
    backup_block2: int
    ifc_list: tuple[int, ...]
    bad_block_list: tuple[int, ...]
    card_type: int
    card_flags: int


def parse_superblock(data: bytes) -> Superblock:
    """Parse the superblock at the start of a card image."""
    raw = bytes(data)
    if len(raw) < _SUPERBLOCK.size:
        raise MemcardFormatError(
            f"superblock needs {_SUPERBLOCK.size} bytes, got {len(raw)}"
        )
    values = _SUPERBLOCK.unpack_from(raw)
    (
        magic,
        version,
        page_size,
        pages_per_cluster,
        pages_per_block,
        _,
        clusters_per_card,
        alloc_offset,
        alloc_end,
        rootdir_cluster,
        backup_block1,
        backup_block2,
    ) = values[:12]
    ifc_list = tuple(values[12:44])
    bad_block_list = tuple(values[44:76])
    card_type, card_flags = values[76:78]
    return Superblock(
        magic=magic,
        version=version,
        page_size=page_size,
        pages_per_cluster=pages_per_cluster,
        pages_per_block=pages_per_block,
        clusters_per_card=clusters_per_card,
        alloc_offset=alloc_offset,
        alloc_end=alloc_end,
        rootdir_cluster=rootdir_cluster,
        backup_block1=backup_block1,
        backup_block2=backup_block2,
        ifc_list=ifc_list,
        bad_block_list=bad_block_list,
        card_type=card_type,
        card_flags=card_flags,
    )


class Memcard:
    """A raw memory card image with its file allocation table loaded."""

    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self.superblock = parse_superblock(self._data)
        sb = self.superblock
        if sb.page_size == 0 or sb.pages_per_cluster == 0:
            raise MemcardFormatError("page size and pages per cluster must be non-zero")

        self.page_size = sb.page_size
        self.pages_per_cluster = sb.pages_per_cluster
        self.rootdir_cluster = sb.rootdir_cluster
        self.alloc_offset = sb.alloc_offset
        self.spare_size = (self.page_size // 128) * 4
        self.raw_page_size = self.page_size + self.spare_size
        self.cluster_size = self.page_size * self.pages_per_cluster
        self.fat_per_cluster = self.cluster_size // 4
        if self.fat_per_cluster == 0:
            raise MemcardFormatError("cluster too small to hold FAT entries")

        self._words = struct.Struct(f"<{self.fat_per_cluster}I")
        self._root_entries: list[DirEntry] = []
        self.fat_matrix = self._build_fat_matrix()

    def _read_page(self, n: int) -> bytes:
        offset = self.raw_page_size * n
        page = self._data[offset : offset + self.page_size]
        return page + bytes(self.page_size - len(page))

    def _read_cluster(self, n: int) -> bytes:
        first = n * self.pages_per_cluster
        return b"".join(
            self._read_page(first + i) for i in range(self.pages_per_cluster)
        )

    def _build_fat_matrix(self) -> list[tuple[int, ...]]:
        cache: dict[int, tuple[int, ...]] = {}

        def words(cluster: int) -> tuple[int, ...]:
            if cluster not in cache:
                data = self._read_cluster(cluster)[: self._words.size]
                cache[cluster] = self._words.unpack(data)
            return cache[cluster]

        indirect = [
            value
            for cluster in self.superblock.ifc_list
            for value in words(cluster)
            if value != _UNUSED
        ]
        return [words(cluster) for cluster in indirect]

    def _fat_value(self, n: int) -> int:
        row = (n // self.fat_per_cluster) % self.fat_per_cluster
        try:
            value = self.fat_matrix[row][n % self.fat_per_cluster]
        except IndexError:
            raise MemcardFormatError(f"cluster {n} is outside the FAT") from None
        return value ^ _HIGH_BIT if value & _HIGH_BIT else value

    def _chain(self, start: int) -> Iterator[int]:
        seen: set[int] = set()
        cluster = start
        while cluster != END_OF_CHAIN:
            if cluster in seen:
                raise MemcardFormatError(f"cluster chain loops at cluster {cluster}")
            seen.add(cluster)
            yield cluster
            cluster = self._fat_value(cluster)

    def read_entry_cluster(self, cluster_offset: int) -> list[DirEntry]:
        """All directory entries stored in one allocatable cluster."""
        buffer = self._read_cluster(cluster_offset + self.alloc_offset)
        count = len(buffer) // DIR_ENTRY_SIZE
        return [
            parse_dir_entry(buffer[i * DIR_ENTRY_SIZE : (i + 1) * DIR_ENTRY_SIZE])
            for i in range(count)
        ]

    def read_data_cluster(self, entry: DirEntry) -> bytes:
        """The contents of a file, following its cluster chain."""
        parts = []
        bytes_read = 0
        for cluster in self._chain(entry.cluster):
            to_read = min(entry.length - bytes_read, self.cluster_size)
            parts.append(self._read_cluster(cluster + self.alloc_offset)[:to_read])
            bytes_read += to_read
        return b"".join(parts)

    def find_sub_entries(self, parent_entry: DirEntry) -> list[DirEntry]:
        """Entries of a directory, skipping names that start with a dot."""
        sub_entries: list[DirEntry] = []
        for cluster in self._chain(parent_entry.cluster):
            for entry in self.read_entry_cluster(cluster):
                if len(sub_entries) < parent_entry.length and not entry.name.startswith(
                    b"."
                ):
                    sub_entries.append(entry)
        return sub_entries

    def _walk(self, entry: DirEntry, path: str) -> Iterator[tuple[str, int, int]]:
        if entry.is_empty() or entry.is_deleted():
            return
        name = entry.name_as_string()
        full_path = f"{path}/{name}" if path else name
        chain_length = sum(1 for _ in self._chain(entry.cluster))
        yield full_path, entry.cluster, chain_length
        if entry.is_directory():
            for child in self.find_sub_entries(entry):
                yield from self._walk(child, full_path)

    def allocation_table(self) -> list[tuple[str, int, int]]:
        """Rows of (path, first cluster, chain length) for every live entry."""
        if not self._root_entries:
            self._root_entries = self.read_entry_cluster(self.rootdir_cluster)
        return [row for entry in self._root_entries for row in self._walk(entry, "")]

    def print_allocation_table(self) -> None:
        """Print the allocation table to standard output."""
        rows = self.allocation_table()
        print("File Allocation Table:")
        print(f"{'Path':<50} {'Cluster':<10} Chain Length")
        for path, cluster, length in rows:
            print(f"{path:<50} {cluster:<10} {length}")


def main(argv: list[str] | None = None) -> int:
    """Print the root entry and allocation table of a card image."""
    parser = argparse.ArgumentParser(
        prog="memcard", description="Show the allocation table of a memory card image"
    )
    parser.add_argument("card", nargs="?", default=_DEFAULT_CARD, help="card image")
    args = parser.parse_args(argv)

    try:
        with open(args.card, "rb") as handle:
            data = handle.read()
    except OSError as exc:
        print(f"cannot read file: {exc}", file=sys.stderr)
        return 1

    try:
        card = Memcard(data)
        folders = card.read_entry_cluster(card.rootdir_cluster)
        if folders:
            print(repr(folders[0]), file=sys.stderr)
        card.print_allocation_table()
    except MemcardFormatError as exc:
        print(f"invalid memory card: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())