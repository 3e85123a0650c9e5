# psukit

Tools for PlayStation 2 save data: build, inspect and edit `.psu` archives,
decode and re-encode `.icn` 3D icons, edit `icon.sys` and `title.cfg`
metadata, and walk the file system of raw memory card images. The package
uses only the Python standard library.

## Install

```
pip install .
```

## Command line

### psu-packer

Create a `.psu` from a set of files. The output defaults to `{name}.psu`; the
timestamp given with `-t` is applied to the root directory entries and
defaults to the current time. Files that do not exist are skipped with a
warning.

```
psu-packer create --name APP_FOOBAR icon.sys list.icn
psu-packer create -n APP_FOOBAR -o APP_FOOBARv2.psu -t 2024-10-10T10:30:00 icon.sys
```

Show what is inside a `.psu`:

```
psu-packer read APP_FOOBAR.psu
```

Add files to, or remove entries from, an existing `.psu` in place:

```
psu-packer add --psu APP_FOOBAR.psu boot.elf
psu-packer delete --psu APP_FOOBAR.psu boot.elf
```

Build many archives from one TOML file. Relative file paths are taken from
the TOML file's directory. An output file that already exists is left alone
unless `--overwrite` (`-o`) is given.

```toml
[[psu]]
name = "APP_FOOBAR"
files = ["./icon.sys", "./list.icn"]
output = "APP_FOOBARv2.psu"      # optional, defaults to {name}.psu
timestamp = 2024-10-10T10:30:00  # optional, defaults to now
```

```
psu-packer automate build.toml
psu-packer automate build.toml --overwrite
```

A `timestamp` in the TOML file is read as UTC and shifted by the machine's
current local offset.

### psu-memcard

Print the root entry (to standard error) and the allocation table — path,
first cluster and chain length of every live entry — of a raw memory card
image:

```
psu-memcard card.ps2
```

## Library

```python
from psukit.psu import parse_psu, write_psu

with open("APP_FOOBAR.psu", "rb") as fh:
    psu = parse_psu(fh.read())

for entry in psu.entries:
    print(entry.kind, entry.name, entry.size)

psu.remove_entry("boot.elf")   # KeyError if there is no such entry
with open("APP_FOOBAR.psu", "wb") as fh:
    fh.write(write_psu(psu))
```

`PSU.add_defaults(name, timestamp)` adds the root directory with its `.` and
`..` entries, and `PSU.add_file(path)` appends a file from disk
(`FileNotFoundError` if it is missing). `str(psu)` gives a table of the
entries.

Other modules:

- `psukit.icn`: `parse_icn`, `write_icn`, `decompress_texture`,
  `ICN.export_obj` (Wavefront OBJ text of the first animation shape) and
  `ICN.export_png` (the 128x128 texture as an RGBA PNG)
- `psukit.icon_sys`: `parse_icon_sys`, `IconSys.to_bytes`, `split_title`,
  `join_title_lines`
- `psukit.title_cfg`: `parse_title_cfg`, `TitleCfg` with
  `has_mandatory_fields`, `add_missing_fields`,
  `sync_index_map_to_contents` and `sync_contents_to_index_map`
- `psukit.memcard`: `Memcard` (`read_entry_cluster`, `read_data_cluster`,
  `find_sub_entries`, `allocation_table`, `print_allocation_table`),
  `parse_dir_entry`, `parse_superblock`
- `psukit.text`: `encode_sjis`, `decode_sjis`, `parse_cstring`
- `psukit.color`: `Color`, `color_from_u16`

Malformed input raises a `ValueError` subclass: `PSUFormatError`,
`ICNFormatError`, `IconSysFormatError`, `TitleCfgFormatError` or
`MemcardFormatError`.

## What it does not do

- `write_icn` writes only uncompressed textures; an ICN whose texture type
  asks for compression raises `ICNFormatError`.
- Memory card images can only be read: there is no way to add, change or
  delete files on a card image.
- The Shift-JIS support covers only the full-width letters, digits and
  punctuation used in `icon.sys` titles, not general Japanese text.
- There is no graphical interface; everything is done through the library or
  the two commands above.

## Tests

```
pip install .[test]
pytest
```