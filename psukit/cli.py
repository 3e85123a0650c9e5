"""Command line tool for creating, inspecting and editing PSU archives."""

from __future__ import annotations

import argparse
import sys
import tomllib
from dataclasses import dataclass, field
from datetime import date, datetime, time
from pathlib import Path

from .psu import PSU, PSUFormatError, parse_psu

__all__ = [
    "PsuConfig",
    "load_configs",
    "get_output_filename",
    "convert_toml_datetime",
    "create_psu",
    "main",
]

_SEPARATOR = "--------"
_AUTOMATE_HELP = """\
Provide a .toml file to automate the creation of multiple .psu files.

For example you toml can contain one or many of the following block:

  [[psu]]
  name="APP_FOOBAR"                   # the name of the folder the psu will unpack to
  files=["./icon.sys", "./list.icn"]  # you can use paths relative to the path of this toml
  output="APP_FOOBARv2.psu"           # optional, if omitted, the output file will be {name}.psu
  timestamp=2024-10-10T10:30:00       # optional, if omitted, current time will be used
"""


def _debug_str(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _debug_optional(value: object) -> str:
    if value is None:
        return "None"
    if isinstance(value, str):
        return f"Some({_debug_str(value)})"
    if isinstance(value, (datetime, date, time)):
        return f"Some({value.isoformat()})"
    return f"Some({value})"


@dataclass
class PsuConfig:
    """One ``[[psu]]`` block of an automation file."""

    name: str
    files: list[str] = field(default_factory=list)
    output: str | None = None
    timestamp: datetime | date | time | None = None

    def __str__(self) -> str:
        files = "[" + ", ".join(_debug_str(name) for name in self.files) + "]"
        return "\n".join(
            [
                self.name,
                files,
                _debug_optional(self.output),
                _debug_optional(self.timestamp),
            ]
        )


def _config_from_table(table: object) -> PsuConfig:
    if not isinstance(table, dict):
        raise ValueError("each psu block must be a table")
    name = table.get("name")
    if not isinstance(name, str):
        raise ValueError("psu block needs a string 'name'")
    files = table.get("files")
    if not isinstance(files, list) or not all(isinstance(f, str) for f in files):
        raise ValueError(f"psu block {name!r} needs a list of strings 'files'")
    output = table.get("output")
    if output is not None and not isinstance(output, str):
        raise ValueError(f"psu block {name!r} has a non-string 'output'")
    timestamp = table.get("timestamp")
    if timestamp is not None and not isinstance(timestamp, (datetime, date, time)):
        raise ValueError(f"psu block {name!r} has a 'timestamp' that is not a datetime")
    return PsuConfig(name=name, files=list(files), output=output, timestamp=timestamp)


def load_configs(text: str) -> list[PsuConfig]:
    """Parse the ``[[psu]]`` blocks of an automation TOML document."""
    document = tomllib.loads(text)
    blocks = document.get("psu")
    if not isinstance(blocks, list):
        raise ValueError("config file has no [[psu]] blocks")
    return [_config_from_table(block) for block in blocks]


def get_output_filename(output: str | None, name: str) -> str:
    """The output path, defaulting to ``{name}.psu``."""
    return output if output is not None else f"{name}.psu"


def convert_toml_datetime(value: datetime | date | time | None) -> datetime | None:
    """Read a TOML datetime's fields as UTC and shift them by the current local offset."""
    if value is None:
        return None
    if not isinstance(value, datetime):
        raise ValueError("timestamp needs both a date and a time")
    naive = datetime(
        value.year, value.month, value.day, value.hour, value.minute, value.second
    )
    offset = datetime.now().astimezone().utcoffset()
    return naive + offset if offset is not None else naive


def create_psu(
    name: str,
    output: str,
    files: list[str],
    timestamp: datetime | None,
    path_prefix: str | Path,
) -> PSU:
    """Build a PSU from files found under ``path_prefix`` and write it to ``output``."""
    print(f"Preparing to create {name}")
    psu = PSU()
    prefix = Path(path_prefix)

    existing = []
    for file in files:
        actual = prefix / file
        if actual.exists():
            existing.append(str(actual))
        else:
            print(f"⚠ File {file} doesn't exist. Skipping.", file=sys.stderr)

    psu.add_defaults(name, timestamp if timestamp is not None else datetime.now())
    for file in existing:
        psu.add_file(file)
        print(f"+ Adding {file}")

    Path(output).write_bytes(psu.to_bytes())
    print(f"Wrote {output}!\n")
    return psu


def _parse_timestamp(text: str) -> datetime:
    try:
        value = datetime.fromisoformat(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid timestamp: {text!r}") from None
    if value.tzinfo is not None:
        raise argparse.ArgumentTypeError(f"timestamp must not carry an offset: {text!r}")
    return value


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="psu-packer", description="PSU management utility")
    commands = parser.add_subparsers(dest="command", required=True)

    create = commands.add_parser("create", help="Create a .psu from scratch")
    create.add_argument("files", nargs="*", metavar="FILES",
                        help="One or many files to add to the psu")
    create.add_argument("-n", "--name", required=True, metavar="STRING",
                        help="Name of the psu folder")
    create.add_argument("-o", "--output", metavar="PATH",
                        help="Output path, uses {name}.psu by default")
    create.add_argument("-t", "--timestamp", type=_parse_timestamp, metavar="PATH",
                        help="The timestamp to be applied to files in the psu")

    read = commands.add_parser("read", help="Read the content of a psu")
    read.add_argument("file", metavar="FILE", help="Path of the psu to read")

    automate = commands.add_parser(
        "automate",
        help="Provide a .toml file to automate the creation of multiple .psu files.",
        description=_AUTOMATE_HELP,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    automate.add_argument("toml", metavar="FILE", help="Path of the .toml to use")
    automate.add_argument("-o", "--overwrite", action="store_true",
                          help="If this flag is provided, any existing .psu will be overwritten")

    add = commands.add_parser("add", help="Add one or many files to a .psu")
    add.add_argument("--psu", required=True, metavar="FILE",
                     help="Path of the psu to add entries to")
    add.add_argument("files", nargs="*", metavar="FILES",
                     help="One or many files to be added to the psu")

    delete = commands.add_parser("delete", help="Remove one or many entries from a .psu")
    delete.add_argument("--psu", required=True, metavar="FILE",
                        help="Path of the psu to remove entries from")
    delete.add_argument("entries", nargs="*", metavar="ENTRIES",
                        help="One or many entries to be removed from the psu")
    return parser


def _run_create(args: argparse.Namespace) -> None:
    output = get_output_filename(args.output, args.name)
    psu = create_psu(args.name, output, list(args.files), args.timestamp, ".")
    print(psu)


def _run_read(args: argparse.Namespace) -> None:
    psu = parse_psu(Path(args.file).read_bytes())
    print(f"Reading the content of {args.file}\n")
    print(psu)


def _run_automate(args: argparse.Namespace) -> None:
    toml_path = Path(args.toml)
    configs = load_configs(toml_path.read_text(encoding="utf-8"))
    prefix = toml_path.parent
    for config in configs:
        output = get_output_filename(config.output, config.name)
        if not args.overwrite and Path(output).exists():
            print(
                f"{output} already exists. Use --overwrite if you want to overwrite all .psu."
            )
            continue
        psu = create_psu(
            config.name,
            output,
            list(config.files),
            convert_toml_datetime(config.timestamp),
            prefix,
        )
        print(f"{psu}\n\n{_SEPARATOR}\n")


def _run_add(args: argparse.Namespace) -> None:
    path = Path(args.psu)
    psu = parse_psu(path.read_bytes())
    for file in args.files:
        try:
            psu.add_file(file)
        except FileNotFoundError:
            print(f"⚠ File {file} doesn't exist. Skipping.", file=sys.stderr)
        else:
            print(f"+ Adding {file}")
    path.write_bytes(psu.to_bytes())
    print(f"\n{psu}")


def _run_delete(args: argparse.Namespace) -> None:
    path = Path(args.psu)
    psu = parse_psu(path.read_bytes())
    for entry in args.entries:
        try:
            psu.remove_entry(entry)
        except KeyError:
            print(f"⚠ Entry {entry} doesn't exist. Skipping.", file=sys.stderr)
        else:
            print(f"+ Removing {entry}")
    path.write_bytes(psu.to_bytes())
    print(f"\n{psu}")


_COMMANDS = {
    "create": _run_create,
    "read": _run_read,
    "automate": _run_automate,
    "add": _run_add,
    "delete": _run_delete,
}


def main(argv: list[str] | None = None) -> int:
    """Run the psu-packer command line."""
    arguments = sys.argv[1:] if argv is None else list(argv)
    parser = _build_parser()
    if not arguments:
        parser.print_help()
        return 2
    args = parser.parse_args(arguments)
    try:
        _COMMANDS[args.command](args)
    except OSError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    except (PSUFormatError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())