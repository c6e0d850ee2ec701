"""d2p-pak - list, extract and pack d2p archives, following split segments."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from .config import load_settings
from .errors import PakError
from .logging_utils import get_logger, set_level
from .reader import MergeReader, unpack_one_to_memory
from .writer import pack_directory

logger = get_logger(__name__)


def _list(args: argparse.Namespace) -> int:
    with MergeReader.open(args.archive) as reader:
        for full_file_name, chunk in reader.iterate():
            print(f"{full_file_name}\t{chunk.size}")
    return 0


def _props(args: argparse.Namespace) -> int:
    with MergeReader.open(args.archive) as reader:
        for key, value in reader.properties.items():
            print(f"{key}={value}")
    return 0


def _extract(args: argparse.Namespace) -> int:
    output_dir = args.output_dir or load_settings().output_dir or Path(Path(args.archive).stem)
    with MergeReader.open(args.archive) as reader:
        written = reader.extract(output_dir, args.patterns or None)
    logger.info("Extracted %d file(s) to %s", len(written), output_dir)
    return 0


def _show(args: argparse.Namespace) -> int:
    data = unpack_one_to_memory(args.archive, args.name)
    sys.stdout.buffer.write(data)
    sys.stdout.buffer.flush()
    return 0


def _pack(args: argparse.Namespace) -> int:
    pack_directory(args.input_dir, args.output_file, link=args.link)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="d2p-pak",
        description="Read d2p archives split across linked segments.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    list_cmd = commands.add_parser("list", help="List every file of the merged archive")
    list_cmd.add_argument("archive", help="First segment of the archive")
    list_cmd.set_defaults(handler=_list)

    props_cmd = commands.add_parser("props", help="Print the merged archive properties")
    props_cmd.add_argument("archive", help="First segment of the archive")
    props_cmd.set_defaults(handler=_props)

    extract_cmd = commands.add_parser("extract", help="Extract files to a directory")
    extract_cmd.add_argument("archive", help="First segment of the archive")
    extract_cmd.add_argument("output_dir", nargs="?", type=Path,
                             help="Destination (default: D2P_PAK_OUTPUT, then ./<archive name>)")
    extract_cmd.add_argument("patterns", nargs="*", help="Only extract names matching these globs")
    extract_cmd.set_defaults(handler=_extract)

    show_cmd = commands.add_parser("show", help="Write one file's content to stdout")
    show_cmd.add_argument("archive", help="First segment of the archive")
    show_cmd.add_argument("name", help="File name or glob inside the archive")
    show_cmd.set_defaults(handler=_show)

    pack_cmd = commands.add_parser("pack", help="Pack a directory into one segment")
    pack_cmd.add_argument("input_dir")
    pack_cmd.add_argument("output_file")
    pack_cmd.add_argument("--link", help="File name of the next segment")
    pack_cmd.set_defaults(handler=_pack)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    settings = load_settings()
    set_level(settings.log_level)
    args = build_parser().parse_args(argv)
    try:
        return args.handler(args)
    except PakError as exc:
        logger.error("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
