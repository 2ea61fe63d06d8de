"""GBLN command-line interface.

Usage:
    echo 'user{id<u32>(1)}' | python3 -m gbln fmt [--pretty]
    python3 -m gbln json --input config.gbln
    python3 -m gbln read data.io.gbln.xz
    python3 -m gbln write --input config.gbln --output data.io.gbln.xz [--level 9]
    python3 -m gbln version
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

from . import (
    Config,
    GblnError,
    __version__,
    parse,
    read_io,
    serialize,
    write_io,
)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gbln",
        description="GBLN - compact type-annotated data format",
    )
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Log engine calls to stderr")
    sub = parser.add_subparsers(dest="command")

    # ── fmt ──
    fmt_p = sub.add_parser("fmt", help="Re-emit GBLN text with optimal types")
    fmt_p.add_argument("--input", "-i", metavar="FILE",
                       help="Read GBLN from FILE instead of stdin")
    fmt_p.add_argument("--pretty", action="store_true", help="Pretty output")

    # ── json ──
    json_p = sub.add_parser("json", help="Print GBLN text as JSON")
    json_p.add_argument("--input", "-i", metavar="FILE",
                        help="Read GBLN from FILE instead of stdin")

    # ── read ──
    read_p = sub.add_parser("read", help="Print an I/O file as compact GBLN")
    read_p.add_argument("path", help="I/O format file")
    read_p.add_argument("--pretty", action="store_true", help="Pretty output")

    # ── write ──
    write_p = sub.add_parser("write", help="Write GBLN text as an I/O file")
    write_p.add_argument("--input", "-i", metavar="FILE",
                         help="Read GBLN from FILE instead of stdin")
    write_p.add_argument("--output", "-o", metavar="FILE", required=True,
                         help="Destination I/O file")
    write_p.add_argument("--level", type=int, default=None,
                         help="Compression level 0-9")
    write_p.add_argument("--no-compress", action="store_true",
                         help="Write uncompressed")
    write_p.add_argument("--pretty", action="store_true",
                         help="Pretty text instead of MINI")

    # ── version ──
    sub.add_parser("version", help="Print version and exit")

    return parser


def _read_input(filepath: Optional[str]) -> str:
    """Read GBLN text from a file or stdin."""
    if filepath:
        with open(filepath, "r", encoding="utf-8") as f:
            return f.read()
    if sys.stdin.isatty():
        print("gbln: reading from stdin (Ctrl-D to end)...", file=sys.stderr)
    return sys.stdin.read()


def _cmd_fmt(args: argparse.Namespace) -> None:
    value = parse(_read_input(args.input))
    print(serialize(value, pretty=args.pretty))


def _cmd_json(args: argparse.Namespace) -> None:
    value = parse(_read_input(args.input))
    print(json.dumps(value.to_python(), ensure_ascii=False, sort_keys=True))


def _cmd_read(args: argparse.Namespace) -> None:
    print(serialize(read_io(args.path), pretty=args.pretty))


def _cmd_write(args: argparse.Namespace) -> None:
    value = parse(_read_input(args.input))
    cfg = Config.source_default() if args.pretty else Config.io_default()
    if args.no_compress:
        cfg.compress = False
    if args.level is not None:
        cfg.compression_level = args.level
    write_io(value, args.output, cfg)


def main(argv: Optional[List[str]] = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    if args.command == "version":
        print(f"gbln {__version__}")
        return

    try:
        if args.command == "fmt":
            _cmd_fmt(args)
        elif args.command == "json":
            _cmd_json(args)
        elif args.command == "read":
            _cmd_read(args)
        elif args.command == "write":
            _cmd_write(args)
    except GblnError as e:
        print(f"gbln: error [{e.code}]: {e}", file=sys.stderr)
        sys.exit(2)
    except OSError as e:
        print(f"gbln: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
