from __future__ import annotations
import argparse
import sys
from typing import Optional, Sequence

from .commands import (
    show as cmd_show,
    set_file as cmd_set_file,
    resolve as cmd_resolve,
)
from ..core.errors import ModConfError
from ..core.logger import get_logger

log = get_logger(__name__)


def entrypoint():
    sys.exit(main())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Mod configuration resolver CLI")
    sub = parser.add_subparsers(dest="command", required=True)

    s = sub.add_parser("show", help="Summarise options and file overrides of a mod config")
    s.add_argument("config", type=str, help="Path to the mod config JSON")

    f = sub.add_parser("set-file", help="Set or remove the override for a game path")
    f.add_argument("config", type=str, help="Path to the mod config JSON")
    f.add_argument("path", type=str, help="Game path the override applies to")
    f.add_argument(
        "--option",
        type=str,
        default="",
        help="Grouping option to edit (omit for the top-level files)",
    )
    f.add_argument(
        "--suboption",
        type=str,
        default="",
        help="Suboption of --option to edit",
    )
    what = f.add_mutually_exclusive_group(required=True)
    what.add_argument(
        "--file",
        type=str,
        nargs="+",
        default=None,
        help="Source path(s) forming a single un-tagged layer",
    )
    what.add_argument(
        "--layers",
        type=str,
        default=None,
        help='Override in wire form, e.g. \'[["tint", "a.png"], [null, "b.png"]]\'',
    )
    what.add_argument(
        "--remove",
        action="store_true",
        help="Remove the override for the path",
    )

    r = sub.add_parser("resolve", help="Composite the texture for a game path")
    r.add_argument("config", type=str, help="Path to the mod config JSON")
    r.add_argument("path", type=str, help="Game path to resolve")
    r.add_argument("--root", type=str, required=True, help="Mod directory holding source files")
    r.add_argument("--out", type=str, required=True, help="Output PNG path")
    r.add_argument("--option", type=str, default="", help="Grouping option to read from")
    r.add_argument("--suboption", type=str, default="", help="Suboption of --option")
    r.add_argument(
        "--settings",
        type=str,
        default=None,
        help="JSON file of {option_id: value} user settings (defaults are used otherwise)",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        if args.command == "show":
            cmd_show.run(args)
        elif args.command == "set-file":
            cmd_set_file.run(args)
        elif args.command == "resolve":
            cmd_resolve.run(args)
    except ModConfError as exc:
        log.error(f"{type(exc).__name__}: {exc}")
        return 1
    except OSError as exc:
        log.error(f"Could not read input: {exc}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
