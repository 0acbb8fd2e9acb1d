"""Livemark CLI — livemark watch / livemark list.

Entry point for the ``livemark`` command-line interface.
"""

from __future__ import annotations

import argparse
import sys


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the livemark CLI."""
    parser = argparse.ArgumentParser(
        prog="livemark",
        description="Keep rendered markdown in sync with disk and notify live viewers.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # livemark watch
    watch_parser = subparsers.add_parser(
        "watch",
        help="Track documents and report reloads as files change",
    )
    watch_parser.add_argument(
        "path", nargs="?", default=".", help="Markdown file or directory",
    )
    watch_parser.add_argument(
        "--quiet", action="store_true", help="Do not print a line per reload",
    )
    watch_parser.add_argument(
        "--debounce", type=int, default=50, help="Debounce window in milliseconds",
    )
    watch_parser.add_argument(
        "--poll", action="store_true", help="Use polling instead of OS notifications",
    )

    # livemark list
    list_parser = subparsers.add_parser(
        "list",
        help="Print the document keys that would be tracked",
    )
    list_parser.add_argument(
        "path", nargs="?", default=".", help="Markdown file or directory",
    )

    return parser


def _get_version() -> str:
    """Get the package version."""
    from livemark import __version__

    return __version__


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    from livemark._errors import LivemarkError
    from livemark.app import list_documents, watch

    if args.command == "watch":
        watch(
            args.path,
            quiet=args.quiet,
            debounce=args.debounce,
            force_polling=True if args.poll else None,
        )
    elif args.command == "list":
        try:
            keys = list_documents(args.path)
        except LivemarkError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            sys.exit(1)
        for key in keys:
            print(key)


if __name__ == "__main__":
    main()
