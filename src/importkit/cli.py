"""importkit CLI — inspect imports and argument lists from the command line.

Usage::

    importkit args "TEXT"
    importkit imports FILE [FILE ...] [--resolve] [--remove-comments PREFIX]
    importkit externals FILE [FILE ...] [--provider] [--export-name NAME]

Options::

    --verbose / -v        Enable verbose logging

Every subcommand prints JSON, except ``externals --provider`` which prints
the generated provider module.
"""

import argparse
import json
import logging
import sys
from dataclasses import fields, is_dataclass
from pathlib import Path
from typing import Optional

from importkit.arguments import parse_arguments
from importkit.consolidator import (
    consolidate,
    externals_from_records,
    generate_provider_source,
    merge_externals,
)
from importkit.imports import ImportsResult, parse_imports
from importkit.resolver import ModuleResolver
from importkit.serializer import serialize_arguments


def _read_source(path: Path) -> Optional[str]:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        print(f"Error: Cannot read {path}: {exc}", file=sys.stderr)
        return None


def _parse_files(
    paths: list[Path], remove_comments: Optional[list[str]] = None
) -> Optional[dict[str, ImportsResult]]:
    results = {}
    for path in paths:
        source = _read_source(path)
        if source is None:
            return None
        results[str(path)] = parse_imports(
            source,
            path.resolve().as_posix(),
            remove_comments_with_prefix=remove_comments,
        )
    return results


def _cmd_args(args: argparse.Namespace) -> int:
    elements = parse_arguments(args.text)
    print(
        json.dumps(
            {
                "elements": [_element_to_json(e) for e in elements],
                "serialized": serialize_arguments(elements),
            },
            indent=2,
        )
    )
    return 0


def _element_to_json(element) -> dict:
    """Tagged JSON form of a parsed element."""
    data: dict = {"kind": type(element).__name__}
    for f in fields(element):
        value = getattr(element, f.name)
        if isinstance(value, list):
            value = [_element_to_json(v) if is_dataclass(v) else v for v in value]
        elif isinstance(value, dict):
            value = {k: _element_to_json(v) for k, v in value.items()}
        elif is_dataclass(value):
            value = _element_to_json(value)
        data[f.name] = value
    return data


def _cmd_imports(args: argparse.Namespace) -> int:
    results = _parse_files(args.files, args.remove_comments)
    if results is None:
        return 1
    if args.resolve:
        resolver = ModuleResolver()
        for result in results.values():
            resolver.resolve_imports(result)
    print(json.dumps({name: r.as_dict() for name, r in results.items()}, indent=2))
    return 0


def _cmd_externals(args: argparse.Namespace) -> int:
    results = _parse_files(args.files)
    if results is None:
        return 1
    merged = merge_externals(externals_from_records(r) for r in results.values())
    plan = consolidate(merged)
    if args.provider:
        sys.stdout.write(generate_provider_source(plan, export_name=args.export_name))
    else:
        print(json.dumps(plan.as_dict(), indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="importkit",
        description=(
            "importkit — Parse, resolve and consolidate JavaScript, "
            "TypeScript and CSS imports."
        ),
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        default=False,
        help="Enable verbose logging",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    args_cmd = sub.add_parser("args", help="Parse and re-serialize an argument list")
    args_cmd.add_argument("text", help="Text between a call's parentheses")
    args_cmd.set_defaults(handler=_cmd_args)

    imports_cmd = sub.add_parser("imports", help="List the imports of source files")
    imports_cmd.add_argument("files", nargs="+", type=Path)
    imports_cmd.add_argument(
        "--resolve",
        action="store_true",
        default=False,
        help="Resolve relative imports against the file system",
    )
    imports_cmd.add_argument(
        "--remove-comments",
        action="append",
        metavar="PREFIX",
        help="Strip comments starting with PREFIX and report them (repeatable)",
    )
    imports_cmd.set_defaults(handler=_cmd_imports)

    externals_cmd = sub.add_parser(
        "externals", help="Consolidate the external imports of source files"
    )
    externals_cmd.add_argument("files", nargs="+", type=Path)
    externals_cmd.add_argument(
        "--provider",
        action="store_true",
        default=False,
        help="Print a generated provider module instead of JSON",
    )
    externals_cmd.add_argument(
        "--export-name",
        default="externals",
        help="Name of the exported table in provider output (default: externals)",
    )
    externals_cmd.set_defaults(handler=_cmd_externals)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point.  Returns exit code (0=success, 1=failure)."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Configure logging
    level = logging.DEBUG if args.verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")

    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())
