"""Command-line interface: ``fmql sql`` and ``fmql ls``."""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace

from fmql.assemble import GroupKind
from fmql.config import EngineConfig
from fmql.display import OUTPUT_FORMATS, print_result
from fmql.engine import QueryEngine
from fmql.errors import EmptyUpdateError, QuerySyntaxError, ResolutionError, TranslationError
from fmql.listing import SORT_KEYS, ListingOptions, list_directory

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    arg_parser = argparse.ArgumentParser(
        prog="fmql",
        description="Query and update files with SQL",
    )
    subparsers = arg_parser.add_subparsers(dest="command", required=True)

    sql = subparsers.add_parser(
        "sql",
        help="Run a SELECT or UPDATE query",
        description="Run a query such as: SELECT * FROM ~/Documents WHERE size > '1MB' ORDER BY size DESC",
    )
    sql.add_argument("query", help="The query to run")
    sql.add_argument("-f", "--format", choices=OUTPUT_FORMATS, default="text", help="Output format")
    sql.add_argument("-a", "--all", action="store_true", help="Include hidden files")
    sql.add_argument("-v", "--verbose", action="store_true", help="Log debug output to stderr")

    ls = subparsers.add_parser("ls", help="List a directory")
    ls.add_argument("path", nargs="?", default=".", help="Directory to list (default: current directory)")
    ls.add_argument("-l", "--long", action="store_true", help="Use the long listing format")
    ls.add_argument("-a", "--all", action="store_true", help="Include hidden files")
    ls.add_argument("-R", "--recursive", action="store_true", help="List subdirectories recursively")
    ls.add_argument("-s", "--sort", choices=list(SORT_KEYS), default="name", help="Sort order")
    ls.add_argument(
        "-g", "--group-by",
        choices=[kind.value for kind in GroupKind],
        help="Group entries and show per-group totals",
    )
    ls.add_argument(
        "-p", "--pattern",
        help="Filter names by a shell glob, or the pattern for the name_* groups",
    )
    ls.add_argument("-t", "--total", action="store_true", help="Show totals")
    ls.add_argument("-f", "--format", choices=OUTPUT_FORMATS, default="text", help="Output format")
    ls.add_argument("-v", "--verbose", action="store_true", help="Log debug output to stderr")
    return arg_parser


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(levelname)s: %(name)s: %(message)s",
        stream=sys.stderr,
    )


def run_sql(args: argparse.Namespace, config: EngineConfig) -> int:
    engine = QueryEngine(config)
    try:
        result = engine.run(args.query)
    except (QuerySyntaxError, TranslationError, ResolutionError, EmptyUpdateError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print_result(result, output_format=args.format, long=True)
    return 1 if result.failures else 0


def run_ls(args: argparse.Namespace, config: EngineConfig) -> int:
    options = ListingOptions(
        path=args.path,
        recursive=args.recursive,
        show_hidden=config.show_hidden,
        name_pattern=args.pattern,
        sort_by=args.sort,
        group_by=args.group_by,
        follow_symlinks=config.follow_symlinks,
    )
    try:
        result = list_directory(options)
    except (ResolutionError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print_result(result, output_format=args.format, long=args.long, show_total=args.total)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    config = EngineConfig.from_env()
    if args.all:
        config = replace(config, show_hidden=True)
    configure_logging("DEBUG" if args.verbose else config.log_level)
    logger.debug(f"Running {args.command} with {config}")

    if args.command == "sql":
        return run_sql(args, config)
    return run_ls(args, config)
