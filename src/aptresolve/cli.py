"""Command line interface: ``aptresolve resolve`` and ``aptresolve find``."""

import asyncio
import logging
from argparse import ArgumentParser, Namespace
from pathlib import Path

from rich.console import Console

from aptresolve.constants import (
    AUTH_CONF,
    CACHE_DIR,
    DEFAULT_ARCHITECTURE,
    DEFAULT_CONTENTS_FORMAT,
    DEFAULT_PACKAGE_FORMAT,
)
from aptresolve.contents import contents_formatter, search_contents
from aptresolve.exceptions import AptResolveError
from aptresolve.fetcher import MetadataSource, SkipMode
from aptresolve.models import SourceEntry
from aptresolve.repository import RepositoryManager
from aptresolve.resolver import Resolver
from aptresolve.sources import AuthManager, load_auth_conf, parse_source_entries, parse_source_list_file
from aptresolve.tree import package_formatter, print_dependency_tree

logger = logging.getLogger(__name__)

console = Console(highlight=False)
err_console = Console(stderr=True, highlight=False)

parser = ArgumentParser(
    prog="aptresolve",
    description="Resolve packages and dependency trees from APT repository metadata.",
)
parser.add_argument(
    "-e",
    "--entry",
    action="append",
    default=[],
    help="APT source entry, e.g. 'deb http://deb.debian.org/debian bookworm main'. Repeatable.",
    dest="entries",
)
parser.add_argument(
    "-f",
    "--entry-file",
    action="append",
    type=Path,
    default=[],
    help="APT sources.list file. Repeatable.",
    dest="entry_files",
)
parser.add_argument(
    "-a",
    "--arch",
    default=DEFAULT_ARCHITECTURE,
    help="Default architecture.",
    dest="architecture",
)
parser.add_argument(
    "-c",
    "--cache-dir",
    type=Path,
    default=CACHE_DIR,
    help=f"Metadata cache path. (default: {CACHE_DIR})",
    dest="cache_dir",
)
parser.add_argument(
    "--auth-conf",
    type=Path,
    default=AUTH_CONF,
    help="apt auth.conf file with repository credentials.",
    dest="auth_conf",
)
parser.add_argument(
    "--skip-mode",
    type=SkipMode,
    choices=list(SkipMode),
    default=SkipMode.CHECK,
    help="When to reuse cached files that have no Release digest. (default: check)",
    dest="skip_mode",
)
parser.add_argument(
    "--newline",
    default=None,
    help="Marker in --format that is replaced with a line break.",
    dest="newline",
)
verbosity = parser.add_mutually_exclusive_group()
verbosity.add_argument("-v", "--verbose", action="store_true", help="Show debug logging.")
verbosity.add_argument("-q", "--quiet", action="store_true", help="Only show warnings and errors.")

subparsers = parser.add_subparsers(dest="command", required=True)

resolve_parser = subparsers.add_parser("resolve", help="Resolve packages via package selectors.")
resolve_parser.add_argument("selectors", nargs="+", metavar="SELECTOR", help="Package selectors to resolve.")
resolve_parser.add_argument(
    "-r", "--recursive", action="store_true", help="Resolve dependencies recursively.", dest="recursive"
)
resolve_parser.add_argument(
    "--no-missing",
    action="store_false",
    help="Hide dependencies that cannot be satisfied. "
    "Top-level selectors that match nothing are reported as errors either way.",
    dest="missing",
)
resolve_parser.add_argument("--indent", type=int, default=2, help="Tree indent width. (default: 2)", dest="indent")
resolve_parser.add_argument(
    "--no-unique",
    action="store_false",
    help="Show a package again in every branch that depends on it.",
    dest="unique",
)
resolve_parser.add_argument(
    "--format",
    default=DEFAULT_PACKAGE_FORMAT,
    help=f"Package print format. (default: {DEFAULT_PACKAGE_FORMAT!r})",
    dest="format",
)

find_parser = subparsers.add_parser("find", help="Find packages by file name, like apt-file.")
find_parser.add_argument("patterns", nargs="+", metavar="REGEX", help="Regular expressions to search for.")
find_parser.add_argument(
    "--format",
    default=DEFAULT_CONTENTS_FORMAT,
    help=f"Result print format. (default: {DEFAULT_CONTENTS_FORMAT!r})",
    dest="format",
)


def collect_entries(args: Namespace) -> list[SourceEntry]:
    entries = parse_source_entries(args.entries)
    for path in args.entry_files:
        entries.extend(parse_source_list_file(path))
    return entries


def build_manager(args: Namespace, entries: list[SourceEntry]) -> RepositoryManager:
    auth = AuthManager(load_auth_conf(args.auth_conf, warn=True) if args.auth_conf else ())
    source = MetadataSource(cache_dir=args.cache_dir, skip_mode=args.skip_mode, auth=auth)
    manager = RepositoryManager(source)
    for entry in entries:
        manager.create(entry)
    return manager


def run_resolve(args: Namespace, manager: RepositoryManager, template: str) -> int:
    formatter = package_formatter(template)
    index = asyncio.run(manager.load())
    resolver = Resolver(index, architecture=args.architecture)

    status = 0
    for selector in args.selectors:
        package = resolver.resolve(selector, recursive=args.recursive, missing=args.missing)
        if package is None or package.missing:
            err_console.print(f"Error: Package {selector!r} not found.", markup=False)
            status = 1
            continue
        print_dependency_tree(package, formatter, indent=args.indent, unique=args.unique, console=console)
    return status


async def _find(manager: RepositoryManager, patterns: list[str]):
    await manager.load_releases()
    return await asyncio.gather(
        *(search_contents(manager.source, manager.repositories, pattern) for pattern in patterns)
    )


def run_find(args: Namespace, manager: RepositoryManager, template: str) -> int:
    formatter = contents_formatter(template)
    status = 0
    for pattern, items in zip(args.patterns, asyncio.run(_find(manager, args.patterns))):
        if not items:
            logger.warning(f"No match for {pattern!r}")
            status = 1
        for item in items:
            console.print(formatter.format(item), markup=False, highlight=False, soft_wrap=True)
    return status


def main(argv: list[str] | None = None) -> int:
    args = parser.parse_args(argv)
    if args.verbose:
        logging.getLogger("aptresolve").setLevel(logging.DEBUG)
    elif args.quiet:
        logging.getLogger("aptresolve").setLevel(logging.WARNING)

    template: str = args.format
    if args.newline:
        template = template.replace(args.newline, "\n")

    try:
        entries = collect_entries(args)
        if not entries:
            err_console.print(
                "Error: No valid APT entry was found. Please specify an entry using the --entry or --entry-file option.",
                markup=False,
            )
            return 1
        manager = build_manager(args, entries)
        match args.command:
            case "resolve":
                return run_resolve(args, manager, template)
            case "find":
                return run_find(args, manager, template)
            case _:
                parser.error(f"Unknown command: {args.command}")
    except (AptResolveError, OSError) as e:
        logger.error(str(e))
        return 1
    return 0
