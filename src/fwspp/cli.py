"""
Command-line interface for fwspp.

This module provides the main entry point for the CLI.
"""

from __future__ import annotations

import argparse
import logging
import sys

from fwspp import __version__
from fwspp.boundaries import BoundaryDataset
from fwspp.config import get_settings
from fwspp.registry import registry
from fwspp.schemas import BoundaryKind, QueryConfig, ScrubLevel


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="fwspp",
        description="Species occurrence records for U.S. Fish & Wildlife Service properties",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # 'find' command - search property names
    find_parser = subparsers.add_parser("find", help="Find USFWS properties by name")
    find_parser.add_argument("pattern", help="Case-insensitive regular expression")
    find_parser.add_argument(
        "--kind",
        choices=[k.value for k in BoundaryKind],
        default=BoundaryKind.ADMIN.value,
        help="Boundary kind to search (default: admin)",
    )

    # 'sources' command - list repositories
    subparsers.add_parser("sources", help="List the biodiversity repositories queried")

    # 'info' command
    subparsers.add_parser("info", help="Show application info")

    # 'occ' command - retrieve occurrences
    occ_parser = subparsers.add_parser("occ", help="Retrieve occurrences for properties")
    occ_parser.add_argument("properties", nargs="+", help="Property names (see 'fwspp find')")
    occ_parser.add_argument(
        "--bnd",
        choices=[k.value for k in BoundaryKind],
        default=BoundaryKind.ADMIN.value,
        help="Boundary kind (default: admin)",
    )
    occ_parser.add_argument(
        "--scrub",
        choices=[s.value for s in ScrubLevel],
        default=ScrubLevel.STRICT.value,
        help="Scrub level (default: strict)",
    )
    occ_parser.add_argument(
        "--no-itis",
        dest="itis",
        action="store_false",
        help="Skip linking names to ITIS",
    )
    occ_parser.add_argument(
        "--buffer",
        type=float,
        default=0.0,
        help="Buffer around the boundary in km (default: 0)",
    )
    occ_parser.add_argument(
        "--timeout",
        type=int,
        default=None,
        help="HTTP timeout in seconds (default: timeout from settings)",
    )
    occ_parser.add_argument(
        "--sources",
        nargs="+",
        default=None,
        help="Only query these repositories (default: all)",
    )
    occ_parser.add_argument(
        "--skip-fresh",
        action="store_true",
        help="Skip properties with an unexpired export",
    )
    occ_parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Only report warnings and errors",
    )

    return parser


def configure_logging(debug: bool = False, quiet: bool = False) -> None:
    settings = get_settings()
    if debug or settings.debug:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def cmd_find(args: argparse.Namespace) -> int:
    """Handle the 'find' command."""
    settings = get_settings()
    dataset = BoundaryDataset(settings.boundary_dir)
    try:
        names = dataset.find_properties(args.pattern, args.kind)
    except FileNotFoundError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if not names:
        print(f"No {args.kind} boundaries match {args.pattern!r}")
        return 1
    for name in names:
        print(name)
    return 0


def cmd_sources(_args: argparse.Namespace) -> int:
    """Handle the 'sources' command."""
    for repo in registry.list_repositories():
        cap = f"{repo.max_records:,}" if repo.max_records else "-"
        print(f"{repo.name:<10} {repo.query_mode.value:<13} {cap:>8}  {repo.full_name}")
        print(f"{'':<34}{repo.base_url}")
    return 0


def cmd_info(_args: argparse.Namespace) -> int:
    """Handle the 'info' command."""
    settings = get_settings()
    print(f"Application: {settings.app_name}")
    print(f"Version: {__version__}")
    print(f"Environment: {settings.app_env}")
    print(f"Debug: {settings.debug}")
    print(f"Boundaries: {settings.boundary_dir}")
    print(f"Exports: {settings.export_dir}")
    return 0


def cmd_occ(args: argparse.Namespace) -> int:
    """Handle the 'occ' command: run the occurrence flow."""
    from fwspp.flows.occurrences import fws_occ

    settings = get_settings()
    if args.sources:
        try:
            for name in args.sources:
                registry.get(name)
        except KeyError as exc:
            print(f"Error: {exc.args[0]}", file=sys.stderr)
            return 1

    config = QueryConfig(
        boundary_kind=args.bnd,
        scrub=args.scrub,
        link_taxonomy=args.itis,
        buffer_km=args.buffer,
        timeout=args.timeout or settings.timeout,
        verbose=not args.quiet,
    )
    results = fws_occ(
        args.properties,
        config=config,
        repositories=args.sources,
        skip_fresh=args.skip_fresh,
    )

    failed = [name for name, res in results.items() if res.status == "failed"]
    if failed:
        print(f"Failed: {', '.join(failed)}", file=sys.stderr)
        return 1
    return 0


def main() -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        return 0

    configure_logging(debug=args.debug, quiet=getattr(args, "quiet", False))

    commands = {
        "find": cmd_find,
        "sources": cmd_sources,
        "info": cmd_info,
        "occ": cmd_occ,
    }

    handler = commands.get(args.command)
    if handler:
        return handler(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
