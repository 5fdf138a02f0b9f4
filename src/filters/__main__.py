#!/usr/bin/env python3
"""
Inspect and edit the ingestion filter configuration.

Usage:
    uv run -m src.filters show
    uv run -m src.filters set --genres "Philosophy,History" --enable-genre-filter
    uv run -m src.filters set --authors "Plato, Aristotle" --disable-author-filter
    uv run -m src.filters stats --limit 20

Changes are stored in the ingestion_config table and apply from the next run.
"""

import argparse
import json
import sys

from src.db import configure_database, init_database, load_filter_config, save_filter_config
from src.logger import setup_logging
from .config import ConfigValidationError, FilterConfig, parse_list
from .engine import get_filter_summary
from .statistics import MAX_LIMIT, compute_filter_statistics


def parse_arguments() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Ingestion filter configuration and statistics",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  uv run -m src.filters show
  uv run -m src.filters set --genres "Philosophy,History" --enable-genre-filter
  uv run -m src.filters set --authors "" --disable-author-filter
  uv run -m src.filters stats --limit 20
        """,
    )
    parser.add_argument(
        "--database-url",
        help="Database URL (default: DATABASE_URL or sqlite:///data/catalog.db)",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose logging output"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("show", help="Print the active filter configuration")

    set_parser = subparsers.add_parser("set", help="Update the stored configuration")
    set_parser.add_argument(
        "--genres", help="Comma-separated allowed genres (empty string clears)"
    )
    set_parser.add_argument(
        "--authors", help="Comma-separated allowed authors (empty string clears)"
    )
    genre_toggle = set_parser.add_mutually_exclusive_group()
    genre_toggle.add_argument(
        "--enable-genre-filter", dest="genre_filter", action="store_true", default=None
    )
    genre_toggle.add_argument(
        "--disable-genre-filter", dest="genre_filter", action="store_false"
    )
    author_toggle = set_parser.add_mutually_exclusive_group()
    author_toggle.add_argument(
        "--enable-author-filter", dest="author_filter", action="store_true", default=None
    )
    author_toggle.add_argument(
        "--disable-author-filter", dest="author_filter", action="store_false"
    )

    stats_parser = subparsers.add_parser("stats", help="Filter statistics of recent jobs")
    stats_parser.add_argument(
        "--limit",
        type=int,
        default=10,
        help=f"Number of recent jobs to analyse, 1 to {MAX_LIMIT} (default: 10)",
    )
    return parser.parse_args()


def build_updated_config(current: FilterConfig, args: argparse.Namespace) -> FilterConfig:
    """
    Merge command-line changes into the current configuration.

    Raises:
        ConfigValidationError: If the merged configuration is invalid.
    """
    payload = current.to_dict()
    if args.genres is not None:
        payload["allowed_genres"] = list(parse_list(args.genres))
    if args.authors is not None:
        payload["allowed_authors"] = list(parse_list(args.authors))
    if args.genre_filter is not None:
        payload["enable_genre_filter"] = args.genre_filter
    if args.author_filter is not None:
        payload["enable_author_filter"] = args.author_filter
    return FilterConfig.from_payload(payload)


def print_config(config: FilterConfig) -> None:
    print("=" * 80)
    print("FILTER CONFIGURATION")
    print("=" * 80)
    print(json.dumps(config.to_dict(), indent=2, ensure_ascii=False))
    print(get_filter_summary(config))
    print("=" * 80)


def main():
    args = parse_arguments()
    setup_logging(logger_name="filters", verbose=args.verbose)
    setup_logging(logger_name="database", verbose=args.verbose)

    try:
        configure_database(args.database_url)
    except ValueError as e:
        print(f"✗ {e}", file=sys.stderr)
        sys.exit(1)
    init_database()

    if args.command == "show":
        print_config(load_filter_config())

    elif args.command == "set":
        try:
            config = build_updated_config(load_filter_config(), args)
        except ConfigValidationError as e:
            print("✗ Invalid filter configuration:", file=sys.stderr)
            for error in e.errors:
                print(f"  - {error}", file=sys.stderr)
            sys.exit(1)
        save_filter_config(config)
        print("✓ Filter configuration saved")
        print_config(config)

    elif args.command == "stats":
        try:
            stats = compute_filter_statistics(limit=args.limit)
        except ValueError as e:
            print(f"✗ {e}", file=sys.stderr)
            sys.exit(1)
        print("=" * 80)
        print(f"FILTER STATISTICS (last {stats.jobs_analyzed} jobs)")
        print("=" * 80)
        print(json.dumps(stats.to_dict(), indent=2, ensure_ascii=False))
        print("=" * 80)


if __name__ == "__main__":
    main()
