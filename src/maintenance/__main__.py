#!/usr/bin/env python3
"""
Recompute the category of every book in the catalog.

Usage:
    uv run -m src.maintenance
    uv run -m src.maintenance --verbose
"""

import argparse
import sys

from src.db import configure_database, init_database
from src.logger import setup_logging
from .bulk_category import BulkCategoryMaintainer


def parse_arguments() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Recompute book categories from stored genres"
    )
    parser.add_argument(
        "--database-url",
        help="Database URL (default: DATABASE_URL or sqlite:///data/catalog.db)",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose logging output"
    )
    return parser.parse_args()


def main():
    args = parse_arguments()
    setup_logging(logger_name="database", verbose=args.verbose)
    setup_logging(logger_name="catalog", verbose=args.verbose)
    setup_logging(logger_name="maintenance", verbose=args.verbose)

    try:
        configure_database(args.database_url)
    except ValueError as e:
        print(f"✗ {e}", file=sys.stderr)
        sys.exit(1)
    init_database()

    result = BulkCategoryMaintainer().update_all_categories()

    print("=" * 80)
    print("CATEGORY UPDATE")
    print("=" * 80)
    print(f"  Updated: {result.updated}")
    print(f"  Errors:  {result.errors}")
    for detail in result.details[:20]:
        print(f"  ✗ {detail['book_id']}: {detail['error']}")
    print("=" * 80)

    sys.exit(0 if result.errors == 0 else 1)


if __name__ == "__main__":
    main()
