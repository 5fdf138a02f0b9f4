#!/usr/bin/env python3
"""
CLI interface for the book ingestion pipeline.

One invocation runs one ingestion job over one page of the archive:
    1. Fetch candidate books from Internet Archive
    2. Skip books already in the catalog
    3. Classify genres and apply the configured filters
    4. Download, validate and store PDFs
    5. Insert catalog records and write the job log

Usage:
    uv run -m src.pipeline
    uv run -m src.pipeline --batch-size 10 --page 3
    uv run -m src.pipeline --resume --job-type scheduled
    uv run -m src.pipeline --dry-run --verbose
    uv run -m src.pipeline --pause
    uv run -m src.pipeline --unpause

Exit codes:
    0   job completed (or paused / pause flag toggled)
    1   job partial or failed, or invalid configuration
    130 interrupted
"""

import argparse
import dataclasses
import sys

from src.db import configure_database, init_database, set_paused
from src.filters import ConfigValidationError
from src.ingestion import IngestionSettings, JobResult, JobStatus
from src.logger import setup_logging
from .orchestrator import JOB_TYPES, run_ingestion_job


LOGGERS = (
    "pipeline",
    "fetcher",
    "classifier",
    "filters",
    "pdf",
    "storage",
    "catalog",
    "database",
)


def print_job_summary(result: JobResult) -> None:
    """
    Print the job result in a human readable form.

    Args:
        result: Finished job result
    """
    title = "DRY RUN - nothing was written" if result.dry_run else "INGESTION JOB"
    print("=" * 80)
    print(f"{title} ({result.job_id})")
    print("=" * 80)
    print(f"  Status:     {result.status.value}")
    print(f"  Page:       {result.page}")
    print(f"  Processed:  {result.processed}")
    print(f"  Evaluated:  {result.evaluated}")
    action = "Would add" if result.dry_run else "Added"
    print(f"  {action + ':':<11} {result.added}")
    print(f"  Skipped:    {result.skipped}")
    print(
        f"  Filtered:   {result.filtered} "
        f"(genre: {result.filtered_by_genre}, author: {result.filtered_by_author})"
    )
    print(f"  Failed:     {result.failed}")

    if result.errors:
        print()
        print("Errors:")
        for error in result.errors[:20]:
            print(f"  ✗ {error.identifier}: {error.error}")
        if len(result.errors) > 20:
            print(f"  ... and {len(result.errors) - 20} more (see logs/pipeline.log)")
    print("=" * 80)


def parse_arguments() -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        description="Public-domain book ingestion - fetch, classify, filter and store books from Internet Archive",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Paging (choose one, default: --page 1):
  --page N          Fetch page N of the archive search
  --resume          Continue from the page stored in the ingestion state

Storage Options:
  --local           Save PDFs to the local filesystem (default: STORAGE_BACKEND or local)
  --cloud           Save PDFs to S3-compatible cloud storage

Examples:
  uv run -m src.pipeline --batch-size 10
  uv run -m src.pipeline --resume --job-type scheduled --cloud
  uv run -m src.pipeline --dry-run --verbose
  uv run -m src.pipeline --pause

Notes:
  - Filters come from the ingestion_config table, else INGEST_ALLOWED_GENRES /
    INGEST_ALLOWED_AUTHORS / ENABLE_GENRE_FILTER / ENABLE_AUTHOR_FILTER
  - Dry runs classify and filter but never download, upload or write
  - Logs written to logs/<component>.log
        """,
    )

    paging_group = parser.add_argument_group("paging (choose one, default: --page 1)")
    paging_exclusive = paging_group.add_mutually_exclusive_group()
    paging_exclusive.add_argument(
        "--page", type=int, metavar="N", help="Archive search page to fetch"
    )
    paging_exclusive.add_argument(
        "--resume",
        action="store_true",
        help="Start from the page stored in the ingestion state",
    )

    options_group = parser.add_argument_group("options")
    options_group.add_argument(
        "--batch-size",
        type=int,
        metavar="N",
        help="Books per page (default: INGEST_BATCH_SIZE or 30)",
    )
    options_group.add_argument(
        "--dry-run",
        action="store_true",
        help="Classify and filter without downloading or writing anything",
    )
    options_group.add_argument(
        "--job-type",
        choices=JOB_TYPES,
        default="manual",
        help="Job type recorded in the job log (default: manual)",
    )
    options_group.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging output",
    )

    control_group = parser.add_argument_group("ingestion control")
    control_exclusive = control_group.add_mutually_exclusive_group()
    control_exclusive.add_argument(
        "--pause",
        action="store_true",
        help="Pause ingestion for the source and exit",
    )
    control_exclusive.add_argument(
        "--unpause",
        action="store_true",
        help="Resume ingestion for the source and exit",
    )

    storage_group = parser.add_argument_group("storage options")
    storage_exclusive = storage_group.add_mutually_exclusive_group()
    storage_exclusive.add_argument(
        "--local", action="store_true", help="Save PDFs to local filesystem"
    )
    storage_exclusive.add_argument(
        "--cloud", action="store_true", help="Save PDFs to cloud storage"
    )

    args = parser.parse_args()
    if args.batch_size is not None and args.batch_size < 1:
        parser.error("--batch-size must be at least 1")
    if args.page is not None and args.page < 1:
        parser.error("--page must be at least 1")
    return args


def main():
    """Main entry point for the ingestion CLI."""
    args = parse_arguments()

    for name in LOGGERS:
        setup_logging(logger_name=name, verbose=args.verbose)
    logger = setup_logging(logger_name="pipeline", verbose=args.verbose)

    try:
        settings = IngestionSettings.from_env()
    except ValueError as e:
        print(f"✗ Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    if args.local:
        settings = dataclasses.replace(settings, storage_backend="local")
    elif args.cloud:
        settings = dataclasses.replace(settings, storage_backend="cloud")

    # Pause flag toggling does not run a job
    if args.pause or args.unpause:
        configure_database(settings.database_url)
        init_database()
        state = set_paused(settings.source_name, paused=args.pause, paused_by="cli")
        word = "paused" if state["is_paused"] else "resumed"
        print(f"✓ Ingestion {word} for {settings.source_name}")
        sys.exit(0)

    logger.info("=" * 80)
    logger.info("Ingestion job started")
    logger.info(
        f"Source: {settings.source_name}, storage: {settings.storage_backend}, "
        f"dry_run: {args.dry_run}"
    )
    logger.info("=" * 80)

    try:
        result = run_ingestion_job(
            settings=settings,
            batch_size=args.batch_size,
            page=args.page,
            resume=args.resume,
            dry_run=args.dry_run,
            job_type=args.job_type,
        )
    except KeyboardInterrupt:
        logger.warning("Ingestion interrupted by user")
        print("\n✗ Interrupted", file=sys.stderr)
        sys.exit(130)
    except ConfigValidationError as e:
        logger.error(f"Invalid filter configuration: {e}")
        print(f"✗ {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        logger.error(f"Ingestion job failed: {e}")
        print(f"\n✗ INGESTION FAILED: {e}", file=sys.stderr)
        sys.exit(1)

    if result is None:
        print(f"⏸ Ingestion is paused for {settings.source_name}; nothing to do.")
        print("  Run with --unpause to resume.")
        sys.exit(0)

    print_job_summary(result)
    sys.exit(0 if result.status == JobStatus.COMPLETED else 1)


if __name__ == "__main__":
    main()
