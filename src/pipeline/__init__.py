"""
Book ingestion pipeline module.

This module orchestrates one ingestion run against the archive:
    1. Fetch a page of candidate books (src.ingestion.fetchers)
    2. Skip books already in the catalog (src.ingestion.deduplicator)
    3. Classify genres (src.classification)
    4. Apply genre and author filters (src.filters)
    5. Download, validate and store the PDF (src.ingestion.pdf_validator, src.storage)
    6. Insert the catalog record and log the job (src.db)

Usage:
    # CLI interface
    uv run -m src.pipeline --batch-size 10
    uv run -m src.pipeline --resume --job-type scheduled
    uv run -m src.pipeline --dry-run --verbose

    # Programmatic interface
    from src.pipeline import run_ingestion_job
    result = run_ingestion_job(batch_size=10, dry_run=True)
"""

__version__ = "0.1.0"

from .orchestrator import (
    IngestionOptions,
    IngestionOrchestrator,
    build_catalog_record,
    clean_description,
    run_ingestion_job,
)

__all__ = [
    "IngestionOptions",
    "IngestionOrchestrator",
    "build_catalog_record",
    "clean_description",
    "run_ingestion_job",
]
