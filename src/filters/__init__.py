"""
Ingestion filters: allow-list configuration, evaluation and audit trail.

Usage:
    uv run -m src.filters show
    uv run -m src.filters set --genres "Philosophy,History" --enable-genre-filter
    uv run -m src.filters stats --limit 20
"""

# config first: src.db imports it while this package may still be loading
from .config import (
    ConfigValidationError,
    FilterConfig,
    parse_list,
    validate_filter_config,
)
from .audit import (
    AuditSink,
    CompositeAuditSink,
    DatabaseAuditSink,
    InMemoryAuditSink,
    LoggingAuditSink,
)
from .engine import (
    FilterEngine,
    FilterOutcome,
    apply_filters,
    check_author_filter,
    check_genre_filter,
    get_filter_summary,
    has_active_filters,
)
from .statistics import FilterStatistics, compute_filter_statistics

__all__ = [
    "ConfigValidationError",
    "FilterConfig",
    "parse_list",
    "validate_filter_config",
    "AuditSink",
    "CompositeAuditSink",
    "DatabaseAuditSink",
    "InMemoryAuditSink",
    "LoggingAuditSink",
    "FilterEngine",
    "FilterOutcome",
    "apply_filters",
    "check_author_filter",
    "check_genre_filter",
    "get_filter_summary",
    "has_active_filters",
    "FilterStatistics",
    "compute_filter_statistics",
]
