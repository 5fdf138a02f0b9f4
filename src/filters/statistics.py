"""Aggregated filter statistics over the most recent ingestion jobs."""

import logging
from collections import Counter
from dataclasses import asdict, dataclass, field
from typing import Any, Callable

from src.db.database import get_db_session
from src.db.models import FilterDecisionLog, IngestionLog
from src.ingestion.records import FilterResult


TOP_N = 5
MAX_LIMIT = 100


@dataclass
class FilterStatistics:
    total_evaluated: int = 0
    passed: int = 0
    filtered: int = 0
    filtered_by_genre: int = 0
    filtered_by_author: int = 0
    jobs_analyzed: int = 0
    top_filtered_genres: list[dict[str, Any]] = field(default_factory=list)
    top_filtered_authors: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def compute_filter_statistics(
    limit: int = 10, session_factory: Callable = get_db_session
) -> FilterStatistics:
    """
    Aggregate filter decisions of the `limit` most recent jobs.

    Args:
        limit: Number of job logs to analyse, 1 to 100.

    Raises:
        ValueError: If limit is out of range.
    """
    if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= MAX_LIMIT:
        raise ValueError(f"limit must be an integer between 1 and {MAX_LIMIT}")

    logger = logging.getLogger("filters")
    with session_factory() as session:
        job_ids = [
            row.id
            for row in session.query(IngestionLog.id)
            .order_by(IngestionLog.started_at.desc())
            .limit(limit)
            .all()
        ]
        if not job_ids:
            return FilterStatistics()

        rows = (
            session.query(
                FilterDecisionLog.filter_result,
                FilterDecisionLog.book_genres,
                FilterDecisionLog.book_author,
            )
            .filter(FilterDecisionLog.job_id.in_(job_ids))
            .all()
        )

    stats = FilterStatistics(jobs_analyzed=len(job_ids))
    genre_counts: Counter = Counter()
    author_counts: Counter = Counter()
    for row in rows:
        stats.total_evaluated += 1
        if row.filter_result == FilterResult.PASSED:
            stats.passed += 1
        elif row.filter_result == FilterResult.FILTERED_GENRE:
            stats.filtered_by_genre += 1
            genre_counts.update(row.book_genres or [])
        elif row.filter_result == FilterResult.FILTERED_AUTHOR:
            stats.filtered_by_author += 1
            if row.book_author:
                author_counts[row.book_author] += 1

    stats.filtered = stats.filtered_by_genre + stats.filtered_by_author
    stats.top_filtered_genres = [
        {"genre": g, "count": c} for g, c in genre_counts.most_common(TOP_N)
    ]
    stats.top_filtered_authors = [
        {"author": a, "count": c} for a, c in author_counts.most_common(TOP_N)
    ]
    logger.info(
        f"Filter statistics over {stats.jobs_analyzed} jobs: "
        f"{stats.total_evaluated} evaluated, {stats.filtered} filtered"
    )
    return stats
