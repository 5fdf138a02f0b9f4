"""
Genre and author filtering of classified candidates.

check_genre_filter, check_author_filter and apply_filters are pure functions.
FilterEngine adds the audit trail: one FilterDecision per evaluation, handed
to an AuditSink.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from src.ingestion.records import FilterCandidate, FilterDecision, FilterResult
from .audit import AuditSink, LoggingAuditSink
from .config import FilterConfig


PASSED_REASON = "Passed all filters"


@dataclass(frozen=True)
class CheckResult:
    passed: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class FilterOutcome:
    passed: bool
    reason: Optional[str]
    result: FilterResult


def check_genre_filter(
    genres: Optional[Sequence[str]], config: FilterConfig
) -> CheckResult:
    if not config.enable_genre_filter or not config.allowed_genres:
        return CheckResult(True)
    if not genres:
        return CheckResult(False, "Book has no genres")

    allowed = {g.lower() for g in config.allowed_genres}
    if any(g.lower() in allowed for g in genres):
        return CheckResult(True)
    return CheckResult(
        False,
        f"Genre not in allowed list. Book genres: [{', '.join(genres)}], "
        f"Allowed: [{', '.join(config.allowed_genres)}]",
    )


def check_author_filter(author: Optional[str], config: FilterConfig) -> CheckResult:
    if not config.enable_author_filter or not config.allowed_authors:
        return CheckResult(True)
    if not isinstance(author, str) or not author.strip():
        return CheckResult(False, "Book has no author")

    normalized = author.strip().lower()
    for allowed in config.allowed_authors:
        needle = allowed.strip().lower()
        # Blank entries would match every author
        if needle and needle in normalized:
            return CheckResult(True)
    return CheckResult(
        False,
        f'Author not in allowed list. Book author: "{author}", '
        f"Allowed: [{', '.join(config.allowed_authors)}]",
    )


def apply_filters(candidate: FilterCandidate, config: FilterConfig) -> FilterOutcome:
    """Genre check first, then author. The first failing check decides the reason."""
    genre = check_genre_filter(candidate.genres, config)
    if not genre.passed:
        return FilterOutcome(
            False, f"Genre filter failed: {genre.reason}", FilterResult.FILTERED_GENRE
        )

    author = check_author_filter(candidate.author, config)
    if not author.passed:
        return FilterOutcome(
            False, f"Author filter failed: {author.reason}", FilterResult.FILTERED_AUTHOR
        )

    return FilterOutcome(True, None, FilterResult.PASSED)


def has_active_filters(config: FilterConfig) -> bool:
    genre_active = config.enable_genre_filter and len(config.allowed_genres) > 0
    author_active = config.enable_author_filter and len(config.allowed_authors) > 0
    return genre_active or author_active


def get_filter_summary(config: FilterConfig) -> str:
    parts = []
    if config.enable_genre_filter and config.allowed_genres:
        parts.append(
            f"Genre filter: {len(config.allowed_genres)} allowed genres "
            f"[{', '.join(config.allowed_genres)}]"
        )
    else:
        parts.append("Genre filter: disabled (allow all)")
    if config.enable_author_filter and config.allowed_authors:
        parts.append(
            f"Author filter: {len(config.allowed_authors)} allowed authors "
            f"[{', '.join(config.allowed_authors)}]"
        )
    else:
        parts.append("Author filter: disabled (allow all)")
    return ", ".join(parts)


class FilterEngine:
    """Applies one FilterConfig snapshot and records every decision."""

    def __init__(self, config: FilterConfig, audit_sink: Optional[AuditSink] = None):
        self.config = config
        self.audit_sink = audit_sink or LoggingAuditSink()

    def evaluate(self, candidate: FilterCandidate) -> FilterDecision:
        outcome = apply_filters(candidate, self.config)
        decision = FilterDecision(
            identifier=candidate.identifier,
            title=candidate.title,
            author=candidate.author,
            genres=tuple(candidate.genres or ()),
            result=outcome.result,
            reason=outcome.reason or PASSED_REASON,
        )
        self.audit_sink.record(decision)
        return decision
