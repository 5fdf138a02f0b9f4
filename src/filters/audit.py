"""
Audit sinks for filter decisions.

The filter engine hands every FilterDecision to exactly one sink. Sinks are
composable; a failing sink never blocks ingestion.
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError

from src.db.database import get_db_session
from src.db.models import FilterDecisionLog
from src.ingestion.records import FilterDecision


class AuditSink(ABC):
    @abstractmethod
    def record(self, decision: FilterDecision) -> None:
        """Persist or emit one decision. Must not raise."""


class LoggingAuditSink(AuditSink):
    """Writes one line per decision to the "filters" logger."""

    def __init__(self, logger_name: str = "filters"):
        self.logger = logging.getLogger(logger_name)

    def record(self, decision: FilterDecision) -> None:
        status = "PASSED" if decision.passed else "FILTERED"
        message = f"{status}: {decision.title} ({decision.identifier})"
        if not decision.passed:
            message += f" - {decision.reason}"
        self.logger.info(message)


class InMemoryAuditSink(AuditSink):
    def __init__(self):
        self.decisions: list[FilterDecision] = []

    def record(self, decision: FilterDecision) -> None:
        self.decisions.append(decision)


class DatabaseAuditSink(AuditSink):
    """
    Stores decisions in ingestion_filter_stats, linked to a job log row.

    Write failures are logged and swallowed so a broken audit table cannot
    stop a run.
    """

    def __init__(self, job_log_id: Optional[str], session_factory: Callable = get_db_session):
        self.job_log_id = job_log_id
        self.session_factory = session_factory
        self.failures = 0
        self.logger = logging.getLogger("filters")

    def record(self, decision: FilterDecision) -> None:
        try:
            with self.session_factory() as session:
                session.add(
                    FilterDecisionLog(
                        job_id=self.job_log_id,
                        book_identifier=decision.identifier,
                        book_title=decision.title,
                        book_author=decision.author,
                        book_genres=list(decision.genres) or None,
                        filter_result=decision.result,
                        filter_reason=decision.reason,
                        created_at=decision.timestamp,
                    )
                )
                session.commit()
        except SQLAlchemyError as e:
            self.failures += 1
            self.logger.warning(
                f"Failed to save filter decision for {decision.identifier} (non-blocking): {e}"
            )


class CompositeAuditSink(AuditSink):
    def __init__(self, *sinks: AuditSink):
        self.sinks = sinks

    def record(self, decision: FilterDecision) -> None:
        for sink in self.sinks:
            sink.record(decision)
