"""
Per-source ingestion state: resumable paging, last run summary, pause flag.
"""

import logging
from typing import Callable, Optional

from src.ingestion.records import JobResult, utcnow
from .database import get_db_session
from .models import IngestionState


logger = logging.getLogger("pipeline")


def _default_state(source: str) -> IngestionState:
    return IngestionState(
        source=source,
        last_page=1,
        total_ingested=0,
        last_run_status="idle",
        last_run_added=0,
        last_run_skipped=0,
        last_run_failed=0,
        is_paused=False,
    )


def _get_or_create(session, source: str) -> IngestionState:
    state = session.get(IngestionState, source)
    if state is None:
        state = _default_state(source)
        session.add(state)
        session.flush()
    return state


def _as_dict(state: IngestionState) -> dict:
    return {
        "source": state.source,
        "last_page": state.last_page,
        "total_ingested": state.total_ingested,
        "last_run_at": state.last_run_at,
        "last_run_status": state.last_run_status,
        "last_run_added": state.last_run_added,
        "last_run_skipped": state.last_run_skipped,
        "last_run_failed": state.last_run_failed,
        "is_paused": state.is_paused,
        "paused_at": state.paused_at,
        "paused_by": state.paused_by,
    }


def get_ingestion_state(
    source: str, create: bool = True, session_factory: Callable = get_db_session
) -> dict:
    """
    Current state for a source.

    With create=True a default row is stored on first access; with
    create=False the defaults are returned and nothing is written.
    """
    with session_factory() as session:
        if not create:
            state = session.get(IngestionState, source)
            if state is None:
                return _as_dict(_default_state(source))
            return _as_dict(state)
        state = _get_or_create(session, source)
        session.commit()
        return _as_dict(state)


def record_run(
    source: str,
    result: JobResult,
    next_page: Optional[int] = None,
    session_factory: Callable = get_db_session,
) -> dict:
    """Store the outcome of a run and the page the next run should start from."""
    with session_factory() as session:
        state = _get_or_create(session, source)
        state.last_page = next_page or state.last_page + 1
        state.total_ingested = state.total_ingested + result.added
        state.last_run_at = result.completed_at or utcnow()
        state.last_run_status = result.status.value
        state.last_run_added = result.added
        state.last_run_skipped = result.skipped
        state.last_run_failed = result.failed
        session.commit()
        logger.info(
            f"Updated state for {source}: page={state.last_page}, total={state.total_ingested}"
        )
        return _as_dict(state)


def set_paused(
    source: str,
    paused: bool,
    paused_by: str = "admin",
    session_factory: Callable = get_db_session,
) -> dict:
    with session_factory() as session:
        state = _get_or_create(session, source)
        state.is_paused = paused
        state.paused_at = utcnow() if paused else None
        state.paused_by = paused_by if paused else None
        session.commit()
        logger.info(
            f"Ingestion {'paused' if paused else 'resumed'} for {source}"
            + (f" by {paused_by}" if paused else "")
        )
        return _as_dict(state)
