"""
Persistent filter configuration (ingestion_config table, key "filter_settings").

A stored configuration overrides the environment; edits take effect on the
next run because each run loads a fresh snapshot.
"""

import logging
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError

from src.filters.config import FilterConfig
from .database import get_db_session
from .models import IngestionConfigEntry


FILTER_SETTINGS_KEY = "filter_settings"

logger = logging.getLogger("filters")


def get_stored_filter_config(
    session_factory: Callable = get_db_session,
) -> Optional[FilterConfig]:
    """
    Read the stored filter configuration.

    Raises:
        ConfigValidationError: If the stored payload is invalid.
    """
    with session_factory() as session:
        entry = session.get(IngestionConfigEntry, FILTER_SETTINGS_KEY)
        if entry is None:
            return None
        return FilterConfig.from_payload(entry.config_value)


def save_filter_config(
    config: FilterConfig, session_factory: Callable = get_db_session
) -> None:
    with session_factory() as session:
        entry = session.get(IngestionConfigEntry, FILTER_SETTINGS_KEY)
        if entry is None:
            session.add(
                IngestionConfigEntry(
                    config_key=FILTER_SETTINGS_KEY, config_value=config.to_dict()
                )
            )
        else:
            entry.config_value = config.to_dict()
        session.commit()
    logger.info(f"Saved filter configuration: {config.to_dict()}")


def load_filter_config(
    session_factory: Callable = get_db_session, env=None
) -> FilterConfig:
    """Stored configuration if any, else the environment."""
    try:
        stored = get_stored_filter_config(session_factory)
    except SQLAlchemyError as e:
        logger.warning(f"Filter configuration table unavailable, using environment: {e}")
        stored = None
    if stored is not None:
        logger.info("Loaded filter configuration from database")
        return stored
    logger.info("Using environment variables for filter configuration")
    return FilterConfig.from_env(env)
