"""
Database package for the book catalog.

Structure:
- models.py: SQLAlchemy ORM models (Book, IngestionLog, FilterDecisionLog, ...)
- database.py: Engine configuration and session factory
- catalog.py: CatalogWriter, the ingestion-facing catalog and job log API
- config_store.py: Persistent filter configuration
- state.py: Per-source ingestion state (paging, pause flag)

Database Patterns:
- Session-per-operation with the get_db_session() context manager
- The engine is created lazily from DATABASE_URL, or explicitly with
  configure_database(url)

This allows other parts of the application to import like:
    from src.db import Book, CatalogWriter, get_db_session
"""

# Import order matters: config_store pulls in src.filters, which needs
# models and database to be loaded already.
from .models import (
    Base,
    Book,
    FilterDecisionLog,
    IngestionConfigEntry,
    IngestionLog,
    IngestionState,
    TimestampMixin,
    UNCATEGORIZED,
)
from .database import (
    configure_database,
    get_engine,
    get_db_session,
    check_database_connection,
    init_database,
    validate_database_url,
)
from .catalog import (
    CatalogRecord,
    CatalogWriter,
    InsertResult,
    derive_category,
)
from .config_store import (
    get_stored_filter_config,
    save_filter_config,
    load_filter_config,
)
from .state import get_ingestion_state, record_run, set_paused

__all__ = [
    # Models
    "Base",
    "Book",
    "FilterDecisionLog",
    "IngestionConfigEntry",
    "IngestionLog",
    "IngestionState",
    "TimestampMixin",
    "UNCATEGORIZED",
    # Database utilities
    "configure_database",
    "get_engine",
    "get_db_session",
    "check_database_connection",
    "init_database",
    "validate_database_url",
    # Catalog
    "CatalogRecord",
    "CatalogWriter",
    "InsertResult",
    "derive_category",
    # Configuration and state
    "get_stored_filter_config",
    "save_filter_config",
    "load_filter_config",
    "get_ingestion_state",
    "record_run",
    "set_paused",
]
