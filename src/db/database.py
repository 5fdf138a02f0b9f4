"""
Database engine and session management for the book catalog.

This module provides database connectivity with:
- Session-per-operation pattern for backend scripts
- Lazy engine creation from DATABASE_URL (SQLite or PostgreSQL)
- NullPool connection pooling and pragmas (WAL, foreign keys, timeouts) for SQLite
- Friendly error messages for common SQLite failures
"""

import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional
from urllib.parse import urlparse

from dotenv import load_dotenv
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool

from .models import Base
from src.logger import log_function


db_logger = logging.getLogger("database")

DEFAULT_DATABASE_URL = "sqlite:///data/catalog.db"

_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None


def validate_database_url(url: Optional[str]) -> tuple[bool, str]:
    """Validate the database URL format and path.

    Returns:
        tuple: (is_valid, database path or host on success, error message otherwise)
    """
    if not url:
        return False, "Database URL is empty"
    try:
        parsed = urlparse(url)
    except ValueError as e:
        return False, f"Invalid database URL format: {e}"

    if parsed.scheme.startswith("postgresql"):
        if not parsed.hostname:
            return False, "PostgreSQL URL has no host"
        return True, f"{parsed.hostname}{parsed.path}"

    if parsed.scheme != "sqlite":
        return False, f"Only SQLite and PostgreSQL databases are supported, got: {parsed.scheme}"

    # sqlite:///relative.db -> "relative.db", sqlite:////abs.db -> "/abs.db"
    db_path = url.split(":///", 1)[1] if ":///" in url else ""
    if not db_path or db_path == ":memory:":
        return True, ":memory:"

    parent_dir = Path(db_path).parent
    if not parent_dir.exists():
        return False, f"Database directory does not exist: {parent_dir}"
    return True, db_path


def optimize_sqlite_connection(dbapi_connection, connection_record):
    """Apply SQLite-specific optimizations when connection is created."""
    cursor = dbapi_connection.cursor()

    # Enable WAL mode for better concurrent access
    cursor.execute("PRAGMA journal_mode=WAL")

    # Set busy timeout to 30 seconds to handle locks
    cursor.execute("PRAGMA busy_timeout=30000")

    # Enable foreign key constraints
    cursor.execute("PRAGMA foreign_keys=ON")

    cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.close()


def configure_database(url: Optional[str] = None) -> Engine:
    """
    Create the engine and session factory.

    Args:
        url: Database URL. Defaults to DATABASE_URL, then sqlite:///data/catalog.db.

    Raises:
        ValueError: If the URL is not a valid SQLite or PostgreSQL URL.
    """
    global _engine, _SessionLocal

    if url is None:
        load_dotenv()
        url = os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL

    if url.startswith("sqlite:///") and url != "sqlite:///:memory:":
        Path(url.split(":///", 1)[1]).parent.mkdir(parents=True, exist_ok=True)

    is_valid, db_info = validate_database_url(url)
    if not is_valid:
        db_logger.error(f"Database configuration error: {db_info}")
        raise ValueError(f"Database configuration error: {db_info}")

    if _engine is not None:
        _engine.dispose()

    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            poolclass=NullPool,  # Avoid connection pooling issues with SQLite
            echo=False,
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        event.listen(engine, "connect", optimize_sqlite_connection)
    else:
        engine = create_engine(url, pool_pre_ping=True, echo=False)

    _engine = engine
    _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db_logger.info(f"Database configured: {db_info}")
    return engine


def get_engine() -> Engine:
    if _engine is None:
        configure_database()
    return _engine


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """
    Context manager for database sessions (session-per-operation pattern).

    Provides automatic session cleanup, rollback on error and logging.

    Usage:
        with get_db_session() as session:
            session.add(Book(id=..., title="Meditations", author="Marcus Aurelius"))
            session.commit()
    """
    if _SessionLocal is None:
        configure_database()
    session = _SessionLocal()
    try:
        db_logger.debug("Database session created")
        yield session

    except OperationalError as e:
        db_logger.error(f"Database operational error: {e}")
        session.rollback()

        # Handle common SQLite errors with helpful messages
        error_msg = str(e.orig) if hasattr(e, "orig") else str(e)
        if "database is locked" in error_msg.lower():
            raise OperationalError(
                "Database is locked. This may be due to another process accessing the database. "
                "Please try again or check for long-running database operations.",
                None,
                e.orig,
            )
        elif "no such table" in error_msg.lower():
            raise OperationalError(
                "Database table does not exist. Please run database migrations first.",
                None,
                e.orig,
            )
        else:
            raise

    except SQLAlchemyError as e:
        db_logger.error(f"Database error: {e}")
        session.rollback()
        raise

    except Exception as e:
        db_logger.error(f"Unexpected database error: {e}")
        session.rollback()
        raise

    finally:
        session.close()
        db_logger.debug("Database session closed")


@log_function(logger_name="database", log_execution_time=True)
def check_database_connection() -> bool:
    """
    Check if database connection is working.

    Returns:
        bool: True if connection is successful, False otherwise
    """
    try:
        with get_db_session() as session:
            session.execute(text("SELECT 1"))
            db_logger.info("Database connection test successful")
            return True

    except SQLAlchemyError as e:
        db_logger.error(f"Database connection test failed: {e}")
        return False


@log_function(logger_name="database", log_execution_time=True)
def init_database() -> bool:
    """
    Initialize database by creating all tables defined in models.

    Note: This does not run Alembic migrations. Use alembic commands for migrations.

    Returns:
        bool: True if initialization successful, False otherwise
    """
    try:
        Base.metadata.create_all(bind=get_engine())
        db_logger.info("Database tables created successfully")
        return True

    except SQLAlchemyError as e:
        db_logger.error(f"Failed to initialize database: {e}")
        return False
