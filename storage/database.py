"""
Storage - Database.

============================================================
RESPONSIBILITY
============================================================
Manages the database engine and sessions.

- Reads DATABASE_URL from the environment (.env supported)
- Creates the engine and session factory
- Provides session and transaction context managers
- Creates tables for all diary models

============================================================
DESIGN PRINCIPLES
============================================================
- Engines are explicit objects; nothing is created at import
- Rollback on ANY exception, then re-raise
- SQLite for development/tests, PostgreSQL in production

============================================================
"""

import logging
import os
from contextlib import contextmanager
from typing import Generator, Optional

from dotenv import load_dotenv
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from storage.models import Base


logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///margin_diary.db"


# =============================================================
# EXCEPTIONS
# =============================================================

class DatabasePersistenceError(Exception):
    """Raised when database persistence fails."""
    pass


class DatabaseConnectionError(DatabasePersistenceError):
    """Raised when database connection fails."""
    pass


class DatabaseInitializationError(DatabasePersistenceError):
    """Raised when database initialization fails."""
    pass


# =============================================================
# ENGINE
# =============================================================

def get_database_url() -> str:
    """Get database URL from environment."""
    load_dotenv()
    url = os.getenv("DATABASE_URL")
    if not url:
        url = DEFAULT_DATABASE_URL
        logger.warning(f"DATABASE_URL not set, using default: {url}")
    return url


def create_database_engine(url: Optional[str] = None, echo: bool = False) -> Engine:
    """
    Create SQLAlchemy engine.

    In-memory SQLite URLs share one connection so every session
    sees the same database.

    Args:
        url: Database URL (defaults to DATABASE_URL)
        echo: Log SQL statements

    Returns:
        SQLAlchemy Engine
    """
    url = url or get_database_url()
    logger.info(f"Creating database engine for: {url.split('@')[-1]}")

    if url.startswith("sqlite") and (url.endswith(":memory:") or url in ("sqlite://", "sqlite+pysqlite://")):
        return create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    return create_engine(url, echo=echo, pool_pre_ping=True)


def create_session_factory(engine: Engine) -> sessionmaker:
    """Session factory bound to `engine`."""
    return sessionmaker(
        bind=engine,
        autoflush=False,
        expire_on_commit=False,
    )


# =============================================================
# SESSION MANAGEMENT
# =============================================================

@contextmanager
def session_scope(factory: sessionmaker) -> Generator[Session, None, None]:
    """
    Context manager for database sessions with automatic cleanup.

    Rolls back and re-raises on any exception. The caller commits.
    """
    session = factory()
    try:
        yield session
    except Exception as e:
        logger.error(f"Session error, rolling back: {e}")
        session.rollback()
        raise
    finally:
        session.close()


@contextmanager
def transaction_scope(factory: sessionmaker) -> Generator[Session, None, None]:
    """
    Context manager for explicit transaction boundaries.

    Commits only if no exception occurs. Rolls back on ANY
    exception; SQLAlchemy failures are wrapped in
    DatabasePersistenceError, other exceptions propagate as is.
    """
    session = factory()
    try:
        yield session
        session.commit()
        logger.debug("Database transaction committed successfully")
    except SQLAlchemyError as e:
        logger.error(f"Database transaction failed, rolling back: {e}")
        session.rollback()
        raise DatabasePersistenceError(f"Transaction failed: {e}") from e
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# =============================================================
# INITIALIZATION
# =============================================================

def verify_database_connection(engine: Engine) -> bool:
    """
    Verify database connection is working.

    Raises:
        DatabaseConnectionError: If connection fails
    """
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1")).fetchone()
            logger.info("Database connection verified successfully")
            return True
    except OperationalError as e:
        logger.error(f"Database connection failed: {e}")
        raise DatabaseConnectionError(f"Cannot connect to database: {e}") from e


def create_all_tables(engine: Engine) -> None:
    """
    Create all diary tables that do not exist yet.

    Raises:
        DatabaseInitializationError: If table creation fails
    """
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created successfully")
    except SQLAlchemyError as e:
        logger.error(f"Failed to create database tables: {e}")
        raise DatabaseInitializationError(f"Table creation failed: {e}") from e


def initialize_database(url: Optional[str] = None) -> sessionmaker:
    """
    Full initialization: engine, connection check, tables.

    Returns:
        Session factory for the initialized database
    """
    engine = create_database_engine(url)
    verify_database_connection(engine)
    create_all_tables(engine)
    return create_session_factory(engine)


__all__ = [
    "DEFAULT_DATABASE_URL",
    "DatabasePersistenceError",
    "DatabaseConnectionError",
    "DatabaseInitializationError",
    "get_database_url",
    "create_database_engine",
    "create_session_factory",
    "session_scope",
    "transaction_scope",
    "verify_database_connection",
    "create_all_tables",
    "initialize_database",
]
