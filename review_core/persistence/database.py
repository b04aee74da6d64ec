"""
Database - engine and session management

Uses SQLAlchemy with a Postgres backend in production. Any SQLAlchemy URL
works (tests use SQLite files).
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import create_engine, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from review_core import config
from review_core.persistence.models import Base

logger = logging.getLogger(__name__)

# Engines are pooled and reused per URL
_engines: dict[str, Engine] = {}

REQUIRED_TABLES = (
    'scheduling_states',
    'mastery_states',
    'review_sessions',
    'review_events',
    'daily_activity',
    'learner_stats',
)


def get_engine(url: Optional[str] = None) -> Engine:
    """
    Get SQLAlchemy engine for database connection.

    Uses connection pooling for better performance.

    Args:
        url: Database URL (defaults to DATABASE_URL)

    Returns:
        SQLAlchemy Engine instance
    """
    db_url = url or config.get_database_url()
    engine = _engines.get(db_url)
    if engine is not None:
        return engine

    if db_url.startswith("sqlite"):
        # Tracking writes run on a background thread
        engine = create_engine(
            db_url,
            connect_args={"check_same_thread": False, "timeout": 30},
            echo=False
        )
    else:
        engine = create_engine(
            db_url,
            pool_size=5,           # Keep 5 connections open
            max_overflow=10,       # Allow up to 10 extra connections
            pool_pre_ping=True,    # Verify connections before use
            echo=False
        )
    _engines[db_url] = engine
    return engine


def get_sessionmaker(engine: Optional[Engine] = None) -> sessionmaker:
    return sessionmaker(bind=engine or get_engine(), expire_on_commit=False)


def get_session(engine: Optional[Engine] = None) -> Session:
    """
    Get a SQLAlchemy session for database operations.
    """
    return get_sessionmaker(engine)()


def init_db(engine: Optional[Engine] = None) -> None:
    """
    Initialize database schema if tables don't exist.

    Safe to call multiple times - only creates missing tables.
    """
    engine = engine or get_engine()
    existing_tables = set(inspect(engine).get_table_names())

    if not set(REQUIRED_TABLES) <= existing_tables:
        Base.metadata.create_all(engine)
        logger.info("Created review tables: %s", sorted(set(REQUIRED_TABLES) - existing_tables))


def reset_db(engine: Optional[Engine] = None) -> None:
    """
    DANGEROUS: Delete all data and recreate tables.

    Only use this for testing or when you want to start fresh.
    All review history will be lost!
    """
    engine = engine or get_engine()
    Base.metadata.drop_all(engine)
    logger.warning("All review tables dropped")

    init_db(engine)


def dispose_engines() -> None:
    """Close every pooled engine (used at shutdown and between tests)."""
    for engine in _engines.values():
        engine.dispose()
    _engines.clear()
