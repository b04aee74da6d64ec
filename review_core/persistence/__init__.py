"""
Persistence adapters for the review core.

SqlPersistenceService stores everything through SQLAlchemy;
HttpPersistenceService talks to the review REST API.
"""

from review_core.persistence.database import (
    dispose_engines,
    get_engine,
    get_session,
    init_db,
    reset_db,
)
from review_core.persistence.http_client import HttpPersistenceService
from review_core.persistence.service import PersistenceService, SqlPersistenceService


__all__ = [
    "PersistenceService",
    "SqlPersistenceService",
    "HttpPersistenceService",
    "get_engine",
    "get_session",
    "init_db",
    "reset_db",
    "dispose_engines",
]
