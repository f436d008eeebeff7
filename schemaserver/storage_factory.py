"""
Storage factory for creating and managing the shared engine and storage.
"""

import logging
import os
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from schemaai.settings import DEFAULT_DATABASE_URL
from schemaserver.storage.backends.sql import SQLStorage

logger = logging.getLogger(__name__)

# Singleton engine, db_url and storage
_engine: Optional[Engine] = None
_db_url: Optional[str] = None
_storage: Optional[SQLStorage] = None


def get_engine(db_url: Optional[str] = None) -> tuple[Engine, str]:
    """
    Returns a singleton instance of the SQLAlchemy engine and db_url.
    """
    global _engine, _db_url
    if _engine is None:
        _db_url = db_url or os.getenv("DATABASE_URL")
        if not _db_url:
            logger.info("DATABASE_URL not set, defaulting to %s", DEFAULT_DATABASE_URL)
            _db_url = DEFAULT_DATABASE_URL

        kwargs: dict = {}
        if _db_url.startswith("sqlite://"):
            kwargs["connect_args"] = {"check_same_thread": False}  # Needed for SQLite with FastAPI
            if _db_url in ("sqlite://", "sqlite:///:memory:"):
                kwargs["poolclass"] = StaticPool

        _engine = create_engine(_db_url, **kwargs)
    return _engine, _db_url


def get_storage() -> SQLStorage:
    """
    Returns the singleton storage bound to the shared engine.
    """
    global _storage
    if _storage is None:
        engine, _ = get_engine()
        _storage = SQLStorage(engine)
    return _storage


def close_storage() -> None:
    """
    Disposes the engine and forgets the singletons.
    """
    global _engine, _db_url, _storage
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _db_url = None
    _storage = None
