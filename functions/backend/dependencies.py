"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import logging

from backend.config import get_settings
from backend.db import DbClient, InMemoryDbClient, PostgresDbClient
from backend.sessions import InMemorySessionStore, RedisSessionStore, SessionStore

logger = logging.getLogger(__name__)

_db_client: DbClient | None = None
_session_store: SessionStore | None = None


def get_db_client() -> DbClient:
    """
    Return a singleton DB client so users and expenses persist across requests.
    """
    global _db_client
    if _db_client:
        return _db_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        _db_client = InMemoryDbClient()
    else:
        _db_client = PostgresDbClient(settings.database_url)
    logger.info("Database client: %s", _db_client.__class__.__name__)
    return _db_client


def get_session_store() -> SessionStore:
    """
    Return a singleton session store for bearer tokens.
    """
    global _session_store
    if _session_store:
        return _session_store

    settings = get_settings()
    if settings.redis_url and not settings.use_in_memory_backends:
        _session_store = RedisSessionStore(
            url=settings.redis_url,
            key_prefix=settings.session_key_prefix,
            ttl_seconds=settings.session_ttl_seconds,
        )
    else:
        _session_store = InMemorySessionStore(
            ttl_seconds=settings.session_ttl_seconds
        )
    logger.info("Session store: %s", _session_store.__class__.__name__)
    return _session_store
