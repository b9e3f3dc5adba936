"""
Password hashing and bearer-token authentication for the API.
"""

from __future__ import annotations

import logging
from typing import Optional

import bcrypt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from backend.db import DbClient, UserRecord
from backend.dependencies import get_db_client, get_session_store
from backend.sessions import SessionStore, SessionStoreUnavailable

logger = logging.getLogger(__name__)

_bearer = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _session_store_unavailable(exc: SessionStoreUnavailable) -> HTTPException:
    logger.error("Session store unavailable: %s", exc)
    return HTTPException(status_code=503, detail="Session store unavailable")


def open_session(sessions: SessionStore, user_id: str) -> str:
    try:
        return sessions.create(user_id)
    except SessionStoreUnavailable as exc:
        raise _session_store_unavailable(exc) from exc


def close_session(sessions: SessionStore, token: str) -> None:
    try:
        sessions.revoke(token)
    except SessionStoreUnavailable as exc:
        raise _session_store_unavailable(exc) from exc


def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> str:
    if credentials is None or not credentials.credentials:
        raise _unauthorized("Not authenticated")
    return credentials.credentials


def get_current_user(
    token: str = Depends(get_bearer_token),
    sessions: SessionStore = Depends(get_session_store),
    db: DbClient = Depends(get_db_client),
) -> UserRecord:
    try:
        user_id = sessions.resolve(token)
    except SessionStoreUnavailable as exc:
        # An outage is not an invalid session; keep clients signed in.
        raise _session_store_unavailable(exc) from exc
    if user_id is None:
        raise _unauthorized("Session expired or invalid")
    user = db.get_user(user_id)
    if user is None:
        # Account removed while the session was alive.
        close_session(sessions, token)
        raise _unauthorized("Session expired or invalid")
    return user
