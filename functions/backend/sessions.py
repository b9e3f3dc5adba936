"""
Session store abstraction for bearer tokens.

Supports an in-memory fallback for tests/local runs and a Redis-backed
implementation for production.
"""

from __future__ import annotations

import secrets
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol, TypeVar

import redis
from redis import exceptions as redis_exceptions

T = TypeVar("T")


class SessionStoreUnavailable(Exception):
    """Raised when the session backend cannot be reached."""


def new_token() -> str:
    return secrets.token_urlsafe(32)


class SessionStore(Protocol):
    """Minimal interface mapping opaque bearer tokens to user ids."""

    def create(self, user_id: str) -> str:
        ...

    def resolve(self, token: str) -> Optional[str]:
        ...

    def revoke(self, token: str) -> None:
        ...


@dataclass
class InMemorySessionStore:
    """Dict-backed sessions for testing/dev."""

    ttl_seconds: int = 7 * 24 * 3600
    sessions: dict[str, tuple[str, float]] = field(default_factory=dict)

    def create(self, user_id: str) -> str:
        token = new_token()
        self.sessions[token] = (user_id, time.time() + self.ttl_seconds)
        return token

    def resolve(self, token: str) -> Optional[str]:
        entry = self.sessions.get(token)
        if entry is None:
            return None
        user_id, expires_at = entry
        if expires_at <= time.time():
            del self.sessions[token]
            return None
        return user_id

    def revoke(self, token: str) -> None:
        self.sessions.pop(token, None)


@dataclass
class RedisSessionStore:
    """Redis-backed sessions using SETEX so expiry is handled server-side."""

    url: str
    key_prefix: str = "expenses:session:"
    ttl_seconds: int = 7 * 24 * 3600

    def __post_init__(self):
        self.client = redis.Redis.from_url(self.url)

    def _key(self, token: str) -> str:
        return f"{self.key_prefix}{token}"

    def _call(self, op: Callable[[redis.Redis], T]) -> T:
        try:
            return op(self.client)
        except redis_exceptions.ConnectionError:
            # Connection resets can happen on managed Redis. Reconnect and retry once.
            self.client = redis.Redis.from_url(self.url)
        try:
            return op(self.client)
        except redis_exceptions.ConnectionError as exc:
            raise SessionStoreUnavailable(str(exc)) from exc

    def create(self, user_id: str) -> str:
        token = new_token()
        self._call(lambda client: client.setex(self._key(token), self.ttl_seconds, user_id))
        return token

    def resolve(self, token: str) -> Optional[str]:
        user_id = self._call(lambda client: client.get(self._key(token)))
        if user_id is None:
            return None
        return user_id.decode("utf-8")

    def revoke(self, token: str) -> None:
        self._call(lambda client: client.delete(self._key(token)))
