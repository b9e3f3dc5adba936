"""
Client-side authentication context: the current bearer token and logout.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from feed.api_client import ExpenseApiClient, ExpenseApiError

logger = logging.getLogger(__name__)


class AuthContext:
    """
    Holds the bearer token for one signed-in user.

    Listeners registered with `on_logout` run after the token is cleared; the
    UI uses this to redirect to the login surface.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        *,
        api: Optional[ExpenseApiClient] = None,
    ):
        self.token = token
        self.api = api
        self._listeners: list[Callable[[], None]] = []

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def on_logout(self, listener: Callable[[], None]) -> None:
        self._listeners.append(listener)

    def login(self, email: str, password: str) -> str:
        if self.api is None:
            raise RuntimeError("AuthContext has no API client to log in with")
        self.token = self.api.login(email, password)
        return self.token

    def logout(self) -> None:
        token, self.token = self.token, None
        if token and self.api is not None:
            try:
                self.api.logout(token)
            except ExpenseApiError as exc:
                # The session is already gone locally; server revocation is best effort.
                logger.info("Server-side logout failed: %s", exc)
        for listener in list(self._listeners):
            listener()
