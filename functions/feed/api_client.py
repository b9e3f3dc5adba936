"""
Blocking HTTP client for the expense API.
"""

from __future__ import annotations

import logging
from decimal import InvalidOperation
from typing import Any, Optional

import requests
from dacite import DaciteError

from backend.config import get_settings
from shared.types import Expense, ExpenseDraft

logger = logging.getLogger(__name__)


class ExpenseApiError(Exception):
    """Raised for any failed API call. `status_code` is None for transport errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(ExpenseApiError):
    """The server rejected the bearer token or the credentials (HTTP 401)."""


class ExpenseApiClient:
    """
    Thin wrapper over the REST endpoints.

    `session` can be any object with a requests-compatible `request` method,
    which lets tests pass FastAPI's TestClient instead of a live server.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        session: Any = None,
        timeout: Optional[float] = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout if timeout is not None else settings.request_timeout_seconds

    def _request(
        self,
        method: str,
        path: str,
        *,
        token: Optional[str] = None,
        **kwargs,
    ):
        headers = kwargs.pop("headers", {})
        if token:
            headers["Authorization"] = f"Bearer {token}"
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(
                method, url, headers=headers, timeout=self.timeout, **kwargs
            )
        except requests.RequestException as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise ExpenseApiError(f"{method} {path} failed: {exc}") from exc

        if response.status_code == 401:
            raise AuthenticationError(_error_detail(response), status_code=401)
        if response.status_code >= 400:
            raise ExpenseApiError(
                _error_detail(response), status_code=response.status_code
            )
        return response

    def fetch_expenses(self, token: str, page: int, page_size: int) -> list[Expense]:
        response = self._request(
            "GET",
            "/expenses",
            token=token,
            params={"page": page, "limit": page_size},
        )
        return [_decode(Expense, item) for item in response.json()]

    def add_expense(self, draft: ExpenseDraft, token: str) -> Expense:
        response = self._request("POST", "/expenses", token=token, json=draft.to_json())
        return _decode(Expense, response.json())

    def update_expense(self, record: Expense, token: str) -> Expense:
        response = self._request(
            "PUT", f"/expenses/{record.id}", token=token, json=record.to_json()
        )
        return _decode(Expense, response.json())

    def delete_expense(self, expense_id: str, token: str) -> None:
        self._request("DELETE", f"/expenses/{expense_id}", token=token)

    def fetch_summary(self, token: str) -> dict:
        return self._request("GET", "/expenses/summary", token=token).json()

    def register(self, email: str, password: str) -> str:
        response = self._request(
            "POST", "/auth/register", json={"email": email, "password": password}
        )
        return response.json()["token"]

    def login(self, email: str, password: str) -> str:
        response = self._request(
            "POST", "/auth/login", json={"email": email, "password": password}
        )
        return response.json()["token"]

    def logout(self, token: str) -> None:
        self._request("POST", "/auth/logout", token=token)


def _error_detail(response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    detail = body.get("detail") if isinstance(body, dict) else None
    if isinstance(detail, str):
        return detail
    return f"HTTP {response.status_code}"


def _decode(cls, payload):
    try:
        return cls.from_json(payload)
    except (DaciteError, InvalidOperation, TypeError, ValueError) as exc:
        raise ExpenseApiError(f"Malformed expense payload: {exc}") from exc
