"""
Client-side expense feed: API client, auth context and the infinite-scroll
view-state controller.
"""

from feed.api_client import AuthenticationError, ExpenseApiClient, ExpenseApiError
from feed.auth import AuthContext
from feed.controller import (
    PAGE_SIZE,
    SCROLL_THRESHOLD,
    ExpenseFeedController,
    FailurePolicy,
    FeedState,
)
from feed.notifications import LoggingNotifier, Notifier, RecordingNotifier

__all__ = [
    "AuthContext",
    "AuthenticationError",
    "ExpenseApiClient",
    "ExpenseApiError",
    "ExpenseFeedController",
    "FailurePolicy",
    "FeedState",
    "LoggingNotifier",
    "Notifier",
    "PAGE_SIZE",
    "RecordingNotifier",
    "SCROLL_THRESHOLD",
]
