"""
View-state controller for the infinite-scroll expense list.

The controller owns a `FeedState` for one signed-in user: the accumulated,
date-sorted expenses, the next page to request and whether the server has run
out of pages. Network calls go through a blocking `ExpenseApiClient` and are
moved off the event loop with `asyncio.to_thread`; at most one page request
is outstanding at any time.

Mutations may overlap a page load. They are reconciled by id: a page never
overwrites an expense that is already in the feed (the local copy came from a
later server confirmation) and never resurrects one removed while the page
was in flight.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from operator import attrgetter
from typing import Awaitable, Callable, Iterable, Optional, TypeVar

from feed.api_client import AuthenticationError, ExpenseApiClient, ExpenseApiError
from feed.auth import AuthContext
from feed.notifications import LoggingNotifier, Notifier
from shared.types import Expense, ExpenseDraft

logger = logging.getLogger(__name__)

T = TypeVar("T")

PAGE_SIZE = 10
# Distance from the bottom of the document that triggers the next page.
SCROLL_THRESHOLD = 100


class FailurePolicy(str, enum.Enum):
    # Only HTTP 401 ends the session; other page-load failures are reported.
    AUTH_ONLY = "auth-only"
    # Any page-load failure ends the session.
    LOGOUT = "logout"


@dataclass
class FeedState:
    items: tuple[Expense, ...] = ()
    cursor: int = 1
    exhausted: bool = False
    loading: bool = False


def sort_by_date_desc(items: Iterable[Expense]) -> tuple[Expense, ...]:
    # sorted() stays stable with reverse=True, so same-day entries keep their order.
    return tuple(sorted(items, key=attrgetter("date"), reverse=True))


class ExpenseFeedController:
    def __init__(
        self,
        api: ExpenseApiClient,
        auth: AuthContext,
        notifier: Optional[Notifier] = None,
        *,
        page_size: int = PAGE_SIZE,
        failure_policy: FailurePolicy | str = FailurePolicy.AUTH_ONLY,
        redirect_to_login: Optional[Callable[[], None]] = None,
    ):
        self.api = api
        self.auth = auth
        self.notifier = notifier or LoggingNotifier()
        self.page_size = page_size
        self.failure_policy = FailurePolicy(failure_policy)
        self.redirect_to_login = redirect_to_login

        self.state = FeedState()
        self._tasks: set[asyncio.Task] = set()
        self._page_task: Optional[asyncio.Task] = None
        self._removed_ids: set[str] = set()
        self._session_expired = False
        self._closed = False
        self._categories: Optional[tuple[tuple[Expense, ...], list[str]]] = None

    # -- lifecycle -----------------------------------------------------------

    def start(self) -> Optional[asyncio.Task]:
        """Schedule the first page, as the view does when it mounts."""
        return self._schedule_page_load()

    def reset(self) -> None:
        """
        Discard the feed after a new token is acquired.

        Outstanding work is cancelled and, should it still complete, its
        results are dropped because they belong to the previous state.
        """
        for task in list(self._tasks):
            task.cancel()
        self.state = FeedState()
        self._page_task = None
        self._removed_ids.clear()
        self._session_expired = False
        self._categories = None

    async def close(self) -> None:
        """Cancel all outstanding requests; the controller is unusable afterwards."""
        self._closed = True
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self.state = FeedState()
        self._page_task = None

    @property
    def session_expired(self) -> bool:
        return self._session_expired

    # -- paging --------------------------------------------------------------

    def on_scroll(
        self, scroll_top: float, viewport_height: float, document_height: float
    ) -> Optional[asyncio.Task]:
        """Load the next page when the viewport is near the bottom of the document."""
        if viewport_height + scroll_top < document_height - SCROLL_THRESHOLD:
            return None
        if self.state.loading or self.state.exhausted:
            return None
        return self._schedule_page_load()

    async def load_next_page(self) -> None:
        await self._track(self._load_next_page())

    def _schedule_page_load(self) -> Optional[asyncio.Task]:
        if self._closed or self._session_expired:
            return None
        if self._page_task is not None and not self._page_task.done():
            return None
        self._page_task = self._spawn(self._load_next_page())
        return self._page_task

    async def _load_next_page(self) -> None:
        state = self.state
        if state.loading:
            return
        token = self.auth.token
        if not token:
            return
        if state.exhausted or self._session_expired or self._closed:
            return

        state.loading = True
        try:
            page = await self._call(
                self.api.fetch_expenses, token, state.cursor, self.page_size
            )
        except ExpenseApiError as exc:
            if state is not self.state:
                return
            self._removed_ids.clear()
            if isinstance(exc, AuthenticationError) or (
                self.failure_policy is FailurePolicy.LOGOUT
            ):
                await self._expire_session(exc)
            else:
                logger.warning("Failed to fetch expenses page %d: %s", state.cursor, exc)
                self.notifier.notify(
                    "Error", "Failed to load expenses.", "destructive"
                )
            return
        finally:
            state.loading = False

        if state is not self.state:
            return
        self._merge_page(page)

    def _merge_page(self, page: list[Expense]) -> None:
        state = self.state
        known = {expense.id for expense in state.items}
        fresh = []
        for expense in page:
            if expense.id in known or expense.id in self._removed_ids:
                continue
            known.add(expense.id)
            fresh.append(expense)
        self._set_items(state.items + tuple(fresh))
        if len(page) < self.page_size:
            state.exhausted = True
        state.cursor += 1
        # Ids removed during the fetch only matter to the page being merged.
        self._removed_ids.clear()
        logger.debug(
            "Loaded %d expenses (page %d, exhausted=%s)",
            len(fresh),
            state.cursor - 1,
            state.exhausted,
        )

    async def _expire_session(self, exc: ExpenseApiError) -> None:
        if self._session_expired:
            return
        self._session_expired = True
        logger.error("Session failure, logging out: %s", exc)
        await asyncio.to_thread(self.auth.logout)
        if self.redirect_to_login:
            self.redirect_to_login()

    # -- mutations -----------------------------------------------------------

    async def add_expense(self, draft: ExpenseDraft) -> Optional[Expense]:
        return await self._track(self._add_expense(draft))

    async def update_expense(self, record: Expense) -> Optional[Expense]:
        return await self._track(self._update_expense(record))

    async def remove_expense(self, expense_id: str) -> bool:
        return await self._track(self._remove_expense(expense_id))

    async def _add_expense(self, draft: ExpenseDraft) -> Optional[Expense]:
        token = self._require_token()
        if not token:
            return None
        state = self.state
        try:
            created = await self._call(self.api.add_expense, draft, token)
        except ExpenseApiError as exc:
            await self._mutation_failed("Failed to add expense.", exc)
            return None
        if state is not self.state:
            return None

        self._removed_ids.discard(created.id)
        others = tuple(e for e in state.items if e.id != created.id)
        self._set_items((created,) + others)
        self.notifier.notify(
            "Expense Added", f'"{created.description}" has been added.'
        )
        return created

    async def _update_expense(self, record: Expense) -> Optional[Expense]:
        token = self._require_token()
        if not token:
            return None
        state = self.state
        try:
            updated = await self._call(self.api.update_expense, record, token)
        except ExpenseApiError as exc:
            await self._mutation_failed("Failed to update expense.", exc)
            return None
        if state is not self.state:
            return None

        self._set_items(
            updated if e.id == updated.id else e for e in state.items
        )
        self.notifier.notify(
            "Expense Updated", f'"{updated.description}" has been updated.'
        )
        return updated

    async def _remove_expense(self, expense_id: str) -> bool:
        token = self._require_token()
        if not token:
            return False
        state = self.state
        existing = next((e for e in state.items if e.id == expense_id), None)
        try:
            await self._call(self.api.delete_expense, expense_id, token)
        except ExpenseApiError as exc:
            await self._mutation_failed("Failed to delete expense.", exc)
            return False
        if state is not self.state:
            return False

        if state.loading:
            self._removed_ids.add(expense_id)
        if existing is not None:
            # Filtering keeps the order, so no re-sort.
            state.items = tuple(e for e in state.items if e.id != expense_id)
        label = existing.description if existing else expense_id
        self.notifier.notify("Expense Deleted", f'"{label}" has been deleted.')
        return True

    async def _mutation_failed(self, message: str, exc: ExpenseApiError) -> None:
        logger.error("%s %s", message, exc)
        self.notifier.notify("Error", message, "destructive")
        if isinstance(exc, AuthenticationError):
            await self._expire_session(exc)

    def _require_token(self) -> Optional[str]:
        token = self.auth.token
        if not token:
            logger.error("No auth token found")
        return token

    # -- derived values ------------------------------------------------------

    def derive_categories(self) -> list[str]:
        """Distinct categories in the feed, alphabetically."""
        items = self.state.items
        if self._categories is None or self._categories[0] is not items:
            self._categories = (items, sorted({e.category for e in items}))
        return list(self._categories[1])

    # -- helpers -------------------------------------------------------------

    def _set_items(self, items: Iterable[Expense]) -> None:
        self.state.items = sort_by_date_desc(items)

    async def _call(self, fn: Callable[..., T], *args) -> T:
        return await asyncio.to_thread(fn, *args)

    def _spawn(self, coro: Awaitable[T]) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _track(self, coro: Awaitable[T]) -> T:
        if self._closed:
            coro.close()
            raise RuntimeError("Expense feed controller is closed")
        return await self._spawn(coro)
