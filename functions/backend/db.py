"""
Database abstraction for Postgres and an in-memory test implementation.
"""

from __future__ import annotations

import datetime
import itertools
import time
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Optional, Protocol

from sqlalchemy import (
    Column,
    Date,
    Float,
    ForeignKey,
    Numeric,
    String,
    create_engine,
    select,
)
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from shared.types import Expense, ExpenseDraft


class DuplicateUserError(Exception):
    """Raised when registering an email that already has an account."""


class DbClient(Protocol):
    """Interface for database access."""

    def create_user(self, email: str, password_hash: str) -> "UserRecord":
        ...

    def get_user(self, user_id: str) -> Optional["UserRecord"]:
        ...

    def get_user_by_email(self, email: str) -> Optional["UserRecord"]:
        ...

    def create_expense(
        self, owner_id: str, draft: ExpenseDraft
    ) -> "ExpenseRecord":
        ...

    def get_expense(
        self, owner_id: str, expense_id: str
    ) -> Optional["ExpenseRecord"]:
        ...

    def list_expenses(
        self, owner_id: str, *, limit: int, offset: int = 0
    ) -> list["ExpenseRecord"]:
        ...

    def update_expense(
        self, owner_id: str, expense_id: str, draft: ExpenseDraft
    ) -> Optional["ExpenseRecord"]:
        ...

    def delete_expense(self, owner_id: str, expense_id: str) -> bool:
        ...

    def summarize_expenses(self, owner_id: str) -> "ExpenseSummary":
        ...


@dataclass
class UserRecord:
    user_id: str
    email: str
    password_hash: str
    created_at: float = field(default_factory=lambda: time.time())


@dataclass
class ExpenseRecord:
    expense_id: str
    owner_id: str
    description: str
    amount: Decimal
    category: str
    date: datetime.date
    created_at: float = field(default_factory=lambda: time.time())
    updated_at: float = field(default_factory=lambda: time.time())

    def to_expense(self) -> Expense:
        """Client-facing view; the owner never leaves the server."""
        return Expense(
            id=self.expense_id,
            description=self.description,
            amount=self.amount,
            category=self.category,
            date=self.date,
        )


@dataclass
class ExpenseSummary:
    total: Decimal = Decimal("0")
    count: int = 0
    by_category: list[tuple[str, Decimal]] = field(default_factory=list)
    by_month: list[tuple[str, Decimal]] = field(default_factory=list)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _summarize(rows: list[tuple[str, Decimal, datetime.date]]) -> ExpenseSummary:
    by_category: Dict[str, Decimal] = defaultdict(Decimal)
    by_month: Dict[str, Decimal] = defaultdict(Decimal)
    total = Decimal("0")
    for category, amount, day in rows:
        amount = Decimal(amount)
        total += amount
        by_category[category] += amount
        by_month[day.strftime("%Y-%m")] += amount
    return ExpenseSummary(
        total=total,
        count=len(rows),
        by_category=sorted(by_category.items()),
        # Most recent month first, matching the feed ordering.
        by_month=sorted(by_month.items(), reverse=True),
    )


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.users: Dict[str, UserRecord] = {}
        self.expenses: Dict[str, ExpenseRecord] = {}
        # Insertion counter breaks created_at ties deterministically.
        self._sequence = itertools.count()
        self._order: Dict[str, int] = {}

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.users.clear()
        self.expenses.clear()
        self._order.clear()

    def create_user(self, email: str, password_hash: str) -> UserRecord:
        email = normalize_email(email)
        if self.get_user_by_email(email):
            raise DuplicateUserError(email)
        record = UserRecord(
            user_id=uuid.uuid4().hex, email=email, password_hash=password_hash
        )
        self.users[record.user_id] = record
        return record

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        return self.users.get(user_id)

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        email = normalize_email(email)
        for user in self.users.values():
            if user.email == email:
                return user
        return None

    def create_expense(self, owner_id: str, draft: ExpenseDraft) -> ExpenseRecord:
        record = ExpenseRecord(
            expense_id=uuid.uuid4().hex,
            owner_id=owner_id,
            description=draft.description,
            amount=Decimal(draft.amount),
            category=draft.category,
            date=draft.date,
        )
        self.expenses[record.expense_id] = record
        self._order[record.expense_id] = next(self._sequence)
        return record

    def get_expense(self, owner_id: str, expense_id: str) -> Optional[ExpenseRecord]:
        record = self.expenses.get(expense_id)
        if record is None or record.owner_id != owner_id:
            return None
        return record

    def list_expenses(
        self, owner_id: str, *, limit: int, offset: int = 0
    ) -> list[ExpenseRecord]:
        owned = [r for r in self.expenses.values() if r.owner_id == owner_id]
        owned.sort(
            key=lambda r: (r.date, self._order[r.expense_id]), reverse=True
        )
        return owned[offset : offset + limit]

    def update_expense(
        self, owner_id: str, expense_id: str, draft: ExpenseDraft
    ) -> Optional[ExpenseRecord]:
        record = self.get_expense(owner_id, expense_id)
        if record is None:
            return None
        record.description = draft.description
        record.amount = Decimal(draft.amount)
        record.category = draft.category
        record.date = draft.date
        record.updated_at = time.time()
        return record

    def delete_expense(self, owner_id: str, expense_id: str) -> bool:
        if self.get_expense(owner_id, expense_id) is None:
            return False
        del self.expenses[expense_id]
        self._order.pop(expense_id, None)
        return True

    def summarize_expenses(self, owner_id: str) -> ExpenseSummary:
        rows = [
            (r.category, r.amount, r.date)
            for r in self.expenses.values()
            if r.owner_id == owner_id
        ]
        return _summarize(rows)


class PostgresDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for PostgresDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def _to_user_record(self, row: "UserRow") -> UserRecord:
        return UserRecord(
            user_id=row.user_id,
            email=row.email,
            password_hash=row.password_hash,
            created_at=row.created_at,
        )

    def _to_expense_record(self, row: "ExpenseRow") -> ExpenseRecord:
        return ExpenseRecord(
            expense_id=row.expense_id,
            owner_id=row.owner_id,
            description=row.description,
            amount=Decimal(row.amount),
            category=row.category,
            date=row.date,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def create_user(self, email: str, password_hash: str) -> UserRecord:
        email = normalize_email(email)
        with self.Session() as session:
            row = UserRow(
                user_id=uuid.uuid4().hex,
                email=email,
                password_hash=password_hash,
                created_at=time.time(),
            )
            session.add(row)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise DuplicateUserError(email) from exc
            return self._to_user_record(row)

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        with self.Session() as session:
            row = session.get(UserRow, user_id)
            return self._to_user_record(row) if row else None

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        with self.Session() as session:
            stmt = select(UserRow).where(UserRow.email == normalize_email(email))
            row = session.execute(stmt).scalar_one_or_none()
            return self._to_user_record(row) if row else None

    def create_expense(self, owner_id: str, draft: ExpenseDraft) -> ExpenseRecord:
        now = time.time()
        with self.Session() as session:
            row = ExpenseRow(
                expense_id=uuid.uuid4().hex,
                owner_id=owner_id,
                description=draft.description,
                amount=Decimal(draft.amount),
                category=draft.category,
                date=draft.date,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_expense_record(row)

    def get_expense(self, owner_id: str, expense_id: str) -> Optional[ExpenseRecord]:
        with self.Session() as session:
            row = session.get(ExpenseRow, expense_id)
            if not row or row.owner_id != owner_id:
                return None
            return self._to_expense_record(row)

    def list_expenses(
        self, owner_id: str, *, limit: int, offset: int = 0
    ) -> list[ExpenseRecord]:
        with self.Session() as session:
            stmt = (
                select(ExpenseRow)
                .where(ExpenseRow.owner_id == owner_id)
                .order_by(
                    ExpenseRow.date.desc(),
                    ExpenseRow.created_at.desc(),
                    ExpenseRow.expense_id.desc(),
                )
                .offset(offset)
                .limit(limit)
            )
            rows = session.execute(stmt).scalars().all()
            return [self._to_expense_record(row) for row in rows]

    def update_expense(
        self, owner_id: str, expense_id: str, draft: ExpenseDraft
    ) -> Optional[ExpenseRecord]:
        with self.Session() as session:
            row = session.get(ExpenseRow, expense_id)
            if not row or row.owner_id != owner_id:
                return None
            row.description = draft.description
            row.amount = Decimal(draft.amount)
            row.category = draft.category
            row.date = draft.date
            row.updated_at = time.time()
            session.commit()
            session.refresh(row)
            return self._to_expense_record(row)

    def delete_expense(self, owner_id: str, expense_id: str) -> bool:
        with self.Session() as session:
            row = session.get(ExpenseRow, expense_id)
            if not row or row.owner_id != owner_id:
                return False
            session.delete(row)
            session.commit()
            return True

    def summarize_expenses(self, owner_id: str) -> ExpenseSummary:
        with self.Session() as session:
            stmt = select(
                ExpenseRow.category, ExpenseRow.amount, ExpenseRow.date
            ).where(ExpenseRow.owner_id == owner_id)
            rows = [tuple(row) for row in session.execute(stmt).all()]
            return _summarize(rows)


Base = declarative_base()


class UserRow(Base):
    __tablename__ = "users"

    user_id = Column(String, primary_key=True)
    email = Column(String, nullable=False, unique=True, index=True)
    password_hash = Column(String, nullable=False)
    created_at = Column(Float, nullable=False)


class ExpenseRow(Base):
    __tablename__ = "expenses"

    expense_id = Column(String, primary_key=True)
    owner_id = Column(
        String, ForeignKey("users.user_id"), nullable=False, index=True
    )
    description = Column(String, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    category = Column(String, nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)
