"""
Pydantic schemas for the expense API.
"""

from __future__ import annotations

import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from shared.types import Expense, ExpenseDraft


class CredentialsRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=254)
    password: str = Field(..., min_length=8, max_length=72)

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        value = value.strip()
        if "@" not in value:
            raise ValueError("Email must contain '@'.")
        return value

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        # bcrypt only hashes the first 72 bytes.
        if len(value.encode("utf-8")) > 72:
            raise ValueError("Password must be at most 72 bytes.")
        return value


class TokenResponse(BaseModel):
    token: str


class StatusResponse(BaseModel):
    status: Literal["ok"]


class ExpensePayload(BaseModel):
    description: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    category: str = Field(..., min_length=1, max_length=64)
    date: datetime.date

    @field_validator("description", "category")
    @classmethod
    def strip_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Value must not be blank.")
        return value

    def to_draft(self) -> ExpenseDraft:
        return ExpenseDraft(
            description=self.description,
            amount=self.amount,
            category=self.category,
            date=self.date,
        )


class ExpenseUpdatePayload(ExpensePayload):
    # Clients send the full record back; the path id is authoritative.
    id: str | None = None


class ExpenseResponse(BaseModel):
    id: str
    description: str
    amount: float
    category: str
    date: datetime.date

    @classmethod
    def from_expense(cls, expense: Expense) -> "ExpenseResponse":
        return cls(
            id=expense.id,
            description=expense.description,
            amount=float(expense.amount),
            category=expense.category,
            date=expense.date,
        )


class CategoryTotal(BaseModel):
    category: str
    total: float


class MonthTotal(BaseModel):
    month: str
    total: float


class ExpenseSummaryResponse(BaseModel):
    total: float
    count: int
    by_category: list[CategoryTotal]
    by_month: list[MonthTotal]
