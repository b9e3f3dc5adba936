"""
Shared expense types used by both the API service and the feed client.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
import datetime
from decimal import Decimal
from typing import Any

from dacite import Config, from_dict


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() avoids binary float artefacts such as 5.75 -> 5.7500000000000001...
    return Decimal(str(value))


def _to_date(value: Any) -> datetime.date:
    if isinstance(value, datetime.date):
        return value
    return datetime.date.fromisoformat(str(value)[:10])


DACITE_CONFIG = Config(
    type_hooks={Decimal: _to_decimal, datetime.date: _to_date},
)


@dataclass
class ExpenseDraft:
    """An expense that has not been assigned an id by the server yet."""

    description: str
    amount: Decimal
    category: str
    date: datetime.date

    def to_json(self) -> dict:
        payload = asdict(self)
        payload["amount"] = float(self.amount)
        payload["date"] = self.date.isoformat()
        return payload

    @classmethod
    def from_json(cls, payload: dict) -> "ExpenseDraft":
        return from_dict(data_class=cls, data=payload, config=DACITE_CONFIG)


@dataclass
class Expense(ExpenseDraft):
    # Dataclass inheritance puts id last; callers always pass it by keyword.
    id: str = ""

    def to_json(self) -> dict:
        payload = super().to_json()
        payload["id"] = self.id
        return payload

    @classmethod
    def from_json(cls, payload: dict) -> "Expense":
        return from_dict(data_class=cls, data=payload, config=DACITE_CONFIG)
