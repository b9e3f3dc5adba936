"""
Seed the expense store with a demo user and a spread of expenses.
"""

from __future__ import annotations

import argparse
import datetime
import logging
import random
import sys
from decimal import Decimal
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.auth import hash_password
from backend.db import DbClient, InMemoryDbClient
from backend.dependencies import get_db_client
from shared.types import ExpenseDraft

logger = logging.getLogger(__name__)

SAMPLE_EXPENSES = {
    "Groceries": ["Supermarket run", "Farmers market", "Bakery"],
    "Dining Out": ["Coffee", "Lunch with team", "Pizza night", "Sushi"],
    "Transport": ["Metro card top-up", "Taxi", "Fuel"],
    "Utilities": ["Electricity bill", "Internet", "Water bill"],
    "Entertainment": ["Cinema tickets", "Streaming subscription", "Concert"],
    "Health": ["Pharmacy", "Gym membership"],
}

AMOUNT_RANGES = {
    "Groceries": (15, 120),
    "Dining Out": (3, 60),
    "Transport": (2, 70),
    "Utilities": (30, 150),
    "Entertainment": (8, 90),
    "Health": (10, 80),
}


def build_drafts(
    count: int, days: int, *, rng: random.Random, today: datetime.date
) -> list[ExpenseDraft]:
    drafts = []
    categories = sorted(SAMPLE_EXPENSES)
    for _ in range(count):
        category = rng.choice(categories)
        low, high = AMOUNT_RANGES[category]
        cents = rng.randint(low * 100, high * 100)
        drafts.append(
            ExpenseDraft(
                description=rng.choice(SAMPLE_EXPENSES[category]),
                amount=Decimal(cents) / 100,
                category=category,
                date=today - datetime.timedelta(days=rng.randrange(max(days, 1))),
            )
        )
    return drafts


def seed(
    db: DbClient,
    *,
    email: str,
    password: str,
    count: int,
    days: int,
    seed_value: int | None = None,
    today: datetime.date | None = None,
) -> int:
    user = db.get_user_by_email(email)
    if user is None:
        user = db.create_user(email, hash_password(password))
        logger.info("Created demo user %s (%s)", email, user.user_id)
    else:
        logger.info("Reusing existing user %s (%s)", email, user.user_id)

    rng = random.Random(seed_value)
    drafts = build_drafts(count, days, rng=rng, today=today or datetime.date.today())
    for draft in drafts:
        db.create_expense(user.user_id, draft)
    return len(drafts)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Seed demo expenses")
    parser.add_argument("--email", default="demo@example.com", help="Demo account email")
    parser.add_argument("--password", default="demo-password", help="Demo account password")
    parser.add_argument(
        "-n", "--count", type=int, default=50, help="How many expenses to insert"
    )
    parser.add_argument(
        "-d",
        "--days",
        type=int,
        default=60,
        help="Spread expense dates over the last N days",
    )
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    db = get_db_client()
    if isinstance(db, InMemoryDbClient):
        # The in-memory store dies with this process.
        logger.error("No DATABASE_URL configured; nothing would be persisted")
        return 1

    inserted = seed(
        db,
        email=args.email,
        password=args.password,
        count=args.count,
        days=args.days,
        seed_value=args.seed,
    )
    logger.info("Seeded %d expenses for %s", inserted, args.email)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
