import datetime
import random
import unittest
from unittest.mock import patch

from backend.db import InMemoryDbClient, PostgresDbClient
from scripts import seed_expenses


class SeedExpensesTests(unittest.TestCase):
    def setUp(self):
        # Password hashing is covered by the API tests.
        patcher = patch.object(seed_expenses, "hash_password", return_value="hash")
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_seed_creates_user_and_expenses(self):
        db = InMemoryDbClient()
        today = datetime.date(2025, 1, 31)
        inserted = seed_expenses.seed(
            db,
            email="demo@example.com",
            password="demo-password",
            count=25,
            days=30,
            seed_value=7,
            today=today,
        )

        self.assertEqual(inserted, 25)
        user = db.get_user_by_email("demo@example.com")
        self.assertIsNotNone(user)
        records = db.list_expenses(user.user_id, limit=100)
        self.assertEqual(len(records), 25)
        for record in records:
            self.assertIn(record.category, seed_expenses.SAMPLE_EXPENSES)
            self.assertIn(record.description, seed_expenses.SAMPLE_EXPENSES[record.category])
            self.assertGreaterEqual(record.amount, 0)
            self.assertLessEqual(record.date, today)
            self.assertGreater(record.date, today - datetime.timedelta(days=30))

    def test_seed_reuses_existing_user(self):
        db = InMemoryDbClient()
        for _ in range(2):
            seed_expenses.seed(
                db, email="demo@example.com", password="pw", count=3, days=5, seed_value=1
            )
        self.assertEqual(len(db.users), 1)
        self.assertEqual(len(db.expenses), 6)

    def test_build_drafts_is_deterministic_for_a_seed(self):
        today = datetime.date(2025, 1, 31)
        first = seed_expenses.build_drafts(10, 14, rng=random.Random(3), today=today)
        second = seed_expenses.build_drafts(10, 14, rng=random.Random(3), today=today)
        self.assertEqual(first, second)

    @patch.object(seed_expenses, "get_db_client")
    def test_main_refuses_in_memory_store(self, mock_db):
        db = InMemoryDbClient()
        mock_db.return_value = db
        with self.assertLogs(seed_expenses.logger, level="ERROR"):
            self.assertEqual(seed_expenses.main(["-n", "3"]), 1)
        self.assertEqual(db.users, {})
        self.assertEqual(db.expenses, {})

    @patch.object(seed_expenses, "get_db_client")
    def test_main_seeds_configured_database(self, mock_db):
        db = PostgresDbClient("sqlite+pysqlite:///:memory:")
        mock_db.return_value = db
        self.assertEqual(
            seed_expenses.main(["--email", "demo@example.com", "-n", "4", "--seed", "2"]), 0
        )
        user = db.get_user_by_email("demo@example.com")
        self.assertEqual(len(db.list_expenses(user.user_id, limit=10)), 4)


if __name__ == "__main__":
    unittest.main()
