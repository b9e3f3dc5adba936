import unittest
from unittest.mock import MagicMock

from fastapi.testclient import TestClient

from backend.app import create_app
from backend.db import InMemoryDbClient
from backend.dependencies import get_db_client, get_session_store
from backend.sessions import InMemorySessionStore, SessionStoreUnavailable


class BackendApiTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.sessions = InMemorySessionStore()
        app = create_app()
        app.dependency_overrides[get_db_client] = lambda: self.db
        app.dependency_overrides[get_session_store] = lambda: self.sessions
        self.client = TestClient(app)

    def _register(self, email="ada@example.com", password="correct-horse"):
        response = self.client.post(
            "/api/auth/register", json={"email": email, "password": password}
        )
        self.assertEqual(response.status_code, 201)
        return response.json()["token"]

    def _auth(self, token):
        return {"Authorization": f"Bearer {token}"}

    def _add(self, token, **overrides):
        payload = {
            "description": "Coffee",
            "amount": 5.75,
            "category": "Dining Out",
            "date": "2025-01-06",
        }
        payload.update(overrides)
        response = self.client.post(
            "/api/expenses", json=payload, headers=self._auth(token)
        )
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()

    def test_health(self):
        response = self.client.get("/api/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ok"})

    def test_register_login_logout(self):
        self._register()

        duplicate = self.client.post(
            "/api/auth/register",
            json={"email": "ADA@example.com", "password": "correct-horse"},
        )
        self.assertEqual(duplicate.status_code, 409)

        bad = self.client.post(
            "/api/auth/login",
            json={"email": "ada@example.com", "password": "wrong-password"},
        )
        self.assertEqual(bad.status_code, 401)

        login = self.client.post(
            "/api/auth/login",
            json={"email": "ada@example.com", "password": "correct-horse"},
        )
        self.assertEqual(login.status_code, 200)
        token = login.json()["token"]

        self.assertEqual(
            self.client.get("/api/expenses", headers=self._auth(token)).status_code,
            200,
        )
        logout = self.client.post("/api/auth/logout", headers=self._auth(token))
        self.assertEqual(logout.json()["status"], "ok")
        self.assertEqual(
            self.client.get("/api/expenses", headers=self._auth(token)).status_code,
            401,
        )

    def test_expenses_require_bearer_token(self):
        response = self.client.get("/api/expenses")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.headers["www-authenticate"], "Bearer")

        response = self.client.get(
            "/api/expenses", headers={"Authorization": "Bearer nope"}
        )
        self.assertEqual(response.status_code, 401)

    def test_create_returns_server_assigned_id(self):
        token = self._register()
        created = self._add(token)
        self.assertTrue(created["id"])
        self.assertEqual(created["description"], "Coffee")
        self.assertEqual(created["amount"], 5.75)
        self.assertEqual(created["category"], "Dining Out")
        self.assertEqual(created["date"], "2025-01-06")
        self.assertNotIn("owner_id", created)

    def test_create_rejects_negative_amount(self):
        token = self._register()
        response = self.client.post(
            "/api/expenses",
            json={
                "description": "Refund",
                "amount": -3,
                "category": "Misc",
                "date": "2025-01-06",
            },
            headers=self._auth(token),
        )
        self.assertEqual(response.status_code, 422)

    def test_list_is_paginated_and_sorted_by_date_desc(self):
        token = self._register()
        for day in range(1, 14):
            self._add(token, description=f"day {day}", date=f"2025-01-{day:02d}")

        first = self.client.get(
            "/api/expenses", params={"page": 1, "limit": 10}, headers=self._auth(token)
        ).json()
        second = self.client.get(
            "/api/expenses", params={"page": 2, "limit": 10}, headers=self._auth(token)
        ).json()

        self.assertEqual(len(first), 10)
        self.assertEqual(len(second), 3)
        dates = [e["date"] for e in first + second]
        self.assertEqual(dates, sorted(dates, reverse=True))
        self.assertEqual(first[0]["date"], "2025-01-13")
        self.assertEqual(second[-1]["date"], "2025-01-01")

    def test_same_day_entries_list_newest_first(self):
        token = self._register()
        older = self._add(token, description="first")
        newer = self._add(token, description="second")
        listed = self.client.get("/api/expenses", headers=self._auth(token)).json()
        self.assertEqual([e["id"] for e in listed], [newer["id"], older["id"]])

    def test_users_only_see_their_own_expenses(self):
        alice = self._register("alice@example.com")
        bob = self._register("bob@example.com")
        created = self._add(alice)

        listed = self.client.get("/api/expenses", headers=self._auth(bob)).json()
        self.assertEqual(listed, [])

        response = self.client.delete(
            f"/api/expenses/{created['id']}", headers=self._auth(bob)
        )
        self.assertEqual(response.status_code, 404)

    def test_update_and_delete(self):
        token = self._register()
        created = self._add(token)

        updated = self.client.put(
            f"/api/expenses/{created['id']}",
            json={**created, "amount": 6.25, "category": "Coffee Shops"},
            headers=self._auth(token),
        )
        self.assertEqual(updated.status_code, 200)
        self.assertEqual(updated.json()["amount"], 6.25)
        self.assertEqual(updated.json()["category"], "Coffee Shops")

        mismatch = self.client.put(
            f"/api/expenses/{created['id']}",
            json={**created, "id": "other"},
            headers=self._auth(token),
        )
        self.assertEqual(mismatch.status_code, 400)

        deleted = self.client.delete(
            f"/api/expenses/{created['id']}", headers=self._auth(token)
        )
        self.assertEqual(deleted.status_code, 204)

        missing = self.client.put(
            f"/api/expenses/{created['id']}",
            json=created,
            headers=self._auth(token),
        )
        self.assertEqual(missing.status_code, 404)

    def test_summary_groups_by_category_and_month(self):
        token = self._register()
        self._add(token, amount=5.75, category="Dining Out", date="2025-01-06")
        self._add(token, amount=40, category="Groceries", date="2025-01-20")
        self._add(token, amount=4.25, category="Dining Out", date="2024-12-30")

        summary = self.client.get(
            "/api/expenses/summary", headers=self._auth(token)
        ).json()
        self.assertEqual(summary["count"], 3)
        self.assertAlmostEqual(summary["total"], 50.0)
        self.assertEqual(
            summary["by_category"],
            [
                {"category": "Dining Out", "total": 10.0},
                {"category": "Groceries", "total": 40.0},
            ],
        )
        self.assertEqual(
            [m["month"] for m in summary["by_month"]], ["2025-01", "2024-12"]
        )


    def test_session_store_outage_returns_503(self):
        token = self._register()
        self.sessions.resolve = MagicMock(
            side_effect=SessionStoreUnavailable("connection refused")
        )

        response = self.client.get("/api/expenses", headers=self._auth(token))
        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json(), {"detail": "Session store unavailable"})

        self.sessions.create = MagicMock(
            side_effect=SessionStoreUnavailable("connection refused")
        )
        login = self.client.post(
            "/api/auth/login",
            json={"email": "ada@example.com", "password": "correct-horse"},
        )
        self.assertEqual(login.status_code, 503)


if __name__ == "__main__":
    unittest.main()
