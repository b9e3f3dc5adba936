import unittest
from unittest.mock import MagicMock

from feed.api_client import ExpenseApiError
from feed.auth import AuthContext


class AuthContextTest(unittest.TestCase):
    def test_logout_clears_token_and_notifies_listeners(self):
        api = MagicMock()
        auth = AuthContext("token-1", api=api)
        listener = MagicMock()
        auth.on_logout(listener)

        auth.logout()

        self.assertIsNone(auth.token)
        self.assertFalse(auth.is_authenticated)
        api.logout.assert_called_once_with("token-1")
        listener.assert_called_once_with()

    def test_logout_survives_server_failure(self):
        api = MagicMock()
        api.logout.side_effect = ExpenseApiError("down")
        auth = AuthContext("token-1", api=api)
        listener = MagicMock()
        auth.on_logout(listener)

        auth.logout()

        self.assertIsNone(auth.token)
        listener.assert_called_once_with()

    def test_login_stores_token(self):
        api = MagicMock()
        api.login.return_value = "fresh"
        auth = AuthContext(api=api)
        self.assertEqual(auth.login("ada@example.com", "pw"), "fresh")
        self.assertTrue(auth.is_authenticated)

    def test_login_without_api_client(self):
        with self.assertRaises(RuntimeError):
            AuthContext().login("ada@example.com", "pw")


if __name__ == "__main__":
    unittest.main()
