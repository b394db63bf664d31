import unittest
from datetime import datetime, timedelta, timezone

from cafe_backend.config import Settings
from cafe_backend.session import check_password, create_session_token, is_logged_in


class SessionTokenTests(unittest.TestCase):
    def setUp(self):
        self.settings = Settings(
            admin_password="letmein",
            session_secret="test-secret",
            session_ttl_minutes=30,
            _env_file=None,
        )

    def test_password_check(self):
        self.assertTrue(check_password("letmein", self.settings))
        self.assertFalse(check_password("letmein ", self.settings))

    def test_fresh_token_is_valid(self):
        token = create_session_token(self.settings)
        self.assertTrue(is_logged_in(token, self.settings))

    def test_expired_token(self):
        issued = datetime.now(timezone.utc) - timedelta(minutes=31)
        token = create_session_token(self.settings, now=issued)
        self.assertFalse(is_logged_in(token, self.settings))

    def test_token_signed_with_other_secret(self):
        other = Settings(session_secret="someone-else", _env_file=None)
        token = create_session_token(other)
        self.assertFalse(is_logged_in(token, self.settings))

    def test_plain_flag_is_rejected(self):
        self.assertFalse(is_logged_in("true", self.settings))
        self.assertFalse(is_logged_in(None, self.settings))


if __name__ == "__main__":
    unittest.main()
