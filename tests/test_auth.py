import unittest
from unittest import mock

from clinic_finance.core.auth import (
    OperatorSession,
    hash_password,
    issue_session_token,
    read_session_token,
    verify_password,
)
from clinic_finance.core.config import settings


def _token(**overrides) -> str:
    claims = dict(operator_id="42", username="maria", display_name="Maria Souza", is_admin=False)
    claims.update(overrides)
    return issue_session_token(**claims)


class SessionTokenTests(unittest.TestCase):
    def test_roundtrip(self):
        self.assertEqual(
            read_session_token(_token()),
            OperatorSession(operator_id="42", username="maria", display_name="Maria Souza", is_admin=False),
        )

    def test_tampered_token_rejected(self):
        body, sig = _token().split(".", 1)
        self.assertIsNone(read_session_token(body + "." + ("0" * len(sig))))
        self.assertIsNone(read_session_token(_token(is_admin=True).split(".", 1)[0] + "." + sig))
        self.assertIsNone(read_session_token("garbage"))
        self.assertIsNone(read_session_token("bödy.sig"))
        self.assertIsNone(read_session_token(None))

    def test_signed_with_other_secret_rejected(self):
        with mock.patch.object(settings, "auth_secret", "another-secret"):
            token = _token()
        self.assertIsNone(read_session_token(token))

    def test_expired_token_rejected(self):
        with mock.patch.object(settings, "auth_session_hours", -1):
            token = _token()
        self.assertIsNone(read_session_token(token))


class PasswordHashTests(unittest.TestCase):
    def test_hash_and_verify(self):
        digest, salt = hash_password("s3cret")
        self.assertTrue(verify_password("s3cret", digest, salt))
        self.assertFalse(verify_password("wrong", digest, salt))
        self.assertFalse(verify_password("", digest, salt))

    def test_empty_password_rejected(self):
        with self.assertRaises(ValueError):
            hash_password("   ")


if __name__ == "__main__":
    unittest.main()
