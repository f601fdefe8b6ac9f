import unittest
from datetime import timedelta

from prayer_army.auth import SessionManager, hash_password, verify_password
from prayer_army.errors import PermissionDeniedError
from prayer_army.tests.helpers import (
    ADMIN_EMAIL,
    ADMIN_PASSWORD,
    ADMIN_PASSWORD_HASH,
    TickingClock,
    make_sessions,
)


class PasswordHashTests(unittest.TestCase):
    def test_verify_roundtrip(self):
        encoded = hash_password("hunter2", iterations=1000)
        self.assertTrue(encoded.startswith("pbkdf2_sha256$1000$"))
        self.assertTrue(verify_password("hunter2", encoded))
        self.assertFalse(verify_password("hunter3", encoded))

    def test_malformed_hash_never_matches(self):
        self.assertFalse(verify_password("x", "not-a-hash"))
        self.assertFalse(verify_password("x", "md5$1$00$00"))


class SessionManagerTests(unittest.TestCase):
    def setUp(self):
        self.clock = TickingClock(step=timedelta(0))
        self.sessions = make_sessions(clock=self.clock)

    def test_sign_in_issues_session(self):
        session = self.sessions.sign_in(" Admin@Example.com ", ADMIN_PASSWORD)
        self.assertEqual(session.email, ADMIN_EMAIL)
        self.assertEqual(session.expires_at - session.issued_at, timedelta(hours=1))
        self.assertEqual(self.sessions.require(session), session)
        self.assertEqual(self.sessions.resolve(session.token), session)

    def test_bad_credentials(self):
        with self.assertRaises(PermissionDeniedError):
            self.sessions.sign_in(ADMIN_EMAIL, "wrong")
        with self.assertRaises(PermissionDeniedError):
            self.sessions.sign_in("someone@example.com", ADMIN_PASSWORD)

    def test_missing_or_unknown_session(self):
        with self.assertRaises(PermissionDeniedError):
            self.sessions.require(None)
        with self.assertRaises(PermissionDeniedError):
            self.sessions.resolve("forged-token")
        with self.assertRaises(PermissionDeniedError):
            self.sessions.resolve(None)

    def test_expired_session(self):
        session = self.sessions.sign_in(ADMIN_EMAIL, ADMIN_PASSWORD)
        self.clock.now += timedelta(hours=1)
        with self.assertRaises(PermissionDeniedError):
            self.sessions.require(session)
        # Expired sessions are forgotten.
        self.clock.now -= timedelta(hours=1)
        with self.assertRaises(PermissionDeniedError):
            self.sessions.require(session)

    def test_sign_in_forgets_expired_sessions(self):
        stale = self.sessions.sign_in(ADMIN_EMAIL, ADMIN_PASSWORD)
        self.clock.now += timedelta(hours=1)
        fresh = self.sessions.sign_in(ADMIN_EMAIL, ADMIN_PASSWORD)

        # Rewinding would revive the stale session had it been kept.
        self.clock.now -= timedelta(minutes=30)
        with self.assertRaises(PermissionDeniedError):
            self.sessions.require(stale)
        self.assertEqual(self.sessions.require(fresh), fresh)

    def test_sign_out_revokes(self):
        session = self.sessions.sign_in(ADMIN_EMAIL, ADMIN_PASSWORD)
        self.sessions.sign_out(session)
        with self.assertRaises(PermissionDeniedError):
            self.sessions.require(session)

    def test_unconfigured_admin(self):
        sessions = SessionManager(None, ADMIN_PASSWORD_HASH)
        with self.assertRaises(PermissionDeniedError):
            sessions.sign_in(ADMIN_EMAIL, ADMIN_PASSWORD)


if __name__ == "__main__":
    unittest.main()
