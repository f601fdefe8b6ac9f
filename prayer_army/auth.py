"""
Admin sign-in and explicit session objects.

Every admin operation receives the caller's ``AdminSession`` and checks it
with ``SessionManager.require`` before touching the store.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from prayer_army.errors import PermissionDeniedError
from prayer_army.store import utcnow

logger = logging.getLogger(__name__)

HASH_ALGORITHM = "pbkdf2_sha256"
DEFAULT_ITERATIONS = 310_000


def hash_password(
    password: str, salt: Optional[bytes] = None, iterations: int = DEFAULT_ITERATIONS
) -> str:
    """Return ``pbkdf2_sha256$<iterations>$<salt hex>$<digest hex>``."""
    salt = salt if salt is not None else secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return f"{HASH_ALGORITHM}${iterations}${salt.hex()}${digest.hex()}"


def verify_password(password: str, encoded: str) -> bool:
    try:
        algorithm, iterations, salt_hex, _ = encoded.split("$")
        if algorithm != HASH_ALGORITHM:
            return False
        expected = hash_password(password, bytes.fromhex(salt_hex), int(iterations))
    except ValueError:
        logger.warning("Malformed admin password hash in settings")
        return False
    return hmac.compare_digest(expected, encoded)


@dataclass(frozen=True)
class AdminSession:
    token: str
    email: str
    issued_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


class SessionManager:
    """Issues, validates and revokes admin sessions for configured admins."""

    def __init__(
        self,
        admin_email: Optional[str],
        admin_password_hash: Optional[str],
        ttl_seconds: int = 8 * 60 * 60,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.admin_email = (admin_email or "").strip().lower() or None
        self.admin_password_hash = admin_password_hash
        self.ttl = timedelta(seconds=ttl_seconds)
        self.clock = clock
        self._sessions: Dict[str, AdminSession] = {}

    def sign_in(self, email: str, password: str) -> AdminSession:
        if not self.admin_email or not self.admin_password_hash:
            raise PermissionDeniedError("Admin sign-in is not configured.")
        email_ok = hmac.compare_digest(
            (email or "").strip().lower().encode("utf-8"),
            self.admin_email.encode("utf-8"),
        )
        password_ok = verify_password(password or "", self.admin_password_hash)
        if not (email_ok and password_ok):
            logger.info("Rejected admin sign-in for %s", email)
            raise PermissionDeniedError("Invalid email or password.")
        now = self.clock()
        self._sessions = {
            token: known for token, known in self._sessions.items() if not known.is_expired(now)
        }
        session = AdminSession(
            token=secrets.token_urlsafe(32),
            email=self.admin_email,
            issued_at=now,
            expires_at=now + self.ttl,
        )
        self._sessions[session.token] = session
        logger.info("Admin %s signed in", session.email)
        return session

    def resolve(self, token: Optional[str]) -> AdminSession:
        """Look up the session behind a bearer token."""
        session = self._sessions.get(token or "")
        return self.require(session)

    def require(self, session: Optional[AdminSession]) -> AdminSession:
        if session is None:
            raise PermissionDeniedError("Please sign in as an admin.")
        known = self._sessions.get(session.token)
        if known is None or known != session:
            raise PermissionDeniedError("Your session is no longer valid. Please sign in again.")
        if known.is_expired(self.clock()):
            self._sessions.pop(known.token, None)
            raise PermissionDeniedError("Your session has expired. Please sign in again.")
        return known

    def sign_out(self, session: AdminSession) -> None:
        self._sessions.pop(session.token, None)
        logger.info("Admin %s signed out", session.email)
