"""Shared fixtures for the test suite."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from prayer_army.auth import SessionManager, hash_password
from prayer_army.gateway import InMemoryGateway
from prayer_army.store import EntityStore

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "let-me-in"
# Low iteration count keeps the suite fast.
ADMIN_PASSWORD_HASH = hash_password(ADMIN_PASSWORD, salt=b"0123456789abcdef", iterations=1000)


class TickingClock:
    """Returns a strictly increasing time on every call."""

    def __init__(self, start: datetime | None = None, step: timedelta = timedelta(seconds=1)):
        self.now = start or datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)
        self.step = step

    def __call__(self) -> datetime:
        self.now += self.step
        return self.now


def make_sessions(clock=None) -> SessionManager:
    kwargs = {"clock": clock} if clock else {}
    return SessionManager(ADMIN_EMAIL, ADMIN_PASSWORD_HASH, ttl_seconds=3600, **kwargs)


def make_store(gateway=None) -> EntityStore:
    return EntityStore(gateway or InMemoryGateway(), clock=TickingClock())
