"""
Error taxonomy shared by the store, tracker, roster and submission flow.

Every error carries a plain-language ``message`` that is safe to show to
the person who triggered the action.
"""

from __future__ import annotations


class PrayerArmyError(Exception):
    """Base class for all service errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PrayerArmyError):
    """Required input is missing or malformed. No network call was made."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class BackendError(PrayerArmyError):
    """The external store or object storage failed a read, write or upload."""


class DuplicateRowError(BackendError):
    """A unique constraint rejected an insert."""


class NotFoundError(PrayerArmyError):
    """The referenced row does not exist (anymore)."""


class PermissionDeniedError(PrayerArmyError):
    """An admin action was attempted without a valid session."""


class InvalidTransitionError(PrayerArmyError):
    """A state change that the lifecycle does not allow, e.g. re-completing."""


class RecordingStateError(PrayerArmyError):
    """Voice recorder driven out of order (stop before start, etc.)."""


class PartialCascadeError(BackendError):
    """A cascading delete stopped part way. Repeating the call finishes it."""

    retryable = True
