"""
Shared enums for prayer requests, submissions and voice capture.
"""

from __future__ import annotations

from enum import Enum


class RequestStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class SubmissionState(str, Enum):
    DRAFT = "draft"
    UPLOADING = "uploading"
    PERSISTED = "persisted"
    FAILED = "failed"


class RecordingState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    STOPPED = "stopped"


class AttachmentKind(str, Enum):
    VOICE = "voice"
    IMAGE = "image"
    DOCUMENT = "document"


class View(str, Enum):
    SUBMISSION = "submission"
    ADMIN_LOGIN = "admin_login"
    ADMIN_DASHBOARD = "admin_dashboard"
