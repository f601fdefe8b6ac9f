"""
Public prayer request submission: form validation, attachment uploads and
the final record write.
"""

from __future__ import annotations

import logging
import mimetypes
import os
import re
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from prayer_army.errors import (
    InvalidTransitionError,
    RecordingStateError,
    ValidationError,
)
from prayer_army.storage import StorageClient
from prayer_army.store import EntityStore, PrayerRequest
from prayer_army.types import AttachmentKind, RecordingState, SubmissionState

logger = logging.getLogger(__name__)

DOCUMENT_EXTENSIONS = (".pdf", ".doc", ".docx")
VOICE_CONTENT_TYPE = "audio/webm"

SUCCESS_MESSAGE = "Your Prayer Request Is Submitted. God will take care of it."
FAILURE_MESSAGE = "Failed to submit prayer request. Please try again."

URL_FIELDS = {
    AttachmentKind.VOICE: "voice_recording_url",
    AttachmentKind.IMAGE: "image_url",
    AttachmentKind.DOCUMENT: "document_url",
}


@dataclass(frozen=True)
class Attachment:
    kind: AttachmentKind
    data: bytes
    content_type: str
    filename: Optional[str] = None


@dataclass
class VoiceRecorder:
    """Idle -> Recording -> Stopped; a stopped take can be discarded and redone."""

    state: RecordingState = RecordingState.IDLE
    chunks: List[bytes] = field(default_factory=list)
    recording: Optional[Attachment] = None

    def start(self) -> None:
        if self.state == RecordingState.RECORDING:
            raise RecordingStateError("Already recording.")
        self.chunks = []
        self.recording = None
        self.state = RecordingState.RECORDING

    def add_chunk(self, chunk: bytes) -> None:
        if self.state != RecordingState.RECORDING:
            raise RecordingStateError("Start recording before sending audio.")
        self.chunks.append(bytes(chunk))

    def stop(self) -> Attachment:
        if self.state != RecordingState.RECORDING:
            raise RecordingStateError("Nothing is being recorded.")
        self.recording = Attachment(
            kind=AttachmentKind.VOICE,
            data=b"".join(self.chunks),
            content_type=VOICE_CONTENT_TYPE,
        )
        self.chunks = []
        self.state = RecordingState.STOPPED
        return self.recording

    def discard(self) -> None:
        if self.state == RecordingState.RECORDING:
            raise RecordingStateError("Stop recording before discarding it.")
        self.recording = None
        self.state = RecordingState.IDLE


@dataclass
class SubmissionDraft:
    name: str
    mobile_number: str
    prayer_text: Optional[str] = None
    voice: Optional[Attachment] = None
    image: Optional[Attachment] = None
    document: Optional[Attachment] = None

    def attachments(self) -> List[Attachment]:
        return [a for a in (self.voice, self.image, self.document) if a is not None]

    def validate(self, max_attachment_bytes: int) -> None:
        """Raise ValidationError for anything that would make the submission fail."""
        if not (self.name or "").strip():
            raise ValidationError("Please fill in all required fields.", field="name")
        if not (self.mobile_number or "").strip():
            raise ValidationError("Please fill in all required fields.", field="mobile_number")
        for expected, attachment in (
            (AttachmentKind.VOICE, self.voice),
            (AttachmentKind.IMAGE, self.image),
            (AttachmentKind.DOCUMENT, self.document),
        ):
            if attachment is None:
                continue
            if attachment.kind != expected:
                raise ValidationError(
                    f"Expected a {expected.value} attachment.", field=expected.value
                )
            _validate_attachment(attachment, max_attachment_bytes)


def _validate_attachment(attachment: Attachment, max_bytes: int) -> None:
    kind = attachment.kind.value
    if not attachment.data:
        raise ValidationError(f"The {kind} attachment is empty.", field=kind)
    if len(attachment.data) > max_bytes:
        raise ValidationError(
            f"The {kind} attachment is larger than {max_bytes // (1024 * 1024)} MB.",
            field=kind,
        )
    content_type = attachment.content_type or ""
    if attachment.kind == AttachmentKind.VOICE and not content_type.startswith("audio/"):
        raise ValidationError("Voice recordings must be audio.", field=kind)
    if attachment.kind == AttachmentKind.IMAGE:
        guessed, _ = mimetypes.guess_type(attachment.filename or "")
        if not (content_type.startswith("image/") or (guessed or "").startswith("image/")):
            raise ValidationError("Please choose an image file.", field=kind)
    if attachment.kind == AttachmentKind.DOCUMENT:
        if not (attachment.filename or "").lower().endswith(DOCUMENT_EXTENSIONS):
            raise ValidationError("Documents must be PDF or Word files.", field=kind)


def safe_filename(filename: str) -> str:
    base = os.path.basename(filename.replace("\\", "/"))
    return re.sub(r"[^A-Za-z0-9._-]+", "_", base).strip("._") or "file"


def object_key(request_number: str, attachment: Attachment, timestamp_ms: int) -> str:
    if attachment.kind == AttachmentKind.VOICE:
        return f"{request_number}-{timestamp_ms}.webm"
    return f"{request_number}-{timestamp_ms}-{safe_filename(attachment.filename or 'file')}"


class SubmissionPipeline:
    """
    Drives one submission through Draft -> Uploading -> Persisted | Failed.

    Either the record and every attachment persist, or nothing does: uploads
    that already succeeded are deleted again when a later step fails.
    A failed submission can be retried with ``submit``.
    """

    def __init__(
        self,
        store: EntityStore,
        storage: StorageClient,
        buckets: Dict[AttachmentKind, str],
        max_attachment_bytes: int,
        clock_ms: Callable[[], int] = lambda: int(time.time() * 1000),
    ):
        self.store = store
        self.storage = storage
        self.buckets = buckets
        self.max_attachment_bytes = max_attachment_bytes
        self.clock_ms = clock_ms
        self.state = SubmissionState.DRAFT
        self.result: Optional[PrayerRequest] = None
        self.error: Optional[Exception] = None

    @property
    def message(self) -> Optional[str]:
        if self.state == SubmissionState.PERSISTED:
            return SUCCESS_MESSAGE
        if self.state == SubmissionState.FAILED:
            return FAILURE_MESSAGE
        return None

    def submit(self, draft: SubmissionDraft) -> PrayerRequest:
        if self.state in (SubmissionState.UPLOADING, SubmissionState.PERSISTED):
            raise InvalidTransitionError("This prayer request was already submitted.")

        # Validation errors keep the draft editable; nothing is sent.
        draft.validate(self.max_attachment_bytes)

        self.state = SubmissionState.UPLOADING
        self.error = None
        uploaded: List[tuple[str, str]] = []
        try:
            request_number = self.store.generate_request_number()
            urls: Dict[str, Optional[str]] = {f: None for f in URL_FIELDS.values()}
            for attachment in draft.attachments():
                bucket = self.buckets[attachment.kind]
                key = object_key(request_number, attachment, self.clock_ms())
                urls[URL_FIELDS[attachment.kind]] = self.storage.upload(
                    bucket, key, attachment.data, attachment.content_type
                )
                uploaded.append((bucket, key))
            request = self.store.create_request(
                request_number=request_number,
                name=draft.name.strip(),
                mobile_number=draft.mobile_number.strip(),
                prayer_text=(draft.prayer_text or "").strip() or None,
                **urls,
            )
        except Exception as exc:
            logger.exception("Prayer request submission failed")
            self._discard_uploads(uploaded)
            self.state = SubmissionState.FAILED
            self.error = exc
            raise

        self.state = SubmissionState.PERSISTED
        self.result = request
        logger.info(
            "Prayer request %s submitted with %d attachment(s)",
            request.request_number,
            len(uploaded),
        )
        return request

    def _discard_uploads(self, uploaded: List[tuple[str, str]]) -> None:
        for bucket, key in uploaded:
            try:
                self.storage.delete(bucket, key)
            except Exception:
                logger.exception("Could not remove orphaned upload %s/%s", bucket, key)
