"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header

from prayer_army.auth import AdminSession, SessionManager
from prayer_army.config import get_settings
from prayer_army.desk import RequestDesk
from prayer_army.errors import PermissionDeniedError
from prayer_army.gateway import BackendGateway, InMemoryGateway, SqlGateway
from prayer_army.roster import FellowshipRoster
from prayer_army.storage import InMemoryStorageClient, S3StorageClient, StorageClient
from prayer_army.store import EntityStore
from prayer_army.submission import SubmissionPipeline
from prayer_army.tracker import CompletionTracker
from prayer_army.types import AttachmentKind

_gateway: BackendGateway | None = None
_storage_client: StorageClient | None = None
_session_manager: SessionManager | None = None


def get_gateway() -> BackendGateway:
    """
    Return a singleton gateway so state persists across requests.
    """
    global _gateway
    if _gateway:
        return _gateway

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        _gateway = InMemoryGateway()
    else:
        _gateway = SqlGateway(settings.database_url)
    return _gateway


def get_storage_client() -> StorageClient:
    global _storage_client
    if _storage_client:
        return _storage_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.s3_endpoint:
        _storage_client = InMemoryStorageClient(
            base_url=settings.storage_public_base_url
        )
    else:
        _storage_client = S3StorageClient(
            public_base_url=settings.storage_public_base_url,
            region=settings.s3_region or "",
            endpoint=settings.s3_endpoint,
            access_key_id=settings.aws_access_key_id,
            secret_access_key=settings.aws_secret_access_key,
        )
    return _storage_client


def get_session_manager() -> SessionManager:
    global _session_manager
    if _session_manager:
        return _session_manager

    settings = get_settings()
    _session_manager = SessionManager(
        admin_email=settings.admin_email,
        admin_password_hash=settings.admin_password_hash,
        ttl_seconds=settings.session_ttl_seconds,
    )
    return _session_manager


def get_store(gateway: BackendGateway = Depends(get_gateway)) -> EntityStore:
    return EntityStore(gateway)


def get_tracker(
    store: EntityStore = Depends(get_store),
    sessions: SessionManager = Depends(get_session_manager),
) -> CompletionTracker:
    return CompletionTracker(store, sessions)


def get_desk(
    store: EntityStore = Depends(get_store),
    sessions: SessionManager = Depends(get_session_manager),
) -> RequestDesk:
    return RequestDesk(store, sessions)


def get_roster(
    store: EntityStore = Depends(get_store),
    sessions: SessionManager = Depends(get_session_manager),
) -> FellowshipRoster:
    return FellowshipRoster(store, sessions)


def get_submission_pipeline(
    store: EntityStore = Depends(get_store),
    storage: StorageClient = Depends(get_storage_client),
) -> SubmissionPipeline:
    settings = get_settings()
    return SubmissionPipeline(
        store,
        storage,
        buckets={
            AttachmentKind.VOICE: settings.voice_bucket,
            AttachmentKind.IMAGE: settings.image_bucket,
            AttachmentKind.DOCUMENT: settings.document_bucket,
        },
        max_attachment_bytes=settings.max_attachment_bytes,
    )


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_optional_session(
    authorization: Optional[str] = Header(None),
    sessions: SessionManager = Depends(get_session_manager),
) -> Optional[AdminSession]:
    """The caller's session, or None when absent, unknown or expired."""
    token = _bearer_token(authorization)
    if token is None:
        return None
    try:
        return sessions.resolve(token)
    except PermissionDeniedError:
        return None


def get_admin_session(
    authorization: Optional[str] = Header(None),
    sessions: SessionManager = Depends(get_session_manager),
) -> AdminSession:
    """Resolve the bearer token; raises PermissionDeniedError when invalid."""
    return sessions.resolve(_bearer_token(authorization))
