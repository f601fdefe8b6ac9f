"""
Object storage for prayer request attachments (S3-compatible and in-memory).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol, Set
import logging

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from prayer_army.errors import BackendError

logger = logging.getLogger(__name__)


class StorageClient(Protocol):
    """Defines the operations the service needs from object storage."""

    def upload(self, bucket: str, key: str, data: bytes, content_type: str) -> str:
        """Store ``data`` and return a publicly fetchable URL."""
        ...

    def delete(self, bucket: str, key: str) -> None:
        ...


@dataclass
class InMemoryStorageClient:
    """Test double for storage interactions."""

    base_url: str = "https://example.test/storage"
    stored_objects: Dict[tuple[str, str], bytes] = field(default_factory=dict)
    content_types: Dict[tuple[str, str], str] = field(default_factory=dict)
    # Uploads into these buckets raise BackendError.
    failing_buckets: Set[str] = field(default_factory=set)

    def upload(self, bucket: str, key: str, data: bytes, content_type: str) -> str:
        if bucket in self.failing_buckets:
            raise BackendError(f"Upload to {bucket} failed")
        if (bucket, key) in self.stored_objects:
            raise BackendError(f"{bucket}/{key} already exists")
        self.stored_objects[(bucket, key)] = bytes(data)
        self.content_types[(bucket, key)] = content_type
        return f"{self.base_url}/{bucket}/{key}"

    def delete(self, bucket: str, key: str) -> None:
        self.stored_objects.pop((bucket, key), None)
        self.content_types.pop((bucket, key), None)

    def reset(self) -> None:
        self.stored_objects.clear()
        self.content_types.clear()
        self.failing_buckets.clear()


@dataclass
class S3StorageClient:
    """
    Storage client for any S3-compatible endpoint. Objects are served from
    ``public_base_url``/<bucket>/<key>, so the buckets must allow public reads.
    """

    public_base_url: str
    region: str = ""
    endpoint: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    cache_control: str = "max-age=3600"

    def __post_init__(self):
        config = Config(signature_version="s3v4")
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint or None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            config=config,
        )

    def public_url(self, bucket: str, key: str) -> str:
        return f"{self.public_base_url.rstrip('/')}/{bucket}/{key}"

    def upload(self, bucket: str, key: str, data: bytes, content_type: str) -> str:
        try:
            self._client.put_object(
                Bucket=bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
                CacheControl=self.cache_control,
            )
        except (BotoCoreError, ClientError) as exc:
            logger.exception("Upload of %s/%s failed", bucket, key)
            raise BackendError(f"Upload to {bucket} failed") from exc
        return self.public_url(bucket, key)

    def delete(self, bucket: str, key: str) -> None:
        try:
            self._client.delete_object(Bucket=bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            logger.exception("Delete of %s/%s failed", bucket, key)
            raise BackendError(f"Delete from {bucket} failed") from exc
