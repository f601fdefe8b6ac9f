"""
Configuration and settings for the prayer request service.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")

    # Relational store (Postgres expected, any SQLAlchemy URL works)
    database_url: Optional[str] = Field(default=None)

    # S3-compatible object storage
    s3_endpoint: Optional[str] = Field(default=None)
    s3_region: Optional[str] = Field(default=None)
    aws_access_key_id: Optional[str] = Field(default=None)
    aws_secret_access_key: Optional[str] = Field(default=None)
    storage_public_base_url: str = Field(default="https://storage.example.test")
    voice_bucket: str = Field(default="prayer-voice-recordings")
    image_bucket: str = Field(default="prayer-images")
    document_bucket: str = Field(default="prayer-documents")
    max_attachment_bytes: int = Field(default=10 * 1024 * 1024, gt=0)

    # Admin accounts
    admin_email: Optional[str] = Field(default=None)
    # pbkdf2_sha256$<iterations>$<salt hex>$<digest hex>, see auth.hash_password
    admin_password_hash: Optional[str] = Field(default=None)
    session_ttl_seconds: int = Field(default=8 * 60 * 60, gt=0)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
