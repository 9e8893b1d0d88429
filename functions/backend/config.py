"""
Configuration and settings for the restaurants backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")
    log_level: str = Field(default="INFO", env="LOG_LEVEL")

    # Firebase
    firebase_project_id: Optional[str] = Field(
        default=None, env="FIREBASE_PROJECT_ID"
    )
    firebase_storage_bucket: Optional[str] = Field(
        default=None, env="FIREBASE_STORAGE_BUCKET"
    )
    # Holds the Firebase ID token for server-rendered requests.
    session_cookie_name: str = Field(default="__session", env="SESSION_COOKIE_NAME")

    # Image storage: Cloud Storage for Firebase, S3-compatible, or in-memory.
    storage_backend: Literal["firebase", "s3", "memory"] = Field(
        default="firebase", env="STORAGE_BACKEND"
    )
    s3_endpoint: Optional[str] = Field(default=None, env="S3_ENDPOINT")
    s3_region: Optional[str] = Field(default=None, env="S3_REGION")
    s3_bucket: Optional[str] = Field(default=None, env="S3_BUCKET")
    s3_public_base_url: Optional[str] = Field(default=None, env="S3_PUBLIC_BASE_URL")
    aws_access_key_id: Optional[str] = Field(
        default=None, env="AWS_ACCESS_KEY_ID"
    )
    aws_secret_access_key: Optional[str] = Field(
        default=None, env="AWS_SECRET_ACCESS_KEY"
    )

    # LLM / Gemini
    gemini_api_key: Optional[str] = Field(default=None, env="GEMINI_API_KEY")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
