"""
Blob storage for restaurant images: Cloud Storage for Firebase, any
S3-compatible bucket, and an in-memory implementation for tests.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol
from urllib.parse import quote

import boto3
from botocore.config import Config
from firebase_admin import storage as firebase_storage


class StorageClient(Protocol):
    """Defines the operations the image update path needs from blob storage."""

    def upload(
        self, path: str, data: bytes, content_type: Optional[str] = None
    ) -> str:
        """Stores data at path and returns a handle (the stored path)."""
        ...

    def get_public_url(self, path: str) -> str:
        ...


@dataclass
class InMemoryStorageClient:
    """Test double for storage interactions."""

    base_url: str = "https://example.test/storage"
    stored_objects: dict = None

    def __post_init__(self):
        if self.stored_objects is None:
            self.stored_objects = {}

    def upload(
        self, path: str, data: bytes, content_type: Optional[str] = None
    ) -> str:
        self.stored_objects[path] = (bytes(data), content_type)
        return path

    def get_public_url(self, path: str) -> str:
        if path not in self.stored_objects:
            raise FileNotFoundError(path)
        return f"{self.base_url}/{quote(path)}"

    def get_bytes(self, path: str) -> bytes:
        stored = self.stored_objects.get(path)
        if stored is None:
            raise FileNotFoundError(path)
        return stored[0]


@dataclass
class FirebaseStorageClient:
    """
    Cloud Storage for Firebase, through the firebase_admin default bucket
    (or a named one).
    """

    bucket_name: Optional[str] = None
    app: object = None

    def __post_init__(self):
        self._bucket = firebase_storage.bucket(self.bucket_name, app=self.app)

    def upload(
        self, path: str, data: bytes, content_type: Optional[str] = None
    ) -> str:
        blob = self._bucket.blob(path)
        blob.upload_from_string(
            data, content_type=content_type or "application/octet-stream"
        )
        return path

    def get_public_url(self, path: str) -> str:
        blob = self._bucket.blob(path)
        blob.make_public()
        return blob.public_url


@dataclass
class CosStorageClient:
    """
    S3-compatible storage client (Tencent COS, MinIO, S3).
    """

    bucket: str
    region: str
    endpoint: str
    access_key_id: str
    secret_access_key: str
    public_base_url: Optional[str] = None

    def __post_init__(self):
        # Use virtual-hosted style addressing to satisfy COS requirements.
        config = Config(
            s3={"addressing_style": "virtual"},
            signature_version="s3v4",
        )
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint,
            region_name=self.region,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            config=config,
        )

    def upload(
        self, path: str, data: bytes, content_type: Optional[str] = None
    ) -> str:
        self._client.put_object(
            Bucket=self.bucket,
            Key=path,
            Body=data,
            ContentType=content_type or "application/octet-stream",
            ACL="public-read",
        )
        return path

    def get_public_url(self, path: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{quote(path)}"
        scheme, _, host = self.endpoint.partition("://")
        return f"{scheme}://{self.bucket}.{host.rstrip('/')}/{quote(path)}"
