"""
Object storage abstraction for S3-compatible buckets and in-memory testing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from cafe_backend.errors import UploadError


class StorageClient(Protocol):
    """Defines the operations the API needs from object storage."""

    def upload_bytes(self, path: str, data: bytes, content_type: str) -> str:
        """Store ``data`` under ``path`` and return its public URL."""
        ...

    def public_url(self, path: str) -> str:
        ...

    def get_bytes(self, path: str) -> bytes:
        ...


@dataclass
class InMemoryStorageClient:
    """Test double for storage interactions."""

    base_url: str = "https://example.test/storage"
    bucket: str = "cafe-uploads"
    stored_objects: dict = None
    fail_uploads: bool = False

    def __post_init__(self):
        if self.stored_objects is None:
            self.stored_objects = {}

    def reset(self) -> None:
        self.stored_objects.clear()
        self.fail_uploads = False

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/{self.bucket}/{path}"

    def upload_bytes(self, path: str, data: bytes, content_type: str) -> str:
        if self.fail_uploads:
            raise UploadError("Storage is unavailable")
        self.stored_objects[path] = (bytes(data), content_type)
        return self.public_url(path)

    def get_bytes(self, path: str) -> bytes:
        stored = self.stored_objects.get(path)
        if stored is None:
            raise FileNotFoundError(path)
        return stored[0]


@dataclass
class S3StorageClient:
    """
    S3-compatible storage client for the hosted bucket.
    """

    bucket: str
    region: str
    endpoint: str
    access_key_id: str
    secret_access_key: str
    public_base_url: Optional[str] = None

    def __post_init__(self):
        config = Config(
            s3={"addressing_style": "path"},
            signature_version="s3v4",
        )
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint or None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            config=config,
        )

    def public_url(self, path: str) -> str:
        base = (self.public_base_url or self.endpoint).rstrip("/")
        return f"{base}/{self.bucket}/{path}"

    def upload_bytes(self, path: str, data: bytes, content_type: str) -> str:
        try:
            self._client.put_object(
                Bucket=self.bucket,
                Key=path,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as exc:
            raise UploadError(str(exc)) from exc
        return self.public_url(path)

    def get_bytes(self, path: str) -> bytes:
        response = self._client.get_object(Bucket=self.bucket, Key=path)
        return response["Body"].read()
