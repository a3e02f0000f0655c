"""
Daily Devotional - Object Storage

Upload narration audio and subtitle documents and return their public URLs.
- S3Storage: any S3-compatible bucket (AWS S3, Backblaze B2, R2) via boto3
- LocalStorage: a directory on disk, for development
"""

import asyncio
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from core.constants import STORAGE_CACHE_CONTROL
from core.logging import get_logger
from core.models import StorageConfig

logger = get_logger(__name__)


class StorageError(RuntimeError):
    """Raised when an upload fails."""


def build_storage_key(category: str, date: str, code: str, ext: str) -> str:
    """Deterministic object key: <category>/<date>/<code>.<ext>."""
    return f"{category}/{date}/{code}.{ext.lstrip('.')}"


def _to_bytes(data: Union[bytes, str]) -> bytes:
    return data.encode("utf-8") if isinstance(data, str) else data


class ObjectStorage(ABC):
    """Abstract base class for upload targets."""

    @abstractmethod
    async def upload(self, data: Union[bytes, str], key: str, content_type: str) -> str:
        """
        Upload bytes or text under key.

        Returns:
            Public URL of the stored object

        Raises:
            StorageError: If the upload fails
        """
        pass


class S3Storage(ObjectStorage):
    """S3-compatible bucket with objects served from a public base URL."""

    def __init__(self, config: StorageConfig, client=None):
        self.bucket = config.bucket
        self.public_base_url = config.public_base_url.rstrip("/")
        self.region = config.region
        self.client = client or boto3.client(
            "s3",
            endpoint_url=config.endpoint_url or None,
            aws_access_key_id=config.access_key_id,
            aws_secret_access_key=config.secret_access_key,
            region_name=config.region or None,
        )

    def public_url(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url}/{key}"
        if self.region:
            return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"
        return f"https://{self.bucket}.s3.amazonaws.com/{key}"

    def _put(self, body: bytes, key: str, content_type: str) -> None:
        self.client.put_object(
            Bucket=self.bucket,
            Key=key,
            Body=body,
            ContentType=content_type,
            CacheControl=STORAGE_CACHE_CONTROL,
        )

    async def upload(self, data: Union[bytes, str], key: str, content_type: str) -> str:
        body = _to_bytes(data)
        try:
            await asyncio.to_thread(self._put, body, key, content_type)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error uploading {key} to bucket {self.bucket}: {e}")
            raise StorageError(f"Upload failed for {key}: {e}") from e

        url = self.public_url(key)
        logger.debug(f"Uploaded {len(body)} bytes to {url}")
        return url


class LocalStorage(ObjectStorage):
    """Write objects under a local directory."""

    def __init__(self, root: Path, public_base_url: str = ""):
        self.root = Path(root)
        self.public_base_url = public_base_url.rstrip("/")

    async def upload(self, data: Union[bytes, str], key: str, content_type: str) -> str:
        path = self.root / key
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(_to_bytes(data))
        except OSError as e:
            raise StorageError(f"Upload failed for {key}: {e}") from e

        if self.public_base_url:
            return f"{self.public_base_url}/{key}"
        return path.resolve().as_uri()


def build_storage(config: StorageConfig) -> Optional[ObjectStorage]:
    """Create the configured storage backend, or None when uploads are not configured."""
    if not config.is_configured():
        logger.warning(f"Storage backend '{config.backend}' is not configured, uploads disabled")
        return None

    if config.backend == "local":
        return LocalStorage(Path(config.local_path), config.public_base_url)
    return S3Storage(config)
