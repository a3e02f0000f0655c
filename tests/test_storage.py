"""
Tests for pipeline/storage.py
"""

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from core.models import StorageConfig
from pipeline.storage import (
    LocalStorage,
    S3Storage,
    StorageError,
    build_storage,
    build_storage_key,
)


def s3_config(**overrides) -> StorageConfig:
    values = dict(
        backend="s3",
        bucket="devotional-media",
        access_key_id="AKIA",
        secret_access_key="secret",
        public_base_url="https://cdn.example.com/",
    )
    values.update(overrides)
    return StorageConfig(**values)


class TestStorageKey:
    def test_key(self):
        assert build_storage_key("daily-content-audio", "2026-03-01", "KJV", "mp3") == "daily-content-audio/2026-03-01/KJV.mp3"
        assert build_storage_key("daily-content-audio", "2026-03-01", "KJV", ".srt") == "daily-content-audio/2026-03-01/KJV.srt"


class TestS3Storage:
    @pytest.mark.asyncio
    async def test_upload(self):
        client = MagicMock()
        storage = S3Storage(s3_config(), client=client)

        url = await storage.upload("1\n00:00:00,000 --> 00:00:01,000\nHi\n", "a/b.srt", "application/x-subrip")

        assert url == "https://cdn.example.com/a/b.srt"
        kwargs = client.put_object.call_args.kwargs
        assert kwargs["Bucket"] == "devotional-media"
        assert kwargs["Key"] == "a/b.srt"
        assert kwargs["Body"] == b"1\n00:00:00,000 --> 00:00:01,000\nHi\n"
        assert kwargs["ContentType"] == "application/x-subrip"
        assert "immutable" in kwargs["CacheControl"]

    @pytest.mark.asyncio
    async def test_client_error(self):
        client = MagicMock()
        client.put_object.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "denied"}}, "PutObject"
        )
        storage = S3Storage(s3_config(), client=client)

        with pytest.raises(StorageError, match="a/b.mp3"):
            await storage.upload(b"mp3", "a/b.mp3", "audio/mpeg")

    def test_public_url_without_base(self):
        client = MagicMock()

        regional = S3Storage(s3_config(public_base_url="", region="us-east-2"), client=client)
        plain = S3Storage(s3_config(public_base_url=""), client=client)

        assert regional.public_url("k.mp3") == "https://devotional-media.s3.us-east-2.amazonaws.com/k.mp3"
        assert plain.public_url("k.mp3") == "https://devotional-media.s3.amazonaws.com/k.mp3"


class TestLocalStorage:
    @pytest.mark.asyncio
    async def test_writes_file(self, tmp_path):
        storage = LocalStorage(tmp_path)

        url = await storage.upload(b"mp3", "daily-content-audio/2026-03-01/KJV.mp3", "audio/mpeg")

        path = tmp_path / "daily-content-audio" / "2026-03-01" / "KJV.mp3"
        assert path.read_bytes() == b"mp3"
        assert url == path.resolve().as_uri()

    @pytest.mark.asyncio
    async def test_public_base_url(self, tmp_path):
        storage = LocalStorage(tmp_path, public_base_url="http://localhost:8000/media/")

        url = await storage.upload("text", "x/y.srt", "application/x-subrip")

        assert url == "http://localhost:8000/media/x/y.srt"
        assert (tmp_path / "x" / "y.srt").read_text(encoding="utf-8") == "text"


class TestBuildStorage:
    def test_local(self, tmp_path):
        storage = build_storage(StorageConfig(backend="local", local_path=str(tmp_path)))
        assert isinstance(storage, LocalStorage)

    def test_unconfigured(self):
        assert build_storage(StorageConfig(backend="s3")) is None
        assert build_storage(StorageConfig(backend="none")) is None

    def test_s3(self):
        assert isinstance(build_storage(s3_config(region="us-east-1")), S3Storage)
