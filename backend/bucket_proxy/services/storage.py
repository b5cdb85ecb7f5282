import asyncio
import io
import logging
from pathlib import Path
from typing import Any, Final
from urllib.parse import quote

import boto3
from boto3.s3.transfer import TransferConfig
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from bucket_proxy.core.config import Settings
from bucket_proxy.schemas import ObjectDescriptor

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when the object store rejects or fails an operation."""


class StorageService:
    """Default S3-compatible storage backend."""

    scheme: Final[str] = "s3"

    def __init__(self, settings: Settings, client: Any | None = None) -> None:
        self.settings = settings
        if client is None:
            session = boto3.session.Session(profile_name=settings.aws_profile)
            client = session.client(
                "s3",
                endpoint_url=str(settings.s3_endpoint) if settings.s3_endpoint else None,
                aws_access_key_id=settings.s3_access_key,
                aws_secret_access_key=settings.s3_secret_key,
                region_name=settings.s3_region,
                config=Config(
                    signature_version="s3v4",
                    s3={"addressing_style": settings.s3_addressing_style},
                ),
            )
        self.client = client
        self.transfer_config = TransferConfig(
            multipart_threshold=settings.multipart_threshold,
            multipart_chunksize=settings.multipart_chunksize,
            max_concurrency=settings.max_concurrency,
        )

    def object_url(self, bucket: str, key: str) -> str:
        endpoint = self.client.meta.endpoint_url.rstrip("/")
        return f"{endpoint}/{bucket}/{quote(key)}"

    async def list_objects(self, bucket: str) -> list[ObjectDescriptor]:
        def _list() -> list[ObjectDescriptor]:
            objects: list[ObjectDescriptor] = []
            paginator = self.client.get_paginator("list_objects")
            for page in paginator.paginate(Bucket=bucket):
                for item in page.get("Contents", []):
                    objects.append(ObjectDescriptor(key=item["Key"], size=item["Size"]))
            return objects

        try:
            return await asyncio.to_thread(_list)
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(str(exc)) from exc

    async def upload_bytes(self, bucket: str, key: str, data: bytes) -> str:
        def _upload() -> None:
            self.client.upload_fileobj(
                io.BytesIO(data),
                bucket,
                key,
                Config=self.transfer_config,
            )

        try:
            await asyncio.to_thread(_upload)
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(str(exc)) from exc
        return self.object_url(bucket, key)

    async def object_size(self, bucket: str, key: str) -> int:
        try:
            response = await asyncio.to_thread(
                self.client.head_object, Bucket=bucket, Key=key
            )
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(str(exc)) from exc
        return int(response.get("ContentLength", 0))

    async def download_bytes(self, bucket: str, key: str) -> bytes:
        buffer = io.BytesIO()

        def _download() -> None:
            self.client.download_fileobj(
                bucket,
                key,
                buffer,
                Config=self.transfer_config,
            )

        try:
            await asyncio.to_thread(_download)
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(str(exc)) from exc
        return buffer.getvalue()


class LocalStorageService(StorageService):
    """Local filesystem storage intended for development use.

    Every bucket is a directory below ``local_storage_dir``.
    """

    scheme: Final[str] = "local"

    def __init__(self, settings: Settings) -> None:  # type: ignore[override]
        self.settings = settings
        self.base_path = Path(settings.local_storage_dir).resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _bucket_path(self, bucket: str) -> Path:
        if not bucket or Path(bucket).name != bucket or bucket in {".", ".."}:
            raise StorageError(f"InvalidBucketName: invalid bucket name {bucket!r}")
        return self.base_path / bucket

    def _key_path(self, bucket: str, key: str) -> Path:
        root = self._bucket_path(bucket).resolve()
        # Prevent directory traversal by resolving inside the bucket
        candidate = root.joinpath(*Path(key).parts).resolve()
        if not key or not candidate.is_relative_to(root) or candidate == root:
            raise StorageError(f"InvalidKey: invalid object key {key!r}")
        return candidate

    def _existing_bucket(self, bucket: str) -> Path:
        path = self._bucket_path(bucket)
        if not path.is_dir():
            raise StorageError(f"NoSuchBucket: the specified bucket does not exist: {bucket}")
        return path

    def object_url(self, bucket: str, key: str) -> str:  # type: ignore[override]
        return self._key_path(bucket, key).as_uri()

    async def list_objects(self, bucket: str) -> list[ObjectDescriptor]:  # type: ignore[override]
        root = self._existing_bucket(bucket)

        def _list() -> list[ObjectDescriptor]:
            return [
                ObjectDescriptor(key=path.relative_to(root).as_posix(), size=path.stat().st_size)
                for path in sorted(root.rglob("*"))
                if path.is_file()
            ]

        return await asyncio.to_thread(_list)

    async def upload_bytes(self, bucket: str, key: str, data: bytes) -> str:  # type: ignore[override]
        self._existing_bucket(bucket)
        target = self._key_path(bucket, key)

        def _write() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)

        await asyncio.to_thread(_write)
        return target.as_uri()

    async def object_size(self, bucket: str, key: str) -> int:  # type: ignore[override]
        self._existing_bucket(bucket)
        path = self._key_path(bucket, key)
        if not path.is_file():
            raise StorageError(f"NotFound: no such key {key!r} in bucket {bucket}")
        return path.stat().st_size

    async def download_bytes(self, bucket: str, key: str) -> bytes:  # type: ignore[override]
        self._existing_bucket(bucket)
        path = self._key_path(bucket, key)
        if not path.is_file():
            raise StorageError(f"NoSuchKey: the specified key does not exist: {key}")
        return await asyncio.to_thread(path.read_bytes)


def create_storage_service(settings: Settings) -> StorageService:
    if settings.storage_backend == "local":
        service: StorageService = LocalStorageService(settings)
    elif settings.storage_backend == "s3":
        service = StorageService(settings)
    else:
        raise ValueError(f"Unknown storage backend: {settings.storage_backend}")
    logger.info("Initialized %s storage backend", service.scheme)
    return service
