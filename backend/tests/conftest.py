import importlib
import os
import sys
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

# Ensure project root is on sys.path
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from bucket_proxy.core.config import Settings, get_settings
from bucket_proxy.schemas import ObjectDescriptor
from bucket_proxy.services import storage as storage_service


class DummyStorage(storage_service.StorageService):
    """In-memory object store that records every call it receives."""

    def __init__(self) -> None:  # type: ignore[super-init-not-called]
        self.objects: dict[str, dict[str, bytes]] = {}
        self.calls: list[tuple] = []
        self.error: str | None = None

    def _fail_if_configured(self) -> None:
        if self.error:
            raise storage_service.StorageError(self.error)

    def _bucket(self, bucket: str) -> dict[str, bytes]:
        if bucket not in self.objects:
            raise storage_service.StorageError(
                f"NoSuchBucket: The specified bucket does not exist: {bucket}"
            )
        return self.objects[bucket]

    async def list_objects(self, bucket):  # type: ignore[override]
        self.calls.append(("list_objects", bucket))
        self._fail_if_configured()
        return [
            ObjectDescriptor(key=key, size=len(data))
            for key, data in self._bucket(bucket).items()
        ]

    async def upload_bytes(self, bucket, key, data):  # type: ignore[override]
        self.calls.append(("upload_bytes", bucket, key, data))
        self._fail_if_configured()
        self._bucket(bucket)[key] = data
        return f"https://example.com/{bucket}/{key}"

    async def object_size(self, bucket, key):  # type: ignore[override]
        self.calls.append(("object_size", bucket, key))
        self._fail_if_configured()
        try:
            return len(self._bucket(bucket)[key])
        except KeyError:
            raise storage_service.StorageError("Not Found") from None

    async def download_bytes(self, bucket, key):  # type: ignore[override]
        self.calls.append(("download_bytes", bucket, key))
        self._fail_if_configured()
        try:
            return self._bucket(bucket)[key]
        except KeyError:
            raise storage_service.StorageError("NoSuchKey") from None


@pytest.fixture(scope="session", autouse=True)
def configure_environment():
    os.environ["STORAGE_BACKEND"] = "s3"
    os.environ["S3_ACCESS_KEY"] = "test"
    os.environ["S3_SECRET_KEY"] = "test"
    os.environ["S3_REGION"] = "us-east-1"
    os.environ.pop("DURATION", None)
    get_settings.cache_clear()


@pytest.fixture(scope="session")
def app_instance(configure_environment):
    from bucket_proxy import main as app_module

    importlib.reload(app_module)
    return app_module.app


@pytest.fixture
def storage(app_instance):
    dummy = DummyStorage()
    # ASGITransport skips lifespan, so wire state the way lifespan would
    app_instance.state.storage = dummy
    yield dummy
    app_instance.state.storage = None


@pytest.fixture
def settings(app_instance, tmp_path):
    """Per-test settings; mutate fields such as ``duration`` before requests."""
    current = Settings(
        _env_file=None,
        DURATION="5s",
        DOWNLOAD_DIR=tmp_path / "downloads",
        LOCAL_STORAGE_DIR=tmp_path / "storage",
    )
    app_instance.dependency_overrides[get_settings] = lambda: current
    yield current
    app_instance.dependency_overrides.pop(get_settings, None)


@pytest_asyncio.fixture
async def client(app_instance, storage, settings):
    transport = ASGITransport(app=app_instance)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
