# tests/conftest.py
import io
import os
from typing import AsyncGenerator, Dict, List, Optional, Sequence, Tuple

# Settings are read at import time, so the environment is prepared before the package is imported
TEST_ENV = {
    "PROJECT_NAME": "Memory Vault Test",
    "API_PREFIX": "/api",
    "LOG_LEVEL": "DEBUG",
    "ENVIRONMENT": "test",
    "MONGODB_URI": "mongodb://localhost:27017/memory_vault_test",
    "CLOUDINARY_CLOUD_NAME": "test-cloud",
    "CLOUDINARY_API_KEY": "test-key",
    "CLOUDINARY_API_SECRET": "test-secret",
    "MEDIA_FOLDER": "memories",
}
os.environ.update(TEST_ENV)

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from mongomock_motor import AsyncMongoMockClient
from PIL import Image

from memory_vault.core.exceptions import UploadError, DeleteError
from memory_vault.services.media_store import (
    MediaStore,
    StoredImage,
    SUPPORTED_IMAGE_FORMATS,
    ensure_supported_format,
)


class FakeMediaStore(MediaStore):
    """In-memory media host that records every call in order."""

    def __init__(self):
        self.calls: List[Tuple[str, Optional[str]]] = []
        self.blobs: Dict[str, bytes] = {}
        self.fail_store = False
        self.fail_remove = False
        self._counter = 0

    async def store(
        self,
        blob: bytes,
        allowed_formats: Sequence[str] = SUPPORTED_IMAGE_FORMATS,
        filename: Optional[str] = None,
    ) -> StoredImage:
        if self.fail_store:
            self.calls.append(("store", None))
            raise UploadError("simulated upload failure")
        try:
            image_format = ensure_supported_format(blob, allowed_formats)
        except UploadError:
            self.calls.append(("store", None))
            raise
        self._counter += 1
        public_id = f"memories/img{self._counter}"
        self.blobs[public_id] = blob
        self.calls.append(("store", public_id))
        return StoredImage(url=f"https://media.test/{public_id}.{image_format}", public_id=public_id)

    async def remove(self, public_id: str) -> bool:
        self.calls.append(("remove", public_id))
        if self.fail_remove:
            raise DeleteError("simulated delete failure", public_id=public_id)
        return self.blobs.pop(public_id, None) is not None


def make_image(image_format: str = "PNG", color: str = "red") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (4, 4), color=color).save(buffer, format=image_format)
    return buffer.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return make_image("PNG")


@pytest.fixture
def gif_bytes() -> bytes:
    return make_image("GIF", color="blue")


@pytest.fixture
def media_store() -> FakeMediaStore:
    return FakeMediaStore()


@pytest_asyncio.fixture
async def db_client():
    client = AsyncMongoMockClient()
    return client[f"test_db_{os.urandom(4).hex()}"]


@pytest_asyncio.fixture
async def test_client(db_client, media_store) -> AsyncGenerator[AsyncClient, None]:
    from memory_vault.main import create_app
    from memory_vault.core.database import get_database
    from memory_vault.services.media_store import get_media_store

    app = create_app()

    async def override_database():
        return db_client

    async def override_media_store():
        return media_store

    app.dependency_overrides[get_database] = override_database
    app.dependency_overrides[get_media_store] = override_media_store

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        yield client
