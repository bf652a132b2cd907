"""
Object storage for room photos and generated images, plus remote image fetching.

Objects are addressed by an opaque storage id. URLs handed out by get_url are
signed and expire after ``signed_url_ttl_seconds``.
"""
import asyncio
import logging
import mimetypes
import uuid
from pathlib import Path
from typing import Optional, Tuple

import aiohttp

from roomwise.core.config import settings
from roomwise.core.exceptions import StorageError
from roomwise.services.auth_service import auth_service

logger = logging.getLogger(__name__)


class ObjectStorage:
    """Interface for the blob store used by handlers and workers"""

    async def store(self, data: bytes, content_type: str = "image/jpeg") -> str:
        raise NotImplementedError

    async def get_url(self, storage_id: str) -> Optional[str]:
        raise NotImplementedError

    async def delete(self, storage_id: str) -> None:
        raise NotImplementedError


class LocalObjectStorage(ObjectStorage):
    """Filesystem-backed storage served through the /api/files endpoint"""

    def __init__(self, root: str, public_base_url: str, url_ttl_seconds: int = 3600):
        self.root = Path(root)
        self.public_base_url = public_base_url.rstrip("/")
        self.url_ttl_seconds = url_ttl_seconds

    def _path(self, storage_id: str) -> Path:
        # Storage ids are generated here; reject anything that could escape the root
        if "/" in storage_id or "\\" in storage_id or storage_id.startswith("."):
            raise StorageError(f"Invalid storage id: {storage_id}")
        return self.root / storage_id

    async def store(self, data: bytes, content_type: str = "image/jpeg") -> str:
        extension = mimetypes.guess_extension(content_type) or ".bin"
        storage_id = f"{uuid.uuid4().hex}{extension}"
        path = self._path(storage_id)

        def _write():
            self.root.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)

        try:
            await asyncio.to_thread(_write)
        except OSError as e:
            raise StorageError(f"Failed to store object: {e}") from e
        logger.info(f"Stored object {storage_id} ({len(data)} bytes)")
        return storage_id

    async def get_url(self, storage_id: str) -> Optional[str]:
        try:
            path = self._path(storage_id)
        except StorageError:
            return None
        if not path.exists():
            return None
        token = auth_service.create_object_token(storage_id, self.url_ttl_seconds)
        return f"{self.public_base_url}/api/files/{storage_id}?token={token}"

    async def read(self, storage_id: str) -> Tuple[bytes, str]:
        path = self._path(storage_id)
        if not path.exists():
            raise StorageError(f"Object {storage_id} not found")
        data = await asyncio.to_thread(path.read_bytes)
        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        return data, content_type

    async def delete(self, storage_id: str) -> None:
        path = self._path(storage_id)
        try:
            await asyncio.to_thread(path.unlink, True)
        except OSError as e:
            raise StorageError(f"Failed to delete object {storage_id}: {e}") from e
        logger.info(f"Deleted object {storage_id}")


class RemoteImageFetcher:
    """Downloads images by URL (signed storage URLs or product reference images)"""

    def __init__(self, timeout: float = 60.0):
        self.timeout = timeout

    async def fetch(self, url: str) -> Tuple[bytes, str]:
        try:
            async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout)) as session:
                async with session.get(url) as response:
                    if response.status != 200:
                        raise StorageError(f"Failed to fetch image: HTTP {response.status}")
                    data = await response.read()
                    content_type = response.headers.get("Content-Type", "image/jpeg").split(";")[0]
                    return data, content_type
        except aiohttp.ClientError as e:
            raise StorageError(f"Failed to fetch image: {e}") from e


def get_storage() -> LocalObjectStorage:
    """Default storage built from settings (also used as a FastAPI dependency)"""
    return LocalObjectStorage(
        root=settings.storage_path,
        public_base_url=settings.public_base_url,
        url_ttl_seconds=settings.signed_url_ttl_seconds,
    )
