"""
Blob Store

Manifesto files live outside the database. The store contract is:

    put(data, name, folder) -> StoredBlob(url, storage_id)
    delete(storage_id)        idempotent

Store calls are blocking; services go through `put_blob` / `delete_blob`,
which run them in the thread pool under a timeout and surface failures as
UnavailableError.
"""
import asyncio
import logging
import os
import re
import uuid
from dataclasses import dataclass
from pathlib import Path

from election_backend.config.settings import settings
from election_backend.errors import UnavailableError

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass(frozen=True)
class StoredBlob:
    url: str
    storage_id: str


class BlobStore:
    """Interface for manifesto file storage."""

    def put(self, data: bytes, name: str, folder: str) -> StoredBlob:
        raise NotImplementedError

    def delete(self, storage_id: str) -> None:
        raise NotImplementedError


def safe_blob_name(name: str) -> str:
    base = os.path.basename(name or "file")
    cleaned = _UNSAFE_CHARS.sub("_", base).strip("._") or "file"
    return cleaned[:120]


class LocalBlobStore(BlobStore):
    """Stores blobs under a directory and serves them from `<public_base_url>/files/`."""

    def __init__(self, root: str, public_base_url: str):
        self.root = Path(root)
        self.public_base_url = public_base_url.rstrip("/")

    def _path(self, storage_id: str) -> Path:
        path = (self.root / storage_id).resolve()
        if self.root.resolve() not in path.parents:
            raise ValueError(f"Storage id escapes blob root: {storage_id}")
        return path

    def put(self, data: bytes, name: str, folder: str) -> StoredBlob:
        storage_id = f"{folder.strip('/')}/{uuid.uuid4().hex}_{safe_blob_name(name)}"
        path = self._path(storage_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as f:
            f.write(data)
        return StoredBlob(url=f"{self.public_base_url}/files/{storage_id}", storage_id=storage_id)

    def delete(self, storage_id: str) -> None:
        path = self._path(storage_id)
        if path.exists():
            os.remove(path)


_default_store = None


def get_blob_store() -> BlobStore:
    """FastAPI dependency returning the configured store."""
    global _default_store
    if _default_store is None:
        _default_store = LocalBlobStore(settings.UPLOAD_DIR, settings.PUBLIC_BASE_URL)
    return _default_store


async def _run_bounded(func, *args):
    loop = asyncio.get_running_loop()
    return await asyncio.wait_for(
        loop.run_in_executor(None, func, *args),
        timeout=settings.BLOB_STORE_TIMEOUT_SECONDS
    )


async def put_blob(store: BlobStore, data: bytes, name: str, folder: str) -> StoredBlob:
    try:
        return await _run_bounded(store.put, data, name, folder)
    except asyncio.TimeoutError:
        logger.error(f"Blob store put timed out for {folder}/{name}")
        raise UnavailableError("File storage timed out. Please retry.")
    except OSError as e:
        logger.error(f"Blob store put failed for {folder}/{name}: {e}")
        raise UnavailableError("File storage is unavailable. Please retry.")


async def delete_blob(store: BlobStore, storage_id: str) -> None:
    try:
        await _run_bounded(store.delete, storage_id)
    except asyncio.TimeoutError:
        logger.error(f"Blob store delete timed out for {storage_id}")
        raise UnavailableError("File storage timed out. Please retry.")
    except OSError as e:
        logger.error(f"Blob store delete failed for {storage_id}: {e}")
        raise UnavailableError("File storage is unavailable. Please retry.")
