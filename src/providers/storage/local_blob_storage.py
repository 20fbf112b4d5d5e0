"""Local filesystem blob storage.

Each upload is written to ``<root>/<uuid>/<sanitised file name>``; the
relative path is returned as the document's source location.  File I/O
runs in a worker thread so large uploads don't block the event loop.
"""

from __future__ import annotations

import asyncio
import re
import uuid
from pathlib import Path

import structlog

from src.interfaces.blob_storage import IBlobStorage
from src.utils.errors import DocumentNotFoundError, StoreWriteError

logger = structlog.get_logger(logger_name=__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class LocalBlobStorage(IBlobStorage):
    """Blob storage rooted at a local directory."""

    def __init__(self, root_dir: str | Path = "data/blobs") -> None:
        self._root = Path(root_dir)

    async def put(self, file_name: str, data: bytes) -> str:
        safe_name = _UNSAFE_CHARS.sub("_", Path(file_name).name).strip("._") or "upload"
        location = f"{uuid.uuid4()}/{safe_name}"
        path = self._root / location
        try:
            await asyncio.to_thread(self._write, path, data)
        except OSError as exc:
            raise StoreWriteError(
                message=f"Could not store {file_name}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.info("blob_stored", location=location, size=len(data))
        return location

    async def get(self, source_location: str) -> bytes:
        path = self._resolve(source_location)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError as exc:
            raise DocumentNotFoundError(
                message=f"No stored file at {source_location}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def delete(self, source_location: str) -> None:
        path = self._resolve(source_location)
        await asyncio.to_thread(self._remove, path)
        logger.info("blob_deleted", location=source_location)

    def get_provider_name(self) -> str:
        return "local_blob"

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _resolve(self, source_location: str) -> Path:
        path = (self._root / source_location).resolve()
        if not path.is_relative_to(self._root.resolve()):
            raise DocumentNotFoundError(
                message=f"Source location {source_location} is outside blob storage",
                provider_name=self.get_provider_name(),
            )
        return path

    @staticmethod
    def _write(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    @staticmethod
    def _remove(path: Path) -> None:
        path.unlink(missing_ok=True)
        try:
            path.parent.rmdir()
        except OSError:
            pass  # directory not empty or already gone
