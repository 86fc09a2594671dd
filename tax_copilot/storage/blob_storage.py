"""
Local filesystem blob storage for uploaded documents.

Each document lives in its own directory named after the document id. Reads
go through the path recorded at upload when the caller has it.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from tax_copilot.core.interfaces import BlobStorage
from tax_copilot.utils.exceptions import StorageError
from tax_copilot.utils.logging import LoggerMixin


class LocalBlobStorage(BlobStorage, LoggerMixin):
    """
    Stores document bytes under ``<root>/<document_id>/<file_name>``.

    Example:
        >>> storage = LocalBlobStorage("./data/blobs")
        >>> path = await storage.upload("3f2a...", "act.pdf", data)
        >>> await storage.download("3f2a...", path) == data
        True
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    async def ensure_container(self) -> bool:
        """Create the root directory. Returns True if it did not exist yet."""
        created = not self.root.is_dir()
        self.root.mkdir(parents=True, exist_ok=True)
        self.logger.info("blob_container_ready", root=str(self.root), created=created)
        return created

    async def container_exists(self) -> bool:
        return self.root.is_dir()

    async def upload(self, document_id: str, file_name: str, data: bytes) -> str:
        """Write ``data`` and return the stored path."""
        safe_name = Path(file_name).name
        if not safe_name:
            raise StorageError("File name is empty", details={"document_id": document_id})

        directory = self.root / document_id
        path = directory / safe_name
        try:
            directory.mkdir(parents=True, exist_ok=True)
            await asyncio.to_thread(path.write_bytes, data)
        except OSError as e:
            self.logger.error("blob_upload_failed", document_id=document_id, error=str(e))
            raise StorageError(
                f"Failed to store document {document_id}",
                details={"document_id": document_id},
                cause=e,
            ) from e

        self.logger.info("blob_uploaded", document_id=document_id, size=len(data))
        return str(path)

    async def download(self, document_id: str, blob_path: str | None = None) -> bytes:
        """
        Read the stored bytes of ``document_id``.

        ``blob_path`` is the path ``upload`` returned; it must lie inside the
        document's directory. Without it the directory must hold exactly one
        file.
        """
        path = self._resolve(document_id, blob_path)

        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            self.logger.error("blob_download_failed", document_id=document_id, error=str(e))
            raise StorageError(
                f"Failed to read document {document_id}",
                details={"document_id": document_id},
                cause=e,
            ) from e

    def _resolve(self, document_id: str, blob_path: str | None) -> Path:
        directory = self.root / document_id
        details = {"document_id": document_id}

        if blob_path is not None:
            path = Path(blob_path)
            if path.resolve().parent != directory.resolve() or not path.is_file():
                raise StorageError(
                    f"No stored file at {blob_path} for document {document_id}",
                    details={**details, "blob_path": blob_path},
                )
            return path

        files = sorted(p for p in directory.iterdir() if p.is_file()) if directory.is_dir() else []
        if not files:
            raise StorageError(f"No stored file for document {document_id}", details=details)
        if len(files) > 1:
            raise StorageError(
                f"Document {document_id} has {len(files)} stored files",
                details={**details, "files": [p.name for p in files]},
            )
        return files[0]
