"""
Document service: upload, lookup and listing of stored tax documents.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from tax_copilot.core.interfaces import BlobStorage, DocumentRepository, TextExtractor
from tax_copilot.domain.models import Document
from tax_copilot.domain.status import DocumentStatus
from tax_copilot.storage.repositories import utc_now
from tax_copilot.utils.exceptions import UnsupportedFormatError, ValidationError
from tax_copilot.utils.logging import LoggerMixin


class DocumentService(LoggerMixin):
    """
    Stores uploaded documents and their records.

    A new document starts in ``Uploaded`` status; ingestion is triggered
    separately through ``IngestionPipeline``.
    """

    def __init__(
        self,
        repository: DocumentRepository,
        blob_storage: BlobStorage,
        extractor: TextExtractor,
        max_file_size_bytes: int | None = None,
    ) -> None:
        self.repository = repository
        self.blob_storage = blob_storage
        self.extractor = extractor
        self.max_file_size_bytes = max_file_size_bytes

    async def upload(
        self,
        data: bytes,
        file_name: str,
        content_type: str,
        title: str,
        jurisdiction: str,
        tax_type: str,
        version: str,
        uploaded_by: str,
        effective_date: Optional[datetime] = None,
    ) -> Document:
        """
        Store a document and create its record.

        Raises:
            ValidationError: The file is empty or larger than allowed.
            UnsupportedFormatError: No extractor handles the file type.
        """
        if not data:
            raise ValidationError("No file provided")
        if self.max_file_size_bytes is not None and len(data) > self.max_file_size_bytes:
            raise ValidationError(
                "File too large",
                details={"size": len(data), "max_size": self.max_file_size_bytes},
            )
        if not self.extractor.supports_file_type(file_name):
            raise UnsupportedFormatError(file_name)

        self.logger.info("Uploading document", file_name=file_name, size=len(data))

        document_id = str(uuid.uuid4())
        blob_path = await self.blob_storage.upload(document_id, file_name, data)

        now = utc_now()
        document = Document(
            document_id=document_id,
            title=title,
            file_name=file_name,
            blob_path=blob_path,
            content_type=content_type,
            file_size_bytes=len(data),
            jurisdiction=jurisdiction,
            tax_type=tax_type,
            version=version,
            effective_date=effective_date,
            uploaded_by=uploaded_by,
            created_at=now,
            updated_at=now,
            status=DocumentStatus.UPLOADED,
        )
        await self.repository.create(document)

        self.logger.info("Document uploaded", document_id=document_id)
        return document

    async def get_document(self, document_id: str) -> Optional[Document]:
        return await self.repository.get_by_id(document_id)

    async def list_documents(self) -> list[Document]:
        return await self.repository.get_all()
