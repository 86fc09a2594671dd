"""
Storage module for Tax Copilot.

This module provides persistence for everything outside the search index:
- Local blob storage for uploaded document bytes
- SQLite database client and schema
- Document and audit log repositories
"""

from tax_copilot.storage.blob_storage import LocalBlobStorage
from tax_copilot.storage.database import SqliteDatabase
from tax_copilot.storage.repositories import (
    SqliteAuditLogRepository,
    SqliteDocumentRepository,
)

__all__ = [
    "LocalBlobStorage",
    "SqliteDatabase",
    "SqliteAuditLogRepository",
    "SqliteDocumentRepository",
]
