"""
Key-value blob storage and report repositories
"""

from .blob_store import BlobStore, MemoryBlobStore, SqlBlobStore
from .repositories import (
    REPORT_FILES_KEY,
    REPORTS_KEY,
    ReportFileRepository,
    ReportRepository,
)

__all__ = [
    "BlobStore",
    "MemoryBlobStore",
    "SqlBlobStore",
    "REPORTS_KEY",
    "REPORT_FILES_KEY",
    "ReportRepository",
    "ReportFileRepository",
]
