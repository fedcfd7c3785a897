"""
SQLAlchemy models
"""

from .blob_store import StoredBlob

__all__ = ["StoredBlob"]
