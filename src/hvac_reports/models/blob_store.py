"""
SQLAlchemy model for the key-value blob store
"""

from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.sql import func

from ..database.core import Base


class StoredBlob(Base):
    """
    One named JSON blob.

    Reports are persisted as a whole collection under a single key
    (``hvac-reports``) and the generated file index under another
    (``hvac-report-files``).
    """
    __tablename__ = "blob_store"

    key = Column(String(255), primary_key=True, doc="Blob name")
    value = Column(Text, nullable=False, doc="JSON document")
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self):
        return f"<StoredBlob(key={self.key!r}, size={len(self.value or '')})>"
