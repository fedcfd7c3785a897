"""
Key-value blob store backends

The report core never touches a storage mechanism directly; repositories talk
to a BlobStore, which holds named text blobs.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from ...models.blob_store import StoredBlob
from ...utils.errors import StorageUnavailableError

logger = logging.getLogger(__name__)


class BlobStore(ABC):
    """Named text blobs; get returns None for unknown keys"""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...


class SqlBlobStore(BlobStore):
    """
    Blob store on the ``blob_store`` table.

    Connection and driver failures surface as StorageUnavailableError so that
    callers can disable persistence without crashing the request.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def get(self, key: str) -> Optional[str]:
        try:
            async with self.session_factory() as session:
                blob = await session.get(StoredBlob, key)
                return blob.value if blob is not None else None
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Failed to read blob '{key}': {e}")
            raise StorageUnavailableError() from e

    async def set(self, key: str, value: str) -> None:
        try:
            async with self.session_factory() as session:
                await session.merge(
                    StoredBlob(key=key, value=value, updated_at=datetime.now(timezone.utc))
                )
                await session.commit()
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Failed to write blob '{key}': {e}")
            raise StorageUnavailableError() from e

    async def delete(self, key: str) -> None:
        try:
            async with self.session_factory() as session:
                blob = await session.get(StoredBlob, key)
                if blob is not None:
                    await session.delete(blob)
                    await session.commit()
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Failed to delete blob '{key}': {e}")
            raise StorageUnavailableError() from e


class MemoryBlobStore(BlobStore):
    """Process-local store for tests and ephemeral deployments"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._blobs: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._blobs.get(key)

    async def set(self, key: str, value: str) -> None:
        self._blobs[key] = value

    async def delete(self, key: str) -> None:
        self._blobs.pop(key, None)
