from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from ..core.exceptions import StoreError
from ..models.stored_object import StoredObject
from .base import RecordStore, StoredObjectInfo
from ..utils.logging import get_logger

logger = get_logger(__name__)


class InMemoryRecordStore(RecordStore):
    """Process-local store, mainly for tests and local runs."""

    def __init__(self) -> None:
        self._objects: Dict[str, Tuple[bytes, datetime]] = {}

    async def put(self, key: str, data: bytes) -> None:
        self._objects[key] = (bytes(data), datetime.now(timezone.utc))

    async def get(self, key: str) -> Optional[bytes]:
        entry = self._objects.get(key)
        return entry[0] if entry else None

    async def list(self, prefix: str) -> List[StoredObjectInfo]:
        return [
            StoredObjectInfo(key=key, last_modified=modified)
            for key, (_, modified) in sorted(self._objects.items())
            if key.startswith(prefix)
        ]


class SQLRecordStore(RecordStore):
    """Record store backed by the ``stored_objects`` table."""

    def __init__(self, session_factory: async_sessionmaker) -> None:
        self._session_factory = session_factory

    async def put(self, key: str, data: bytes) -> None:
        try:
            async with self._session_factory() as session:
                stmt = select(StoredObject).where(StoredObject.key == key)
                result = await session.execute(stmt)
                existing = result.scalar_one_or_none()

                now = datetime.now(timezone.utc)
                if existing is None:
                    session.add(StoredObject(key=key, body=data, last_modified=now))
                else:
                    existing.body = data
                    existing.last_modified = now

                await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to store object {key}: {str(e)}")
            raise StoreError(f"Failed to store {key}: {str(e)}", key) from e

    async def get(self, key: str) -> Optional[bytes]:
        try:
            async with self._session_factory() as session:
                stmt = select(StoredObject.body).where(StoredObject.key == key)
                result = await session.execute(stmt)
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to read {key}: {str(e)}", key) from e

    async def list(self, prefix: str) -> List[StoredObjectInfo]:
        try:
            async with self._session_factory() as session:
                stmt = (
                    select(StoredObject.key, StoredObject.last_modified)
                    .where(StoredObject.key.startswith(prefix, autoescape=True))
                    .order_by(StoredObject.key)
                )
                result = await session.execute(stmt)
                return [
                    StoredObjectInfo(key=key, last_modified=modified)
                    for key, modified in result.all()
                ]
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to list {prefix}: {str(e)}", prefix) from e
