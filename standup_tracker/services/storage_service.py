from typing import AsyncIterator, List, Optional, Sequence
from urllib.parse import quote
import asyncio

from pydantic import ValidationError as PydanticValidationError

from ..core.exceptions import StoreError
from ..integrations.base import RecordStore, StoredObjectInfo
from ..models.analytics import DateRange
from ..models.standup import StandupRecord
from ..utils.logging import get_logger

logger = get_logger(__name__)

ROOT_PREFIX = "standups/"


class RecordRepository:
    """Maps standup records onto the append-only record store.

    Each record lives under ``standups/<member>/<timestamp>_<id>.json`` so a
    key listing is already in chronological order per member. Writes raise
    ``StoreError``; reads log store failures and return what they could load.
    """

    def __init__(self, store: RecordStore, batch_size: int = 25):
        self.store = store
        self.batch_size = batch_size

    @staticmethod
    def member_prefix(member_id: str) -> str:
        return f"{ROOT_PREFIX}{quote(member_id, safe='')}/"

    def record_key(self, record: StandupRecord) -> str:
        return f"{self.member_prefix(record.member_id)}{record.timestamp}_{record.id}.json"

    async def save_record(self, record: StandupRecord) -> str:
        """Persist a record. Failures are fatal for the caller."""
        key = self.record_key(record)
        try:
            await self.store.put(key, record.model_dump_json().encode("utf-8"))
        except StoreError:
            logger.error(f"Failed to save standup {record.id} for {record.member_id}")
            raise
        except Exception as e:
            logger.error(f"Failed to save standup {record.id}: {str(e)}")
            raise StoreError(f"Failed to save standup {record.id}: {str(e)}", key) from e

        logger.info(f"Saved standup {record.id} for {record.member_id}")
        return key

    async def _list(self, prefix: str) -> List[StoredObjectInfo]:
        try:
            return await self.store.list(prefix)
        except Exception as e:
            logger.warning(f"Listing {prefix} failed, continuing without history: {str(e)}")
            return []

    async def _load(self, key: str) -> Optional[StandupRecord]:
        try:
            data = await self.store.get(key)
        except Exception as e:
            logger.warning(f"Skipping {key}, read failed: {str(e)}")
            return None

        if data is None:
            return None

        try:
            return StandupRecord.model_validate_json(data)
        except PydanticValidationError as e:
            logger.warning(f"Skipping {key}, not a standup record: {e.error_count()} errors")
            return None

    async def _load_batch(self, keys: Sequence[str]) -> List[StandupRecord]:
        loaded = await asyncio.gather(*(self._load(key) for key in keys))
        return [record for record in loaded if record is not None]

    async def iter_batches(
        self,
        member_id: Optional[str] = None,
        window: Optional[DateRange] = None
    ) -> AsyncIterator[List[StandupRecord]]:
        """Yield records in bounded batches, oldest first within each member."""
        prefix = self.member_prefix(member_id) if member_id else ROOT_PREFIX
        objects = await self._list(prefix)
        keys = [obj.key for obj in objects]

        for start in range(0, len(keys), self.batch_size):
            batch = await self._load_batch(keys[start:start + self.batch_size])
            if window is not None:
                batch = [record for record in batch if window.contains(record.timestamp)]
            if batch:
                yield batch

    async def get_records(
        self,
        member_id: Optional[str] = None,
        window: Optional[DateRange] = None
    ) -> List[StandupRecord]:
        """All matching records ordered oldest to newest."""
        records: List[StandupRecord] = []
        async for batch in self.iter_batches(member_id, window):
            records.extend(batch)
        records.sort(key=lambda record: record.timestamp)
        return records

    async def get_previous_updates(self, member_id: str, limit: int = 10) -> List[StandupRecord]:
        """The member's most recent ``limit`` records, oldest to newest."""
        objects = await self._list(self.member_prefix(member_id))
        objects.sort(key=lambda obj: obj.last_modified, reverse=True)

        records = await self._load_batch([obj.key for obj in objects[:limit]])
        records.sort(key=lambda record: record.timestamp)

        logger.info(f"Found {len(records)} previous updates for {member_id}")
        return records[-limit:]
