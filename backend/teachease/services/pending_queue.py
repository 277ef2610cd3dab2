"""
Pending-sync queue: per-collection set of record IDs awaiting upload.
"""

import json
import logging
from typing import Dict, List

from teachease.services.persistence import KeyValueBackend

logger = logging.getLogger(__name__)

PENDING_SYNC_KEY = "sync_pending"


def _name(collection) -> str:
    return getattr(collection, "value", collection)


class PendingSyncQueue:
    """Durable set of unsynced record IDs, stored as one blob next to the records.

    mark and clear are read-modify-write on that blob; concurrent callers may
    race and the last write wins.
    """

    def __init__(self, backend: KeyValueBackend, key: str = PENDING_SYNC_KEY):
        self.backend = backend
        self.key = key

    async def _read(self) -> Dict[str, List[str]]:
        """Strict read used before rewriting the blob; backend errors propagate."""
        data = await self.backend.get(self.key)
        if not data:
            return {}
        try:
            pending = json.loads(data)
        except ValueError as e:
            logger.error(f"Discarding unreadable pending-sync data: {e}")
            return {}
        if not isinstance(pending, dict):
            logger.error("Discarding pending-sync data that is not a mapping")
            return {}
        return {
            str(collection): [str(i) for i in ids]
            for collection, ids in pending.items()
            if isinstance(ids, list)
        }

    async def get(self) -> Dict[str, List[str]]:
        """Return the pending IDs per collection; unreadable state reads as empty."""
        try:
            return await self._read()
        except Exception as e:
            logger.error(f"Error getting pending sync: {e}")
            return {}

    async def get_ids(self, collection: str) -> List[str]:
        return (await self.get()).get(_name(collection), [])

    async def mark(self, collection: str, record_id: str):
        """Add record_id to the collection's pending set; already-pending IDs are left alone.

        When the current set cannot be read nothing is written, so queued IDs
        are never replaced by a set rebuilt from nothing.
        """
        collection = _name(collection)
        try:
            pending = await self._read()
            ids = pending.setdefault(collection, [])
            if record_id in ids:
                return
            ids.append(record_id)
            await self.backend.set(self.key, json.dumps(pending))
        except Exception as e:
            logger.error(f"Error marking {collection}/{record_id} for sync: {e}")

    async def clear(self, collection: str, record_id: str):
        """Remove record_id from the collection's pending set if present."""
        collection = _name(collection)
        try:
            pending = await self._read()
            ids = pending.get(collection)
            if not ids or record_id not in ids:
                return
            pending[collection] = [i for i in ids if i != record_id]
            await self.backend.set(self.key, json.dumps(pending))
        except Exception as e:
            logger.error(f"Error clearing pending sync for {collection}/{record_id}: {e}")

    async def count(self) -> int:
        return sum(len(ids) for ids in (await self.get()).values())
