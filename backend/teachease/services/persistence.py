"""
Key-value persistence backends for the local record store.

Every collection is stored as one serialized blob under a fixed key, so the
backend contract is deliberately small: get, set and remove.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Iterable, Optional

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import async_sessionmaker

from teachease.models.kv_entry import KeyValueEntry

logger = logging.getLogger(__name__)


class KeyValueBackend(ABC):
    """Async key-value persistence used by the record store."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the blob stored under key, or None when absent."""

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous blob."""

    @abstractmethod
    async def remove(self, keys: Iterable[str]) -> None:
        """Remove every key given; missing keys are ignored."""


class SQLAlchemyKeyValueBackend(KeyValueBackend):
    """Stores blobs as rows of the kv_entries table."""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def get(self, key: str) -> Optional[str]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(KeyValueEntry.value).where(KeyValueEntry.key == key)
            )
            return result.scalar_one_or_none()

    async def set(self, key: str, value: str) -> None:
        async with self.session_factory() as session:
            entry = await session.get(KeyValueEntry, key)
            if entry is None:
                session.add(KeyValueEntry(key=key, value=value))
            else:
                entry.value = value
            await session.commit()

    async def remove(self, keys: Iterable[str]) -> None:
        keys = list(keys)
        if not keys:
            return
        async with self.session_factory() as session:
            await session.execute(delete(KeyValueEntry).where(KeyValueEntry.key.in_(keys)))
            await session.commit()
        logger.debug(f"Removed storage keys: {keys}")


class MemoryKeyValueBackend(KeyValueBackend):
    """Process-local backend; contents are lost when the process exits."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def remove(self, keys: Iterable[str]) -> None:
        for key in keys:
            self._data.pop(key, None)

    def keys(self):
        return list(self._data.keys())
