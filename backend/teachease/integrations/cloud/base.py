"""
Remote document store contract shared by the cloud backends.

Documents are addressed by slash-separated paths such as
``teachers/{uid}/students/{id}``. Values are JSON-like, plus the store's own
native timestamp type, RemoteTimestamp.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_RFC3339 = re.compile(
    r"^(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(?:\.(\d{1,9}))?(Z|[+-]\d{2}:\d{2})$"
)


class DocumentStoreError(Exception):
    """Raised when the remote store cannot complete a request."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


@dataclass(frozen=True)
class RemoteTimestamp:
    """Native remote timestamp: whole seconds since the epoch plus nanoseconds."""
    seconds: int
    nanos: int = 0

    @classmethod
    def from_datetime(cls, value: datetime) -> "RemoteTimestamp":
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        delta = value - EPOCH
        return cls(
            seconds=delta.days * 86400 + delta.seconds,
            nanos=delta.microseconds * 1000
        )

    @classmethod
    def from_rfc3339(cls, value: str) -> "RemoteTimestamp":
        match = _RFC3339.match(value.strip())
        if not match:
            raise ValueError(f"Invalid RFC 3339 timestamp: {value!r}")
        base, fraction, offset = match.groups()
        parsed = datetime.strptime(base, "%Y-%m-%dT%H:%M:%S").replace(tzinfo=timezone.utc)
        if offset != "Z":
            sign = 1 if offset[0] == "+" else -1
            hours, minutes = int(offset[1:3]), int(offset[4:6])
            parsed -= sign * timedelta(hours=hours, minutes=minutes)
        stamp = cls.from_datetime(parsed)
        return cls(seconds=stamp.seconds, nanos=int((fraction or "0").ljust(9, "0")))

    def to_datetime(self) -> datetime:
        return EPOCH + timedelta(seconds=self.seconds, microseconds=self.nanos // 1000)

    def to_rfc3339(self) -> str:
        base = self.to_datetime().strftime("%Y-%m-%dT%H:%M:%S")
        return f"{base}.{self.nanos:09d}Z"


def join_path(*parts: str) -> str:
    return "/".join(str(p).strip("/") for p in parts)


class DocumentStore(ABC):
    """Async document-oriented remote store."""

    @abstractmethod
    async def get_document(self, path: str) -> Optional[Dict[str, Any]]:
        """Return the document's fields, or None when it does not exist."""

    @abstractmethod
    async def set_document(self, path: str, data: Dict[str, Any]) -> None:
        """Create or fully replace the document at path."""

    @abstractmethod
    async def delete_document(self, path: str) -> None:
        """Delete the document at path; deleting a missing document succeeds."""

    @abstractmethod
    async def list_documents(self, collection_path: str) -> List[Tuple[str, Dict[str, Any]]]:
        """Return (document id, fields) for every document directly in the collection."""

    async def close(self) -> None:
        pass
