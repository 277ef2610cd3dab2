"""
SQLAlchemy model backing the on-device key-value store.
"""

from sqlalchemy import Column, String, Text, DateTime
from sqlalchemy.sql import func

from teachease.core.database import Base


class KeyValueEntry(Base):
    """One serialized blob per storage key (a whole record collection, the
    pending-sync set, or the deleted-subject tombstones)."""

    __tablename__ = "kv_entries"

    key = Column(String(255), primary_key=True)
    value = Column(Text, nullable=False)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<KeyValueEntry(key='{self.key}', size={len(self.value or '')})>"
