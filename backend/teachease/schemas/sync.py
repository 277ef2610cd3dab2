"""
Pydantic schemas for sync passes and the sync control API
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Dict, Optional


class SyncReport(BaseModel):
    """Outcome of one push pass, keyed by collection name"""
    started_at: datetime
    finished_at: Optional[datetime] = None
    uploaded: Dict[str, List[str]] = Field(default_factory=dict)
    failed: Dict[str, List[str]] = Field(default_factory=dict)
    skipped: Dict[str, List[str]] = Field(default_factory=dict)
    requeued: Dict[str, List[str]] = Field(default_factory=dict)
    errors: Dict[str, str] = Field(default_factory=dict)

    @property
    def total_uploaded(self) -> int:
        return sum(len(ids) for ids in self.uploaded.values())

    @property
    def total_failed(self) -> int:
        return sum(len(ids) for ids in self.failed.values())

    @property
    def ok(self) -> bool:
        return self.total_failed == 0

    def record_upload(self, collection: str, record_id: str):
        self.uploaded.setdefault(collection, []).append(record_id)

    def record_failure(self, collection: str, record_id: str, error: Exception):
        self.failed.setdefault(collection, []).append(record_id)
        self.errors[f"{collection}/{record_id}"] = str(error)

    def record_skip(self, collection: str, record_id: str):
        self.skipped.setdefault(collection, []).append(record_id)

    def record_requeue(self, collection: str, record_id: str):
        """Uploaded, but edited locally meanwhile; stays pending for the next pass."""
        self.requeued.setdefault(collection, []).append(record_id)


class FetchReport(BaseModel):
    """Outcome of one pull pass"""
    started_at: datetime
    finished_at: Optional[datetime] = None
    saved: Dict[str, int] = Field(default_factory=dict)
    excluded_subjects: List[str] = Field(default_factory=list)


class DeleteOutcome(BaseModel):
    """Result of a two-phase delete: local commit, then remote attempt"""
    record_id: str
    local_deleted: bool = True
    remote_attempted: bool = False
    remote_deleted: bool = False
    remote_error: Optional[str] = None


class PendingSyncResponse(BaseModel):
    pending: Dict[str, List[str]]
    total: int


class DeletedSubjectsResponse(BaseModel):
    subject_ids: List[str]


class ResetResponse(BaseModel):
    remote_cleared: bool
    local_cleared: bool
    remote_error: Optional[str] = None
