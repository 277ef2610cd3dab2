"""
Remote Sync Client

Stateless transport between local records and the remote document store.
Records live under ``{root}/{uid}/{collection}/{id}``; the principal's own
profile is the ``{root}/{uid}`` document.
"""

import asyncio
import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from teachease.integrations.cloud.base import DocumentStore, RemoteTimestamp, join_path
from teachease.schemas.records import (
    CollectionName, RecordModel, RECORD_TYPES, collection_for, utc_now,
    Student, Subject, Attendance, Grade, Assessment, TeacherProfile
)
from teachease.services.auth import AuthProvider, NotAuthenticatedError

logger = logging.getLogger(__name__)

# Collections pushed by sync_all, pulled by fetch_all and wiped on account deletion
SYNCED_COLLECTIONS: Tuple[CollectionName, ...] = (
    CollectionName.STUDENTS,
    CollectionName.SUBJECTS,
    CollectionName.ATTENDANCE,
    CollectionName.GRADES,
    CollectionName.ASSESSMENTS,
)

TIMESTAMP_FIELDS: Dict[CollectionName, Tuple[str, ...]] = {
    CollectionName.STUDENTS: ("created_at", "updated_at", "dob"),
    CollectionName.SUBJECTS: ("created_at", "updated_at"),
    CollectionName.ATTENDANCE: ("date", "timestamp"),
    CollectionName.GRADES: ("created_at", "updated_at"),
    CollectionName.ASSESSMENTS: ("date", "created_at", "updated_at"),
}

NULLABLE_TIMESTAMP_FIELDS = {"dob"}


class RemoteSyncError(Exception):
    """A remote store operation failed."""
    pass


@contextmanager
def _remote_errors(action: str):
    try:
        yield
    except (NotAuthenticatedError, RemoteSyncError):
        raise
    except Exception as e:
        logger.error(f"Error {action}: {e}")
        raise RemoteSyncError(f"Error {action}: {e}") from e


def _alias(model, field_name: str) -> str:
    return model.model_fields[field_name].alias or field_name


def to_local_datetime(value: Any, nullable: bool = False) -> Optional[datetime]:
    """Convert a downloaded timestamp to a UTC datetime.

    Missing or malformed values fall back to the current time, or to None for
    nullable fields.
    """
    if isinstance(value, RemoteTimestamp):
        return value.to_datetime()
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            return RemoteTimestamp.from_rfc3339(value).to_datetime()
        except ValueError:
            pass
    if value is not None:
        logger.warning(f"Malformed remote timestamp {value!r}, using fallback")
    return None if nullable else utc_now()


class RemoteSyncClient:
    """Uploads, downloads and deletes records for the signed-in principal."""

    def __init__(self, store: DocumentStore, auth: AuthProvider, root_collection: str = "teachers"):
        self.store = store
        self.auth = auth
        self.root_collection = root_collection

    # Paths

    def _profile_path(self, principal_id: str) -> str:
        return join_path(self.root_collection, principal_id)

    def _collection_path(self, principal_id: str, collection: CollectionName) -> str:
        return join_path(self.root_collection, principal_id, CollectionName(collection).value)

    def _document_path(self, principal_id: str, collection: CollectionName, record_id: str) -> str:
        return join_path(self._collection_path(principal_id, collection), record_id)

    # Conversion

    @staticmethod
    def to_remote(record: RecordModel) -> Dict[str, Any]:
        """Serialize a record, turning its timestamps into native remote timestamps."""
        collection = collection_for(record)
        data = record.model_dump(mode="json", by_alias=True)
        for field_name in TIMESTAMP_FIELDS[collection]:
            value = getattr(record, field_name)
            data[_alias(type(record), field_name)] = (
                RemoteTimestamp.from_datetime(value) if value is not None else None
            )
        return data

    @staticmethod
    def from_remote(collection: CollectionName, doc_id: str, data: Dict[str, Any]) -> RecordModel:
        """Build a record from a downloaded document; the document ID wins over any id field."""
        collection = CollectionName(collection)
        model = RECORD_TYPES[collection]
        data = dict(data)
        data["id"] = doc_id
        for field_name in TIMESTAMP_FIELDS[collection]:
            alias = _alias(model, field_name)
            data[alias] = to_local_datetime(
                data.get(alias), nullable=field_name in NULLABLE_TIMESTAMP_FIELDS
            )
        return model.model_validate(data)

    # Generic operations

    async def upload(self, record: RecordModel):
        """Upsert one record at its remote path."""
        principal_id = self.auth.require_principal()
        collection = collection_for(record)
        with _remote_errors(f"syncing {collection.value} record {record.id}"):
            await self.store.set_document(
                self._document_path(principal_id, collection, record.id),
                self.to_remote(record)
            )

    async def download_all(self, collection: CollectionName) -> List[RecordModel]:
        """Read the full remote collection; documents that fail validation are skipped."""
        principal_id = self.auth.require_principal()
        collection = CollectionName(collection)
        with _remote_errors(f"fetching {collection.value}"):
            documents = await self.store.list_documents(self._collection_path(principal_id, collection))

        records = []
        for doc_id, data in documents:
            try:
                records.append(self.from_remote(collection, doc_id, data))
            except ValidationError as e:
                logger.warning(f"Skipping invalid remote {collection.value} document {doc_id}: {e}")
        return records

    async def delete(self, collection: CollectionName, record_id: str):
        principal_id = self.auth.require_principal()
        collection = CollectionName(collection)
        with _remote_errors(f"deleting {collection.value} record {record_id} in cloud"):
            await self.store.delete_document(self._document_path(principal_id, collection, record_id))

    async def _delete_collection(self, principal_id: str, collection: CollectionName) -> int:
        path = self._collection_path(principal_id, collection)
        documents = await self.store.list_documents(path)
        await asyncio.gather(*[
            self.store.delete_document(join_path(path, doc_id)) for doc_id, _ in documents
        ])
        return len(documents)

    # Cascades and bulk deletion

    async def delete_grades_by_student(self, student_id: str) -> int:
        principal_id = self.auth.require_principal()
        grades_path = self._collection_path(principal_id, CollectionName.GRADES)
        with _remote_errors(f"deleting grades of student {student_id} in cloud"):
            documents = await self.store.list_documents(grades_path)
            matching = [doc_id for doc_id, data in documents if data.get("studentId") == student_id]
            await asyncio.gather(*[
                self.store.delete_document(join_path(grades_path, doc_id)) for doc_id in matching
            ])
        return len(matching)

    async def delete_student(self, student_id: str):
        """Delete a student's grades, then the student itself."""
        await self.delete_grades_by_student(student_id)
        await self.delete(CollectionName.STUDENTS, student_id)

    async def delete_subject(self, subject_id: str):
        await self.delete(CollectionName.SUBJECTS, subject_id)

    async def delete_all_for_principal(self):
        """Permanently delete every synced record and the principal's profile document."""
        principal_id = self.auth.require_principal()
        with _remote_errors("deleting all user data"):
            for collection in SYNCED_COLLECTIONS:
                removed = await self._delete_collection(principal_id, collection)
                logger.info(f"Deleted {removed} remote {collection.value} document(s)")
            await self.store.delete_document(self._profile_path(principal_id))
        logger.info(f"Deleted all cloud data for {principal_id}")

    # Profile

    async def ensure_profile(self, email: str = "", name: str = "") -> bool:
        """Create the principal's profile document if it does not exist yet.

        Returns True when a new profile was written.
        """
        principal_id = self.auth.require_principal()
        path = self._profile_path(principal_id)
        with _remote_errors("ensuring teacher profile"):
            if await self.store.get_document(path) is not None:
                return False
            now = utc_now()
            profile = TeacherProfile(id=principal_id, email=email, name=name, created_at=now, updated_at=now)
            data = profile.model_dump(mode="json", by_alias=True)
            data["createdAt"] = RemoteTimestamp.from_datetime(now)
            data["updatedAt"] = RemoteTimestamp.from_datetime(now)
            await self.store.set_document(path, data)
        logger.info(f"Created teacher profile for {principal_id}")
        return True

    # Per-collection conveniences

    async def sync_student(self, student: Student):
        await self.upload(student)

    async def fetch_students(self) -> List[Student]:
        return await self.download_all(CollectionName.STUDENTS)

    async def sync_subject(self, subject: Subject):
        await self.upload(subject)

    async def fetch_subjects(self) -> List[Subject]:
        return await self.download_all(CollectionName.SUBJECTS)

    async def sync_attendance(self, attendance: Attendance):
        await self.upload(attendance)

    async def fetch_attendance(self) -> List[Attendance]:
        return await self.download_all(CollectionName.ATTENDANCE)

    async def sync_grade(self, grade: Grade):
        await self.upload(grade)

    async def fetch_grades(self) -> List[Grade]:
        return await self.download_all(CollectionName.GRADES)

    async def sync_assessment(self, assessment: Assessment):
        await self.upload(assessment)

    async def fetch_assessments(self) -> List[Assessment]:
        return await self.download_all(CollectionName.ASSESSMENTS)
