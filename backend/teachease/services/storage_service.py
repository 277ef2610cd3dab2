"""
Local Record Store

Durable on-device storage for the record collections plus the pending-sync
queue and the deleted-subject tombstones. Every collection is one JSON blob;
writes are upserts that persist the whole collection, notify listeners and,
unless told otherwise, queue the record for upload.
"""

import json
import logging
from typing import Callable, Dict, List, Optional, Sequence

from pydantic import TypeAdapter, ValidationError

from teachease.schemas.records import (
    CollectionName, RecordModel, RECORD_TYPES, collection_for,
    Student, Subject, Attendance, Grade, Assessment
)
from teachease.services.events import ChangeNotifier
from teachease.services.persistence import KeyValueBackend
from teachease.services.pending_queue import PendingSyncQueue

logger = logging.getLogger(__name__)

DELETED_SUBJECTS_KEY = "deleted_subjects_local"

_ADAPTERS = {
    collection: TypeAdapter(List[model])
    for collection, model in RECORD_TYPES.items()
}


class StorageService:
    """Local record store bound to one persistence backend.

    Each instance owns its own change notifier and pending-sync queue, so two
    stores in one process never see each other's notifications.
    """

    def __init__(
        self,
        backend: KeyValueBackend,
        notifier: Optional[ChangeNotifier] = None,
        pending: Optional[PendingSyncQueue] = None
    ):
        self.backend = backend
        self.notifier = notifier or ChangeNotifier()
        self.pending = pending or PendingSyncQueue(backend)

    # Generic collection access

    async def _read(self, collection: CollectionName) -> List[RecordModel]:
        """Read a collection for a read-modify-write.

        A corrupt or schema-invalid blob reads as empty; backend errors propagate
        so the caller never rewrites the collection from a failed read.
        """
        data = await self.backend.get(collection.value)
        if not data:
            return []
        try:
            return _ADAPTERS[collection].validate_json(data)
        except ValidationError as e:
            logger.error(f"Discarding unreadable {collection.value} data: {e}")
            return []

    async def load(self, collection: CollectionName) -> List[RecordModel]:
        """Like get, but a backend read error is raised instead of reading as empty."""
        return await self._read(CollectionName(collection))

    async def get(self, collection: CollectionName) -> List[RecordModel]:
        """Return every record of collection; unreadable data reads as empty."""
        collection = CollectionName(collection)
        try:
            return await self._read(collection)
        except Exception as e:
            logger.error(f"Error getting {collection.value}: {e}")
            return []

    async def find(self, collection: CollectionName, record_id: str) -> Optional[RecordModel]:
        for record in await self.get(collection):
            if record.id == record_id:
                return record
        return None

    async def save(self, record: RecordModel, skip_sync: bool = False):
        """Upsert record by ID, persist, notify and (unless skip_sync) queue it for upload."""
        await self.save_many(collection_for(record), [record], skip_sync=skip_sync)

    async def save_many(self, collection: CollectionName, records: Sequence[RecordModel], skip_sync: bool = False):
        """Upsert several records of one collection with a single write and a single notification."""
        collection = CollectionName(collection)
        if not records:
            return
        try:
            current = await self._read(collection)
            positions = {existing.id: index for index, existing in enumerate(current)}
            for record in records:
                if record.id in positions:
                    current[positions[record.id]] = record
                else:
                    positions[record.id] = len(current)
                    current.append(record)
            await self._write(collection, current)
        except Exception as e:
            ids = ", ".join(r.id for r in records)
            logger.error(f"Error saving {collection.value} record(s) {ids}: {e}")
            raise

        self.notifier.notify(collection.value)
        if not skip_sync:
            for record in records:
                await self.pending.mark(collection.value, record.id)

    async def delete(self, collection: CollectionName, record_id: str):
        """Remove one record by ID; removing an absent ID just rewrites the collection."""
        collection = CollectionName(collection)
        await self._delete_where(collection, lambda r: r.id == record_id)

    async def _delete_where(self, collection: CollectionName, predicate: Callable[[RecordModel], bool]) -> int:
        try:
            records = await self._read(collection)
            kept = [r for r in records if not predicate(r)]
            await self._write(collection, kept)
        except Exception as e:
            logger.error(f"Error deleting from {collection.value}: {e}")
            raise

        self.notifier.notify(collection.value)
        return len(records) - len(kept)

    async def _write(self, collection: CollectionName, records: Sequence[RecordModel]):
        payload = [r.model_dump(mode="json", by_alias=True) for r in records]
        await self.backend.set(collection.value, json.dumps(payload))

    # Students

    async def get_students(self) -> List[Student]:
        return await self.get(CollectionName.STUDENTS)

    async def save_student(self, student: Student, skip_sync: bool = False):
        await self.save(student, skip_sync=skip_sync)

    async def delete_student(self, student_id: str):
        await self.delete(CollectionName.STUDENTS, student_id)

    async def delete_student_cascade(self, student_id: str) -> int:
        """Delete a student together with every grade that references it.

        Returns the number of grades removed.
        """
        await self.delete_student(student_id)
        removed = await self.delete_grades_by_student(student_id)
        logger.info(f"Deleted student {student_id} and {removed} grade(s) locally")
        return removed

    # Subjects

    async def get_subjects(self) -> List[Subject]:
        return await self.get(CollectionName.SUBJECTS)

    async def save_subject(self, subject: Subject, skip_sync: bool = False):
        await self.save(subject, skip_sync=skip_sync)

    async def delete_subject(self, subject_id: str):
        await self.delete(CollectionName.SUBJECTS, subject_id)

    # Attendance

    async def get_attendance(self) -> List[Attendance]:
        return await self.get(CollectionName.ATTENDANCE)

    async def save_attendance(self, attendance: Attendance, skip_sync: bool = False):
        await self.save(attendance, skip_sync=skip_sync)

    async def delete_attendance(self, attendance_id: str):
        await self.delete(CollectionName.ATTENDANCE, attendance_id)

    # Grades

    async def get_grades(self) -> List[Grade]:
        return await self.get(CollectionName.GRADES)

    async def save_grade(self, grade: Grade, skip_sync: bool = False):
        await self.save(grade, skip_sync=skip_sync)

    async def delete_grade(self, grade_id: str):
        await self.delete(CollectionName.GRADES, grade_id)

    async def delete_grades_by_student(self, student_id: str) -> int:
        return await self._delete_where(CollectionName.GRADES, lambda g: g.student_id == student_id)

    # Assessments

    async def get_assessments(self) -> List[Assessment]:
        return await self.get(CollectionName.ASSESSMENTS)

    async def save_assessment(self, assessment: Assessment, skip_sync: bool = False):
        await self.save(assessment, skip_sync=skip_sync)

    async def delete_assessment(self, assessment_id: str):
        await self.delete(CollectionName.ASSESSMENTS, assessment_id)

    # Change notification

    def subscribe(self, collection: CollectionName, callback: Callable[[], None]) -> Callable[[], None]:
        return self.notifier.subscribe(CollectionName(collection).value, callback)

    # Pending sync

    async def get_pending_sync(self) -> Dict[str, List[str]]:
        return await self.pending.get()

    async def clear_pending_sync(self, collection: CollectionName, record_id: str):
        await self.pending.clear(CollectionName(collection).value, record_id)

    # Local-only subject deletions

    async def _read_deleted_subjects(self) -> List[str]:
        data = await self.backend.get(DELETED_SUBJECTS_KEY)
        if not data:
            return []
        try:
            deleted = json.loads(data)
        except ValueError as e:
            logger.error(f"Discarding unreadable deleted-subjects data: {e}")
            return []
        if not isinstance(deleted, list):
            logger.error("Discarding deleted-subjects data that is not a list")
            return []
        return [str(i) for i in deleted]

    async def add_deleted_subject(self, subject_id: str):
        """Tombstone subject_id; a failed read leaves the stored set untouched."""
        try:
            deleted = await self._read_deleted_subjects()
            if subject_id in deleted:
                return
            deleted.append(subject_id)
            await self.backend.set(DELETED_SUBJECTS_KEY, json.dumps(deleted))
        except Exception as e:
            logger.error(f"Error tracking deleted subject {subject_id}: {e}")

    async def get_deleted_subjects(self) -> List[str]:
        try:
            return await self._read_deleted_subjects()
        except Exception as e:
            logger.error(f"Error getting deleted subjects: {e}")
            return []

    async def clear_deleted_subjects(self):
        try:
            await self.backend.remove([DELETED_SUBJECTS_KEY])
        except Exception as e:
            logger.error(f"Error clearing deleted subjects: {e}")

    # Full reset

    async def clear_all(self):
        """Remove every persisted key: collections, pending set and tombstones."""
        keys = [c.value for c in CollectionName] + [self.pending.key, DELETED_SUBJECTS_KEY]
        try:
            await self.backend.remove(keys)
        except Exception as e:
            logger.error(f"Error clearing storage: {e}")
            raise

        for collection in CollectionName:
            self.notifier.notify(collection.value)
        logger.info("Cleared all local data")
