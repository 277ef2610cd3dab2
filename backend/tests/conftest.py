"""Shared fixtures: in-memory backends and record factories."""

import pytest
from datetime import datetime, timezone

from teachease.integrations.cloud import InMemoryDocumentStore
from teachease.schemas.records import (
    Assessment, Attendance, AttendanceStatus, Grade, GradeCategory, Student, Subject
)
from teachease.services.auth import StaticAuthProvider
from teachease.services.persistence import MemoryKeyValueBackend
from teachease.services.records_service import ClassRecordService
from teachease.services.storage_service import StorageService
from teachease.services.sync import RemoteSyncClient, SyncOrchestrator

FIXED_TIME = datetime(2025, 6, 2, 12, 30, 15, 123456, tzinfo=timezone.utc)


@pytest.fixture
def memory_backend():
    return MemoryKeyValueBackend()


@pytest.fixture
def storage(memory_backend):
    return StorageService(memory_backend)


@pytest.fixture
def document_store():
    return InMemoryDocumentStore()


@pytest.fixture
def auth_provider():
    return StaticAuthProvider("teacher-1")


@pytest.fixture
def remote_client(document_store, auth_provider):
    return RemoteSyncClient(document_store, auth_provider)


@pytest.fixture
def orchestrator(storage, remote_client):
    return SyncOrchestrator(storage, remote_client)


@pytest.fixture
def records_service(storage):
    return ClassRecordService(storage)


@pytest.fixture
def make_subject():
    def _make(subject_id="subj-1", **overrides):
        data = dict(
            id=subject_id,
            name="Mathematics 7",
            teacher_id="teacher-1",
            created_at=FIXED_TIME,
            updated_at=FIXED_TIME
        )
        data.update(overrides)
        return Subject(**data)
    return _make


@pytest.fixture
def make_student():
    def _make(student_id="stu-1", subject_id="subj-1", **overrides):
        data = dict(
            id=student_id,
            name="Ana Cruz",
            student_id=f"2025-{student_id}",
            subject_id=subject_id,
            qr_code=f"TEACHEASE:{student_id}:{subject_id}",
            created_at=FIXED_TIME,
            updated_at=FIXED_TIME
        )
        data.update(overrides)
        return Student(**data)
    return _make


@pytest.fixture
def make_attendance():
    def _make(attendance_id="att-1", student_id="stu-1", subject_id="subj-1", **overrides):
        data = dict(
            id=attendance_id,
            student_id=student_id,
            subject_id=subject_id,
            date=FIXED_TIME,
            status=AttendanceStatus.PRESENT,
            timestamp=FIXED_TIME
        )
        data.update(overrides)
        return Attendance(**data)
    return _make


@pytest.fixture
def make_grade():
    def _make(student_id="stu-1", subject_id="subj-1", quarter=1, grade_id=None, **overrides):
        data = dict(
            id=grade_id or f"{student_id}-{subject_id}-q{quarter}",
            student_id=student_id,
            subject_id=subject_id,
            quarter=quarter,
            quiz=90.0,
            assignment=85.0,
            exam=80.0,
            project=95.0,
            final_grade=86.0,
            created_at=FIXED_TIME,
            updated_at=FIXED_TIME
        )
        data.update(overrides)
        return Grade(**data)
    return _make


@pytest.fixture
def make_assessment():
    def _make(assessment_id="asm-1", student_id="stu-1", subject_id="subj-1", **overrides):
        data = dict(
            id=assessment_id,
            student_id=student_id,
            subject_id=subject_id,
            quarter=1,
            date=FIXED_TIME,
            category=GradeCategory.QUIZ,
            title="Quiz 1",
            score=8,
            total=10,
            created_at=FIXED_TIME,
            updated_at=FIXED_TIME
        )
        data.update(overrides)
        return Assessment(**data)
    return _make
