"""Tests for the class record service."""

import pytest
from datetime import datetime, timedelta, timezone

from teachease.schemas.records import AttendanceStatus, GradeCategory
from teachease.services.grading import GradeWeightsError
from teachease.services.records_service import (
    AttendanceAlreadyMarkedError,
    InvalidQRCodeError,
    RecordNotFoundError,
)
from teachease.utils.identifiers import parse_qr_payload

FIXED_TIME = datetime(2025, 6, 2, 12, 30, 15, 123456, tzinfo=timezone.utc)


class TestSubjectsAndStudents:

    @pytest.mark.asyncio
    async def test_create_subject_is_queued(self, records_service, storage):
        subject = await records_service.create_subject("  Science 8 ", "teacher-1")

        assert subject.name == "Science 8"
        assert await storage.get_pending_sync() == {"subjects": [subject.id]}

    @pytest.mark.asyncio
    async def test_create_student_builds_name_and_qr(self, records_service, storage, make_subject):
        await storage.save_subject(make_subject())

        student = await records_service.create_student(
            "subj-1", "Juan", "Dela Cruz", middle_name="Santos", student_number="2025-001"
        )

        assert student.name == "Juan Santos Dela Cruz"
        assert student.student_id == "2025-001"
        assert parse_qr_payload(student.qr_code) == (student.id, "subj-1")
        assert [s.id for s in await records_service.students_in_subject("subj-1")] == [student.id]

    @pytest.mark.asyncio
    async def test_create_student_requires_subject(self, records_service):
        with pytest.raises(RecordNotFoundError, match="Subject missing not found"):
            await records_service.create_student("missing", "Juan", "Cruz")

    @pytest.mark.asyncio
    async def test_delete_student_cascades(self, records_service, storage, make_student, make_grade):
        await storage.save_student(make_student())
        await storage.save_grade(make_grade(quarter=1))
        await storage.save_grade(make_grade(quarter=3))

        removed = await records_service.delete_student("stu-1")

        assert removed == 2
        assert await storage.get_grades() == []


class TestAttendance:

    @pytest.mark.asyncio
    async def test_mark_attendance(self, records_service, storage):
        record = await records_service.mark_attendance(
            "stu-1", "subj-1", AttendanceStatus.LATE, at=FIXED_TIME
        )

        assert record.status == AttendanceStatus.LATE
        assert await storage.get_pending_sync() == {"attendance": [record.id]}

    @pytest.mark.asyncio
    async def test_second_mark_same_day_is_rejected(self, records_service, storage):
        first = await records_service.mark_attendance("stu-1", "subj-1", at=FIXED_TIME)

        with pytest.raises(AttendanceAlreadyMarkedError, match="already marked Present today") as exc_info:
            await records_service.mark_attendance(
                "stu-1", "subj-1", AttendanceStatus.ABSENT, at=FIXED_TIME + timedelta(minutes=5)
            )

        assert exc_info.value.existing.id == first.id
        assert [a.status for a in await storage.get_attendance()] == [AttendanceStatus.PRESENT]

    @pytest.mark.asyncio
    async def test_other_subject_same_day_is_allowed(self, records_service, storage):
        await records_service.mark_attendance("stu-1", "subj-1", at=FIXED_TIME)
        await records_service.mark_attendance("stu-1", "subj-2", at=FIXED_TIME)

        assert len(await storage.get_attendance()) == 2

    @pytest.mark.asyncio
    async def test_next_day_is_allowed(self, records_service, storage):
        await records_service.mark_attendance("stu-1", "subj-1", at=FIXED_TIME)
        await records_service.mark_attendance("stu-1", "subj-1", at=FIXED_TIME + timedelta(days=1))

        assert len(await storage.get_attendance()) == 2

    @pytest.mark.asyncio
    async def test_naive_datetime_is_treated_as_utc(self, records_service):
        record = await records_service.mark_attendance(
            "stu-1", "subj-1", at=datetime(2025, 6, 2, 8, 0)
        )

        assert record.date.tzinfo is not None

    @pytest.mark.asyncio
    async def test_mark_from_qr(self, records_service, storage, make_student):
        await storage.save_student(make_student())

        record = await records_service.mark_attendance_from_qr("TEACHEASE:stu-1:subj-1", at=FIXED_TIME)

        assert record.student_id == "stu-1"
        assert record.subject_id == "subj-1"

    @pytest.mark.asyncio
    async def test_qr_duplicate_uses_student_name(self, records_service, storage, make_student):
        await storage.save_student(make_student())
        await records_service.mark_attendance_from_qr("TEACHEASE:stu-1:subj-1", at=FIXED_TIME)

        with pytest.raises(AttendanceAlreadyMarkedError, match="Ana Cruz is already marked"):
            await records_service.mark_attendance_from_qr("TEACHEASE:stu-1:subj-1", at=FIXED_TIME)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", ["", "hello", "OTHER:stu-1:subj-1", "TEACHEASE::subj-1"])
    async def test_invalid_qr_payload(self, records_service, payload):
        with pytest.raises(InvalidQRCodeError):
            await records_service.mark_attendance_from_qr(payload)

    @pytest.mark.asyncio
    async def test_qr_subject_mismatch(self, records_service, storage, make_student):
        await storage.save_student(make_student())

        with pytest.raises(InvalidQRCodeError, match="does not match"):
            await records_service.mark_attendance_from_qr("TEACHEASE:stu-1:subj-9")

    @pytest.mark.asyncio
    async def test_qr_unknown_student(self, records_service):
        with pytest.raises(RecordNotFoundError):
            await records_service.mark_attendance_from_qr("TEACHEASE:ghost:subj-1")


class TestGradeSettings:

    @pytest.mark.asyncio
    async def test_update_grade_settings(self, records_service, storage, make_subject):
        await storage.save_subject(make_subject(), skip_sync=True)

        subject = await records_service.update_grade_settings(
            "subj-1", {"quiz": 10, "assignment": 20, "exam": 50, "project": 20}
        )

        assert subject.grade_settings.weights.exam == pytest.approx(0.5)
        assert await storage.get_pending_sync() == {"subjects": ["subj-1"]}

    @pytest.mark.asyncio
    async def test_invalid_weights_are_not_persisted(self, records_service, storage, make_subject):
        await storage.save_subject(make_subject(), skip_sync=True)

        with pytest.raises(GradeWeightsError):
            await records_service.update_grade_settings(
                "subj-1", {"quiz": 20, "assignment": 20, "exam": 40, "project": 21}
            )

        subject = await records_service.get_subject("subj-1")
        assert subject.grade_settings is None
        assert await storage.get_pending_sync() == {}


class TestGrades:

    @pytest.mark.asyncio
    async def test_quarter_grade_from_assessments(self, records_service, storage, make_subject):
        await storage.save_subject(make_subject(), skip_sync=True)
        for category, score in [
            (GradeCategory.QUIZ, 9),
            (GradeCategory.ASSIGNMENT, 8),
            (GradeCategory.EXAM, 7),
            (GradeCategory.PROJECT, 10),
        ]:
            await records_service.add_assessment("stu-1", "subj-1", 1, category, category.value, score, 10)

        grade = await records_service.save_quarter_grade("stu-1", "subj-1", 1)

        assert grade.id == "stu-1-subj-1-q1"
        # 90*.2 + 80*.2 + 70*.4 + 100*.2
        assert grade.final_grade == 82.0
        assert [g.id for g in await storage.get_grades()] == ["stu-1-subj-1-q1"]

    @pytest.mark.asyncio
    async def test_recomputing_overwrites_same_quarter(self, records_service, storage, make_subject):
        await storage.save_subject(make_subject(), skip_sync=True)
        await records_service.add_assessment("stu-1", "subj-1", 2, GradeCategory.EXAM, "Midterm", 40, 50)
        first = await records_service.save_quarter_grade("stu-1", "subj-1", 2)
        await records_service.add_assessment("stu-1", "subj-1", 2, GradeCategory.EXAM, "Final", 50, 50)

        second = await records_service.save_quarter_grade("stu-1", "subj-1", 2)

        assert len(await storage.get_grades()) == 1
        assert second.created_at == first.created_at
        assert second.exam == 90.0

    @pytest.mark.asyncio
    async def test_record_grade_uses_subject_weights(self, records_service, storage, make_subject):
        await storage.save_subject(make_subject(), skip_sync=True)
        await records_service.update_grade_settings(
            "subj-1", {"quiz": 25, "assignment": 25, "exam": 25, "project": 25}
        )

        grade = await records_service.record_grade("stu-1", "subj-1", 3, 100, 80, 60, 40)

        assert grade.final_grade == 70.0

    @pytest.mark.asyncio
    async def test_record_grade_range_check(self, records_service, storage, make_subject):
        await storage.save_subject(make_subject(), skip_sync=True)

        with pytest.raises(ValueError, match="between 0 and 100"):
            await records_service.record_grade("stu-1", "subj-1", 1, 101, 80, 80, 80)

        assert await storage.get_grades() == []

    @pytest.mark.asyncio
    async def test_grades_for_student_sorted_by_quarter(self, records_service, storage, make_grade):
        await storage.save_grade(make_grade(quarter=3))
        await storage.save_grade(make_grade(quarter=1))
        await storage.save_grade(make_grade("stu-2", quarter=2))

        grades = await records_service.grades_for_student("stu-1")

        assert [g.quarter for g in grades] == [1, 3]
