"""
Class record service

Caller-level rules that sit on top of the local store: duplicate attendance
checks, grade-weight validation, student creation with QR payloads, and
quarter grades computed from assessments. Every write goes through the store,
so it is committed locally and queued for the next sync pass.
"""

import logging
from datetime import datetime, timezone
from typing import List, Mapping, Optional

from teachease.schemas.records import (
    Assessment, Attendance, AttendanceStatus, Gender, Grade, GradeCategory,
    Student, Subject, utc_now
)
from teachease.services import grading
from teachease.services.storage_service import StorageService
from teachease.utils.identifiers import (
    generate_unique_id, generate_qr_payload, parse_qr_payload, quarter_grade_id
)

logger = logging.getLogger(__name__)


class RecordNotFoundError(LookupError):
    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} {record_id} not found")
        self.kind = kind
        self.record_id = record_id


class AttendanceAlreadyMarkedError(Exception):
    """The student already has attendance for this subject on that day."""

    def __init__(self, existing: Attendance, student_name: str = ""):
        who = student_name or existing.student_id
        super().__init__(f"{who} is already marked {existing.status.value} today")
        self.existing = existing


class InvalidQRCodeError(ValueError):
    pass


def _local_day(value: datetime):
    return value.astimezone().date()


class ClassRecordService:

    def __init__(self, storage: StorageService):
        self.storage = storage

    # Subjects

    async def create_subject(self, name: str, teacher_id: str) -> Subject:
        now = utc_now()
        subject = Subject(
            id=generate_unique_id(),
            name=name.strip(),
            teacher_id=teacher_id,
            created_at=now,
            updated_at=now
        )
        await self.storage.save_subject(subject)
        return subject

    async def get_subject(self, subject_id: str) -> Subject:
        subject = await self.storage.find("subjects", subject_id)
        if subject is None:
            raise RecordNotFoundError("Subject", subject_id)
        return subject

    async def update_grade_settings(
        self,
        subject_id: str,
        weight_percentages: Mapping[str, float],
        labels: Optional[Mapping[str, str]] = None
    ) -> Subject:
        """Validate editor weights (whole percents summing to 100) and save them on the subject.

        Raises GradeWeightsError before anything is persisted.
        """
        settings = grading.build_grade_settings(weight_percentages, labels)
        subject = await self.get_subject(subject_id)
        updated = subject.model_copy(update={"grade_settings": settings, "updated_at": utc_now()})
        await self.storage.save_subject(updated)
        return updated

    # Students

    async def create_student(
        self,
        subject_id: str,
        first_name: str,
        last_name: str,
        middle_name: str = "",
        student_number: str = "",
        gender: Optional[Gender] = None,
        dob: Optional[datetime] = None,
        section: Optional[str] = None,
        year_level: Optional[str] = None
    ) -> Student:
        await self.get_subject(subject_id)

        record_id = generate_unique_id()
        parts = [p.strip() for p in (first_name, middle_name, last_name) if p and p.strip()]
        now = utc_now()
        student = Student(
            id=record_id,
            name=" ".join(parts),
            student_id=student_number.strip() or record_id,
            subject_id=subject_id,
            qr_code=generate_qr_payload(record_id, subject_id),
            created_at=now,
            updated_at=now,
            first_name=first_name.strip() or None,
            middle_name=middle_name.strip() or None,
            last_name=last_name.strip() or None,
            gender=gender,
            dob=dob,
            section=section,
            year_level=year_level
        )
        await self.storage.save_student(student)
        logger.info(f"Created student {student.id} in subject {subject_id}")
        return student

    async def get_student(self, student_id: str) -> Student:
        student = await self.storage.find("students", student_id)
        if student is None:
            raise RecordNotFoundError("Student", student_id)
        return student

    async def students_in_subject(self, subject_id: str) -> List[Student]:
        return [s for s in await self.storage.get_students() if s.subject_id == subject_id]

    async def delete_student(self, student_id: str) -> int:
        return await self.storage.delete_student_cascade(student_id)

    # Attendance

    async def find_attendance(self, student_id: str, subject_id: str, day: datetime) -> Optional[Attendance]:
        target = _local_day(day)
        for record in await self.storage.get_attendance():
            if (
                record.student_id == student_id
                and record.subject_id == subject_id
                and _local_day(record.date) == target
            ):
                return record
        return None

    async def mark_attendance(
        self,
        student_id: str,
        subject_id: str,
        status: AttendanceStatus = AttendanceStatus.PRESENT,
        at: Optional[datetime] = None,
        student_name: str = ""
    ) -> Attendance:
        """Record attendance unless the student is already marked for that day.

        Raises AttendanceAlreadyMarkedError carrying the existing record,
        which is left untouched.
        """
        at = at or utc_now()
        if at.tzinfo is None:
            at = at.replace(tzinfo=timezone.utc)

        existing = await self.find_attendance(student_id, subject_id, at)
        if existing is not None:
            raise AttendanceAlreadyMarkedError(existing, student_name)

        record = Attendance(
            id=generate_unique_id(),
            student_id=student_id,
            subject_id=subject_id,
            date=at,
            status=status,
            timestamp=utc_now()
        )
        await self.storage.save_attendance(record)
        return record

    async def mark_attendance_from_qr(
        self,
        payload: str,
        status: AttendanceStatus = AttendanceStatus.PRESENT,
        at: Optional[datetime] = None
    ) -> Attendance:
        parsed = parse_qr_payload(payload)
        if parsed is None:
            raise InvalidQRCodeError("This QR code is not a valid student code")
        student_id, subject_id = parsed

        student = await self.get_student(student_id)
        if student.subject_id != subject_id:
            raise InvalidQRCodeError("This QR code does not match the student's subject")

        return await self.mark_attendance(
            student.id, student.subject_id, status=status, at=at, student_name=student.name
        )

    # Assessments and grades

    async def add_assessment(
        self,
        student_id: str,
        subject_id: str,
        quarter: int,
        category: GradeCategory,
        title: str,
        score: float,
        total: float,
        date: Optional[datetime] = None
    ) -> Assessment:
        now = utc_now()
        assessment = Assessment(
            id=generate_unique_id(),
            student_id=student_id,
            subject_id=subject_id,
            quarter=quarter,
            date=date or now,
            category=category,
            title=title.strip(),
            score=score,
            total=total,
            created_at=now,
            updated_at=now
        )
        await self.storage.save_assessment(assessment)
        return assessment

    async def compute_quarter_grade(self, student_id: str, subject_id: str, quarter: int) -> Grade:
        """Build (without saving) the quarter grade from the student's assessments."""
        subject = await self.get_subject(subject_id)
        weights = subject.grade_settings.weights if subject.grade_settings else grading.DEFAULT_WEIGHTS

        assessments = [
            a for a in await self.storage.get_assessments()
            if a.student_id == student_id and a.subject_id == subject_id and a.quarter == quarter
        ]
        percents = grading.category_percentages(assessments)

        now = utc_now()
        return Grade(
            id=quarter_grade_id(student_id, subject_id, quarter),
            student_id=student_id,
            subject_id=subject_id,
            quarter=quarter,
            quiz=percents[GradeCategory.QUIZ],
            assignment=percents[GradeCategory.ASSIGNMENT],
            exam=percents[GradeCategory.EXAM],
            project=percents[GradeCategory.PROJECT],
            final_grade=grading.calculate_final_grade(
                percents[GradeCategory.QUIZ],
                percents[GradeCategory.ASSIGNMENT],
                percents[GradeCategory.EXAM],
                percents[GradeCategory.PROJECT],
                weights
            ),
            created_at=now,
            updated_at=now
        )

    async def save_quarter_grade(self, student_id: str, subject_id: str, quarter: int) -> Grade:
        """Compute and store the quarter grade, overwriting any earlier one for that quarter."""
        grade = await self.compute_quarter_grade(student_id, subject_id, quarter)
        existing = await self.storage.find("grades", grade.id)
        if existing is not None:
            grade = grade.model_copy(update={"created_at": existing.created_at})
        await self.storage.save_grade(grade)
        return grade

    async def record_grade(
        self,
        student_id: str,
        subject_id: str,
        quarter: int,
        quiz: float,
        assignment: float,
        exam: float,
        project: float
    ) -> Grade:
        """Store directly entered category percentages as the quarter grade."""
        for value in (quiz, assignment, exam, project):
            if value < 0 or value > 100:
                raise ValueError("Grades must be between 0 and 100")

        subject = await self.get_subject(subject_id)
        weights = subject.grade_settings.weights if subject.grade_settings else grading.DEFAULT_WEIGHTS
        grade_id = quarter_grade_id(student_id, subject_id, quarter)
        existing = await self.storage.find("grades", grade_id)

        now = utc_now()
        grade = Grade(
            id=grade_id,
            student_id=student_id,
            subject_id=subject_id,
            quarter=quarter,
            quiz=quiz,
            assignment=assignment,
            exam=exam,
            project=project,
            final_grade=grading.calculate_final_grade(quiz, assignment, exam, project, weights),
            created_at=existing.created_at if existing else now,
            updated_at=now
        )
        await self.storage.save_grade(grade)
        return grade

    async def grades_for_student(self, student_id: str, subject_id: Optional[str] = None) -> List[Grade]:
        return sorted(
            (
                g for g in await self.storage.get_grades()
                if g.student_id == student_id and (subject_id is None or g.subject_id == subject_id)
            ),
            key=lambda g: g.quarter
        )
