"""
Pydantic schemas for the record collections kept on the device.

Records are plain values linked to each other by ID only. Field names are
snake_case in Python and camelCase when persisted or uploaded.
"""

from pydantic import BaseModel, ConfigDict, Field, AfterValidator
from pydantic.alias_generators import to_camel
from datetime import datetime, timezone
from typing import Annotated, Dict, Optional, Type
from enum import Enum


def _ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UTCDateTime = Annotated[datetime, AfterValidator(_ensure_utc)]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CollectionName(str, Enum):
    """Record collections, also used as storage keys and remote collection ids."""
    STUDENTS = "students"
    SUBJECTS = "subjects"
    ATTENDANCE = "attendance"
    GRADES = "grades"
    ASSESSMENTS = "assessments"


class Gender(str, Enum):
    MALE = "Male"
    FEMALE = "Female"


class AttendanceStatus(str, Enum):
    """Attendance status values"""
    PRESENT = "Present"
    LATE = "Late"
    ABSENT = "Absent"


class GradeCategory(str, Enum):
    """Grade categories shared by weights, labels and assessments"""
    QUIZ = "quiz"
    ASSIGNMENT = "assignment"
    EXAM = "exam"
    PROJECT = "project"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RecordModel(CamelModel):
    """Base for every persisted record."""
    id: str = Field(..., min_length=1)


class GradeWeights(CamelModel):
    """Category weights as 0-1 fractions (0.2 is 20%)."""
    quiz: float = Field(..., ge=0, le=1)
    assignment: float = Field(..., ge=0, le=1)
    exam: float = Field(..., ge=0, le=1)
    project: float = Field(..., ge=0, le=1)


class GradeLabels(CamelModel):
    quiz: str
    assignment: str
    exam: str
    project: str


class GradeSettings(CamelModel):
    labels: GradeLabels
    weights: GradeWeights


class Student(RecordModel):
    name: str
    student_id: str
    subject_id: str
    qr_code: str
    created_at: UTCDateTime
    updated_at: UTCDateTime
    first_name: Optional[str] = None
    middle_name: Optional[str] = None
    last_name: Optional[str] = None
    gender: Optional[Gender] = None
    dob: Optional[UTCDateTime] = None
    section: Optional[str] = None
    year_level: Optional[str] = None


class Subject(RecordModel):
    name: str
    teacher_id: str
    created_at: UTCDateTime
    updated_at: UTCDateTime
    grade_settings: Optional[GradeSettings] = None


class Attendance(RecordModel):
    student_id: str
    subject_id: str
    date: UTCDateTime
    status: AttendanceStatus
    timestamp: UTCDateTime


class Grade(RecordModel):
    student_id: str
    subject_id: str
    quarter: int = Field(..., ge=1, le=4)
    quiz: float
    assignment: float
    exam: float
    project: float
    final_grade: Optional[float] = None
    created_at: UTCDateTime
    updated_at: UTCDateTime


class Assessment(RecordModel):
    student_id: str
    subject_id: str
    quarter: int = Field(..., ge=1, le=4)
    date: UTCDateTime
    category: GradeCategory
    title: str
    score: float = Field(..., ge=0)
    total: float = Field(..., ge=0)
    created_at: UTCDateTime
    updated_at: UTCDateTime


class TeacherProfile(RecordModel):
    email: str
    name: str
    created_at: UTCDateTime
    updated_at: UTCDateTime


RECORD_TYPES: Dict[CollectionName, Type[RecordModel]] = {
    CollectionName.STUDENTS: Student,
    CollectionName.SUBJECTS: Subject,
    CollectionName.ATTENDANCE: Attendance,
    CollectionName.GRADES: Grade,
    CollectionName.ASSESSMENTS: Assessment,
}


def collection_for(record: RecordModel) -> CollectionName:
    """Return the collection a record instance belongs to."""
    for name, model in RECORD_TYPES.items():
        if type(record) is model:
            return name
    raise TypeError(f"Unsupported record type: {type(record).__name__}")
