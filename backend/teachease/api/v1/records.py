"""
API endpoints for record collections and class-record actions
"""

from fastapi import APIRouter, HTTPException, Depends, status
from typing import Any, Dict, List
import logging

from teachease.api.deps import get_services
from teachease.core.container import Services
from teachease.schemas.records import Attendance, CollectionName, Grade, Subject
from teachease.schemas.requests import AttendanceScanRequest, GradeSettingsRequest
from teachease.schemas.sync import DeleteOutcome
from teachease.services.grading import GradeWeightsError
from teachease.services.records_service import (
    AttendanceAlreadyMarkedError,
    InvalidQRCodeError,
    RecordNotFoundError
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/{collection}")
async def list_records(collection: CollectionName, services: Services = Depends(get_services)) -> List[Dict[str, Any]]:
    records = await services.storage.get(collection)
    return [r.model_dump(mode="json", by_alias=True) for r in records]


@router.post("/attendance/scan", response_model=Attendance, status_code=status.HTTP_201_CREATED)
async def scan_attendance(body: AttendanceScanRequest, services: Services = Depends(get_services)):
    """Mark attendance from a scanned student QR code"""
    try:
        return await services.records.mark_attendance_from_qr(body.payload, status=body.status, at=body.at)
    except InvalidQRCodeError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except RecordNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except AttendanceAlreadyMarkedError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "message": str(e),
                "existing": e.existing.model_dump(mode="json", by_alias=True)
            }
        )


@router.put("/subjects/{subject_id}/grade-settings", response_model=Subject)
async def update_grade_settings(
    subject_id: str,
    body: GradeSettingsRequest,
    services: Services = Depends(get_services)
):
    try:
        return await services.records.update_grade_settings(subject_id, body.weights, body.labels)
    except GradeWeightsError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    except RecordNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("/grades/{student_id}/{subject_id}/quarters/{quarter}", response_model=Grade)
async def finalize_quarter_grade(
    student_id: str,
    subject_id: str,
    quarter: int,
    services: Services = Depends(get_services)
):
    """Compute the quarter grade from assessments and save it"""
    if quarter not in (1, 2, 3, 4):
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Quarter must be 1-4")
    try:
        return await services.records.save_quarter_grade(student_id, subject_id, quarter)
    except RecordNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.delete("/students/{student_id}", response_model=DeleteOutcome)
async def delete_student(student_id: str, everywhere: bool = False, services: Services = Depends(get_services)):
    """Delete a student and its grades locally, and in the cloud when asked"""
    if everywhere:
        return await services.orchestrator.delete_student_everywhere(student_id)
    await services.storage.delete_student_cascade(student_id)
    return DeleteOutcome(record_id=student_id)


@router.delete("/subjects/{subject_id}", response_model=DeleteOutcome)
async def delete_subject(subject_id: str, everywhere: bool = False, services: Services = Depends(get_services)):
    """Delete a subject on this device only (restorable) or everywhere"""
    if everywhere:
        return await services.orchestrator.delete_subject_everywhere(subject_id)
    return await services.orchestrator.delete_subject_locally(subject_id)
