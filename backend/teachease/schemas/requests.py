"""
Request bodies for the HTTP control surface
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Dict, Optional

from teachease.schemas.records import AttendanceStatus


class AttendanceScanRequest(BaseModel):
    payload: str = Field(..., min_length=1)
    status: AttendanceStatus = AttendanceStatus.PRESENT
    at: Optional[datetime] = None


class GradeSettingsRequest(BaseModel):
    """Weights are whole percentages that must add up to 100."""
    weights: Dict[str, float]
    labels: Optional[Dict[str, str]] = None


class SignInRequest(BaseModel):
    email: str
    password: str


class SignUpRequest(SignInRequest):
    name: str = ""


class SessionResponse(BaseModel):
    uid: str
    email: str
    display_name: str = ""
