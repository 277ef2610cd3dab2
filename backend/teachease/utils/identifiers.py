"""
Record identifiers and QR payloads.
"""

import secrets
import string
import time
from typing import Optional, Tuple

from teachease.core.config import settings

_BASE36 = string.digits + string.ascii_lowercase


def generate_unique_id() -> str:
    """Return ``{epoch_ms}-{9 random base36 chars}``."""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"{int(time.time() * 1000)}-{suffix}"


def quarter_grade_id(student_id: str, subject_id: str, quarter: int) -> str:
    """Canonical grade ID: one grade per student, subject and quarter."""
    return f"{student_id}-{subject_id}-q{quarter}"


def generate_qr_payload(student_id: str, subject_id: str, prefix: Optional[str] = None) -> str:
    return f"{prefix or settings.QR_CODE_PREFIX}:{student_id}:{subject_id}"


def parse_qr_payload(payload: str, prefix: Optional[str] = None) -> Optional[Tuple[str, str]]:
    """Return (student_id, subject_id) from a scanned payload, or None if it is not ours."""
    parts = (payload or "").strip().split(":")
    if len(parts) != 3 or parts[0] != (prefix or settings.QR_CODE_PREFIX):
        return None
    if not parts[1] or not parts[2]:
        return None
    return parts[1], parts[2]
