"""
Utility modules for TeachEase.
"""

from .identifiers import (
    generate_unique_id,
    quarter_grade_id,
    generate_qr_payload,
    parse_qr_payload
)

__all__ = [
    "generate_unique_id",
    "quarter_grade_id",
    "generate_qr_payload",
    "parse_qr_payload"
]
