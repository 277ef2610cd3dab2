"""
Conversion between plain Python values and Firestore REST typed values.
"""

import logging
from datetime import datetime
from typing import Any, Dict

from .base import RemoteTimestamp

logger = logging.getLogger(__name__)


def encode_value(value: Any) -> Dict[str, Any]:
    """Wrap a Python value in its Firestore typed-value envelope."""
    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, RemoteTimestamp):
        return {"timestampValue": value.to_rfc3339()}
    if isinstance(value, datetime):
        return {"timestampValue": RemoteTimestamp.from_datetime(value).to_rfc3339()}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    raise TypeError(f"Cannot encode value of type {type(value).__name__}")


def encode_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    return {str(key): encode_value(value) for key, value in data.items()}


def decode_value(typed: Dict[str, Any]) -> Any:
    """Unwrap a Firestore typed value.

    A timestamp that does not parse is returned as its raw string so callers
    can apply their own fallback.
    """
    if "nullValue" in typed:
        return None
    if "booleanValue" in typed:
        return bool(typed["booleanValue"])
    if "integerValue" in typed:
        return int(typed["integerValue"])
    if "doubleValue" in typed:
        return float(typed["doubleValue"])
    if "timestampValue" in typed:
        raw = typed["timestampValue"]
        try:
            return RemoteTimestamp.from_rfc3339(raw)
        except (TypeError, ValueError):
            logger.warning(f"Unparseable timestamp value: {raw!r}")
            return raw
    if "stringValue" in typed:
        return typed["stringValue"]
    if "mapValue" in typed:
        return decode_fields(typed["mapValue"].get("fields", {}))
    if "arrayValue" in typed:
        return [decode_value(v) for v in typed["arrayValue"].get("values", [])]
    if "referenceValue" in typed:
        return typed["referenceValue"]
    if "bytesValue" in typed:
        return typed["bytesValue"]
    if "geoPointValue" in typed:
        return dict(typed["geoPointValue"])
    raise ValueError(f"Unknown typed value: {sorted(typed)}")


def decode_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {key: decode_value(value) for key, value in fields.items()}
