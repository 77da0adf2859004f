"""
Schemas
File: canonical.py

Purpose: Deterministic timestamp and JSON canonicalization shared by the
leaf codec, receipts and ledger memo payloads.

CRITICAL: All outputs from this module MUST be deterministic across runs.
"""

import json
import math
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel

# Canonical JSON separators - no whitespace
CANONICAL_JSON_SEPARATORS: tuple[str, str] = (",", ":")

# Timestamp format used in leaf serialization (second precision, UTC)
CANONICAL_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def ensure_utc(dt: datetime) -> datetime:
    """
    Ensure a datetime is timezone-aware and in UTC.

    Rules:
        - If naive (no tzinfo): treat as UTC
        - If aware: convert to UTC
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_timestamp(value: str | datetime) -> datetime:
    """
    Parse an ISO-8601 timestamp (or pass through a datetime) as UTC.

    Accepts a trailing ``Z`` as well as explicit offsets.

    Raises:
        ValueError: If the string is not ISO-8601.
    """
    if isinstance(value, datetime):
        return ensure_utc(value)
    text = value.strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(text))


def format_timestamp_canonical(dt: datetime) -> str:
    """
    Format a datetime as second-precision ISO-8601 UTC with Z suffix.

    Raises:
        ValueError: If the datetime carries sub-second precision.

    Example:
        >>> format_timestamp_canonical(datetime(2025, 2, 2, 10, 30))
        '2025-02-02T10:30:00Z'
    """
    utc_dt = ensure_utc(dt)
    if utc_dt.microsecond != 0:
        raise ValueError(
            f"Timestamp must have second precision, got {utc_dt.isoformat()}"
        )
    return utc_dt.strftime(CANONICAL_TIMESTAMP_FORMAT)


def canonicalize_value(value: Any) -> Any:
    """
    Recursively convert a value into a JSON-serializable canonical form.

    Raises:
        ValueError: For NaN/Infinity floats or unsupported types.
    """
    if value is None or isinstance(value, (bool, int, str)):
        return value

    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"Non-finite float value encountered: {value}")
        return value

    if isinstance(value, Decimal):
        return str(value)

    if isinstance(value, datetime):
        utc_dt = ensure_utc(value)
        if utc_dt.microsecond == 0:
            return utc_dt.strftime(CANONICAL_TIMESTAMP_FORMAT)
        return utc_dt.strftime("%Y-%m-%dT%H:%M:%S.%fZ")

    if isinstance(value, Enum):
        return value.value

    if isinstance(value, BaseModel):
        return canonicalize_value(value.model_dump(mode="json", exclude_none=True))

    if isinstance(value, dict):
        return {
            str(k): canonicalize_value(v)
            for k, v in value.items()
            if v is not None
        }

    if isinstance(value, (list, tuple)):
        return [canonicalize_value(item) for item in value]

    if isinstance(value, bytes):
        return value.hex()

    raise ValueError(f"Cannot canonicalize value of type {type(value).__name__}")


def dumps_canonical(obj: Any) -> str:
    """
    Serialize an object to a canonical JSON string.

    Sorted keys, no whitespace, None fields excluded, datetimes as
    ISO-8601 with Z suffix, bytes as lowercase hex.
    """
    return json.dumps(
        canonicalize_value(obj),
        sort_keys=True,
        separators=CANONICAL_JSON_SEPARATORS,
        ensure_ascii=False,
    )
