"""Shared validation utilities"""

import re
import uuid
from typing import Optional

TIME_RANGE_PATTERN = re.compile(r"^(\d{2}):(\d{2})-(\d{2}):(\d{2})$")


def validate_uuid(value: str) -> bool:
    """Validate UUID format"""
    try:
        uuid.UUID(value)
        return True
    except (ValueError, AttributeError, TypeError):
        return False


def validate_time_range(value: str) -> tuple[str, str]:
    """
    Validate a weekly window written as "HH:MM-HH:MM".

    Args:
        value: Time range string, e.g. "09:00-17:00"

    Returns:
        Tuple of (start "HH:MM", end "HH:MM")

    Raises:
        ValueError: If the format is wrong, a clock value is out of range,
            or the start is not before the end
    """
    match = TIME_RANGE_PATTERN.match((value or "").strip())
    if not match:
        raise ValueError("Time slot must be in 'HH:MM-HH:MM' format")

    start_h, start_m, end_h, end_m = (int(part) for part in match.groups())
    for hour, minute in ((start_h, start_m), (end_h, end_m)):
        if hour > 23 or minute > 59:
            raise ValueError(f"Invalid clock time in {value!r}")

    if (start_h, start_m) >= (end_h, end_m):
        raise ValueError(f"Time slot {value!r} must start before it ends")

    return f"{start_h:02d}:{start_m:02d}", f"{end_h:02d}:{end_m:02d}"


def clean_address(address: Optional[str], min_length: int, max_length: int) -> str:
    """
    Normalize a service address and enforce its length bounds.

    Leading, trailing and repeated whitespace is collapsed before measuring.

    Raises:
        ValueError: If the address is shorter than min_length or longer than max_length
    """
    collapsed = " ".join((address or "").split())
    if len(collapsed) < min_length:
        raise ValueError(f"Address must be at least {min_length} characters")
    if len(collapsed) > max_length:
        raise ValueError(f"Address exceeds maximum length of {max_length} characters")
    return collapsed
