"""Shared validation utilities"""

import re
from datetime import date, datetime
from typing import Optional

TIME_24H_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def validate_iso_date(value: Optional[str]) -> date:
    """
    Parse a 'YYYY-MM-DD' calendar date.

    Raises:
        ValueError: If the value is missing or not a valid date
    """
    if not value:
        raise ValueError("Date is required")
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise ValueError("Invalid date format. Expected YYYY-MM-DD") from None


def validate_time_24h(value: Optional[str]) -> str:
    """
    Validate a 24-hour 'HH:MM' time-of-day and return it normalized.

    Raises:
        ValueError: If the value is missing or malformed
    """
    if not value:
        raise ValueError("Time is required")
    value = value.strip()
    if not TIME_24H_PATTERN.match(value):
        raise ValueError("Invalid time format. Expected HH:MM (24-hour)")
    return value


def normalize_coupon_code(code: Optional[str]) -> str:
    """Coupon codes are case-insensitive; stored and compared uppercase"""
    normalized = (code or "").strip().upper()
    if not normalized:
        raise ValueError("Coupon code is required")
    return normalized
