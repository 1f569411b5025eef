from datetime import date, datetime, time, timedelta
from typing import Optional

from ...config import RESCHEDULE_WINDOW_DAYS


def parse_time_24h(time_str: str) -> time:
    """'HH:MM' -> time"""
    return datetime.strptime(time_str.strip(), "%H:%M").time()


def to_minutes(time_str: str) -> int:
    """'HH:MM' -> minutes since midnight"""
    t = parse_time_24h(time_str)
    return t.hour * 60 + t.minute


def from_minutes(minutes: int) -> str:
    """minutes since midnight -> 'HH:MM'"""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def format_time_12h(time_str: str) -> str:
    """
    Render a 24-hour 'HH:MM' value for display: '13:30' -> '1:30 PM'.
    Hours 0 and 12 both display as 12.
    """
    hours, minutes = time_str.split(":")
    hour = int(hours)
    period = "PM" if hour >= 12 else "AM"
    display_hour = hour % 12 or 12
    return f"{display_hour}:{minutes} {period}"


def format_booking_date(day: date) -> str:
    """2026-10-17 -> 'Saturday, October 17, 2026'"""
    return f"{day:%A, %B} {day.day}, {day.year}"


def local_today() -> date:
    """Start of the current day in the local timezone"""
    return datetime.now().date()


def is_date_selectable(
    day: date, today: Optional[date] = None, window_days: int = RESCHEDULE_WINDOW_DAYS
) -> bool:
    """Days before today are never selectable; neither are days past the booking window"""
    today = today or local_today()
    return today <= day <= today + timedelta(days=window_days)
