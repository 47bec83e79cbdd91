"""
Time helpers for slot arithmetic.

Booking times are handled as minutes since midnight so that intervals can be
compared with plain integers. Intervals are half-open: [start, end).
"""
import re
from datetime import date, datetime, time


MINUTES_PER_DAY = 24 * 60

# 0=Sunday ... 6=Saturday, matching the `day` column of availability windows
DAY_NAMES = (
    "sunday",
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
)


ISO_DATE = re.compile(r"\d{4}-\d{2}-\d{2}")


def parse_date(value: str) -> date:
    """Parse a zero-padded YYYY-MM-DD string. Raises ValueError on anything else."""
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not ISO_DATE.fullmatch(value):
        raise ValueError(f"Invalid date '{value}', expected YYYY-MM-DD")
    return date.fromisoformat(value)


def parse_time(value: str) -> time:
    """
    Parse HH:MM or HH:MM:SS into a whole-minute time.

    Slot arithmetic works in minutes, so seconds and microseconds must be
    zero. Raises ValueError otherwise.
    """
    if isinstance(value, time):
        parsed = value
    else:
        for fmt in ("%H:%M", "%H:%M:%S"):
            try:
                parsed = datetime.strptime(value, fmt).time()
                break
            except (TypeError, ValueError):
                continue
        else:
            raise ValueError(f"Invalid time '{value}', expected HH:MM")
    if parsed.second or parsed.microsecond or parsed.tzinfo is not None:
        raise ValueError(f"Invalid time '{value}', expected whole minutes (HH:MM)")
    return parsed


def day_of_week(day: date) -> int:
    """Weekday with Sunday as 0."""
    return (day.weekday() + 1) % 7


def to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def from_minutes(minutes: int) -> time:
    """Inverse of to_minutes. 1440 (end of day) is clamped to 23:59."""
    if minutes >= MINUTES_PER_DAY:
        return time(23, 59)
    return time(minutes // 60, minutes % 60)


def format_minutes(minutes: int) -> str:
    """HH:MM rendering; 1440 renders as 24:00."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def intervals_overlap(start1: int, end1: int, start2: int, end2: int) -> bool:
    """Half-open overlap test: [start1, end1) and [start2, end2) share a point."""
    return start1 < end2 and start2 < end1
