import re
from datetime import date, datetime, timezone
from typing import NamedTuple

MINUTES_PER_DAY = 24 * 60
APPOINTMENT_DURATIONS = (15, 30, 45, 60)

_HHMM = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

class EndTime(NamedTuple):
    time: str
    rolls_over: bool

def parse_hhmm(value: str) -> int:
    """Minutes since midnight for a zero-padded "HH:mm" string."""
    match = _HHMM.match(value or "")
    if not match:
        raise ValueError(f"Invalid time '{value}', expected HH:mm")
    return int(match.group(1)) * 60 + int(match.group(2))

def format_hhmm(minutes: int) -> str:
    minutes %= MINUTES_PER_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"

def compute_end_time(start_time: str, duration) -> EndTime:
    """
    End of an appointment starting at ``start_time`` lasting ``duration``
    minutes. Wraps past midnight and flags it, so "23:50" + 30 gives
    ("00:20", True).
    """
    minutes = int(duration)
    if minutes not in APPOINTMENT_DURATIONS:
        raise ValueError(f"Unsupported appointment duration: {duration}")
    end = parse_hhmm(start_time) + minutes
    return EndTime(time=format_hhmm(end), rolls_over=end >= MINUTES_PER_DAY)

def weekday_name(day: date) -> str:
    return day.strftime("%A")

def friendly_date(day: date) -> str:
    # e.g. "Monday, June 2, 2025"
    return f"{day.strftime('%A, %B')} {day.day}, {day.year}"

def utcnow() -> datetime:
    """Timezone-aware current UTC time; timestamp columns store aware values."""
    return datetime.now(timezone.utc)
