import re
from datetime import date
from typing import Optional, Tuple

from app.utils.errors import ValidationError

ENTRY_TYPES = ("lecture", "lab", "tutorial", "seminar")

_CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


def parse_clock(value, field: str = "time") -> int:
    """
    "9:30" / "09:30" -> 570（從 00:00 起算的分鐘數）
    """
    s = (value or "").strip() if isinstance(value, str) else ""
    m = _CLOCK_RE.match(s)
    if not m:
        raise ValidationError(field, f"expected HH:MM, got {value!r}")
    hour, minute = int(m.group(1)), int(m.group(2))
    if hour > 23 or minute > 59:
        raise ValidationError(field, f"{value!r} is not a valid time of day")
    return hour * 60 + minute


def format_clock(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def parse_time_range(start_time, end_time) -> Tuple[int, int]:
    start = parse_clock(start_time, "start_time")
    end = parse_clock(end_time, "end_time")
    if start >= end:
        raise ValidationError("end_time", "end_time must be later than start_time")
    return start, end


def normalize_day(value, days) -> str:
    s = value.strip() if isinstance(value, str) else ""
    if s not in days:
        raise ValidationError("day", f"{value!r} is not one of {', '.join(days)}")
    return s


def normalize_type(value: Optional[str]) -> str:
    if value is None:
        return "lecture"
    s = value.strip() if isinstance(value, str) else ""
    if s not in ENTRY_TYPES:
        raise ValidationError("type", f"{value!r} is not one of {', '.join(ENTRY_TYPES)}")
    return s


def default_term(today: Optional[date] = None) -> Tuple[int, int]:
    """
    新建課表時的預設學期
    7~12 月 -> 第 1 學期，1~6 月 -> 第 2 學期
    """
    today = today or date.today()
    semester = 1 if today.month >= 7 else 2
    return semester, today.year
