"""
In-memory timetable for one owner.

The engine validates entries, keeps them in insertion order and recomputes
the clash set after every mutation. It does no I/O; callers load stored
entries into a fresh engine, mutate it and persist the result.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from app.config import settings
from app.utils.conflict import Clash, detect_clashes
from app.utils.errors import NotFoundError, ValidationError
from app.utils.timeslots import (
    format_clock,
    normalize_day,
    normalize_type,
    parse_time_range,
)


@dataclass(frozen=True)
class CourseRef:
    id: str
    code: Optional[str] = None
    name: Optional[str] = None


@dataclass(frozen=True)
class Entry:
    id: str
    day: str
    start: int  # minutes since 00:00
    end: int
    course: CourseRef
    room: str
    type: str = "lecture"

    @property
    def start_time(self) -> str:
        return format_clock(self.start)

    @property
    def end_time(self) -> str:
        return format_clock(self.end)


def _new_id() -> str:
    return uuid.uuid4().hex


def _course_ref(course) -> CourseRef:
    if isinstance(course, CourseRef):
        ref = course
    else:
        ref = CourseRef(id=course.strip() if isinstance(course, str) else "")
    if not ref.id:
        raise ValidationError("course_id", "course is required")
    return ref


class TimetableEngine:
    def __init__(
        self,
        entries: Iterable[Entry] = (),
        days: Optional[Sequence[str]] = None,
        id_factory: Callable[[], str] = _new_id,
    ):
        self.days = tuple(days or settings.TIMETABLE_DAYS)
        self._id_factory = id_factory
        self._entries: Dict[str, Entry] = {}
        for e in entries:
            self._insert(self._restore(e))
        self._clashes = detect_clashes(self.entries)

    @property
    def entries(self) -> Tuple[Entry, ...]:
        return tuple(self._entries.values())

    def __len__(self):
        return len(self._entries)

    def __contains__(self, entry_id):
        return entry_id in self._entries

    def get(self, entry_id: str) -> Entry:
        try:
            return self._entries[entry_id]
        except KeyError:
            raise NotFoundError(f"Entry {entry_id} not found") from None

    def build_entry(self, day, start_time, end_time, course, room, type=None, entry_id=None, days=None) -> Entry:
        """Validate raw fields and return an Entry without inserting it."""
        day = normalize_day(day, days or self.days)
        start, end = parse_time_range(start_time, end_time)
        ref = _course_ref(course)
        room = room.strip() if isinstance(room, str) else ""
        if not room:
            raise ValidationError("room", "room is required")
        entry_type = normalize_type(type)
        return Entry(
            id=entry_id or self._id_factory(),
            day=day,
            start=start,
            end=end,
            course=ref,
            room=room,
            type=entry_type,
        )

    def _restore(self, e: Entry) -> Entry:
        # a stored day stays readable after it is dropped from TIMETABLE_DAYS
        stored_day = e.day if isinstance(e.day, str) and e.day.strip() else None
        days = self.days + (stored_day,) if stored_day else self.days
        return self.build_entry(e.day, e.start_time, e.end_time, e.course, e.room, e.type, entry_id=e.id, days=days)

    def _insert(self, entry: Entry):
        if entry.id in self._entries:
            raise ValidationError("id", f"duplicate entry id {entry.id}")
        self._entries[entry.id] = entry

    def add_entry(self, day, start_time, end_time, course, room, type=None) -> Tuple[Entry, List[Clash]]:
        entry = self.build_entry(day, start_time, end_time, course, room, type)
        self._insert(entry)
        self._clashes = detect_clashes(self.entries)
        return entry, self.get_clashes()

    def delete_entry(self, entry_id: str) -> "TimetableEngine":
        self.get(entry_id)
        del self._entries[entry_id]
        self._clashes = detect_clashes(self.entries)
        return self

    def replace_entries(self, items: Iterable[dict]) -> List[Clash]:
        """
        整份課表覆蓋：全部驗證通過才替換，任何一筆失敗就什麼都不動
        items: dict(day, start_time, end_time, course, room, type)
        """
        built: Dict[str, Entry] = {}
        for i, item in enumerate(items):
            try:
                entry = self.build_entry(
                    item.get("day"),
                    item.get("start_time"),
                    item.get("end_time"),
                    item.get("course"),
                    item.get("room"),
                    item.get("type"),
                )
            except ValidationError as e:
                raise ValidationError(f"entries[{i}].{e.field}", e.message) from e
            built[entry.id] = entry
        self._entries = built
        self._clashes = detect_clashes(self.entries)
        return self.get_clashes()

    def get_clashes(self) -> List[Clash]:
        return list(self._clashes)

    def entries_for_day(self, day) -> List[Entry]:
        known = tuple(dict.fromkeys(self.days + tuple(e.day for e in self._entries.values())))
        day = normalize_day(day, known)
        return [e for e in self._entries.values() if e.day == day]
