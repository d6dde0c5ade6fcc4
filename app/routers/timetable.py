from typing import Dict, Optional
from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.database import get_db
from app.utils.auth import get_current_user

from app.models.course import Course
from app.models.timetable import Timetable, TimetableEntry

from app.schemas.timetable import (
    EntryIn, EntryOut, EntryCourseOut, ClashOut, TimetableOut, TimetableSaveIn,
    TimetableResponse, AddEntryResponse, ClashesResponse, DayEntriesResponse,
)
from app.utils.errors import NotFoundError, TimetableError, ValidationError
from app.utils.excel_export import timetable_to_xlsx_bytes, make_filename
from app.utils.owner_locks import timetable_locks
from app.utils.timeslots import default_term, parse_clock
from app.utils.timetable_engine import CourseRef, Entry, TimetableEngine

import logging
logger = logging.getLogger("app.timetable")


router = APIRouter(prefix="/timetable", tags=["Timetable"])


def _load_timetable(db: Session, user_id: int, for_update: bool = False) -> Optional[Timetable]:
    q = db.query(Timetable).filter(Timetable.user_id == user_id)
    if for_update:
        # 多個 worker 同時改同一份課表時，用 row lock 排隊（sqlite 會忽略）
        q = q.with_for_update()
    return q.first()


def _require_timetable(db: Session, user_id: int, for_update: bool = False) -> Timetable:
    tt = _load_timetable(db, user_id, for_update=for_update)
    if tt is None:
        raise NotFoundError("Timetable not found")
    return tt


def _to_entry(row: TimetableEntry) -> Entry:
    return Entry(
        id=row.id,
        day=row.day,
        start=parse_clock(row.start_time, "start_time"),
        end=parse_clock(row.end_time, "end_time"),
        course=CourseRef(id=str(row.course_id), code=row.course.code, name=row.course.name),
        room=row.room,
        type=row.type,
    )


def _engine_for(tt: Optional[Timetable]) -> TimetableEngine:
    if tt is None:
        return TimetableEngine()
    return TimetableEngine(entries=[_to_entry(r) for r in tt.entries])


def _course_ref(course: Course) -> CourseRef:
    return CourseRef(id=str(course.id), code=course.code, name=course.name)


def _to_row(entry: Entry, position: int) -> TimetableEntry:
    return TimetableEntry(
        id=entry.id,
        position=position,
        day=entry.day,
        start_time=entry.start_time,
        end_time=entry.end_time,
        course_id=int(entry.course.id),
        room=entry.room,
        type=entry.type,
    )


def _entry_out(e: Entry) -> EntryOut:
    return EntryOut(
        id=e.id,
        day=e.day,
        start_time=e.start_time,
        end_time=e.end_time,
        course=EntryCourseOut(id=int(e.course.id), code=e.course.code, name=e.course.name),
        room=e.room,
        type=e.type,
    )


def _clashes_out(engine: TimetableEngine) -> list[ClashOut]:
    by_id: Dict[str, Entry] = {e.id: e for e in engine.entries}
    return [
        ClashOut(
            day=c.day,
            entry1=_entry_out(by_id[c.entry1_id]),
            entry2=_entry_out(by_id[c.entry2_id]),
        )
        for c in engine.get_clashes()
    ]


def _timetable_out(tt: Timetable, engine: TimetableEngine) -> TimetableOut:
    return TimetableOut(
        id=tt.id,
        semester=tt.semester,
        year=tt.year,
        entries=[_entry_out(e) for e in engine.entries],
        clashes=_clashes_out(engine),
    )


def _commit(db: Session):
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to save timetable")
        raise


def _courses_by_id(db: Session, course_ids) -> Dict[int, Course]:
    ids = list(dict.fromkeys(course_ids))
    if not ids:
        return {}
    return {c.id: c for c in db.query(Course).filter(Course.id.in_(ids)).all()}


@router.get("", response_model=TimetableOut)
def get_my_timetable(db: Session = Depends(get_db), user=Depends(get_current_user)):
    tt = _require_timetable(db, user.id)
    return _timetable_out(tt, _engine_for(tt))


# 整份課表建立 / 覆蓋
@router.post("", response_model=TimetableResponse)
def save_my_timetable(
    body: TimetableSaveIn,
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
):
    with timetable_locks.hold(user.id):
        try:
            course_map = _courses_by_id(db, [e.course_id for e in body.entries])
            for i, item in enumerate(body.entries):
                if item.course_id not in course_map:
                    raise ValidationError(f"entries[{i}].course_id", "Course not found")

            engine = TimetableEngine()
            engine.replace_entries([
                {
                    "day": item.day,
                    "start_time": item.start_time,
                    "end_time": item.end_time,
                    "course": _course_ref(course_map[item.course_id]),
                    "room": item.room,
                    "type": item.type,
                }
                for item in body.entries
            ])

            tt = _load_timetable(db, user.id, for_update=True)
            if tt is None:
                tt = Timetable(user_id=user.id)
                db.add(tt)
            tt.semester = body.semester
            tt.year = body.year
            tt.entries.clear()
            for pos, entry in enumerate(engine.entries):
                tt.entries.append(_to_row(entry, pos))
            _commit(db)
        except TimetableError:
            db.rollback()
            raise

        clashes = _clashes_out(engine)
        logger.info("[timetable] user.id=%s saved %d entries, %d clashes", user.id, len(engine), len(clashes))
        return TimetableResponse(
            message="Timetable saved successfully",
            timetable=_timetable_out(tt, engine),
            clashes=clashes or None,
        )


def _add_entry_once(db: Session, user_id: int, body: EntryIn, course: Course):
    tt = _load_timetable(db, user_id, for_update=True)
    if tt is None:
        semester, year = default_term()
        tt = Timetable(user_id=user_id, semester=semester, year=year)
        db.add(tt)
        logger.info("[timetable] user.id=%s created timetable %s/%s", user_id, year, semester)

    engine = _engine_for(tt)
    entry, _ = engine.add_entry(
        body.day, body.start_time, body.end_time, _course_ref(course), body.room, body.type,
    )
    next_pos = max((r.position for r in tt.entries), default=-1) + 1
    tt.entries.append(_to_row(entry, next_pos))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise
    return tt, engine, entry


# 新增一堂課（衝堂只警告，不擋）
@router.post("/entry", response_model=AddEntryResponse)
def add_entry(
    body: EntryIn,
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
):
    with timetable_locks.hold(user.id):
        try:
            course = db.query(Course).filter(Course.id == body.course_id).first()
            if not course:
                raise ValidationError("course_id", "Course not found")

            try:
                tt, engine, entry = _add_entry_once(db, user.id, body, course)
            except IntegrityError:
                # another worker created this owner's timetable first
                logger.info("[timetable] user.id=%s timetable created concurrently, retrying", user.id)
                tt, engine, entry = _add_entry_once(db, user.id, body, course)
        except TimetableError:
            db.rollback()
            raise

        clashes = _clashes_out(engine)
        logger.info("[timetable] user.id=%s added entry %s", user.id, entry.id)
        if clashes:
            logger.warning("[timetable] user.id=%s has %d clash(es)", user.id, len(clashes))

        return AddEntryResponse(
            message="Entry added successfully",
            entry=_entry_out(entry),
            timetable=_timetable_out(tt, engine),
            clashes=clashes or None,
        )


@router.delete("/entry/{entry_id}", response_model=TimetableResponse)
def delete_entry(entry_id: str, db: Session = Depends(get_db), user=Depends(get_current_user)):
    with timetable_locks.hold(user.id):
        tt = _require_timetable(db, user.id, for_update=True)
        engine = _engine_for(tt)
        engine.delete_entry(entry_id)

        row = next(r for r in tt.entries if r.id == entry_id)
        tt.entries.remove(row)
        _commit(db)

        clashes = _clashes_out(engine)
        logger.info("[timetable] user.id=%s deleted entry %s, %d clash(es) left", user.id, entry_id, len(clashes))
        return TimetableResponse(
            message="Entry deleted successfully",
            timetable=_timetable_out(tt, engine),
            clashes=clashes or None,
        )


@router.get("/clashes", response_model=ClashesResponse)
def get_my_clashes(db: Session = Depends(get_db), user=Depends(get_current_user)):
    tt = _require_timetable(db, user.id)
    clashes = _clashes_out(_engine_for(tt))
    return ClashesResponse(count=len(clashes), clashes=clashes)


@router.get("/days/{day}", response_model=DayEntriesResponse)
def get_entries_for_day(day: str, db: Session = Depends(get_db), user=Depends(get_current_user)):
    engine = _engine_for(_require_timetable(db, user.id))
    entries = engine.entries_for_day(day)
    return DayEntriesResponse(day=day.strip(), entries=[_entry_out(e) for e in entries])


@router.get("/export")
def export_my_timetable(db: Session = Depends(get_db), user=Depends(get_current_user)):
    """
    匯出課表成 Excel（.xlsx），衝堂的課會標紅
    """
    tt = _require_timetable(db, user.id)
    engine = _engine_for(tt)

    xlsx_bytes = timetable_to_xlsx_bytes(engine.entries, engine.get_clashes(), engine.days)
    filename = make_filename(f"timetable_{tt.year}_{tt.semester}")

    return StreamingResponse(
        iter([xlsx_bytes]),
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
