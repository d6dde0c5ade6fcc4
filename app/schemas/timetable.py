from typing import List, Optional
from pydantic import BaseModel, Field


class EntryCourseOut(BaseModel):
    id: int
    code: Optional[str] = None
    name: Optional[str] = None


class EntryIn(BaseModel):
    day: str
    start_time: str = Field(..., examples=["09:00"])
    end_time: str = Field(..., examples=["10:00"])
    course_id: int
    room: str
    type: Optional[str] = "lecture"


class EntryOut(BaseModel):
    id: str
    day: str
    start_time: str
    end_time: str
    course: EntryCourseOut
    room: str
    type: str


class ClashOut(BaseModel):
    day: str
    entry1: EntryOut
    entry2: EntryOut


class TimetableOut(BaseModel):
    id: int
    semester: int
    year: int
    entries: List[EntryOut] = []
    clashes: List[ClashOut] = []


class TimetableSaveIn(BaseModel):
    semester: int = Field(..., ge=1, le=2)
    year: int = Field(..., ge=2000, le=2100)
    entries: List[EntryIn] = []


class TimetableResponse(BaseModel):
    message: str
    timetable: TimetableOut
    # 沒有衝堂時為 null
    clashes: Optional[List[ClashOut]] = None


class AddEntryResponse(TimetableResponse):
    entry: EntryOut


class ClashesResponse(BaseModel):
    count: int
    clashes: List[ClashOut]


class DayEntriesResponse(BaseModel):
    day: str
    entries: List[EntryOut]
