from itertools import combinations, count

import pytest

from app.utils.conflict import detect_clashes
from app.utils.errors import NotFoundError, ValidationError
from app.utils.timetable_engine import CourseRef, TimetableEngine

DAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


@pytest.fixture
def engine():
    ids = count(1)
    return TimetableEngine(days=DAYS, id_factory=lambda: f"e{next(ids)}")


def pairs(clashes):
    return {c.pair for c in clashes}


def test_clash_scenarios(engine):
    first, clashes = engine.add_entry("Monday", "09:00", "10:00", CourseRef("CS101"), "Room101", "lecture")
    assert clashes == []

    second, clashes = engine.add_entry("Monday", "09:30", "10:30", CourseRef("CS102"), "Room102", "lecture")
    assert pairs(clashes) == {frozenset({first.id, second.id})}
    assert clashes[0].day == "Monday"

    tuesday, clashes = engine.add_entry("Tuesday", "09:00", "10:00", CourseRef("CS103"), "Room103", "lab")
    assert pairs(clashes) == {frozenset({first.id, second.id})}

    engine.delete_entry(first.id)
    assert engine.get_clashes() == []
    assert [e.id for e in engine.entries] == [second.id, tuesday.id]
    assert engine.get(tuesday.id).type == "lab"


def test_invalid_range_leaves_timetable_unchanged(engine):
    engine.add_entry("Monday", "09:00", "10:00", "CS101", "Room101")
    before = engine.entries

    with pytest.raises(ValidationError) as exc:
        engine.add_entry("Monday", "10:00", "09:00", "CS101", "Room101")
    assert exc.value.field == "end_time"
    assert engine.entries == before


def test_delete_unknown_id(engine):
    engine.add_entry("Monday", "09:00", "10:00", "CS101", "Room101")
    before = engine.entries

    with pytest.raises(NotFoundError):
        engine.delete_entry("nope")
    assert engine.entries == before


@pytest.mark.parametrize(
    "kwargs,field",
    [
        ({"day": "Sunday"}, "day"),
        ({"start_time": "9am"}, "start_time"),
        ({"end_time": "25:00"}, "end_time"),
        ({"course": "  "}, "course_id"),
        ({"room": ""}, "room"),
        ({"type": "workshop"}, "type"),
    ],
)
def test_add_rejects_invalid_fields(engine, kwargs, field):
    args = {
        "day": "Monday",
        "start_time": "09:00",
        "end_time": "10:00",
        "course": "CS101",
        "room": "Room101",
        "type": "lecture",
    }
    args.update(kwargs)
    with pytest.raises(ValidationError) as exc:
        engine.add_entry(**args)
    assert exc.value.field == field
    assert len(engine) == 0


def test_entries_are_normalized(engine):
    entry, _ = engine.add_entry(" Wednesday ", "8:05", "9:50", " CS101 ", " Lab 2 ", None)
    assert entry.day == "Wednesday"
    assert (entry.start_time, entry.end_time) == ("08:05", "09:50")
    assert entry.course == CourseRef("CS101")
    assert entry.room == "Lab 2"
    assert entry.type == "lecture"


def test_back_to_back_entries_do_not_clash(engine):
    engine.add_entry("Thursday", "09:00", "10:00", "CS101", "R1")
    _, clashes = engine.add_entry("Thursday", "10:00", "11:00", "CS102", "R2")
    assert clashes == []


def test_adding_never_removes_existing_clashes(engine):
    engine.add_entry("Monday", "09:00", "10:00", "A", "R")
    engine.add_entry("Monday", "09:30", "10:30", "B", "R")
    seen = pairs(engine.get_clashes())
    for day, start, end in [("Monday", "10:15", "11:00"), ("Friday", "09:00", "10:00"), ("Monday", "08:00", "12:00")]:
        _, clashes = engine.add_entry(day, start, end, "X", "R")
        assert seen <= pairs(clashes)
        seen = pairs(clashes)


def test_delete_only_drops_pairs_of_deleted_entry(engine):
    a, _ = engine.add_entry("Monday", "09:00", "11:00", "A", "R")
    b, _ = engine.add_entry("Monday", "10:00", "12:00", "B", "R")
    c, _ = engine.add_entry("Monday", "10:30", "13:00", "C", "R")
    d, _ = engine.add_entry("Tuesday", "09:00", "10:00", "D", "R")
    e, _ = engine.add_entry("Tuesday", "09:30", "10:30", "E", "R")

    before = pairs(engine.get_clashes())
    engine.delete_entry(b.id)
    after = pairs(engine.get_clashes())

    assert after == {p for p in before if b.id not in p}
    assert frozenset({d.id, e.id}) in after
    assert frozenset({a.id, c.id}) in after


def test_clashes_never_drift_from_full_recomputation(engine):
    ops = [
        ("add", ("Monday", "09:00", "10:00")),
        ("add", ("Monday", "09:30", "11:00")),
        ("add", ("Monday", "10:59", "12:00")),
        ("del", 0),
        ("add", ("Saturday", "09:00", "10:00")),
        ("add", ("Monday", "08:00", "09:31")),
        ("del", 2),
        ("add", ("Saturday", "09:59", "10:30")),
    ]
    added = []
    for op, arg in ops:
        if op == "add":
            entry, _ = engine.add_entry(*arg, course="C", room="R")
            added.append(entry.id)
        else:
            engine.delete_entry(added[arg])

        expected = {
            frozenset({x.id, y.id})
            for x, y in combinations(engine.entries, 2)
            if x.day == y.day and x.start < y.end and y.start < x.end
        }
        assert pairs(engine.get_clashes()) == expected
        assert engine.get_clashes() == detect_clashes(engine.entries)


def test_entries_for_day_keeps_insertion_order(engine):
    a, _ = engine.add_entry("Monday", "13:00", "14:00", "A", "R")
    engine.add_entry("Tuesday", "09:00", "10:00", "B", "R")
    c, _ = engine.add_entry("Monday", "08:00", "09:00", "C", "R")

    assert [e.id for e in engine.entries_for_day("Monday")] == [a.id, c.id]
    # restartable
    assert engine.entries_for_day("Monday") == engine.entries_for_day("Monday")
    assert engine.entries_for_day("Friday") == []
    with pytest.raises(ValidationError):
        engine.entries_for_day("Sunday")


def test_replace_entries_is_all_or_nothing(engine):
    keep, _ = engine.add_entry("Monday", "09:00", "10:00", "A", "R")

    with pytest.raises(ValidationError) as exc:
        engine.replace_entries([
            {"day": "Tuesday", "start_time": "09:00", "end_time": "10:00", "course": "B", "room": "R"},
            {"day": "Tuesday", "start_time": "11:00", "end_time": "10:00", "course": "C", "room": "R"},
        ])
    assert exc.value.field == "entries[1].end_time"
    assert [e.id for e in engine.entries] == [keep.id]

    clashes = engine.replace_entries([
        {"day": "Tuesday", "start_time": "09:00", "end_time": "10:00", "course": "B", "room": "R"},
        {"day": "Tuesday", "start_time": "09:30", "end_time": "10:00", "course": "C", "room": "R", "type": "seminar"},
    ])
    assert keep.id not in engine
    assert len(engine) == 2
    assert len(clashes) == 1


def test_rehydrated_engine_recomputes_clashes(engine):
    engine.add_entry("Monday", "09:00", "10:00", CourseRef("1", "CS101", "Intro"), "R")
    engine.add_entry("Monday", "09:30", "10:30", CourseRef("2", "CS102", "DS"), "R")

    copy = TimetableEngine(entries=engine.entries, days=DAYS)
    assert copy.entries == engine.entries
    assert copy.get_clashes() == engine.get_clashes()


def test_rehydration_rejects_duplicate_ids(engine):
    entry, _ = engine.add_entry("Monday", "09:00", "10:00", "A", "R")
    with pytest.raises(ValidationError):
        TimetableEngine(entries=[entry, entry], days=DAYS)


def test_stored_day_outside_configured_days_stays_usable(engine):
    saturday, _ = engine.add_entry("Saturday", "09:00", "10:00", "A", "R")
    engine.add_entry("Saturday", "09:30", "10:30", "B", "R")

    weekdays = TimetableEngine(entries=engine.entries, days=DAYS[:5])
    assert weekdays.entries == engine.entries
    assert len(weekdays.get_clashes()) == 1
    assert [e.id for e in weekdays.entries_for_day("Saturday")][0] == saturday.id

    with pytest.raises(ValidationError) as exc:
        weekdays.add_entry("Saturday", "11:00", "12:00", "C", "R")
    assert exc.value.field == "day"

    weekdays.delete_entry(saturday.id)
    assert weekdays.get_clashes() == []
    with pytest.raises(ValidationError):
        weekdays.replace_entries([{"day": "Saturday", "start_time": "09:00", "end_time": "10:00", "course": "A", "room": "R"}])
