from __future__ import annotations
from typing import Sequence
from io import BytesIO
from datetime import datetime

from openpyxl import Workbook
from openpyxl.utils import get_column_letter
from openpyxl.styles import Font, Alignment, PatternFill

HEADERS = ["Day", "Start", "End", "Course code", "Course name", "Room", "Type", "Clash"]
CLASH_FILL = PatternFill(start_color="FFF4CCCC", end_color="FFF4CCCC", fill_type="solid")


def timetable_to_xlsx_bytes(entries: Sequence, clashes: Sequence, days: Sequence[str], sheet_name: str = "Timetable") -> bytes:
    """
    entries: TimetableEngine 的 Entry
    依星期（設定順序）再依開始時間排列，有衝堂的列標紅
    """
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_name[:31]

    ws.append(HEADERS)
    header_font = Font(bold=True)
    for col_idx in range(1, len(HEADERS) + 1):
        cell = ws.cell(row=1, column=col_idx)
        cell.font = header_font
        cell.alignment = Alignment(horizontal="center", vertical="center")

    clashing = set()
    for c in clashes:
        clashing |= c.pair

    day_order = {d: i for i, d in enumerate(days)}
    rows = sorted(entries, key=lambda e: (day_order.get(e.day, len(day_order)), e.start, e.end))
    for e in rows:
        ws.append([
            e.day,
            e.start_time,
            e.end_time,
            e.course.code,
            e.course.name,
            e.room,
            e.type,
            "yes" if e.id in clashing else None,
        ])
        if e.id in clashing:
            for col_idx in range(1, len(HEADERS) + 1):
                ws.cell(row=ws.max_row, column=col_idx).fill = CLASH_FILL

    # autosize columns
    for col_idx, h in enumerate(HEADERS, start=1):
        max_len = len(h)
        for row_idx in range(2, ws.max_row + 1):
            v = ws.cell(row=row_idx, column=col_idx).value
            if v is None:
                continue
            max_len = max(max_len, len(str(v)))
        ws.column_dimensions[get_column_letter(col_idx)].width = min(max_len + 2, 60)

    buf = BytesIO()
    wb.save(buf)
    return buf.getvalue()


def make_filename(prefix: str = "timetable") -> str:
    ts = datetime.now().strftime("%Y%m%d_%H%M%S")
    return f"{prefix}_{ts}.xlsx"
