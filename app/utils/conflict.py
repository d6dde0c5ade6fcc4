# app/utils/conflict.py
from dataclasses import dataclass
from typing import Dict, FrozenSet, List


@dataclass(frozen=True)
class Clash:
    entry1_id: str
    entry2_id: str
    day: str

    @property
    def pair(self) -> FrozenSet[str]:
        return frozenset((self.entry1_id, self.entry2_id))


def overlaps(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    """
    [start, end) 半開區間：10:00 結束與 10:00 開始不算衝堂
    """
    return a_start < b_end and b_start < a_end


def is_clash(a, b) -> bool:
    """
    判斷兩筆課表項目是否衝堂：
    1. 星期相同
    2. 時間區間有重疊
    """
    return a.day == b.day and overlaps(a.start, a.end, b.start, b.end)


def detect_clashes(entries) -> List[Clash]:
    """
    entries: 有 id / day / start / end 的物件（依加入順序）

    同一天的每一組重疊都獨立回報，三堂互相重疊就是三組
    """
    by_day: Dict[str, list] = {}
    for e in entries:
        by_day.setdefault(e.day, []).append(e)

    clashes = []
    for e in entries:
        same_day = by_day.pop(e.day, None)
        if not same_day:
            continue
        for i in range(len(same_day)):
            for j in range(i + 1, len(same_day)):
                a, b = same_day[i], same_day[j]
                if overlaps(a.start, a.end, b.start, b.end):
                    clashes.append(Clash(entry1_id=a.id, entry2_id=b.id, day=a.day))
    return clashes
