import threading
from contextlib import contextmanager
from typing import Dict, Hashable


class _Slot:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = threading.Lock()
        # holding + waiting
        self.users = 0


class OwnerLocks:
    """
    每個 owner 一把鎖：同一個人的課表修改依序執行，不同人互不影響
    沒有人持有或等待時就把鎖移除
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._slots: Dict[Hashable, _Slot] = {}

    def __len__(self):
        with self._guard:
            return len(self._slots)

    @contextmanager
    def hold(self, owner_id: Hashable):
        with self._guard:
            slot = self._slots.get(owner_id)
            if slot is None:
                slot = self._slots[owner_id] = _Slot()
            slot.users += 1
        try:
            with slot.lock:
                yield
        finally:
            with self._guard:
                slot.users -= 1
                if slot.users == 0:
                    del self._slots[owner_id]


timetable_locks = OwnerLocks()
