class TimetableError(Exception):
    """Base class for errors raised by the timetable engine."""


class ValidationError(TimetableError):
    """
    輸入不合法（星期、時間、類型、必填欄位）
    field 指出是哪個欄位出錯，前端可以直接標示
    """

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class NotFoundError(TimetableError):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
