from sqlalchemy import Column, Integer, String, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base


class Timetable(Base):
    __tablename__ = "timetables"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)

    semester = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    user = relationship("User", back_populates="timetable")
    entries = relationship(
        "TimetableEntry",
        back_populates="timetable",
        cascade="all, delete-orphan",
        order_by="TimetableEntry.position",
    )


class TimetableEntry(Base):
    __tablename__ = "timetable_entries"

    # uuid hex 由 TimetableEngine 產生
    id = Column(String(32), primary_key=True)
    timetable_id = Column(Integer, ForeignKey("timetables.id", ondelete="CASCADE"), nullable=False, index=True)
    # 加入順序
    position = Column(Integer, nullable=False, default=0)

    day = Column(String(10), nullable=False)
    start_time = Column(String(5), nullable=False)  # "HH:MM"
    end_time = Column(String(5), nullable=False)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False)
    room = Column(String(100), nullable=False)
    type = Column(String(20), nullable=False, default="lecture")

    timetable = relationship("Timetable", back_populates="entries")
    course = relationship("Course")
