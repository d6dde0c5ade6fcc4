from sqlalchemy import Column, String, Integer, Text
from app.database import Base

class Course(Base):
    __tablename__ = "courses"

    id = Column(Integer, primary_key=True, index=True)

    code = Column(String(20), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)

    credits = Column(Integer, nullable=False, default=3)
    department = Column(String(100))
    semester = Column(String(10))
