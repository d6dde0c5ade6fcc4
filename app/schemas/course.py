from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class CourseIn(BaseModel):
    code: str = Field(..., min_length=1, max_length=20)
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    credits: int = Field(3, ge=1, le=6)
    department: Optional[str] = None
    semester: Optional[str] = None


class CourseOut(BaseModel):
    id: int
    code: str
    name: str
    description: Optional[str] = None
    credits: int
    department: Optional[str] = None
    semester: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
