# app/routers/courses.py
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from sqlalchemy import or_

from app.database import get_db
from app.models.course import Course
from app.schemas.course import CourseIn, CourseOut
from app.utils.auth import require_roles

import logging
logger = logging.getLogger("app.courses")


router = APIRouter(prefix="/courses", tags=["Courses"])


# 課程目錄（公開）
@router.get("", response_model=list[CourseOut])
def list_courses(
    db: Session = Depends(get_db),
    department: Optional[str] = Query(None, description="系所"),
    semester: Optional[str] = Query(None, description="學期"),
    search: Optional[str] = Query(None, description="課號或課名關鍵字"),
):
    q = db.query(Course)
    if department:
        q = q.filter(Course.department == department)
    if semester:
        q = q.filter(Course.semester == semester)
    if search:
        kw = f"%{search.strip()}%"
        q = q.filter(or_(Course.code.ilike(kw), Course.name.ilike(kw)))
    return q.order_by(Course.code.asc()).all()


@router.get("/{course_id}", response_model=CourseOut)
def get_course(course_id: int, db: Session = Depends(get_db)):
    course = db.query(Course).filter(Course.id == course_id).first()
    if not course:
        raise HTTPException(404, "Course not found")
    return course


@router.post("", response_model=CourseOut, status_code=201)
def create_course(
    body: CourseIn,
    db: Session = Depends(get_db),
    user=Depends(require_roles("admin", "faculty")),
):
    code = body.code.strip().upper()
    if db.query(Course).filter(Course.code == code).first():
        raise HTTPException(400, "Course code already exists")

    course = Course(
        code=code,
        name=body.name.strip(),
        description=body.description,
        credits=body.credits,
        department=body.department,
        semester=body.semester,
    )
    db.add(course)
    db.commit()
    db.refresh(course)
    logger.info("[courses] user.id=%s created course %s", user.id, course.code)
    return course
