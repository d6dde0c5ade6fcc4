import os
import tempfile

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "campus-timetable-test-logs"))

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.database import Base, engine, SessionLocal
from app.models.user import User
from app.models.course import Course
from app.utils.auth import create_access_token
from app.utils.hashing import hash_password


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


def make_user(username: str, role: str = "student", password: str = "secret") -> User:
    with SessionLocal() as db:
        user = User(username=username, password_hash=hash_password(password), role=role)
        db.add(user)
        db.commit()
        db.refresh(user)
        db.expunge(user)
        return user


def bearer(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token({'sub': user.username})}"}


@pytest.fixture
def student():
    return make_user("alice")


@pytest.fixture
def auth_headers(student):
    return bearer(student)


@pytest.fixture
def courses():
    """code -> id"""
    with SessionLocal() as db:
        rows = [
            Course(code="CS101", name="Intro to Programming", credits=4, department="CS", semester="1"),
            Course(code="CS102", name="Data Structures", credits=4, department="CS", semester="1"),
            Course(code="CS103", name="Digital Logic", credits=3, department="ECE", semester="2"),
        ]
        db.add_all(rows)
        db.commit()
        return {c.code: c.id for c in rows}


@pytest.fixture
def bob_headers():
    return bearer(make_user("bob"))


@pytest.fixture
def admin_headers():
    return bearer(make_user("root", role="admin"))
