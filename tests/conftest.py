import os

# Settings are read at import time
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("MONGODB_URL", "mongodb://localhost:27017/school_test")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["LOG_TO_FILE"] = "false"

from datetime import timedelta

import pytest
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from school_app.core.security import create_access_token, get_password_hash
from school_app.db.database import init_db
from school_app.main import app
from school_app.models.user import User, UserRole


@pytest.fixture
async def db():
    database = AsyncMongoMockClient()["school_test"]
    await init_db(database=database)
    return database


@pytest.fixture
async def client(db):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


async def _create_user(username: str, role: UserRole) -> User:
    user = User(
        username=username,
        email=f"{username}@greenvalley.edu",
        full_name=username.title(),
        hashed_password=get_password_hash("secret"),
        role=role,
    )
    await user.insert()
    return user


def _auth_headers(user: User) -> dict:
    token = create_access_token({"sub": user.username, "role": user.role.value}, timedelta(minutes=5))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def admin_user(db):
    return await _create_user("admin", UserRole.ADMIN)


@pytest.fixture
async def admin_headers(admin_user):
    return _auth_headers(admin_user)


@pytest.fixture
async def faculty_headers(db):
    return _auth_headers(await _create_user("teacher", UserRole.FACULTY))


@pytest.fixture
def student_payload():
    def build(**overrides):
        payload = {
            "roll_number": "1",
            "class_name": "5th",
            "section": "a",
            "academic_year": "2025-2026",
            "first_name": "Asha",
            "last_name": "Verma",
            "admission_date": "2025-04-10T09:00:00",
            "father_name": "Ravi Verma",
        }
        payload.update(overrides)
        return payload
    return build
