"""
Point the app at a throwaway SQLite file before anything imports the engine,
swap the external generator for a scripted fake, and mint tokens the way the
identity provider would.
"""
import os
import tempfile
import uuid

_DB_DIR = tempfile.mkdtemp(prefix="workout_tracking_tests_")
os.environ["DB_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ.setdefault("SECRET_KEY", "test-secret")

import pytest
from fastapi.testclient import TestClient

from workout_tracking.db import Base, SessionLocal, engine, get_db
from workout_tracking.main import app
from workout_tracking.security import create_access_token
from workout_tracking.services.generator import get_generator

SAMPLE_INSTANCE = {
    "title": "Upper Body Strength",
    "estimated_duration_min": 45,
    "focus": ["strength", "upper"],
    "exercises": [
        {"exercise_name": "Bench Press", "exercise_type": "reps", "sets": 3,
         "reps": [10, 8, 6], "load_each": [40, 45, 50], "load_unit": "kg", "rest_seconds": 90},
        {"exercise_name": "Plank", "exercise_type": "hold", "hold_duration_sec": [30, 45]},
        {"exercise_name": "Easy Run", "exercise_type": "duration", "duration_min": 20, "distance_km": 3.5},
        {"exercise_name": "Bike Sprints", "exercise_type": "intervals", "rounds": 4, "work_sec": 30, "rest_seconds": 60},
    ],
}


class FakeGenerator:
    def __init__(self, instance=None, error=None):
        self.instance = instance if instance is not None else SAMPLE_INSTANCE
        self.error = error
        self.calls = []

    def generate(self, user_id, constraints):
        self.calls.append((user_id, constraints))
        if self.error is not None:
            raise self.error
        return self.instance


@pytest.fixture(scope="session", autouse=True)
def schema():
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture(autouse=True)
def clean_tables():
    yield
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture()
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def generator():
    return FakeGenerator()


@pytest.fixture()
def client(generator):
    def override_get_db():
        session = SessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_generator] = lambda: generator
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def auth_headers(user_id=None):
    user_id = user_id or f"user-{uuid.uuid4().hex[:10]}"
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


@pytest.fixture()
def user_id():
    return f"user-{uuid.uuid4().hex[:10]}"


@pytest.fixture()
def headers(user_id):
    return auth_headers(user_id)
