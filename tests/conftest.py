import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from campus_events.app.app import create_app
from campus_events.app.dependencies import ADMIN, STUDENT, get_now
from campus_events.config import Settings, get_settings
from campus_events.models import (
    Attendance, Base, College, Event, EventCategory, EventStatus, Student, get_db
)
from campus_events.models.database import build_engine
from campus_events.utils.tokens import create_access_token
from helpers import NOW


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite://",
        secret_key="test-secret-key-that-is-long-enough-for-hs256",
        admin_email="admin@northfield.edu",
        admin_password="admin-password",
    )


@pytest.fixture
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory, settings):
    app = create_app(create_tables=False)

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_now] = lambda: NOW

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def headers_for(settings):
    def build(user_id, email, role, college_id=None):
        token = create_access_token(settings, user_id, email, role, college_id)
        return {"Authorization": f"Bearer {token}"}
    return build


@pytest.fixture
def make_college(db):
    def factory(name="Northfield University", email_domain="@northfield.edu"):
        college = College(name=name, email_domain=email_domain)
        db.add(college)
        db.commit()
        return college.id
    return factory


@pytest.fixture
def make_student(db):
    def factory(college_id, email, name="Test Student", verified=True, token=None):
        student = Student(
            name=name,
            email=email,
            college_id=college_id,
            is_verified=verified,
            verification_token=token,
        )
        db.add(student)
        db.commit()
        return student.id
    return factory


@pytest.fixture
def make_event(db):
    def factory(
        college_id,
        title="Intro to Rust",
        date=NOW.replace(hour=9),
        max_capacity=None,
        allow_other_colleges=False,
        status=EventStatus.ACTIVE,
        category=EventCategory.WORKSHOP,
    ):
        event = Event(
            title=title,
            date=date,
            venue="Hall A",
            category=category,
            max_capacity=max_capacity,
            allow_other_colleges=allow_other_colleges,
            status=status,
            college_id=college_id,
        )
        db.add(event)
        db.commit()
        return event.id
    return factory


@pytest.fixture
def college(make_college):
    return make_college()


@pytest.fixture
def other_college(make_college):
    return make_college(name="Southgate College", email_domain="@southgate.edu")


@pytest.fixture
def admin_headers(headers_for, college):
    return headers_for("admin", "admin@northfield.edu", ADMIN, college)


@pytest.fixture
def student(make_student, college):
    return make_student(college, "ada@northfield.edu", name="Ada Lovelace")


@pytest.fixture
def student_headers(headers_for, student, college):
    return headers_for(student, "ada@northfield.edu", STUDENT, college)


@pytest.fixture
def register(client, headers_for, db):
    """Register a student for an event through the API and return the registration id"""
    def do(student_id, event_id):
        student = db.get(Student, student_id)
        headers = headers_for(student.id, student.email, STUDENT, student.college_id)
        response = client.post(f"/api/students/events/{event_id}/register", headers=headers)
        assert response.status_code == 201, response.json()
        return response.json()["id"]
    return do


@pytest.fixture
def attend(db):
    """Record attendance directly, bypassing the event-day rule"""
    def do(registration_id, checked_in_at=NOW):
        db.add(Attendance(registration_id=registration_id, checked_in_at=checked_in_at))
        db.commit()
    return do
