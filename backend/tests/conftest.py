# tests/conftest.py
import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from devcamper.main import app
from devcamper.database import Base, get_db
from devcamper.models import Bootcamp, Course, Review
from devcamper.schemas.bootcamp import slugify
from devcamper.services.aggregates import AggregateMaintainer
from devcamper.services.cascade import CascadeEngine
from devcamper.services.events import MutationDispatcher
from devcamper.services.records import RecordService
from devcamper.services.relations import build_relation_graph

SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture
def engine():
    """Fresh in-memory database per test"""
    engine = create_engine(
        SQLALCHEMY_TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool  # Needed for SQLite in-memory database
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def client(db_session):
    """Test client using the test database"""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def auth_headers(user_id: int, role: str = "user") -> dict:
    return {"X-User-Id": str(user_id), "X-User-Role": role}


@pytest.fixture
def owner_headers():
    return auth_headers(1, "publisher")


@pytest.fixture
def other_headers():
    return auth_headers(2, "user")


@pytest.fixture
def admin_headers():
    return auth_headers(99, "admin")


def bootcamp_payload(name: str = "Devworks Bootcamp", **overrides) -> dict:
    payload = {
        "name": name,
        "description": "Full stack web development bootcamp",
        "website": "https://devworks.com",
        "phone": "(111) 111-1111",
        "email": "enroll@devworks.com",
        "address": "233 Bay State Rd Boston MA 02215",
        "careers": ["Web Development", "UI/UX", "Business"],
        "housing": True,
        "job_assistance": True,
    }
    payload.update(overrides)
    return payload


def course_payload(title: str = "Front End Web Development", tuition: float = 8000, **overrides) -> dict:
    payload = {
        "title": title,
        "description": "HTML, CSS and JavaScript",
        "weeks": "8",
        "tuition": tuition,
        "minimum_skill": "beginner",
        "scholarship_available": True,
    }
    payload.update(overrides)
    return payload


def review_payload(rating: float = 8, **overrides) -> dict:
    payload = {
        "title": "Learned a ton!",
        "text": "Great instructors and a solid curriculum.",
        "rating": rating,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def make_bootcamp(db_session):
    """Insert a bootcamp directly, bypassing the mutation path"""
    def _make(name: str = "Devworks Bootcamp", user_id: int = 1, **overrides):
        values = bootcamp_payload(name, **overrides)
        bootcamp = Bootcamp(slug=slugify(values["name"]), user_id=user_id, **values)
        db_session.add(bootcamp)
        db_session.commit()
        db_session.refresh(bootcamp)
        return bootcamp
    return _make


@pytest.fixture
def sample_bootcamp(make_bootcamp):
    return make_bootcamp()


@pytest.fixture
def make_course(db_session):
    def _make(bootcamp, tuition: float = 8000, user_id: int = 1, **overrides):
        course = Course(bootcamp_id=bootcamp.id, user_id=user_id, **course_payload(tuition=tuition, **overrides))
        db_session.add(course)
        db_session.commit()
        db_session.refresh(course)
        return course
    return _make


@pytest.fixture
def make_review(db_session):
    def _make(bootcamp, user_id: int, rating: float = 8, **overrides):
        review = Review(bootcamp_id=bootcamp.id, user_id=user_id, **review_payload(rating=rating, **overrides))
        db_session.add(review)
        db_session.commit()
        db_session.refresh(review)
        return review
    return _make


@pytest.fixture
def graph():
    return build_relation_graph()


@pytest.fixture
def maintainer(graph):
    return AggregateMaintainer(graph)


@pytest.fixture
def cascade(graph, maintainer):
    return CascadeEngine(graph, maintainer)


@pytest.fixture
def records(graph, maintainer, cascade):
    return RecordService(graph, MutationDispatcher(maintainer, cascade), maintainer)


@pytest.fixture(scope="session", autouse=True)
def cleanup_test_files():
    """Clean up test files after all tests are done"""
    yield
    for file in ["devcamper.db", "test-devcamper.db"]:
        if os.path.exists(file):
            os.remove(file)
