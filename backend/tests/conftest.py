"""
SSchool - Test Configuration and Fixtures
"""
import itertools
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from sschool.core.config import Settings
from sschool.main import create_app
from sschool.models.user import Role, User

TEST_PASSWORD = "secret123"


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Isolated settings: a throwaway SQLite file and the cheapest bcrypt cost"""
    return Settings(
        DATABASE_URL=f"sqlite:///{tmp_path / 'test.db'}",
        SECRET_KEY="test-secret-key-for-testing-only",
        BCRYPT_ROUNDS=4,
        ENABLE_SCHEDULER=False,
        SMTP_HOST=None,
        LOG_LEVEL="WARNING",
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    # Entering the context runs the lifespan, which creates the tables
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def db(app, client):
    session = app.state.session_factory()
    yield session
    session.close()


@pytest.fixture
def make_user(app, client):
    """Insert users straight into the store with increasing created_at"""
    counter = itertools.count()
    base_time = datetime(2024, 1, 1, tzinfo=timezone.utc)
    hasher = app.state.user_service.hasher

    def _make(role=Role.STUDENT, name=None, email=None, password=TEST_PASSWORD, **fields):
        n = next(counter)
        user = User(
            name=name or f"User {n}",
            email=email or f"user{n}@school.edu",
            hashed_password=hasher.hash(password),
            role=role,
            created_at=base_time + timedelta(minutes=n),
            **fields,
        )
        with app.state.session_factory() as session:
            session.add(user)
            session.commit()
        return user

    return _make


@pytest.fixture
def auth_headers(app):
    tokens = app.state.user_service.tokens

    def _headers(user):
        token = tokens.issue(user.id, Role(user.role).value)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def admin(make_user):
    return make_user(role=Role.ADMIN, name="Ada Admin", email="admin@school.edu", faculty="Science")


@pytest.fixture
def student(make_user):
    return make_user(name="Sam Student", email="student@school.edu", course="CS", semester="3")


@pytest.fixture
def admin_headers(admin, auth_headers):
    return auth_headers(admin)


@pytest.fixture
def student_headers(student, auth_headers):
    return auth_headers(student)
