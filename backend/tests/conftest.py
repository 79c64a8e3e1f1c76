"""Pytest fixtures: file-backed SQLite database, recreated for every test."""
from datetime import timedelta
import uuid
import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from churchcal.database import Base, get_db
from churchcal.main import app

# Import all models so they register with Base.metadata
from churchcal.models.department import Department
from churchcal.models.user import User, UserRole
import churchcal.models  # noqa: F401
from churchcal.services.calendar_service import today_local
from churchcal.services.identity import Actor

SQLITE_URL = "sqlite:///./test.db"


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh SQLite engine for each test."""
    engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})

    # Enable WAL mode for better concurrency
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db(session_factory):
    """Yield a database session, closed after the test."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(session_factory):
    """FastAPI TestClient with the database dependency overridden to use SQLite."""

    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def people(db):
    """One department with a lead, two admins, a super admin and a member."""
    dept = create_test_department(db, "dept-youth", "Youth Ministry")
    other = create_test_department(db, "dept-worship", "Worship & Arts")
    return {
        "dept": dept,
        "other_dept": other,
        "lead": create_test_user(db, "Sarah Lead", UserRole.lead, dept.department_id),
        "lead2": create_test_user(db, "Michael Lead", UserRole.lead, other.department_id),
        "admin": create_test_user(db, "Alice Admin", UserRole.admin, dept.department_id),
        "admin2": create_test_user(db, "Bob Admin", UserRole.admin, other.department_id),
        "superadmin": create_test_user(db, "Sam Super", UserRole.superadmin),
        "member": create_test_user(db, "John Member", UserRole.member, dept.department_id),
    }


# ---------------------------------------------------------------------------
# Helpers: users and departments are inserted directly; requests go through the API
# ---------------------------------------------------------------------------
def create_test_department(db, department_id: str = "dept-youth", name: str = "Youth Ministry") -> Department:
    dept = Department(department_id=department_id, name=name, color="#3B82F6")
    db.add(dept)
    db.commit()
    db.refresh(dept)
    return dept


def create_test_user(db, name: str = "Test User", role: UserRole = UserRole.lead,
                     department_id: str = None) -> User:
    user = User(
        name=name,
        email=f"{name.lower().replace(' ', '.')}.{uuid.uuid4().hex[:6]}@church.org",
        role=role,
        department_id=department_id,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def actor_for(user: User) -> Actor:
    return Actor.from_user(user, ip_address="127.0.0.1")


def auth(user: User) -> dict:
    """Headers identifying ``user`` to the API."""
    return {"X-User-Id": user.user_id}


def request_payload(department_id: str = "dept-youth", **overrides) -> dict:
    payload = {
        "title": "Youth Game Night",
        "event_type": "local",
        "department_id": department_id,
        "event_date": (today_local() + timedelta(days=14)).isoformat(),
        "start_time": "18:00",
        "end_time": "21:00",
        "location": "Fellowship Hall",
        "description": "Board games and pizza for the youth group.",
        "expected_attendance": 40,
    }
    payload.update(overrides)
    return payload


def create_test_request(client: TestClient, lead: User, **overrides) -> dict:
    """Helper: POST /api/requests as ``lead`` and return response JSON."""
    resp = client.post("/api/requests/", json=request_payload(lead.department_id, **overrides), headers=auth(lead))
    assert resp.status_code == 201, resp.text
    return resp.json()


def advance(client: TestClient, request_id: str, action: str, user: User, json: dict = None) -> dict:
    """Helper: POST a transition and return response JSON, asserting success."""
    resp = client.post(f"/api/requests/{request_id}/{action}", json=json, headers=auth(user))
    assert resp.status_code == 200, resp.text
    return resp.json()
