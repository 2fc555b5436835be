import os
from datetime import datetime
from typing import Callable, Generator, Optional

import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("RATE_LIMITING_ENABLED", "false")
os.environ.setdefault("SERVICE_API_KEY", "test-service-key")
os.environ.setdefault("LOG_DIR", "./test-logs")

from schoolhub.config import reset_settings_cache  # noqa: E402

reset_settings_cache()

from schoolhub.database import Base, SessionLocal, engine  # noqa: E402
from schoolhub.models import BookingStatus, Classroom, RoleEnum, RoomBooking, Teacher, User  # noqa: E402
from services.bookings.app import app as bookings_app  # noqa: E402
from services.classrooms.app import app as classrooms_app  # noqa: E402
from services.classrooms.app import classroom_list_cache  # noqa: E402
from services.maintenance.app import app as maintenance_app  # noqa: E402
from services.users.app import app as users_app  # noqa: E402

PASSWORD = "Passw0rd!"

ADMIN_PAYLOAD = {
    "name": "Admin",
    "username": "admin",
    "email": "admin@example.com",
    "password": PASSWORD,
    "role": RoleEnum.ADMIN.value,
}


def login(client: TestClient, username: str, password: str = PASSWORD) -> dict[str, str]:
    response = client.post(
        "/users/login",
        data={"username": username, "password": password},
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )
    token = response.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(autouse=True, scope="function")
def _create_test_database() -> Generator[None, None, None]:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    classroom_list_cache.clear()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db_session() -> Generator:
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def users_client() -> Generator[TestClient, None, None]:
    with TestClient(users_app) as client:
        yield client


@pytest.fixture()
def classrooms_client() -> Generator[TestClient, None, None]:
    with TestClient(classrooms_app) as client:
        yield client


@pytest.fixture()
def bookings_client() -> Generator[TestClient, None, None]:
    with TestClient(bookings_app) as client:
        yield client


@pytest.fixture()
def maintenance_client() -> Generator[TestClient, None, None]:
    with TestClient(maintenance_app) as client:
        yield client


@pytest.fixture()
def service_headers() -> dict[str, str]:
    return {"X-Service-Key": "test-service-key"}


@pytest.fixture()
def admin_headers(users_client) -> dict[str, str]:
    users_client.post("/users/register", json=ADMIN_PAYLOAD)
    return login(users_client, "admin")


@pytest.fixture()
def admin_id(admin_headers, db_session) -> str:
    return db_session.query(User.id).filter(User.username == "admin").scalar()


@pytest.fixture()
def register_user(users_client) -> Callable[[str], dict[str, str]]:
    """Register a plain account and return its auth headers."""

    def _register(username: str) -> dict[str, str]:
        response = users_client.post(
            "/users/register",
            json={
                "name": username.title(),
                "username": username,
                "email": f"{username}@example.com",
                "password": PASSWORD,
            },
        )
        assert response.status_code == 201
        return login(users_client, username)

    return _register


@pytest.fixture()
def make_teacher(register_user, db_session, admin_id) -> Callable[[str], tuple[str, dict[str, str]]]:
    """Create an account linked to a teacher record; returns (teacher_id, headers)."""

    def _make(username: str) -> tuple[str, dict[str, str]]:
        headers = register_user(username)
        user_id = db_session.query(User.id).filter(User.username == username).scalar()
        teacher = Teacher(name=username.title(), email=f"{username}@example.com", auth_id=user_id, created_by=admin_id)
        db_session.add(teacher)
        db_session.commit()
        return teacher.id, headers

    return _make


@pytest.fixture()
def classroom_id(db_session, admin_id) -> str:
    classroom = Classroom(name="Physics Lab", room_number="B-101", capacity=30, created_by=admin_id)
    db_session.add(classroom)
    db_session.commit()
    return classroom.id


@pytest.fixture()
def add_booking(db_session, admin_id, classroom_id) -> Callable[..., RoomBooking]:
    """Insert a booking row directly, bypassing validation and the lifecycle."""

    def _add(
        teacher_id: str,
        start: datetime,
        end: datetime,
        status: BookingStatus = BookingStatus.PENDING,
        room_id: Optional[str] = None,
    ) -> RoomBooking:
        booking = RoomBooking(
            classroom_id=room_id or classroom_id,
            teacher_id=teacher_id,
            start_time=start,
            end_time=end,
            purpose="Lesson",
            status=status,
            created_by=admin_id,
        )
        db_session.add(booking)
        db_session.commit()
        return booking

    return _add
