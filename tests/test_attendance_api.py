import pytest
from datetime import datetime, timedelta, timezone
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker
from app.api.deps import get_alert_dispatcher, get_db, get_now
from app.core.database import Base
from app.models import Employee, Project
from app.services.alert_service import AlertDispatcher
from app.services.notification_service import NotificationService
from main import app

# Test database
SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

INSIDE = {"latitude": 0.0, "longitude": 0.0008}
OUTSIDE = {"latitude": 0.0, "longitude": 0.002}


class Clock:
    def __init__(self):
        self.now = datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now


class UnavailableSession(Session):
    """A session whose database cannot be reached."""

    def query(self, *entities, **kwargs):
        raise OperationalError("SELECT", {}, Exception("database is locked"))


class RecordingMailer:
    def __init__(self):
        self.sent = []

    def render_notification(self, notification):
        return notification["body"]

    def send_email(self, to_emails, subject, html_body):
        self.sent.append((to_emails, subject, html_body))
        return True


clock = Clock()
mailer = RecordingMailer()
dispatcher = AlertDispatcher(
    notifications=NotificationService(channel="email", mailer=mailer),
    recipients=["site-manager@example.com"],
    dedup_enabled=False
)


def override_get_db():
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db
app.dependency_overrides[get_now] = clock
app.dependency_overrides[get_alert_dispatcher] = lambda: dispatcher

client = TestClient(app)


@pytest.fixture(scope="function")
def setup_database():
    """Create tables before each test and drop after."""
    Base.metadata.create_all(bind=engine)
    clock.now = datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)
    mailer.sent.clear()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def site(setup_database):
    """Create a project site and a worker."""
    db = TestingSessionLocal()
    project = Project(name="Harbour Site", latitude=0.0, longitude=0.0, geofence_radius=100.0)
    employee = Employee(full_name="Ravi Kumar", email="ravi@example.com")
    db.add_all([project, employee])
    db.commit()
    ids = {"project_id": project.id, "employee_id": employee.id}
    db.close()
    return ids


def submit(site, session, position=INSIDE):
    return client.post("/api/attendance/submit", json={**site, "session": session, **position})


def log_location(site, position):
    return client.post("/api/attendance/log-location", json={**site, **position})


def test_validate_geofence_inside(site):
    response = client.post("/api/attendance/validate-geofence", json={"project_id": site["project_id"], **INSIDE})
    assert response.status_code == 200
    data = response.json()
    assert data["inside_geofence"] is True
    assert data["distance_meters"] == pytest.approx(88.96, abs=0.05)
    assert data["radius_meters"] == 100.0


def test_validate_geofence_outside(site):
    response = client.post("/api/attendance/validate-geofence", json={**site, **OUTSIDE})
    assert response.status_code == 200
    assert response.json()["inside_geofence"] is False


def test_validate_geofence_unknown_project(setup_database):
    response = client.post("/api/attendance/validate-geofence", json={"project_id": 42, **INSIDE})
    assert response.status_code == 404
    assert response.json()["code"] == "project_not_found"


def test_validate_geofence_rejects_bad_coordinates(site):
    response = client.post(
        "/api/attendance/validate-geofence",
        json={"project_id": site["project_id"], "latitude": 123.0, "longitude": 0.0}
    )
    assert response.status_code == 422


def test_check_in_outside_is_rejected(site):
    response = submit(site, "checkin", OUTSIDE)
    assert response.status_code == 400
    assert response.json()["code"] == "outside_geofence"

    history = client.get("/api/attendance/history", params=site).json()
    assert history["records"] == []


def test_check_in_and_out(site):
    response = submit(site, "checkin")
    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Check-in successful"
    assert data["record"]["pending_checkout"] is True
    assert data["record"]["date"] == "2025-03-10"

    clock.now = clock.now + timedelta(hours=8)
    response = submit(site, "checkout")
    assert response.status_code == 200
    record = response.json()["record"]
    assert record["pending_checkout"] is False
    assert record["inside_geofence_at_check_out"] is True
    assert record["hours_worked"] == 8.0

    history = client.get("/api/attendance/history", params=site).json()["records"]
    assert [r["status"] for r in history] == ["COMPLETED"]


def test_state_machine_errors(site):
    response = submit(site, "checkout")
    assert response.status_code == 400
    assert response.json()["code"] == "not_checked_in"

    submit(site, "checkin")
    response = submit(site, "checkin")
    assert response.status_code == 409
    assert response.json()["code"] == "already_checked_in"

    submit(site, "checkout")
    response = submit(site, "checkout")
    assert response.status_code == 409
    assert response.json()["code"] == "already_checked_out"


def test_invalid_session(site):
    response = submit(site, "break")
    assert response.status_code == 400
    assert response.json()["code"] == "invalid_session"


def test_today_endpoint(site):
    response = client.get("/api/attendance/today", params=site)
    assert response.status_code == 200
    assert response.json() is None

    submit(site, "checkin")
    response = client.get("/api/attendance/today", params=site)
    assert response.json()["check_in"] == "2025-03-10T09:00:00"


def test_sustained_violation_alerts_and_forces_checkout(site):
    submit(site, "checkin")

    clock.now = datetime(2025, 3, 10, 10, 0, tzinfo=timezone.utc)
    response = log_location(site, INSIDE)
    assert response.json() == {
        "message": "Location logged",
        "inside_geofence": True,
        "outside_duration_seconds": 0.0,
        "alert_triggered": False
    }

    clock.now = datetime(2025, 3, 10, 10, 2, tzinfo=timezone.utc)
    response = log_location(site, OUTSIDE)
    assert response.status_code == 200
    data = response.json()
    assert data["inside_geofence"] is False
    assert data["outside_duration_seconds"] == 120.0
    assert data["alert_triggered"] is True

    assert len(mailer.sent) == 1
    today = client.get("/api/attendance/today", params=site).json()
    assert today["check_out"] == "2025-03-10T10:02:00"
    assert today["inside_geofence_at_check_out"] is False
    assert today["forced_checkout"] is True

    history = client.get("/api/attendance/history", params=site).json()["records"]
    assert history[0]["status"] == "OUTSIDE"


def test_short_excursion_does_not_alert(site):
    log_location(site, INSIDE)
    clock.now = clock.now + timedelta(seconds=30)

    response = log_location(site, OUTSIDE)

    assert response.json()["alert_triggered"] is False
    assert mailer.sent == []


def test_first_ping_outside_alerts_immediately(site):
    response = log_location(site, OUTSIDE)

    assert response.json()["alert_triggered"] is True
    assert len(mailer.sent) == 1


def test_log_location_unknown_project(setup_database):
    response = client.post("/api/attendance/log-location", json={"employee_id": 1, "project_id": 7, **INSIDE})
    assert response.status_code == 404


def test_locations_endpoint(site):
    log_location(site, INSIDE)
    clock.now = clock.now + timedelta(minutes=5)
    log_location(site, OUTSIDE)

    response = client.get("/api/attendance/locations", params={**site, "limit": 10})
    assert response.status_code == 200
    logs = response.json()
    assert [log["inside_geofence"] for log in logs] == [False, True]


def test_checked_in_workers_endpoint(site):
    submit(site, "checkin")

    response = client.get(f"/api/attendance/projects/{site['project_id']}/checked-in")
    assert response.status_code == 200
    [worker] = response.json()
    assert worker["employee_id"] == site["employee_id"]
    assert worker["full_name"] == "Ravi Kumar"


def test_stats_endpoint(site):
    submit(site, "checkin")
    clock.now = clock.now + timedelta(hours=6)
    submit(site, "checkout")

    response = client.get("/api/attendance/stats", params={"employee_id": site["employee_id"]})
    assert response.status_code == 200
    stats = response.json()
    assert stats["total_days"] == 1
    assert stats["total_hours"] == 6.0
    assert stats["current_month_days"] == 1


def test_database_outage_returns_503(site):
    def unavailable_db():
        db = UnavailableSession(bind=engine)
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = unavailable_db
    try:
        responses = [
            client.post("/api/attendance/validate-geofence", json={"project_id": site["project_id"], **INSIDE}),
            submit(site, "checkin"),
            log_location(site, OUTSIDE),
            client.get("/api/attendance/today", params=site),
        ]
    finally:
        app.dependency_overrides[get_db] = override_get_db

    for response in responses:
        assert response.status_code == 503
        assert response.json()["code"] == "store_unavailable"
        assert response.headers["Retry-After"] == "5"
    assert mailer.sent == []
