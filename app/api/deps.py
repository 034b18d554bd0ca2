from datetime import datetime

from app.core.database import get_db
from app.core.timeutils import utcnow
from app.services.alert_service import AlertDispatcher, alert_dispatcher
from app.services.attendance_service import AttendanceService, attendance_service
from app.services.geofence_service import GeofenceService, geofence_service
from app.services.location_service import LocationService, location_service

__all__ = [
    "get_db",
    "get_now",
    "get_geofence_service",
    "get_attendance_service",
    "get_location_service",
    "get_alert_dispatcher",
]


def get_now() -> datetime:
    """Request timestamp. Overridden in tests to pin the clock."""
    return utcnow()


def get_geofence_service() -> GeofenceService:
    return geofence_service


def get_attendance_service() -> AttendanceService:
    return attendance_service


def get_location_service() -> LocationService:
    return location_service


def get_alert_dispatcher() -> AlertDispatcher:
    return alert_dispatcher
