"""Attendance domain errors.

Every error carries the HTTP status it maps to and a human readable message.
The API layer renders them as ``{"detail": message, "code": code}``.
"""


class AttendanceError(Exception):
    """Base exception for attendance and geofence rule violations."""

    status_code = 400
    code = "attendance_error"
    default_message = "Attendance request failed"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ProjectNotFound(AttendanceError):
    status_code = 404
    code = "project_not_found"
    default_message = "Project not found"


class OutsideGeofence(AttendanceError):
    status_code = 400
    code = "outside_geofence"
    default_message = "Cannot submit attendance outside project area"


class AlreadyCheckedIn(AttendanceError):
    status_code = 409
    code = "already_checked_in"
    default_message = "Check-in already submitted"


class AlreadyCheckedOut(AttendanceError):
    status_code = 409
    code = "already_checked_out"
    default_message = "Check-out already submitted"


class NotCheckedIn(AttendanceError):
    status_code = 400
    code = "not_checked_in"
    default_message = "Cannot check out without checking in first"


class InvalidSession(AttendanceError):
    status_code = 400
    code = "invalid_session"
    default_message = "Invalid session type"


class StoreUnavailable(AttendanceError):
    """Persistence failure. The only error a client may retry."""

    status_code = 503
    code = "store_unavailable"
    default_message = "Attendance store is unavailable, please retry"
    retry_after_seconds = 5
