from app.models.employee import Employee
from app.models.project import Project
from app.models.attendance import Attendance, AttendanceStatus, AttendanceSession
from app.models.location import LocationLog

__all__ = [
    "Employee",
    "Project",
    "Attendance",
    "AttendanceStatus",
    "AttendanceSession",
    "LocationLog",
]
