from app.schemas.attendance import (
    Position, GeofenceCheck, GeofenceCheckResponse,
    AttendanceSubmit, AttendanceSubmitResponse, AttendanceResponse,
    AttendanceHistoryItem, AttendanceHistoryResponse, AttendanceStats,
    LocationPing, LocationPingResponse, LocationLogResponse, CheckedInWorker
)

__all__ = [
    "Position", "GeofenceCheck", "GeofenceCheckResponse",
    "AttendanceSubmit", "AttendanceSubmitResponse", "AttendanceResponse",
    "AttendanceHistoryItem", "AttendanceHistoryResponse", "AttendanceStats",
    "LocationPing", "LocationPingResponse", "LocationLogResponse", "CheckedInWorker",
]
