from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date, datetime


class Position(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class GeofenceCheck(Position):
    employee_id: Optional[int] = None
    project_id: int


class GeofenceCheckResponse(BaseModel):
    inside_geofence: bool
    distance_meters: float
    radius_meters: float


class AttendanceSubmit(Position):
    employee_id: int
    project_id: int
    session: str  # "checkin" or "checkout"


class LocationPing(Position):
    employee_id: int
    project_id: int


class LocationPingResponse(BaseModel):
    message: str = "Location logged"
    inside_geofence: bool
    outside_duration_seconds: float
    alert_triggered: bool = False


class LocationLogResponse(Position):
    id: int
    employee_id: int
    project_id: int
    distance_meters: Optional[float] = None
    inside_geofence: bool
    observed_at: datetime

    class Config:
        from_attributes = True


class AttendanceResponse(BaseModel):
    id: int
    employee_id: int
    project_id: int
    date: date
    check_in: Optional[datetime] = None
    check_out: Optional[datetime] = None
    inside_geofence_at_check_in: bool
    inside_geofence_at_check_out: Optional[bool] = None
    pending_checkout: bool
    forced_checkout: bool = False
    hours_worked: Optional[float] = None

    class Config:
        from_attributes = True


class AttendanceSubmitResponse(BaseModel):
    message: str
    record: AttendanceResponse


class AttendanceHistoryItem(AttendanceResponse):
    status: str


class AttendanceHistoryResponse(BaseModel):
    records: List[AttendanceHistoryItem]


class CheckedInWorker(BaseModel):
    attendance_id: int
    employee_id: int
    full_name: Optional[str] = None
    check_in: datetime


class AttendanceStats(BaseModel):
    total_days: int
    total_hours: float
    average_hours_per_day: float
    current_month_days: int
    current_month_hours: float
