from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import datetime
from app.api.deps import (
    get_db, get_now, get_geofence_service, get_attendance_service,
    get_location_service, get_alert_dispatcher
)
from app.schemas.attendance import (
    GeofenceCheck, GeofenceCheckResponse, AttendanceSubmit, AttendanceSubmitResponse,
    AttendanceResponse, AttendanceHistoryItem, AttendanceHistoryResponse, AttendanceStats,
    LocationPing, LocationPingResponse, LocationLogResponse, CheckedInWorker
)
from app.services.alert_service import AlertDispatcher
from app.services.attendance_service import AttendanceService
from app.services.geofence_service import GeofenceService
from app.services.location_service import LocationService

router = APIRouter(prefix="/attendance", tags=["Attendance"])


@router.post("/validate-geofence", response_model=GeofenceCheckResponse)
async def validate_geofence(
    data: GeofenceCheck,
    db: Session = Depends(get_db),
    geofence: GeofenceService = Depends(get_geofence_service)
):
    """Check whether a position is inside the project geofence."""
    result = geofence.evaluate_for_project(db, data.project_id, data.latitude, data.longitude)
    return GeofenceCheckResponse(
        inside_geofence=result.inside_geofence,
        distance_meters=round(result.distance_meters, 2),
        radius_meters=result.boundary.radius_meters
    )


@router.post("/submit", response_model=AttendanceSubmitResponse)
async def submit_attendance(
    data: AttendanceSubmit,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    attendance: AttendanceService = Depends(get_attendance_service)
):
    """Check in or check out (session = "checkin" | "checkout")."""
    record = attendance.submit(
        db, data.employee_id, data.project_id, data.session,
        data.latitude, data.longitude, now
    )
    message = "Check-in successful" if data.session == "checkin" else "Check-out successful"
    return AttendanceSubmitResponse(message=message, record=AttendanceResponse.model_validate(record))


@router.post("/log-location", response_model=LocationPingResponse)
async def log_location(
    data: LocationPing,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    locations: LocationService = Depends(get_location_service),
    dispatcher: AlertDispatcher = Depends(get_alert_dispatcher)
):
    """Record a location ping; alert and force checkout after a sustained violation."""
    result = locations.ingest(db, data.employee_id, data.project_id, data.latitude, data.longitude, now)

    alert_triggered = result.exceeds(locations.threshold_seconds)
    if alert_triggered:
        dispatcher.dispatch(
            db, data.employee_id, data.project_id, data.latitude, data.longitude,
            result, background_tasks, now
        )

    return LocationPingResponse(
        inside_geofence=result.inside_geofence,
        outside_duration_seconds=result.outside_duration_seconds,
        alert_triggered=alert_triggered
    )


@router.get("/history", response_model=AttendanceHistoryResponse)
async def get_attendance_history(
    employee_id: int,
    project_id: int,
    db: Session = Depends(get_db),
    attendance: AttendanceService = Depends(get_attendance_service)
):
    """Attendance records for a worker on a project, newest first."""
    records = [
        AttendanceHistoryItem(
            **AttendanceResponse.model_validate(record).model_dump(),
            status=status.value
        )
        for record, status in attendance.history(db, employee_id, project_id)
    ]
    return AttendanceHistoryResponse(records=records)


@router.get("/today", response_model=AttendanceResponse | None)
async def get_today_attendance(
    employee_id: int,
    project_id: int,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    attendance: AttendanceService = Depends(get_attendance_service)
):
    """Today's attendance record (if any)."""
    return attendance.get_today(db, employee_id, project_id, now)


@router.get("/stats", response_model=AttendanceStats)
async def get_attendance_stats(
    employee_id: int,
    project_id: Optional[int] = None,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    attendance: AttendanceService = Depends(get_attendance_service)
):
    """Worked days and hours, overall and for the current month."""
    return AttendanceStats(**attendance.stats(db, employee_id, project_id, now))


@router.get("/locations", response_model=List[LocationLogResponse])
async def list_locations(
    employee_id: int,
    project_id: int,
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    locations: LocationService = Depends(get_location_service)
):
    """Most recent location pings, newest first."""
    return locations.recent_locations(db, employee_id, project_id, limit)


@router.get("/projects/{project_id}/checked-in", response_model=List[CheckedInWorker])
async def list_checked_in_workers(
    project_id: int,
    pending_only: bool = False,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    attendance: AttendanceService = Depends(get_attendance_service)
):
    """Workers who checked in today inside the project geofence."""
    workers = attendance.checked_in_workers(db, project_id, now, pending_only=pending_only)
    return [CheckedInWorker(**vars(worker)) for worker in workers]
