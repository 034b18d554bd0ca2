"""Geofence violation alerts.

Dispatching an alert force-checks-out the worker (if today's attendance is
still open) and queues a notification as a background task. Notification
failures are logged and never reach the caller. Delivery is at-least-once:
every ping past the threshold alerts again unless excursion dedup is enabled.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional
import logging

from fastapi import BackgroundTasks
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import AttendanceError
from app.core.redis import RedisCache, cache
from app.services.attendance_service import AttendanceService, attendance_service
from app.services.directory_service import EmployeeDirectory, employee_directory
from app.services.location_service import IngestResult
from app.services.notification_service import NotificationService, notification_service

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeofenceAlert:
    employee_id: int
    project_id: int
    employee_name: str
    project_name: str
    latitude: float
    longitude: float
    outside_minutes: int
    excursion_started_at: Optional[datetime]
    forced_checkout: bool

    @property
    def dedup_key(self) -> str:
        started = self.excursion_started_at.isoformat() if self.excursion_started_at else "never-inside"
        return f"geofence_alert:{self.employee_id}:{self.project_id}:{started}"

    def template_data(self) -> dict:
        note = " Attendance was checked out automatically." if self.forced_checkout else ""
        return {
            "employee_name": self.employee_name,
            "project_name": self.project_name,
            "outside_minutes": self.outside_minutes,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "checkout_note": note
        }


class AlertDispatcher:
    def __init__(
        self,
        attendance: AttendanceService = attendance_service,
        notifications: NotificationService = notification_service,
        employees: EmployeeDirectory = employee_directory,
        dedup_cache: RedisCache = cache,
        recipients: Optional[List[str]] = None,
        dedup_enabled: Optional[bool] = None
    ):
        self.attendance = attendance
        self.notifications = notifications
        self.employees = employees
        self.dedup_cache = dedup_cache
        self.recipients = recipients if recipients is not None else settings.alert_recipients
        self.dedup_enabled = settings.ALERT_DEDUP_ENABLED if dedup_enabled is None else dedup_enabled

    def dispatch(
        self,
        db: Session,
        employee_id: int,
        project_id: int,
        latitude: float,
        longitude: float,
        ingest: IngestResult,
        background_tasks: BackgroundTasks,
        now: Optional[datetime] = None
    ) -> GeofenceAlert:
        """Force checkout if needed and queue the notification."""
        forced = False
        try:
            forced = self.attendance.force_checkout(db, employee_id, project_id, now) is not None
        except AttendanceError as e:
            logger.error(f"Forced checkout failed for employee {employee_id}, project {project_id}: {e.message}")

        try:
            employee_name = self.employees.resolve_employee(db, employee_id)
        except Exception as e:
            logger.error(f"Employee lookup failed for alert on employee {employee_id}: {e}")
            employee_name = f"Employee #{employee_id}"

        alert = GeofenceAlert(
            employee_id=employee_id,
            project_id=project_id,
            employee_name=employee_name,
            project_name=ingest.boundary.name,
            latitude=latitude,
            longitude=longitude,
            outside_minutes=int(ingest.outside_duration_seconds // 60),
            excursion_started_at=ingest.last_inside_at,
            forced_checkout=forced
        )
        background_tasks.add_task(self.send_alert, alert)
        return alert

    async def send_alert(self, alert: GeofenceAlert) -> bool:
        """Deliver the notification. Never raises."""
        try:
            if self.dedup_enabled and not await self._claim(alert):
                logger.info(f"Alert already sent for excursion {alert.dedup_key}, skipping")
                return False

            # SMTP delivery blocks, keep it off the event loop
            result = await run_in_threadpool(
                self.notifications.create_and_send,
                'geofence_violation',
                alert.template_data(),
                self.recipients,
                priority='high'
            )
            if not result["success"]:
                logger.error(f"Geofence alert for employee {alert.employee_id} not delivered: {result.get('error')}")
            return result["success"]
        except Exception as e:
            logger.error(f"Geofence alert for employee {alert.employee_id} failed: {e}")
            return False

    async def _claim(self, alert: GeofenceAlert) -> bool:
        """True if this excursion has not been alerted yet. Cache errors count as not alerted."""
        try:
            return await self.dedup_cache.set_if_absent(
                alert.dedup_key, alert.employee_name, expire=settings.ALERT_DEDUP_TTL_SECONDS
            )
        except Exception as e:
            logger.warning(f"Alert dedup unavailable, sending anyway: {e}")
            return True


alert_dispatcher = AlertDispatcher()
