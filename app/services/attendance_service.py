"""Attendance state store.

One record per (employee, project, local calendar day):

    NOT_CHECKED_IN --check_in (inside)--> PENDING --check_out | force_checkout--> CHECKED_OUT

Every transition is a conditional UPDATE on the current state, so concurrent
requests for the same key cannot both succeed. Inserts rely on the unique
constraint on (employee_id, project_id, date).
"""
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterator, List, Optional, Tuple
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.database import store_guard
from app.core.exceptions import (
    AlreadyCheckedIn, AlreadyCheckedOut, InvalidSession, NotCheckedIn, OutsideGeofence
)
from app.core.timeutils import local_day, to_utc_naive, utcnow
from app.models.attendance import Attendance, AttendanceSession, AttendanceStatus
from app.models.employee import Employee
from app.services.geofence_service import GeofenceService, geofence_service

logger = logging.getLogger(__name__)


def derive_status(record: Optional[Attendance]) -> AttendanceStatus:
    if record is None or record.check_in is None:
        return AttendanceStatus.NOT_CHECKED_IN
    if record.pending_checkout:
        return AttendanceStatus.PENDING
    if record.inside_geofence_at_check_out is False:
        return AttendanceStatus.OUTSIDE
    return AttendanceStatus.COMPLETED


class AttendanceHistory:
    """Attendance records for one employee and project, newest day first.

    Iterating runs the query again, so the same object can be consumed more
    than once. Rows are streamed in batches.
    """

    def __init__(self, db: Session, employee_id: int, project_id: int, batch_size: int = 100):
        self.db = db
        self.employee_id = employee_id
        self.project_id = project_id
        self.batch_size = batch_size

    def __iter__(self) -> Iterator[Tuple[Attendance, AttendanceStatus]]:
        query = self.db.query(Attendance).filter(
            Attendance.employee_id == self.employee_id,
            Attendance.project_id == self.project_id
        ).order_by(Attendance.date.desc()).yield_per(self.batch_size)
        with store_guard(self.db):
            for record in query:
                yield record, derive_status(record)


@dataclass(frozen=True)
class CheckedInWorker:
    attendance_id: int
    employee_id: int
    full_name: Optional[str]
    check_in: datetime


class AttendanceService:
    def __init__(self, geofence: GeofenceService = geofence_service):
        self.geofence = geofence

    def _get_record(self, db: Session, employee_id: int, project_id: int, day: date) -> Optional[Attendance]:
        return db.query(Attendance).filter(
            Attendance.employee_id == employee_id,
            Attendance.project_id == project_id,
            Attendance.date == day
        ).first()

    def _today(self, db: Session, project_id: int, now: datetime) -> date:
        boundary = self.geofence.directory.resolve_project(db, project_id)
        return local_day(now, boundary.timezone)

    def check_in(
        self,
        db: Session,
        employee_id: int,
        project_id: int,
        latitude: float,
        longitude: float,
        now: Optional[datetime] = None
    ) -> Attendance:
        """Open today's attendance. Requires the worker to be inside the geofence."""
        now = now or utcnow()
        result = self.geofence.evaluate_for_project(db, project_id, latitude, longitude)
        if not result.inside_geofence:
            raise OutsideGeofence(
                f"Cannot submit attendance outside project area "
                f"({int(result.distance_meters)} m away, allowed {int(result.boundary.radius_meters)} m)"
            )

        day = local_day(now, result.boundary.timezone)
        stamp = to_utc_naive(now)

        with store_guard(db):
            record = self._get_record(db, employee_id, project_id, day)
            if record is None:
                record = Attendance(
                    employee_id=employee_id,
                    project_id=project_id,
                    date=day,
                    check_in=stamp,
                    check_out=None,
                    pending_checkout=True,
                    inside_geofence_at_check_in=True
                )
                db.add(record)
                try:
                    db.commit()
                except IntegrityError:
                    # Another request created today's record first
                    db.rollback()
                    raise AlreadyCheckedIn()
            else:
                if record.check_in is not None:
                    raise AlreadyCheckedIn()
                updated = db.query(Attendance).filter(
                    Attendance.id == record.id,
                    Attendance.check_in.is_(None)
                ).update({
                    Attendance.check_in: stamp,
                    Attendance.pending_checkout: True,
                    Attendance.inside_geofence_at_check_in: True
                }, synchronize_session=False)
                db.commit()
                if not updated:
                    raise AlreadyCheckedIn()

            db.refresh(record)

        logger.info(f"Employee {employee_id} checked in to project {project_id} for {day}")
        return record

    def check_out(
        self,
        db: Session,
        employee_id: int,
        project_id: int,
        latitude: float,
        longitude: float,
        now: Optional[datetime] = None
    ) -> Attendance:
        """Close today's attendance. Allowed outside the geofence; the fact is recorded."""
        now = now or utcnow()
        result = self.geofence.evaluate_for_project(db, project_id, latitude, longitude)
        day = local_day(now, result.boundary.timezone)
        stamp = to_utc_naive(now)

        with store_guard(db):
            record = self._get_record(db, employee_id, project_id, day)
            if record is None or record.check_in is None:
                raise NotCheckedIn()
            if record.check_out is not None:
                raise AlreadyCheckedOut()

            if not self._close(db, record, stamp, result.inside_geofence, forced=False):
                raise AlreadyCheckedOut()
            db.refresh(record)

        logger.info(
            f"Employee {employee_id} checked out of project {project_id} for {day} "
            f"(inside geofence: {result.inside_geofence})"
        )
        return record

    def force_checkout(
        self,
        db: Session,
        employee_id: int,
        project_id: int,
        now: Optional[datetime] = None
    ) -> Optional[Attendance]:
        """System checkout after a sustained geofence violation.

        Idempotent: returns None without touching anything when today's record
        is missing, was never checked in or is already checked out.
        """
        now = now or utcnow()
        day = self._today(db, project_id, now)
        stamp = to_utc_naive(now)

        with store_guard(db):
            record = self._get_record(db, employee_id, project_id, day)
            if record is None or record.check_in is None or record.check_out is not None:
                return None
            if not self._close(db, record, stamp, False, forced=True):
                return None
            db.refresh(record)

        logger.warning(f"Forced checkout of employee {employee_id} from project {project_id} for {day}")
        return record

    def _close(self, db: Session, record: Attendance, stamp: datetime, inside: bool, forced: bool) -> bool:
        """Set check_out only if it is still unset. Returns False if another request won."""
        hours = max((stamp - record.check_in).total_seconds(), 0) / 3600
        updated = db.query(Attendance).filter(
            Attendance.id == record.id,
            Attendance.check_in.isnot(None),
            Attendance.check_out.is_(None)
        ).update({
            Attendance.check_out: stamp,
            Attendance.pending_checkout: False,
            Attendance.inside_geofence_at_check_out: inside,
            Attendance.forced_checkout: forced,
            Attendance.hours_worked: round(hours, 2)
        }, synchronize_session=False)
        db.commit()
        return bool(updated)

    def submit(
        self,
        db: Session,
        employee_id: int,
        project_id: int,
        session: str,
        latitude: float,
        longitude: float,
        now: Optional[datetime] = None
    ) -> Attendance:
        if session == AttendanceSession.CHECKIN.value:
            return self.check_in(db, employee_id, project_id, latitude, longitude, now)
        if session == AttendanceSession.CHECKOUT.value:
            return self.check_out(db, employee_id, project_id, latitude, longitude, now)
        raise InvalidSession(f"Invalid session type '{session}', expected 'checkin' or 'checkout'")

    def get_today(self, db: Session, employee_id: int, project_id: int, now: Optional[datetime] = None) -> Optional[Attendance]:
        day = self._today(db, project_id, now or utcnow())
        with store_guard(db):
            return self._get_record(db, employee_id, project_id, day)

    def history(self, db: Session, employee_id: int, project_id: int) -> AttendanceHistory:
        return AttendanceHistory(db, employee_id, project_id)

    def checked_in_workers(
        self,
        db: Session,
        project_id: int,
        now: Optional[datetime] = None,
        pending_only: bool = False
    ) -> List[CheckedInWorker]:
        """Workers who checked in today inside the project geofence."""
        day = self._today(db, project_id, now or utcnow())
        with store_guard(db):
            query = db.query(Attendance, Employee.full_name).outerjoin(
                Employee, Employee.id == Attendance.employee_id
            ).filter(
                Attendance.project_id == project_id,
                Attendance.date == day,
                Attendance.check_in.isnot(None),
                Attendance.inside_geofence_at_check_in.is_(True)
            )
            if pending_only:
                query = query.filter(Attendance.pending_checkout.is_(True))
            rows = query.order_by(Attendance.check_in).all()

        return [
            CheckedInWorker(
                attendance_id=record.id,
                employee_id=record.employee_id,
                full_name=full_name,
                check_in=record.check_in
            )
            for record, full_name in rows
        ]

    def stats(
        self,
        db: Session,
        employee_id: int,
        project_id: Optional[int] = None,
        now: Optional[datetime] = None
    ) -> dict:
        """Completed-day statistics, overall and for the current month."""
        now = now or utcnow()
        today = self._today(db, project_id, now) if project_id else local_day(now)
        month_start = today.replace(day=1)

        with store_guard(db):
            query = db.query(Attendance).filter(
                Attendance.employee_id == employee_id,
                Attendance.check_out.isnot(None)
            )
            if project_id:
                query = query.filter(Attendance.project_id == project_id)
            records = query.all()

        total_days = len(records)
        total_hours = sum(r.hours_worked or 0 for r in records)
        month_records = [r for r in records if r.date >= month_start]

        return {
            "total_days": total_days,
            "total_hours": round(total_hours, 2),
            "average_hours_per_day": round(total_hours / total_days, 2) if total_days else 0.0,
            "current_month_days": len(month_records),
            "current_month_hours": round(sum(r.hours_worked or 0 for r in month_records), 2)
        }


attendance_service = AttendanceService()
