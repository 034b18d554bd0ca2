"""Location ingestion and dwell detection.

Pings are append-only. Time spent outside the geofence is measured from the
latest ping classified inside, so there is no per-worker state to keep in
memory: the ping history is the state.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional
import logging

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import store_guard
from app.core.timeutils import to_utc_naive, utcnow
from app.models.location import LocationLog
from app.services.directory_service import ProjectBoundary
from app.services.geofence_service import GeofenceService, geofence_service

logger = logging.getLogger(__name__)

# A worker never seen inside is reported this far past the threshold.
NEVER_INSIDE_GRACE_SECONDS = 60


@dataclass(frozen=True)
class IngestResult:
    inside_geofence: bool
    outside_duration_seconds: float
    distance_meters: float
    observed_at: datetime
    last_inside_at: Optional[datetime]
    boundary: ProjectBoundary

    def exceeds(self, threshold_seconds: float) -> bool:
        return not self.inside_geofence and self.outside_duration_seconds >= threshold_seconds


class LocationService:
    def __init__(self, geofence: GeofenceService = geofence_service, threshold_seconds: Optional[int] = None):
        self.geofence = geofence
        self.threshold_seconds = (
            threshold_seconds if threshold_seconds is not None
            else settings.GEOFENCE_ALERT_THRESHOLD_SECONDS
        )

    def ingest(
        self,
        db: Session,
        employee_id: int,
        project_id: int,
        latitude: float,
        longitude: float,
        now: Optional[datetime] = None
    ) -> IngestResult:
        """Record a ping and compute how long the worker has been outside."""
        now = now or utcnow()
        result = self.geofence.evaluate_for_project(db, project_id, latitude, longitude)
        stamp = to_utc_naive(now)

        with store_guard(db):
            db.add(LocationLog(
                employee_id=employee_id,
                project_id=project_id,
                latitude=latitude,
                longitude=longitude,
                distance_meters=round(result.distance_meters, 2),
                inside_geofence=result.inside_geofence,
                observed_at=stamp
            ))
            db.flush()

            if result.inside_geofence:
                outside_seconds = 0.0
                last_inside_at = stamp
            else:
                last_inside = self.last_inside_ping(db, employee_id, project_id, stamp)
                if last_inside is not None:
                    last_inside_at = last_inside.observed_at
                    outside_seconds = max((stamp - last_inside_at).total_seconds(), 0.0)
                else:
                    last_inside_at = None
                    outside_seconds = float(self.threshold_seconds + NEVER_INSIDE_GRACE_SECONDS)

            db.commit()

        if not result.inside_geofence:
            logger.info(
                f"Employee {employee_id} outside project {project_id} geofence "
                f"({int(result.distance_meters)} m, {int(outside_seconds)} s)"
            )

        return IngestResult(
            inside_geofence=result.inside_geofence,
            outside_duration_seconds=outside_seconds,
            distance_meters=result.distance_meters,
            observed_at=stamp,
            last_inside_at=last_inside_at,
            boundary=result.boundary
        )

    def last_inside_ping(
        self,
        db: Session,
        employee_id: int,
        project_id: int,
        before: datetime
    ) -> Optional[LocationLog]:
        return db.query(LocationLog).filter(
            LocationLog.employee_id == employee_id,
            LocationLog.project_id == project_id,
            LocationLog.inside_geofence.is_(True),
            LocationLog.observed_at <= before
        ).order_by(LocationLog.observed_at.desc(), LocationLog.id.desc()).first()

    def recent_locations(
        self,
        db: Session,
        employee_id: int,
        project_id: int,
        limit: int = 50
    ) -> List[LocationLog]:
        with store_guard(db):
            return db.query(LocationLog).filter(
                LocationLog.employee_id == employee_id,
                LocationLog.project_id == project_id
            ).order_by(LocationLog.observed_at.desc(), LocationLog.id.desc()).limit(limit).all()


location_service = LocationService()
