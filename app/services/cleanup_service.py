from datetime import datetime, timedelta
from typing import Dict, Optional
import logging
import threading

from sqlalchemy import and_, func
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import SessionLocal, store_guard
from app.core.timeutils import to_utc_naive, utcnow
from app.models.location import LocationLog

logger = logging.getLogger(__name__)


class CleanupService:
    """Prunes old location pings on a fixed interval.

    Dwell detection measures from the latest inside ping, so that ping
    survives retention even when an excursion outlasts the window.
    """

    def __init__(self):
        self.cleanup_interval = settings.CLEANUP_INTERVAL_HOURS  # hours
        self.retention_days = settings.LOCATION_LOG_RETENTION_DAYS
        self.running = False
        self.thread = None
        self._stop = threading.Event()

    def start_scheduler(self):
        """Start the automatic cleanup scheduler"""
        if self.running:
            return

        self.running = True
        self._stop.clear()
        self.thread = threading.Thread(target=self._scheduler_loop, daemon=True)
        self.thread.start()
        logger.info("Cleanup scheduler started")

    def stop_scheduler(self):
        """Stop the automatic cleanup scheduler"""
        self.running = False
        self._stop.set()
        if self.thread:
            self.thread.join()
            self.thread = None
        logger.info("Cleanup scheduler stopped")

    def _scheduler_loop(self):
        """Main scheduler loop"""
        while self.running:
            db = SessionLocal()
            try:
                self.cleanup_location_logs(db)
            except Exception as e:
                logger.error(f"Error in cleanup scheduler: {e}")
            finally:
                db.close()
            self._stop.wait(self.cleanup_interval * 3600)

    def cleanup_location_logs(self, db: Session, now: Optional[datetime] = None) -> Dict:
        """Delete location pings older than the retention window.

        The latest inside ping of each (employee, project) is kept however
        old. The outside duration of the next ping is measured from it.
        """
        cutoff = to_utc_naive(now or utcnow()) - timedelta(days=self.retention_days)

        with store_guard(db):
            keep_ids = [row.id for row in self._latest_inside_pings(db, cutoff)]
            deleted = db.query(LocationLog).filter(
                LocationLog.observed_at < cutoff,
                LocationLog.id.notin_(keep_ids)
            ).delete(synchronize_session=False)
            db.commit()

        logger.info(f"Deleted {deleted} location logs older than {cutoff.isoformat()}")
        return {
            "success": True,
            "timestamp": utcnow().isoformat(),
            "cutoff": cutoff.isoformat(),
            "deleted": deleted
        }

    def _latest_inside_pings(self, db: Session, cutoff: datetime):
        """Ids of excursion anchors that fall before the cutoff"""
        latest = db.query(
            LocationLog.employee_id,
            LocationLog.project_id,
            func.max(LocationLog.observed_at).label("observed_at")
        ).filter(
            LocationLog.inside_geofence.is_(True)
        ).group_by(
            LocationLog.employee_id, LocationLog.project_id
        ).subquery()

        return db.query(LocationLog.id).join(
            latest,
            and_(
                LocationLog.employee_id == latest.c.employee_id,
                LocationLog.project_id == latest.c.project_id,
                LocationLog.observed_at == latest.c.observed_at
            )
        ).filter(
            LocationLog.inside_geofence.is_(True),
            LocationLog.observed_at < cutoff
        ).all()


cleanup_service = CleanupService()
