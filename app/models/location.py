from sqlalchemy import Column, Integer, DateTime, ForeignKey, Float, Boolean, Index
from app.core.database import Base


class LocationLog(Base):
    """Immutable position ping. ``inside_geofence`` is fixed at ingestion time."""
    __tablename__ = "location_logs"
    __table_args__ = (
        Index("ix_location_logs_excursion", "employee_id", "project_id", "inside_geofence", "observed_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    distance_meters = Column(Float, nullable=True)
    inside_geofence = Column(Boolean, nullable=False)
    observed_at = Column(DateTime, nullable=False, index=True)
