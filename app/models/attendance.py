from sqlalchemy import Column, Integer, DateTime, Date, ForeignKey, Float, Boolean, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
import enum
from app.core.database import Base


class AttendanceStatus(str, enum.Enum):
    NOT_CHECKED_IN = "NOT_CHECKED_IN"
    PENDING = "PENDING"
    OUTSIDE = "OUTSIDE"
    COMPLETED = "COMPLETED"


class AttendanceSession(str, enum.Enum):
    CHECKIN = "checkin"
    CHECKOUT = "checkout"


class Attendance(Base):
    """One attendance record per employee, project and calendar day."""
    __tablename__ = "attendances"
    __table_args__ = (
        UniqueConstraint("employee_id", "project_id", "date", name="uq_attendance_employee_project_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)

    check_in = Column(DateTime, nullable=True)
    check_out = Column(DateTime, nullable=True)
    inside_geofence_at_check_in = Column(Boolean, default=False, nullable=False)
    inside_geofence_at_check_out = Column(Boolean, nullable=True)
    pending_checkout = Column(Boolean, default=False, nullable=False)
    forced_checkout = Column(Boolean, default=False, nullable=False)
    hours_worked = Column(Float, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    employee = relationship("Employee")
    project = relationship("Project")
