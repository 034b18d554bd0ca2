"""Read-only lookups against the project and employee directories."""
from dataclasses import dataclass
from typing import Optional
import logging

from sqlalchemy.orm import Session

from app.core.database import store_guard
from app.core.exceptions import ProjectNotFound
from app.models.employee import Employee
from app.models.project import Project

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProjectBoundary:
    project_id: int
    name: str
    latitude: float
    longitude: float
    radius_meters: float
    timezone: Optional[str] = None


class ProjectDirectory:
    def resolve_project(self, db: Session, project_id: int) -> ProjectBoundary:
        with store_guard(db):
            project = db.query(Project).filter(Project.id == project_id).first()
        if not project:
            raise ProjectNotFound(f"Project {project_id} not found")
        return ProjectBoundary(
            project_id=project.id,
            name=project.name,
            latitude=project.latitude,
            longitude=project.longitude,
            radius_meters=project.geofence_radius,
            timezone=project.timezone,
        )


class EmployeeDirectory:
    def resolve_employee(self, db: Session, employee_id: int) -> str:
        """Display name for alert text. Unknown employees get a placeholder."""
        with store_guard(db):
            employee = db.query(Employee).filter(Employee.id == employee_id).first()
        if not employee:
            logger.warning(f"Employee {employee_id} not found in directory")
            return f"Employee #{employee_id}"
        return employee.full_name


project_directory = ProjectDirectory()
employee_directory = EmployeeDirectory()
