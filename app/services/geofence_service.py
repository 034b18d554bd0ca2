from dataclasses import dataclass
from sqlalchemy.orm import Session

from app.services.directory_service import ProjectBoundary, ProjectDirectory, project_directory
from app.services.geo import haversine_distance


@dataclass(frozen=True)
class GeofenceResult:
    distance_meters: float
    inside_geofence: bool
    boundary: ProjectBoundary


def evaluate(latitude: float, longitude: float, boundary: ProjectBoundary) -> GeofenceResult:
    """Classify a position against a project boundary. The edge counts as inside."""
    distance = haversine_distance(latitude, longitude, boundary.latitude, boundary.longitude)
    return GeofenceResult(
        distance_meters=distance,
        inside_geofence=distance <= boundary.radius_meters,
        boundary=boundary,
    )


class GeofenceService:
    def __init__(self, directory: ProjectDirectory = project_directory):
        self.directory = directory

    def evaluate_for_project(self, db: Session, project_id: int, latitude: float, longitude: float) -> GeofenceResult:
        """Resolve the project boundary and classify the position.

        Raises ProjectNotFound when the project cannot be resolved.
        """
        boundary = self.directory.resolve_project(db, project_id)
        return evaluate(latitude, longitude, boundary)


geofence_service = GeofenceService()
