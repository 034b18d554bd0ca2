import math
import pytest
from app.services.directory_service import ProjectBoundary
from app.services.geo import haversine_distance
from app.services.geofence_service import evaluate


SITE = ProjectBoundary(project_id=1, name="Site", latitude=0.0, longitude=0.0, radius_meters=100.0)


def test_distance_to_self_is_zero():
    assert haversine_distance(1.2834, 103.8607, 1.2834, 103.8607) == 0


@pytest.mark.parametrize("a,b", [
    ((0.0, 0.0), (0.0, 0.002)),
    ((1.2834, 103.8607), (1.3521, 103.8198)),
    ((-33.8688, 151.2093), (51.5072, -0.1276)),
])
def test_distance_is_symmetric(a, b):
    assert haversine_distance(*a, *b) == pytest.approx(haversine_distance(*b, *a))


def test_known_distances():
    assert haversine_distance(0, 0, 0, 0.0008) == pytest.approx(88.96, abs=0.05)
    assert haversine_distance(0, 0, 0, 0.002) == pytest.approx(222.39, abs=0.05)


def test_nan_coordinates_give_nan():
    assert math.isnan(haversine_distance(float("nan"), 0, 0, 0))


def test_worker_near_center_is_inside():
    result = evaluate(0.0, 0.0008, SITE)
    assert result.inside_geofence is True
    assert result.distance_meters == pytest.approx(88.96, abs=0.05)


def test_worker_far_from_center_is_outside():
    result = evaluate(0.0, 0.002, SITE)
    assert result.inside_geofence is False


def test_boundary_edge_counts_as_inside():
    distance = haversine_distance(0.0, 0.001, SITE.latitude, SITE.longitude)
    edge = ProjectBoundary(project_id=1, name="Site", latitude=0.0, longitude=0.0, radius_meters=distance)
    assert evaluate(0.0, 0.001, edge).inside_geofence is True
