import pytest

from highway_nav.dataset_loader import RoadDataset, build_road
from highway_nav.models import PositionSample, ServiceArea, TravelDirection

# At the equator 0.001 deg of latitude or longitude is ~111.2 m.
M_PER_DEG = 111_194.93


def make_road(road_id, coords, direction=TravelDirection.UP, name=None, **kwargs):
    road = build_road(road_id, name or road_id, direction, coords, **kwargs)
    assert road is not None
    return road


def sample(lat, lon, speed=None, heading=None, t=None):
    return PositionSample(lat=lat, lon=lon, speed=speed, heading=heading, accuracy=5.0, timestamp=t)


@pytest.fixture
def east_road():
    """Eastbound line along the equator, lon 0 → 0.1, digitized down."""
    return make_road("east", [(0.0, 0.0), (0.05, 0.0), (0.1, 0.0)], TravelDirection.DOWN, "East Expressway")


@pytest.fixture
def east_dataset(east_road):
    sapas = (
        ServiceArea("pa-1", "east", 3.0, "First PA", ("WC",)),
        ServiceArea("sa-2", "east", 6.0, "Second SA", ("GAS", "SHOP"), "https://example.com/sa-2"),
        ServiceArea("pa-3", "east", 9.0, "Third PA"),
    )
    return RoadDataset(roads=(east_road,), service_areas=sapas)
