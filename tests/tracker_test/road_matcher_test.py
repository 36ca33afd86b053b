import math

import pytest

from highway_nav.road_index import RoadNetworkIndex
from highway_nav.road_matcher import RoadMatcher
from highway_nav.tracker_config import TrackerConfig

from conftest import M_PER_DEG, make_road, sample


@pytest.fixture
def crossing_matcher():
    """An eastbound road and a northbound road crossing at lon 0.05."""
    east = make_road("east", [(0.0, 0.0), (0.05, 0.0), (0.1, 0.0)])
    north = make_road("north", [(0.05, -0.05), (0.05, 0.05)])
    return RoadMatcher(RoadNetworkIndex.build([east, north]))


def test_no_candidates_returns_none(crossing_matcher):
    assert crossing_matcher.match(sample(10.0, 10.0, speed=20.0, heading=0.0)) is None


def test_candidate_beyond_snap_distance_is_excluded():
    matcher = RoadMatcher(RoadNetworkIndex.build([make_road("only", [(0.0, 0.0), (0.1, 0.0)])]))
    lat_510m = 510.0 / M_PER_DEG
    lat_490m = 490.0 / M_PER_DEG

    assert matcher.match(sample(lat_510m, 0.05)) is None
    result = matcher.match(sample(lat_490m, 0.05))
    assert result is not None
    assert result.road.id == "only"
    assert result.distance_m == pytest.approx(490.0, rel=1e-3)


def test_without_bearing_nearest_road_wins(crossing_matcher):
    # ~22 m from east, ~33 m from north
    result = crossing_matcher.match(sample(0.0002, 0.0503))
    assert result.road.id == "east"
    assert result.movement_bearing is None


def test_heading_rejects_perpendicular_road(crossing_matcher):
    result = crossing_matcher.match(sample(0.0002, 0.0503, speed=20.0, heading=0.0))
    assert result.road.id == "north"
    assert result.movement_bearing == 0.0


def test_heading_against_digitization_still_matches(crossing_matcher):
    result = crossing_matcher.match(sample(0.0002, 0.0503, speed=20.0, heading=270.0))
    assert result.road.id == "east"


def test_all_candidates_rejected_by_bearing():
    matcher = RoadMatcher(RoadNetworkIndex.build([make_road("east", [(0.0, 0.0), (0.1, 0.0)])]))
    assert matcher.match(sample(0.0, 0.05, speed=20.0, heading=0.0)) is None


def test_slow_sample_ignores_heading(crossing_matcher):
    # Below the heading floor and no previous sample: bearing filter skipped
    result = crossing_matcher.match(sample(0.0002, 0.0503, speed=0.3, heading=0.0))
    assert result.road.id == "east"
    assert result.movement_bearing is None


def test_displacement_bearing_from_previous_sample(crossing_matcher):
    previous = sample(0.0002 - 0.001, 0.0503)     # ~111 m south
    result = crossing_matcher.match(sample(0.0002, 0.0503, speed=0.3, heading=90.0), previous)
    assert result.road.id == "north"
    assert result.movement_bearing == pytest.approx(0.0, abs=0.5)


def test_small_displacement_leaves_bearing_undefined(crossing_matcher):
    step = 3.0 / M_PER_DEG
    previous = sample(0.0002, 0.0503 - step)
    current = sample(0.0002, 0.0503)

    assert crossing_matcher.movement_bearing(current, previous) is None
    bearing = crossing_matcher.movement_bearing(current, previous, min_displacement_m=1.0)
    assert bearing == pytest.approx(90.0, abs=0.5)


def test_heading_used_only_above_speed_floor(crossing_matcher):
    fast = sample(0.0, 0.05, speed=1.6, heading=45.0)
    at_floor = sample(0.0, 0.05, speed=1.5, heading=45.0)
    no_speed = sample(0.0, 0.05, heading=45.0)
    assert crossing_matcher.movement_bearing(fast, None) == 45.0
    assert crossing_matcher.movement_bearing(at_floor, None) is None
    assert crossing_matcher.movement_bearing(no_speed, None) is None


def test_equal_distance_first_candidate_wins():
    coords = [(0.0, 0.0), (0.1, 0.0)]
    matcher = RoadMatcher(RoadNetworkIndex.build([make_road("first", coords), make_road("second", coords)]))
    assert matcher.match(sample(0.001, 0.05)).road.id == "first"


def test_thresholds_come_from_config():
    config = TrackerConfig(max_snap_distance_m=50.0)
    matcher = RoadMatcher(RoadNetworkIndex.build([make_road("only", [(0.0, 0.0), (0.1, 0.0)])]), config)
    assert matcher.match(sample(60.0 / M_PER_DEG, 0.05)) is None


def test_match_carries_progress_from_arc_length():
    matcher = RoadMatcher(RoadNetworkIndex.build([make_road("only", [(0.0, 0.0), (0.1, 0.0)])]))
    result = matcher.match(sample(0.0, 0.05))
    assert result.snapped.progress == pytest.approx(0.05 * M_PER_DEG / 1000.0, rel=1e-4)


def test_nan_heading_is_treated_as_absent(crossing_matcher):
    current = sample(0.0002, 0.0503, speed=20.0, heading=math.nan)
    assert crossing_matcher.movement_bearing(current, None) is None

    # Falls through to the displacement bearing: moving east, north road rejected
    previous = sample(0.0002, 0.0503 - 0.001)
    result = crossing_matcher.match(current, previous)
    assert result.road.id == "east"
    assert result.movement_bearing == pytest.approx(90.0, abs=0.5)


def test_nan_heading_does_not_bypass_bearing_filter():
    matcher = RoadMatcher(RoadNetworkIndex.build([make_road("north", [(0.05, -0.05), (0.05, 0.05)])]))
    previous = sample(0.0, 0.0501 - 0.001)
    assert matcher.match(sample(0.0, 0.0501, speed=20.0, heading=math.nan), previous) is None


def test_nan_speed_disables_heading(crossing_matcher):
    assert crossing_matcher.movement_bearing(sample(0.0, 0.05, speed=math.nan, heading=45.0), None) is None
