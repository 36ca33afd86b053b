# road_matcher.py
# Selects the road a position sample is on.
# Two stages: STRtree envelope lookup, then snap distance + bearing filter.

import logging
import math
from typing import Optional

from .geo_utils import (
    angle_difference,
    calculate_bearing,
    haversine_distance,
    nearest_point_on_line,
    segment_bearing,
)
from .models import BoundingBox, MatchResult, PositionSample
from .road_index import RoadNetworkIndex
from .tracker_config import TrackerConfig

logger = logging.getLogger(__name__)


class RoadMatcher:
    """
    Matches position samples to the road network.

    Usage:
        matcher = RoadMatcher(index, config)
        match = matcher.match(sample, previous_sample)

    Args:
        index:  RoadNetworkIndex built from the road dataset.
        config: TrackerConfig instance.
    """

    def __init__(self, index: RoadNetworkIndex, config: Optional[TrackerConfig] = None) -> None:
        self.index = index
        self.config = config or TrackerConfig()

    # ------------------------------------------------------------------
    # Movement bearing
    # ------------------------------------------------------------------

    def movement_bearing(
        self,
        sample: PositionSample,
        previous: Optional[PositionSample],
        min_displacement_m: Optional[float] = None,
    ) -> Optional[float]:
        """
        Direction the vehicle is actually moving, or None if unknown.

        Device heading is used only above the heading speed floor. Otherwise
        the bearing from the previous sample is used when the two are far
        enough apart to rise above position noise.
        """
        if min_displacement_m is None:
            min_displacement_m = self.config.min_displacement_m

        if (
            sample.heading is not None
            and math.isfinite(sample.heading)
            and sample.speed is not None
            and math.isfinite(sample.speed)
            and sample.speed > self.config.heading_min_speed_mps
        ):
            return sample.heading

        if previous is not None and previous.has_valid_position:
            moved = haversine_distance(previous.lat, previous.lon, sample.lat, sample.lon)
            if moved > min_displacement_m:
                return calculate_bearing(previous.lat, previous.lon, sample.lat, sample.lon)
        return None

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------

    def match(
        self,
        sample: PositionSample,
        previous: Optional[PositionSample] = None,
        min_displacement_m: Optional[float] = None,
    ) -> Optional[MatchResult]:
        """
        Best matching road for a sample.

        Args:
            sample:             Current position sample.
            previous:           Sample processed just before this one.
            min_displacement_m: Override for the displacement bearing rule.

        Returns:
            MatchResult with the nearest surviving candidate, or None.
        """
        bbox = BoundingBox.around(sample.lat, sample.lon, self.config.search_radius_deg)
        candidate_ids = self.index.query(bbox)
        if not candidate_ids:
            logger.debug(f"[Matcher] No candidates around ({sample.lat:.5f}, {sample.lon:.5f}).")
            return None

        bearing = self.movement_bearing(sample, previous, min_displacement_m)
        best: Optional[MatchResult] = None

        for road_id in candidate_ids:
            road = self.index.get(road_id)
            if road is None:
                continue

            snapped = nearest_point_on_line(road.coords, sample.lat, sample.lon, road.measures)
            if snapped.distance_m > self.config.max_snap_distance_m:
                continue

            if bearing is not None:
                seg = segment_bearing(road.coords, snapped.segment_index)
                diff = min(angle_difference(bearing, seg), angle_difference(bearing, seg + 180.0))
                if diff > self.config.max_bearing_diff_deg:
                    logger.debug(f"[Matcher] {road.id}: bearing off by {diff:.1f} deg, rejected.")
                    continue

            if best is None or snapped.distance_m < best.distance_m:
                best = MatchResult(
                    road=road,
                    snapped=snapped,
                    distance_m=snapped.distance_m,
                    movement_bearing=bearing,
                )

        if best is None:
            logger.debug(f"[Matcher] All {len(candidate_ids)} candidates rejected.")
        return best
