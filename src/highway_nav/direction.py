# direction.py
# Travel direction and kilopost at a snapped point.

import math
from typing import Optional, Tuple

from .geo_utils import angle_difference, segment_bearing
from .models import DirectionResult, RoadFeature, SnappedPoint, TravelDirection
from .tracker_config import (
    DIRECTION_FLIP_DEG,
    DOWN_LABEL,
    INNER_LOOP_LABEL,
    INNER_LOOP_MARKERS,
    OUTER_LOOP_LABEL,
    OUTER_LOOP_MARKERS,
    UP_LABEL,
    TrackerConfig,
)


def _has_marker(name: str, markers: tuple) -> bool:
    lowered = name.lower()
    return any(m in lowered for m in markers)


def direction_label(road_name: str, raw: TravelDirection) -> str:
    """
    Display label for a raw direction.

    Loop roads are labelled by their inner/outer marker; a name carrying
    the marker of the travel direction's usual loop wins over the other.
    """
    name = road_name or ""
    inner = _has_marker(name, INNER_LOOP_MARKERS)
    outer = _has_marker(name, OUTER_LOOP_MARKERS)
    if raw is TravelDirection.UP:
        if inner:
            return INNER_LOOP_LABEL
        return OUTER_LOOP_LABEL if outer else UP_LABEL
    if outer:
        return OUTER_LOOP_LABEL
    return INNER_LOOP_LABEL if inner else DOWN_LABEL


class DirectionResolver:
    """
    Infers the actual travel direction relative to the digitized one and
    reads the kilopost at the snapped point.

    Args:
        config: TrackerConfig instance.
    """

    def __init__(self, config: Optional[TrackerConfig] = None) -> None:
        self.config = config or TrackerConfig()

    def resolve(
        self,
        road: RoadFeature,
        snapped: SnappedPoint,
        movement_bearing: Optional[float],
        speed: Optional[float],
    ) -> Tuple[Optional[DirectionResult], Optional[float]]:
        """
        Returns:
            (direction, kp). direction is None without a movement bearing or
            below the direction speed floor; kp is None when the road has no
            progress measure at the snapped point (never 0.0 as a stand-in).
        """
        return self.direction(road, snapped, movement_bearing, speed), snapped.progress

    def direction(
        self,
        road: RoadFeature,
        snapped: SnappedPoint,
        movement_bearing: Optional[float],
        speed: Optional[float],
    ) -> Optional[DirectionResult]:
        if movement_bearing is None or not math.isfinite(movement_bearing):
            return None
        if speed is None or not math.isfinite(speed) or speed < self.config.direction_min_speed_mps:
            return None

        seg = segment_bearing(road.coords, snapped.segment_index)
        raw = road.direction
        if angle_difference(movement_bearing, seg) > DIRECTION_FLIP_DEG:
            raw = raw.opposite
        return DirectionResult(raw=raw, label=direction_label(road.name, raw))
