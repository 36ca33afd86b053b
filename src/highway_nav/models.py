# models.py
# Shared data structures and enums used across all modules.

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


# ---------------------------------------------------------------------------
# Direction
# ---------------------------------------------------------------------------

class TravelDirection(Enum):
    """Digitized or actual direction along a road ("forward" = up)."""
    UP   = "up"
    DOWN = "down"

    @property
    def opposite(self) -> "TravelDirection":
        return TravelDirection.DOWN if self is TravelDirection.UP else TravelDirection.UP


# ---------------------------------------------------------------------------
# Road network
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box in degrees."""
    min_lon: float
    min_lat: float
    max_lon: float
    max_lat: float

    @staticmethod
    def around(lat: float, lon: float, half_width_deg: float) -> "BoundingBox":
        return BoundingBox(
            min_lon=lon - half_width_deg,
            min_lat=lat - half_width_deg,
            max_lon=lon + half_width_deg,
            max_lat=lat + half_width_deg,
        )


@dataclass(frozen=True)
class RoadFeature:
    """
    One digitized road line.

    coords are (lon, lat) pairs in digitization order. measures holds the
    per-vertex kilopost in km, or None when the road cannot report progress.
    """
    id: str
    name: str
    direction: TravelDirection
    coords: Tuple[Tuple[float, float], ...]
    measures: Optional[Tuple[Optional[float], ...]] = None


@dataclass(frozen=True)
class ServiceArea:
    """A service area / parking area on a road, placed by kilopost."""
    id: str
    road_id: str
    kp: float
    name: str
    facilities: Tuple[str, ...] = ()
    url: Optional[str] = None


# ---------------------------------------------------------------------------
# Position samples
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PositionSample:
    """A single fix from the position source."""
    lat: float
    lon: float
    speed: Optional[float] = None        # m/s, signed
    heading: Optional[float] = None      # compass degrees
    accuracy: Optional[float] = None     # metres
    timestamp: Optional[float] = None    # seconds

    @property
    def has_valid_position(self) -> bool:
        return (
            math.isfinite(self.lat) and math.isfinite(self.lon)
            and -90.0 <= self.lat <= 90.0 and -180.0 <= self.lon <= 180.0
        )


# ---------------------------------------------------------------------------
# Matching results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SnappedPoint:
    """Closest point on a road geometry to a sample."""
    lat: float
    lon: float
    segment_index: int
    fraction: float              # position along the segment, 0..1
    distance_m: float            # sample → snapped point
    progress: Optional[float]    # kp in km, None if the road has no measure here


@dataclass(frozen=True)
class MatchResult:
    road: RoadFeature
    snapped: SnappedPoint
    distance_m: float
    movement_bearing: Optional[float] = None


@dataclass(frozen=True)
class DirectionResult:
    raw: TravelDirection
    label: str


@dataclass(frozen=True)
class NextSapaEntry:
    """A service area ahead of the vehicle."""
    service_area: ServiceArea
    distance_km: float
    eta_minutes: Optional[float] = None


# ---------------------------------------------------------------------------
# Tracking status
# ---------------------------------------------------------------------------

class TrackingStatus(Enum):
    MATCHED      = "matched"
    NO_PROGRESS  = "progress_unknown"
    UNMATCHED    = "unmatched"
    NO_DATA      = "data_unavailable"
    SOURCE_ERROR = "source_error"


@dataclass
class TrackingResult:
    """Returned by HighwayTracker.process() for every sample."""
    status: TrackingStatus
    message: str
    sample: Optional[PositionSample] = None
    match: Optional[MatchResult] = None
    direction: Optional[DirectionResult] = None
    kp: Optional[float] = None
    next_sapas: List[NextSapaEntry] = field(default_factory=list)

    @property
    def road(self) -> Optional[RoadFeature]:
        return self.match.road if self.match else None

    @property
    def road_name(self) -> Optional[str]:
        return self.road.name if self.road else None
