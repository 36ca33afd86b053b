# tracker_config.py
# All tuneable constants in one place.
# Pass a TrackerConfig instance to every module that needs settings.

import os
from dataclasses import dataclass


# ---------------------------------------------------------------------------
# Direction labels (display only, never used for raw direction logic)
# ---------------------------------------------------------------------------

UP_LABEL: str = "Up"
DOWN_LABEL: str = "Down"
INNER_LOOP_LABEL: str = "Inner loop"
OUTER_LOOP_LABEL: str = "Outer loop"
UNKNOWN_DIRECTION_LABEL: str = "unknown"

INNER_LOOP_MARKERS: tuple = ("内回", "inner loop")
OUTER_LOOP_MARKERS: tuple = ("外回", "outer loop")

# Movement bearing more than this far from the segment bearing means the
# vehicle travels against the digitized direction.
DIRECTION_FLIP_DEG: float = 90.0

DEFAULT_DATA_DIR: str = os.path.join(os.path.dirname(os.path.abspath(__file__)), "data")


# ---------------------------------------------------------------------------
# Main config
# ---------------------------------------------------------------------------

@dataclass
class TrackerConfig:
    # Road matching
    search_radius_deg: float = 0.5          # half-width of the index query box (~50 km)
    max_snap_distance_m: float = 500.0      # candidates farther than this are dropped
    max_bearing_diff_deg: float = 45.0      # allowed deviation from either segment direction

    # Speed floors
    heading_min_speed_mps: float = 1.5      # trust device heading above this speed
    direction_min_speed_mps: float = 0.5    # assert a travel direction above this speed
    eta_min_speed_mps: float = 0.5          # compute ETA above this speed

    # Displacement-derived bearing
    min_displacement_m: float = 5.0             # live samples
    simulated_min_displacement_m: float = 1.0   # low-noise simulated samples

    # Simulated playback
    simulated_interval_s: float = 1.0

    # SA/PA search
    sapa_result_count: int = 2
    kp_increasing_direction: str = "down"   # travel direction along which kp grows

    # Progress
    derive_progress_from_length: bool = True    # arc-length kp for roads without one

    # Dataset files
    data_dir: str = DEFAULT_DATA_DIR
    roads_filename: str = "roads.geojson"
    sapas_filename: str = "sapas.json"

    @property
    def roads_filepath(self) -> str:
        return os.path.join(self.data_dir, self.roads_filename)

    @property
    def sapas_filepath(self) -> str:
        return os.path.join(self.data_dir, self.sapas_filename)
