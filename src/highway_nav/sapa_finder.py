# sapa_finder.py
# Finds the next service / parking areas ahead of the vehicle on its road.
#
# Usage:
#   finder = SapaFinder(service_areas, config)
#   entries = finder.find_next(road_id, kp, speed_mps, direction)

import logging
import math
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Tuple

from .models import DirectionResult, NextSapaEntry, ServiceArea, TravelDirection
from .tracker_config import TrackerConfig

logger = logging.getLogger(__name__)


class SapaFinder:
    """
    Direction-aware forward search over a read-only SA/PA table.

    Args:
        service_areas: SA/PA records; grouped by road at construction.
        config:        TrackerConfig instance.
    """

    def __init__(
        self,
        service_areas: Iterable[ServiceArea],
        config: Optional[TrackerConfig] = None,
    ) -> None:
        self.config = config or TrackerConfig()
        self._increasing = TravelDirection(self.config.kp_increasing_direction)

        by_road: Dict[str, List[ServiceArea]] = defaultdict(list)
        for sapa in service_areas:
            by_road[sapa.road_id].append(sapa)
        self._by_road: Dict[str, Tuple[ServiceArea, ...]] = {
            road_id: tuple(items) for road_id, items in by_road.items()
        }

    def __len__(self) -> int:
        return sum(len(v) for v in self._by_road.values())

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def find_next(
        self,
        road_id: str,
        current_kp: Optional[float],
        speed: Optional[float],
        direction: Optional[DirectionResult],
        k: Optional[int] = None,
    ) -> List[NextSapaEntry]:
        """
        Next SA/PAs ahead on the same road.

        Args:
            road_id:    Road the vehicle is matched to.
            current_kp: Vehicle kilopost in km; None disables the search.
            speed:      Speed in m/s used for the ETA.
            direction:  Resolved travel direction; None disables the search.
            k:          Result count (defaults to config.sapa_result_count).

        Returns:
            Entries sorted by distance ahead, nearest first.
        """
        if direction is None or current_kp is None:
            return []
        if k is None:
            k = self.config.sapa_result_count

        increasing = direction.raw is self._increasing
        ahead = [
            s for s in self._by_road.get(road_id, ())
            if (s.kp > current_kp if increasing else s.kp < current_kp)
        ]
        ahead.sort(key=lambda s: abs(s.kp - current_kp))
        logger.debug(f"[SapaFinder] {len(ahead)} SA/PA ahead on {road_id} from kp {current_kp:.2f}.")

        return [self._entry(s, current_kp, speed) for s in ahead[:k]]

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _entry(self, sapa: ServiceArea, current_kp: float, speed: Optional[float]) -> NextSapaEntry:
        distance_km = abs(sapa.kp - current_kp)
        eta = None
        if speed is not None and math.isfinite(speed) and speed > self.config.eta_min_speed_mps:
            eta = distance_km * 1000.0 / speed / 60.0
        return NextSapaEntry(service_area=sapa, distance_km=distance_km, eta_minutes=eta)
