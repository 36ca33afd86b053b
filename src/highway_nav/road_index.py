# road_index.py
# Bounding-box spatial index over road geometries.
# Coarse candidate lookup only; exact distance checks happen in road_matcher.

import logging
import math
from typing import Dict, Iterable, List, Optional

from shapely.geometry import LineString, box
from shapely.strtree import STRtree

from .models import BoundingBox, RoadFeature

logger = logging.getLogger(__name__)


def _is_indexable(road: RoadFeature) -> bool:
    if len(road.coords) < 2:
        return False
    return all(math.isfinite(lon) and math.isfinite(lat) for lon, lat in road.coords)


class RoadNetworkIndex:
    """
    Read-only STRtree over road envelopes.

    Built once; a rebuild creates a new index instead of mutating this one.

    Args:
        roads: RoadFeature records. Degenerate or duplicate ones are skipped.
    """

    def __init__(self, roads: Iterable[RoadFeature]) -> None:
        self._roads: List[RoadFeature] = []
        self._by_id: Dict[str, RoadFeature] = {}

        for road in roads:
            if not _is_indexable(road):
                logger.warning(f"[RoadIndex] Skipping road {road.id!r}: degenerate geometry.")
                continue
            if road.id in self._by_id:
                logger.warning(f"[RoadIndex] Skipping road {road.id!r}: duplicate id.")
                continue
            self._roads.append(road)
            self._by_id[road.id] = road

        self._tree: Optional[STRtree] = None
        if self._roads:
            self._tree = STRtree([LineString(r.coords) for r in self._roads])
        logger.info(f"[RoadIndex] Ready — {len(self._roads)} roads indexed.")

    @classmethod
    def build(cls, roads: Iterable[RoadFeature]) -> "RoadNetworkIndex":
        return cls(roads)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def query(self, bbox: BoundingBox) -> List[str]:
        """
        Ids of every road whose envelope intersects bbox, in dataset order.

        False positives are expected; callers must check exact geometry.
        """
        if self._tree is None:
            return []
        hits = self._tree.query(box(bbox.min_lon, bbox.min_lat, bbox.max_lon, bbox.max_lat))
        return [self._roads[i].id for i in sorted(int(h) for h in hits)]

    def get(self, road_id: str) -> Optional[RoadFeature]:
        return self._by_id.get(road_id)

    def __len__(self) -> int:
        return len(self._roads)

    def __contains__(self, road_id: object) -> bool:
        return road_id in self._by_id
