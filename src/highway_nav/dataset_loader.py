# dataset_loader.py
# Reads the road GeoJSON and SA/PA JSON files into validated records.
# Malformed records are skipped with a warning; a missing or empty
# dataset raises DatasetError.

import json
import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from shapely.errors import ShapelyError
from shapely.geometry import LineString, MultiLineString, shape
from shapely.ops import linemerge

from .geo_utils import cumulative_lengths_km
from .models import RoadFeature, ServiceArea, TravelDirection
from .tracker_config import TrackerConfig

logger = logging.getLogger(__name__)


class DatasetError(Exception):
    """Dataset missing, unreadable or empty; no matching is possible."""


@dataclass(frozen=True)
class RoadDataset:
    roads: Tuple[RoadFeature, ...]
    service_areas: Tuple[ServiceArea, ...]


# ---------------------------------------------------------------------------
# Record builders
# ---------------------------------------------------------------------------

def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        f = float(value)
    except (TypeError, ValueError):
        return None
    return f if math.isfinite(f) else None


def build_road(
    road_id: str,
    name: str,
    direction: TravelDirection,
    coords: Sequence[Sequence[float]],
    kp: Optional[Sequence[Any]] = None,
    derive_progress: bool = True,
) -> Optional[RoadFeature]:
    """
    Build a RoadFeature, dropping repeated consecutive vertices.

    Args:
        road_id, name, direction: Road attributes.
        coords:          (lon, lat) vertices.
        kp:              Optional per-vertex kilopost values from the dataset.
        derive_progress: Use arc length (km) as kp when the dataset has none.

    Returns:
        RoadFeature, or None if fewer than two distinct vertices remain.
    """
    points: List[Tuple[float, float]] = []
    measures: List[Optional[float]] = []

    if kp is not None and len(kp) != len(coords):
        logger.warning(
            f"[Loader] Road {road_id!r}: kp has {len(kp)} values for "
            f"{len(coords)} vertices, ignoring it."
        )
        kp = None

    for i, c in enumerate(coords):
        lon, lat = _as_float(c[0]), _as_float(c[1])
        if lon is None or lat is None:
            return None
        if points and points[-1] == (lon, lat):
            continue
        points.append((lon, lat))
        measures.append(_as_float(kp[i]) if kp is not None else None)

    if len(points) < 2:
        return None

    if kp is not None:
        road_measures: Optional[Tuple[Optional[float], ...]] = tuple(measures)
    elif derive_progress:
        road_measures = tuple(cumulative_lengths_km(points))
    else:
        road_measures = None

    return RoadFeature(
        id=road_id,
        name=name,
        direction=direction,
        coords=tuple(points),
        measures=road_measures,
    )


def _road_from_feature(feat: Dict[str, Any], derive_progress: bool) -> Optional[RoadFeature]:
    props = feat.get("properties") or {}
    road_id = props.get("id")
    if road_id is None or road_id == "":
        return None
    try:
        direction = TravelDirection(str(props.get("dir", "")).lower())
    except ValueError:
        return None

    try:
        geom = shape(feat["geometry"])
    except (KeyError, TypeError, ValueError, AttributeError, ShapelyError):
        return None
    if isinstance(geom, MultiLineString):
        geom = linemerge(geom)
    if not isinstance(geom, LineString):
        return None

    kp = props.get("kp")
    if kp is not None and not isinstance(kp, (list, tuple)):
        logger.warning(f"[Loader] Road {road_id!r}: kp is not a per-vertex list, ignoring it.")
        kp = None

    return build_road(
        road_id=str(road_id),
        name=str(props.get("name") or "Unnamed road"),
        direction=direction,
        coords=[(x, y) for x, y, *_ in geom.coords],
        kp=kp,
        derive_progress=derive_progress,
    )


def _sapa_from_record(rec: Any) -> Optional[ServiceArea]:
    if not isinstance(rec, dict):
        return None
    sapa_id, road_id, name = rec.get("id"), rec.get("road_id"), rec.get("name")
    kp = _as_float(rec.get("kp"))
    if sapa_id is None or road_id is None or kp is None or not name:
        return None
    facilities = rec.get("facilities") or []
    if not isinstance(facilities, list):
        return None
    return ServiceArea(
        id=str(sapa_id),
        road_id=str(road_id),
        kp=kp,
        name=str(name),
        facilities=tuple(str(f) for f in facilities),
        url=rec.get("url") or None,
    )


# ---------------------------------------------------------------------------
# File loaders
# ---------------------------------------------------------------------------

def _read_json(path: str) -> Any:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (IOError, ValueError) as e:
        logger.error(f"[Loader] Could not read {path}: {e}")
        raise DatasetError(f"Could not read {path}: {e}") from e


def load_roads(path: str, config: Optional[TrackerConfig] = None) -> List[RoadFeature]:
    """
    Parse a roads GeoJSON FeatureCollection.

    Raises:
        DatasetError: If the file is unreadable or yields no usable road.
    """
    config = config or TrackerConfig()
    data = _read_json(path)
    features = data.get("features") if isinstance(data, dict) else None
    if not isinstance(features, list):
        raise DatasetError(f"{path} is not a GeoJSON FeatureCollection.")

    roads: List[RoadFeature] = []
    seen = set()
    for n, feat in enumerate(features):
        road = _road_from_feature(feat, config.derive_progress_from_length) if isinstance(feat, dict) else None
        if road is None:
            logger.warning(f"[Loader] Skipping malformed road feature #{n}.")
            continue
        if road.id in seen:
            logger.warning(f"[Loader] Skipping duplicate road id {road.id!r}.")
            continue
        seen.add(road.id)
        roads.append(road)

    if not roads:
        raise DatasetError(f"No usable road features in {path}.")
    logger.info(f"[Loader] {len(roads)} roads loaded from {path}.")
    return roads


def load_service_areas(path: str) -> List[ServiceArea]:
    """
    Parse the SA/PA JSON array.

    Raises:
        DatasetError: If the file is unreadable or yields no usable record.
    """
    data = _read_json(path)
    if not isinstance(data, list):
        raise DatasetError(f"{path} is not a JSON array.")

    sapas: List[ServiceArea] = []
    for n, rec in enumerate(data):
        sapa = _sapa_from_record(rec)
        if sapa is None:
            logger.warning(f"[Loader] Skipping malformed SA/PA record #{n}.")
            continue
        sapas.append(sapa)

    if not sapas:
        raise DatasetError(f"No usable SA/PA records in {path}.")
    logger.info(f"[Loader] {len(sapas)} SA/PA records loaded from {path}.")
    return sapas


def load_dataset(config: Optional[TrackerConfig] = None) -> RoadDataset:
    """Load both collections named by the config."""
    config = config or TrackerConfig()
    roads = load_roads(config.roads_filepath, config)
    sapas = load_service_areas(config.sapas_filepath)
    return RoadDataset(roads=tuple(roads), service_areas=tuple(sapas))
