# tracker.py
# Public entry point for position tracking.
# Sequences samples through matcher → resolver → SA/PA finder; owns no
# geometry logic itself.

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from .dataset_loader import RoadDataset, load_dataset
from .direction import DirectionResolver
from .models import PositionSample, TrackingResult, TrackingStatus
from .road_index import RoadNetworkIndex
from .road_matcher import RoadMatcher
from .sapa_finder import SapaFinder
from .sample_sources import SampleSourceError
from .tracker_config import TrackerConfig

logger = logging.getLogger(__name__)

ResultSink = Callable[[TrackingResult], None]


# ---------------------------------------------------------------------------
# Session state
# ---------------------------------------------------------------------------

@dataclass
class TrackingSession:
    """
    Previous/current sample pair of one tracking run.

    simulated selects the low-noise displacement threshold for bearings.
    """
    simulated: bool = False
    previous_sample: Optional[PositionSample] = None
    current_sample: Optional[PositionSample] = None

    def advance(self, sample: PositionSample) -> None:
        self.previous_sample = self.current_sample
        self.current_sample = sample


@dataclass(frozen=True)
class _Engine:
    """Index and SA/PA table that are swapped together on reload."""
    matcher: RoadMatcher
    sapa_finder: SapaFinder


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------

class HighwayTracker:
    """
    High-level tracking facade.

    Typical lifecycle:
        tracker = HighwayTracker.from_files(config)
        session = TrackingSession()

        # Sample loop:
        result = tracker.process(session, sample)

    Or hand a sample source and a sink to run().

    Args:
        dataset: Loaded RoadDataset; None until data is available.
        config:  Optional TrackerConfig; defaults to TrackerConfig().
    """

    def __init__(self, dataset: Optional[RoadDataset] = None, config: Optional[TrackerConfig] = None) -> None:
        self.config = config or TrackerConfig()
        self._resolver = DirectionResolver(self.config)
        self._engine: Optional[_Engine] = None
        if dataset is not None:
            self.load_dataset(dataset)

    @classmethod
    def from_files(cls, config: Optional[TrackerConfig] = None) -> "HighwayTracker":
        """
        Load the dataset files named by config and build a tracker.

        Raises:
            DatasetError: If either collection is missing, unreadable or empty.
        """
        config = config or TrackerConfig()
        return cls(load_dataset(config), config)

    def load_dataset(self, dataset: RoadDataset) -> None:
        """Build a fresh index and SA/PA table, then replace the old pair."""
        index = RoadNetworkIndex.build(dataset.roads)
        engine = _Engine(
            matcher=RoadMatcher(index, self.config),
            sapa_finder=SapaFinder(dataset.service_areas, self.config),
        )
        self._engine = engine
        logger.info(f"[Tracker] Dataset ready — {len(index)} roads, {len(engine.sapa_finder)} SA/PA.")

    @property
    def is_ready(self) -> bool:
        return self._engine is not None

    # ------------------------------------------------------------------
    # Per-sample processing
    # ------------------------------------------------------------------

    def process(self, session: TrackingSession, sample: PositionSample) -> TrackingResult:
        """
        Run one sample through the pipeline.

        Args:
            session: Session whose previous sample feeds the bearing rule.
            sample:  New position sample.

        Returns:
            TrackingResult; per-sample failures are statuses, not exceptions.
        """
        session.advance(sample)
        engine = self._engine

        if engine is None:
            return TrackingResult(
                status=TrackingStatus.NO_DATA,
                message="Road data is not available yet.",
                sample=sample,
            )

        if not sample.has_valid_position:
            return TrackingResult(
                status=TrackingStatus.UNMATCHED,
                message="Sample has no valid coordinates.",
                sample=sample,
            )

        min_disp = (
            self.config.simulated_min_displacement_m if session.simulated
            else self.config.min_displacement_m
        )
        match = engine.matcher.match(sample, session.previous_sample, min_displacement_m=min_disp)
        if match is None:
            return TrackingResult(
                status=TrackingStatus.UNMATCHED,
                message="Not on a known road, or moving too slowly to tell.",
                sample=sample,
            )

        direction, kp = self._resolver.resolve(match.road, match.snapped, match.movement_bearing, sample.speed)
        if kp is None:
            return TrackingResult(
                status=TrackingStatus.NO_PROGRESS,
                message=f"{match.road.name}: kilopost unavailable.",
                sample=sample,
                match=match,
                direction=direction,
            )

        next_sapas = engine.sapa_finder.find_next(match.road.id, kp, sample.speed, direction)
        return TrackingResult(
            status=TrackingStatus.MATCHED,
            message=f"{match.road.name} ({kp:.1f} kp)",
            sample=sample,
            match=match,
            direction=direction,
            kp=kp,
            next_sapas=next_sapas,
        )

    # ------------------------------------------------------------------
    # Sample loop
    # ------------------------------------------------------------------

    def run(
        self,
        source: Iterable[PositionSample],
        sink: ResultSink,
        session: Optional[TrackingSession] = None,
    ) -> TrackingSession:
        """
        Feed every sample of a source through process() and into sink.

        A fresh session is used unless one is given, so simulated playback
        never sees a live sample as its previous one. A sensor failure is
        reported to the sink and stops the source.

        Returns:
            The session after the last processed sample.
        """
        if session is None:
            session = TrackingSession(simulated=getattr(source, "simulated", False))
        logger.info(f"[Tracker] Tracking started ({'simulated' if session.simulated else 'live'}).")

        try:
            for sample in source:
                sink(self.process(session, sample))
        except SampleSourceError as e:
            logger.error(f"[Tracker] Position source failed: {e}")
            stop = getattr(source, "stop", None)
            if stop is not None:
                stop()
            sink(TrackingResult(
                status=TrackingStatus.SOURCE_ERROR,
                message=f"Position error: {e}",
            ))

        logger.info("[Tracker] Tracking ended.")
        return session
