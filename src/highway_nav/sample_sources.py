# sample_sources.py
# Producers of PositionSample values for HighwayTracker.run().
# Both sources deliver one sample at a time, in order.

import logging
import queue
import threading
import time
from typing import Callable, Iterable, Iterator, List, Optional, Sequence

import pandas as pd

from .models import PositionSample

logger = logging.getLogger(__name__)


class SampleSourceError(Exception):
    """The position sensor failed; live tracking must stop."""


# ---------------------------------------------------------------------------
# Simulated playback
# ---------------------------------------------------------------------------

class SimulatedPlayback:
    """
    Scripted, finite sequence of samples replayed at a fixed interval.

    End of the sequence ends the iteration; it is not an error.

    Args:
        samples:    Samples in playback order.
        interval_s: Pause between consecutive samples.
        sleep:      Sleep function (replaceable in tests).
    """

    simulated = True

    def __init__(
        self,
        samples: Sequence[PositionSample],
        interval_s: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.samples: List[PositionSample] = list(samples)
        self.interval_s = interval_s
        self._sleep = sleep
        self._stopped = threading.Event()

    def __iter__(self) -> Iterator[PositionSample]:
        for i, sample in enumerate(self.samples):
            if i > 0 and self.interval_s > 0:
                self._sleep(self.interval_s)
            if self._stopped.is_set():
                logger.info("[Playback] Stopped.")
                return
            yield sample

    def stop(self) -> None:
        self._stopped.set()

    @classmethod
    def from_csv(cls, path: str, interval_s: float = 1.0) -> "SimulatedPlayback":
        """
        Load a recorded track.

        Columns: latitude, longitude (required); timestamp, speed, heading,
        accuracy (optional, empty cells mean absent).

        Raises:
            ValueError: If a required column is missing.
        """
        df = pd.read_csv(path)
        missing = {"latitude", "longitude"} - set(df.columns)
        if missing:
            raise ValueError(f"{path} is missing columns: {sorted(missing)}")

        def opt(row, col: str) -> Optional[float]:
            if col not in df.columns or pd.isna(row[col]):
                return None
            return float(row[col])

        samples = [
            PositionSample(
                lat=float(row["latitude"]),
                lon=float(row["longitude"]),
                speed=opt(row, "speed"),
                heading=opt(row, "heading"),
                accuracy=opt(row, "accuracy"),
                timestamp=opt(row, "timestamp"),
            )
            for _, row in df.iterrows()
        ]
        logger.info(f"[Playback] {len(samples)} samples loaded from {path}.")
        return cls(samples, interval_s=interval_s)


# ---------------------------------------------------------------------------
# Live feed
# ---------------------------------------------------------------------------

class LiveSampleFeed:
    """
    Continuous stream of samples pushed by a sensor thread.

    Samples go through a queue so the consumer sees them strictly one at a
    time in arrival order, whatever thread produced them.

    Usage:
        feed = LiveSampleFeed()
        feed.start_reader(gps_reader)      # or feed.push(sample) from a callback
        tracker.run(feed, sink)
    """

    simulated = False

    def __init__(self) -> None:
        self._queue: "queue.Queue" = queue.Queue()
        self._stopped = threading.Event()
        self._reader: Optional[threading.Thread] = None

    # ------------------------------------------------------------------
    # Producer side
    # ------------------------------------------------------------------

    def push(self, sample: PositionSample) -> None:
        if not self._stopped.is_set():
            self._queue.put(sample)

    def push_error(self, error: BaseException) -> None:
        """Report a sensor failure; the consumer raises SampleSourceError."""
        if not self._stopped.is_set():
            self._queue.put(error)

    def start_reader(self, reader: Iterable[PositionSample]) -> threading.Thread:
        """Pump samples from a blocking iterable on a daemon thread."""

        def _worker() -> None:
            try:
                for sample in reader:
                    if self._stopped.is_set():
                        return
                    self.push(sample)
            except Exception as e:
                logger.error(f"[LiveFeed] Sensor reader failed: {e}")
                self.push_error(e)
                return
            # Reader exhausted: treated as sensor loss
            logger.error("[LiveFeed] Sensor reader ended.")
            self.push_error(SampleSourceError("Position source ended."))

        self._reader = threading.Thread(target=_worker, daemon=True)
        self._reader.start()
        return self._reader

    def stop(self, timeout: float = 2.0) -> None:
        """
        Stop future delivery and wake a consumer blocked on the queue.

        The reader thread is joined with timeout unless stop() runs on it.
        A reader stuck in a blocking read stays behind as a daemon.
        """
        if not self._stopped.is_set():
            self._stopped.set()
            self._queue.put(None)
            logger.info("[LiveFeed] Stopped.")

        reader = self._reader
        if reader is not None and reader is not threading.current_thread():
            reader.join(timeout=timeout)
            if reader.is_alive():
                logger.warning("[LiveFeed] Sensor reader did not exit in time.")

    @property
    def is_stopped(self) -> bool:
        return self._stopped.is_set()

    # ------------------------------------------------------------------
    # Consumer side
    # ------------------------------------------------------------------

    def __iter__(self) -> Iterator[PositionSample]:
        while not self._stopped.is_set():
            item = self._queue.get()
            if item is None:
                return
            if isinstance(item, SampleSourceError):
                raise item
            if isinstance(item, BaseException):
                raise SampleSourceError(str(item)) from item
            yield item
