# main.py
# Entry point: replays a recorded drive through HighwayTracker.
# In production, replace SimulatedPlayback with a LiveSampleFeed fed by
# the GPS reader.
#
# Run: python -m highway_nav.main [track.csv]

import logging
import os
import sys

from .dataset_loader import DatasetError
from .presenter import ConsoleSink
from .sample_sources import SimulatedPlayback
from .tracker import HighwayTracker
from .tracker_config import TrackerConfig

# ------------------------------------------------------------------
# Logging setup, configured once here for every module
# ------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)

# ------------------------------------------------------------------
# Config: thresholds and paths
# ------------------------------------------------------------------
config = TrackerConfig(
    simulated_interval_s=0.2,
    sapa_result_count=2,
)

TRACK_PATH = os.path.join(config.data_dir, "sample_track.csv")


def main() -> None:
    # 1. Load road and SA/PA data once
    try:
        tracker = HighwayTracker.from_files(config)
    except DatasetError as e:
        print(f"[Main] Could not load road data: {e}")
        sys.exit(1)

    # 2. Prepare the playback
    track = sys.argv[1] if len(sys.argv) > 1 else TRACK_PATH
    playback = SimulatedPlayback.from_csv(track, interval_s=config.simulated_interval_s)

    print("\n--- Playback Active ---")
    tracker.run(playback, ConsoleSink())
    print("\n--- Playback complete ---")


if __name__ == "__main__":
    main()
