import threading

import pytest

from highway_nav.sample_sources import LiveSampleFeed, SampleSourceError, SimulatedPlayback

from conftest import sample


# ---------------------------------------------------------------------------
# Simulated playback
# ---------------------------------------------------------------------------

def test_csv_track_with_empty_cells(tmp_path):
    path = tmp_path / "track.csv"
    path.write_text(
        "timestamp,latitude,longitude,speed,heading\n"
        "0.0,35.0,139.0,20.0,90.0\n"
        "1.0,35.001,139.001,,\n",
        encoding="utf-8",
    )
    playback = SimulatedPlayback.from_csv(str(path), interval_s=0.5)

    assert playback.interval_s == 0.5
    first, second = playback.samples
    assert (first.lat, first.lon, first.speed, first.heading) == (35.0, 139.0, 20.0, 90.0)
    assert first.accuracy is None
    assert second.timestamp == 1.0
    assert second.speed is None
    assert second.heading is None


def test_csv_without_coordinates_is_rejected(tmp_path):
    path = tmp_path / "track.csv"
    path.write_text("timestamp,latitude\n0.0,35.0\n", encoding="utf-8")
    with pytest.raises(ValueError):
        SimulatedPlayback.from_csv(str(path))


def test_playback_sleeps_between_samples_only():
    pauses = []
    samples = [sample(0.0, i * 0.001) for i in range(4)]
    playback = SimulatedPlayback(samples, interval_s=0.25, sleep=pauses.append)

    assert list(playback) == samples
    assert pauses == [0.25, 0.25, 0.25]


def test_playback_stop_ends_iteration():
    samples = [sample(0.0, i * 0.001) for i in range(5)]
    playback = SimulatedPlayback(samples, interval_s=0)
    seen = []
    for s in playback:
        seen.append(s)
        if len(seen) == 2:
            playback.stop()
    assert seen == samples[:2]


# ---------------------------------------------------------------------------
# Live feed
# ---------------------------------------------------------------------------

def test_stop_discards_undelivered_samples():
    feed = LiveSampleFeed()
    samples = [sample(0.0, i * 0.001) for i in range(3)]
    for s in samples:
        feed.push(s)
    feed.stop()
    assert feed.is_stopped
    assert list(feed) == []


def test_live_feed_yields_until_stopped():
    feed = LiveSampleFeed()
    samples = [sample(0.0, i * 0.001) for i in range(3)]
    for s in samples:
        feed.push(s)
    seen = []
    for s in feed:
        seen.append(s)
        if len(seen) == len(samples):
            feed.stop()
    assert seen == samples


def test_reader_thread_failure_surfaces_as_source_error():
    def reader():
        yield sample(0.0, 0.0)
        yield sample(0.0, 0.001)
        raise IOError("serial port closed")

    feed = LiveSampleFeed()
    thread = feed.start_reader(reader())
    seen = []
    with pytest.raises(SampleSourceError, match="serial port closed"):
        for s in feed:
            seen.append(s)
    thread.join(timeout=1.0)

    assert len(seen) == 2
    assert isinstance(thread, threading.Thread)
    assert not thread.is_alive()


def test_pushes_after_stop_are_dropped():
    feed = LiveSampleFeed()
    feed.stop()
    feed.push(sample(0.0, 0.0))
    feed.push_error(IOError("late"))
    assert list(feed) == []


def test_reader_that_runs_out_ends_the_feed_with_an_error():
    feed = LiveSampleFeed()
    feed.start_reader(iter([sample(0.0, 0.0)]))
    seen = []
    with pytest.raises(SampleSourceError, match="ended"):
        for s in feed:
            seen.append(s)
    assert len(seen) == 1


def test_stop_joins_the_reader_thread():
    release = threading.Event()

    def reader():
        yield sample(0.0, 0.0)
        release.wait(timeout=1.0)
        yield sample(0.0, 0.001)

    feed = LiveSampleFeed()
    thread = feed.start_reader(reader())
    first = next(iter(feed))
    release.set()
    feed.stop()

    assert first == sample(0.0, 0.0)
    assert not thread.is_alive()
