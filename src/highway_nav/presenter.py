# presenter.py
# Turns TrackingResult values into console text.

from typing import Callable, List, Optional

from .models import NextSapaEntry, TrackingResult, TrackingStatus
from .tracker_config import UNKNOWN_DIRECTION_LABEL


FACILITY_LABELS = {
    "GAS":        "Gas",
    "EV":         "EV charger",
    "SHOP":       "Shop",
    "RESTAURANT": "Restaurant",
    "WC":         "WC",
    "INFO":       "Info",
    "CAFE":       "Cafe",
    "SNACK":      "Snack",
}


def format_sapa(entry: NextSapaEntry) -> str:
    sapa = entry.service_area
    eta = f"{entry.eta_minutes:.0f} min" if entry.eta_minutes is not None else "--- min"
    facilities = ", ".join(FACILITY_LABELS.get(f, f) for f in sapa.facilities)
    line = f"{sapa.name} — approx. {entry.distance_km:.1f} km, {eta}"
    if facilities:
        line += f" [{facilities}]"
    if sapa.url:
        line += f" {sapa.url}"
    return line


def format_result(result: TrackingResult) -> List[str]:
    """One line for the road, one for the direction, then the SA/PA list."""
    if result.status in (TrackingStatus.NO_DATA, TrackingStatus.SOURCE_ERROR, TrackingStatus.UNMATCHED):
        return [f"[{result.status.value}] {result.message}"]

    label = result.direction.label if result.direction else UNKNOWN_DIRECTION_LABEL
    lines = [f"Road: {result.message}", f"Direction: {label}"]

    if result.status is TrackingStatus.NO_PROGRESS:
        lines.append("No SA/PA info: kilopost unavailable.")
    elif not result.next_sapas:
        lines.append("No SA/PA ahead.")
    else:
        lines.extend(f"  {i}. {format_sapa(e)}" for i, e in enumerate(result.next_sapas, 1))
    return lines


class ConsoleSink:
    """Presentation sink that prints every result."""

    def __init__(self, write: Optional[Callable[[str], None]] = None) -> None:
        self._write = write or print

    def __call__(self, result: TrackingResult) -> None:
        for line in format_result(result):
            self._write(line)
