"""Nearest-sample correlation across independently sampled channels."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta

from fuel_monitor.analytics.samples import SensorSample

DEFAULT_TOLERANCE_MINUTES = 5.0


def find_closest(
    timeline: Sequence[SensorSample],
    target_time: datetime,
    tolerance_minutes: float = DEFAULT_TOLERANCE_MINUTES,
) -> SensorSample | None:
    """Return the sample closest to ``target_time`` within the tolerance window.

    A sample is accepted only if its distance is strictly less than the
    tolerance. On equal distances the earlier-scanned sample is kept, since a
    later one must be strictly closer to replace it.
    """
    best: SensorSample | None = None
    best_diff = timedelta(minutes=tolerance_minutes)
    for sample in timeline:
        diff = abs(sample.timestamp - target_time)
        if diff < best_diff:
            best = sample
            best_diff = diff
    return best
