"""Daily fuel consumption and top-up reconstruction.

Level (percent) and volume (litres) are reported by the same probe but on
separate channels whose samples drift out of phase. Each consecutive pair of
level samples is matched to the nearest volume samples, and a volume change is
only counted when both channels agree on its direction.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import asdict, dataclass

from fuel_monitor.analytics.correlator import DEFAULT_TOLERANCE_MINUTES, find_closest
from fuel_monitor.analytics.samples import SensorSample


@dataclass(frozen=True)
class FuelDeltaResult:
    """Fuel movement for one device over one calendar day."""

    consumed_volume: float = 0.0  # litres, 1 dp
    topped_volume: float = 0.0  # litres, 1 dp
    consumed_percent: float = 0.0  # level points, 2 dp
    topped_percent: float = 0.0  # level points, 2 dp

    def to_dict(self) -> dict[str, float]:
        return asdict(self)


def compute_fuel_deltas(
    level_samples: Sequence[SensorSample],
    volume_samples: Sequence[SensorSample],
    tolerance_minutes: float = DEFAULT_TOLERANCE_MINUTES,
) -> FuelDeltaResult:
    """Aggregate consumed / topped-up fuel from ascending level and volume samples.

    Fewer than two level samples is a normal "no data" outcome and returns an
    all-zero result. Volume deltas whose sign disagrees with the level delta,
    or whose endpoints have no volume sample within tolerance, are left out.
    """
    if len(level_samples) < 2:
        return FuelDeltaResult()

    level_increase = 0.0
    level_decrease = 0.0
    volume_increase = 0.0
    volume_decrease = 0.0

    for prev, cur in zip(level_samples, level_samples[1:]):
        level_delta = cur.value - prev.value
        if level_delta > 0:
            level_increase += level_delta
        else:
            level_decrease += abs(level_delta)

        prev_volume = find_closest(volume_samples, prev.timestamp, tolerance_minutes)
        cur_volume = find_closest(volume_samples, cur.timestamp, tolerance_minutes)
        if prev_volume is None or cur_volume is None:
            continue

        volume_delta = cur_volume.value - prev_volume.value
        if volume_delta > 0 and level_delta > 0:
            volume_increase += volume_delta
        elif volume_delta < 0 and level_delta < 0:
            volume_decrease += abs(volume_delta)

    return FuelDeltaResult(
        consumed_volume=round(volume_decrease, 1),
        topped_volume=round(volume_increase, 1),
        consumed_percent=round(level_decrease, 2),
        topped_percent=round(level_increase, 2),
    )
