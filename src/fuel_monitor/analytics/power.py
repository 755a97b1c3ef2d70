"""Power-source timeline reconstruction and runtime accumulation.

Generator and grid (ZESA) state are reported on two independent channels at
irregular times. Both channels are seeded from their last report before the
day, merged into one ordered stream of state changes, and the stream is walked
to credit every interval to exactly one ``PowerState``.
"""

from __future__ import annotations

import heapq
from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum

from fuel_monitor.analytics.rounding import reconcile_to_total
from fuel_monitor.analytics.samples import SensorSample, state_is_on


SECONDS_PER_HOUR = 3600.0


class PowerState(str, Enum):
    """Resolved power source at an instant. Exactly one applies."""

    GENERATOR = "generator"
    GRID = "grid"
    OFFLINE = "offline"


class EventSource(str, Enum):
    GENERATOR = "generator"
    GRID = "grid"
    END = "end"  # Synthetic terminal marker, never changes state


PrecedencePolicy = Callable[[bool, bool], PowerState]


def generator_first(generator_on: bool, grid_on: bool) -> PowerState:
    """Backup generator overrides grid reporting when both claim to be on."""
    if generator_on:
        return PowerState.GENERATOR
    if grid_on:
        return PowerState.GRID
    return PowerState.OFFLINE


def grid_first(generator_on: bool, grid_on: bool) -> PowerState:
    if grid_on:
        return PowerState.GRID
    if generator_on:
        return PowerState.GENERATOR
    return PowerState.OFFLINE


PRECEDENCE_POLICIES: dict[str, PrecedencePolicy] = {
    "generator_first": generator_first,
    "grid_first": grid_first,
}


def get_precedence_policy(name: str) -> PrecedencePolicy:
    try:
        return PRECEDENCE_POLICIES[name]
    except KeyError:
        raise ValueError(
            f"Unknown power precedence policy {name!r}; "
            f"expected one of {sorted(PRECEDENCE_POLICIES)}"
        ) from None


@dataclass(frozen=True)
class TimelineEvent:
    """A state report from one channel, or the terminal marker."""

    time: datetime
    source: EventSource
    is_on: bool = False


@dataclass
class PowerTimeline:
    """Merged, chronological state changes for one device-day."""

    day_start: datetime
    evaluation_end: datetime
    initial_generator_on: bool = False
    initial_grid_on: bool = False
    events: list[TimelineEvent] = field(default_factory=list)

    @property
    def has_reports(self) -> bool:
        return any(e.source is not EventSource.END for e in self.events)


@dataclass(frozen=True)
class PowerRuntimeResult:
    """Hours per power source for one device over one (possibly partial) day."""

    generator_hours: float = 0.0
    grid_hours: float = 0.0
    offline_hours: float = 0.0
    elapsed_hours: float = 0.0

    @property
    def total_hours(self) -> float:
        return round(self.generator_hours + self.grid_hours + self.offline_hours, 2)

    def to_dict(self) -> dict[str, float]:
        return asdict(self)


def _channel_events(
    samples: Iterable[SensorSample],
    source: EventSource,
    start: datetime,
    end: datetime,
) -> list[TimelineEvent]:
    events = [
        TimelineEvent(time=s.timestamp, source=source, is_on=state_is_on(s.value))
        for s in samples
        if start <= s.timestamp <= end
    ]
    events.sort(key=lambda e: e.time)
    return events


def build_timeline(
    generator_samples: Sequence[SensorSample],
    grid_samples: Sequence[SensorSample],
    day_start: datetime,
    evaluation_end: datetime,
    generator_seed: SensorSample | None = None,
    grid_seed: SensorSample | None = None,
) -> PowerTimeline:
    """Merge both channels into one ordered timeline ending at ``evaluation_end``.

    Seeds are the most recent reports before ``day_start``; a missing seed
    means the channel's state is unknown and is treated as off.
    """
    if evaluation_end < day_start:
        raise ValueError("evaluation_end precedes day_start")

    streams = (
        _channel_events(generator_samples, EventSource.GENERATOR, day_start, evaluation_end),
        _channel_events(grid_samples, EventSource.GRID, day_start, evaluation_end),
    )
    merged = list(heapq.merge(*streams, key=lambda e: e.time))
    merged.append(TimelineEvent(time=evaluation_end, source=EventSource.END))

    return PowerTimeline(
        day_start=day_start,
        evaluation_end=evaluation_end,
        initial_generator_on=generator_seed is not None and state_is_on(generator_seed.value),
        initial_grid_on=grid_seed is not None and state_is_on(grid_seed.value),
        events=merged,
    )


def iter_intervals(
    timeline: PowerTimeline,
    policy: PrecedencePolicy = generator_first,
) -> Iterator[tuple[datetime, datetime, PowerState]]:
    """Yield ``(start, end, state)`` for each interval between timeline points.

    The state of an interval is the one in effect before the event closing it
    is applied.
    """
    generator_on = timeline.initial_generator_on
    grid_on = timeline.initial_grid_on
    last_time = timeline.day_start

    for event in timeline.events:
        yield last_time, event.time, policy(generator_on, grid_on)
        if event.source is EventSource.GENERATOR:
            generator_on = event.is_on
        elif event.source is EventSource.GRID:
            grid_on = event.is_on
        last_time = event.time


def accumulate_runtime(
    timeline: PowerTimeline,
    policy: PrecedencePolicy = generator_first,
    closure_tolerance: float = 0.01,
) -> PowerRuntimeResult:
    """Credit every interval to a bucket; buckets always close on elapsed time.

    Offline is ordered last so it absorbs any rounding residual.
    """
    seconds = {state: 0.0 for state in PowerState}
    for start, end, state in iter_intervals(timeline, policy):
        seconds[state] += (end - start).total_seconds()

    elapsed = (timeline.evaluation_end - timeline.day_start).total_seconds() / SECONDS_PER_HOUR
    generator, grid, offline = reconcile_to_total(
        [
            seconds[PowerState.GENERATOR] / SECONDS_PER_HOUR,
            seconds[PowerState.GRID] / SECONDS_PER_HOUR,
            seconds[PowerState.OFFLINE] / SECONDS_PER_HOUR,
        ],
        elapsed,
        ndigits=2,
        tolerance=closure_tolerance,
    )
    return PowerRuntimeResult(
        generator_hours=generator,
        grid_hours=grid,
        offline_hours=offline,
        elapsed_hours=round(elapsed, 2),
    )
