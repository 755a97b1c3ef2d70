"""Tests for power timeline reconstruction and runtime accumulation."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from fuel_monitor.analytics.power import (
    EventSource,
    PowerState,
    accumulate_runtime,
    build_timeline,
    generator_first,
    get_precedence_policy,
    grid_first,
    iter_intervals,
)
from fuel_monitor.analytics.samples import GENERATOR_STATE, GRID_STATE, SensorSample

DAY_START = datetime(2025, 6, 9, 22, 0, tzinfo=timezone.utc)  # local midnight, UTC+2
DAY_END = DAY_START + timedelta(days=1)


def _at(hour: int, minute: int = 0) -> datetime:
    return DAY_START + timedelta(hours=hour, minutes=minute)


def _gen(t: datetime, on: bool) -> SensorSample:
    return SensorSample("dev-1", GENERATOR_STATE, t, 1.0 if on else 0.0)


def _grid(t: datetime, on: bool) -> SensorSample:
    return SensorSample("dev-1", GRID_STATE, t, 1.0 if on else 0.0)


class TestPrecedencePolicies:
    def test_generator_first(self) -> None:
        assert generator_first(True, True) is PowerState.GENERATOR
        assert generator_first(False, True) is PowerState.GRID
        assert generator_first(True, False) is PowerState.GENERATOR
        assert generator_first(False, False) is PowerState.OFFLINE

    def test_grid_first(self) -> None:
        assert grid_first(True, True) is PowerState.GRID
        assert grid_first(True, False) is PowerState.GENERATOR
        assert grid_first(False, False) is PowerState.OFFLINE

    def test_lookup(self) -> None:
        assert get_precedence_policy("generator_first") is generator_first
        assert get_precedence_policy("grid_first") is grid_first
        with pytest.raises(ValueError):
            get_precedence_policy("solar_first")


class TestBuildTimeline:
    def test_merges_channels_in_order_with_terminal_event(self) -> None:
        timeline = build_timeline(
            [_gen(_at(1), True), _gen(_at(5), False)],
            [_grid(_at(3), True)],
            DAY_START, DAY_END,
        )
        times = [e.time for e in timeline.events]
        assert times == sorted(times)
        assert [e.source for e in timeline.events] == [
            EventSource.GENERATOR, EventSource.GRID, EventSource.GENERATOR, EventSource.END,
        ]
        assert timeline.events[-1].time == DAY_END

    def test_seeds_set_initial_state(self) -> None:
        timeline = build_timeline(
            [], [], DAY_START, DAY_END,
            generator_seed=_gen(_at(-3), True),
            grid_seed=_grid(_at(-1), False),
        )
        assert timeline.initial_generator_on is True
        assert timeline.initial_grid_on is False
        assert not timeline.has_reports

    def test_samples_outside_window_ignored(self) -> None:
        timeline = build_timeline(
            [_gen(_at(-1), True), _gen(_at(25), True)], [], DAY_START, DAY_END,
        )
        assert [e.source for e in timeline.events] == [EventSource.END]

    def test_end_before_start_rejected(self) -> None:
        with pytest.raises(ValueError):
            build_timeline([], [], DAY_END, DAY_START)

    def test_interval_credited_to_state_before_event(self) -> None:
        timeline = build_timeline([_gen(_at(2), True)], [], DAY_START, _at(4))
        intervals = list(iter_intervals(timeline))
        assert intervals == [
            (DAY_START, _at(2), PowerState.OFFLINE),
            (_at(2), _at(4), PowerState.GENERATOR),
        ]


class TestAccumulateRuntime:
    def test_no_samples_all_offline(self) -> None:
        result = accumulate_runtime(build_timeline([], [], DAY_START, DAY_END))
        assert result.generator_hours == 0.0
        assert result.grid_hours == 0.0
        assert result.offline_hours == 24.0
        assert result.elapsed_hours == 24.0

    def test_generator_then_grid_with_generator_priority(self) -> None:
        # Generator never reports off, so it dominates the whole period
        timeline = build_timeline(
            [_gen(_at(0), True)], [_grid(_at(6), True)], DAY_START, _at(10),
        )
        result = accumulate_runtime(timeline, generator_first)
        assert result.generator_hours == 10.0
        assert result.grid_hours == 0.0
        assert result.elapsed_hours == 10.0

    def test_generator_then_grid_with_grid_priority(self) -> None:
        timeline = build_timeline(
            [_gen(_at(0), True)], [_grid(_at(6), True)], DAY_START, _at(10),
        )
        result = accumulate_runtime(timeline, grid_first)
        assert result.generator_hours == 6.0
        assert result.grid_hours == 4.0
        assert result.offline_hours == 0.0
        assert result.elapsed_hours == 10.0

    def test_generator_hands_over_to_grid(self) -> None:
        timeline = build_timeline(
            [_gen(_at(0), True), _gen(_at(6), False)],
            [_grid(_at(6), True)],
            DAY_START, _at(10),
        )
        result = accumulate_runtime(timeline)
        assert result.generator_hours == 6.0
        assert result.grid_hours == 4.0
        assert result.offline_hours == 0.0

    def test_seeded_generator_runs_all_day(self) -> None:
        timeline = build_timeline(
            [], [], DAY_START, DAY_END, generator_seed=_gen(_at(-2), True),
        )
        result = accumulate_runtime(timeline)
        assert result.generator_hours == 24.0
        assert result.offline_hours == 0.0

    def test_non_unity_state_value_is_off(self) -> None:
        timeline = build_timeline(
            [SensorSample("dev-1", GENERATOR_STATE, _at(0), 2.0)], [], DAY_START, _at(5),
        )
        assert accumulate_runtime(timeline).offline_hours == 5.0

    def test_closure_holds_for_irregular_reports(self) -> None:
        gen = [_gen(_at(h, m), (h + m) % 2 == 0) for h, m in [(0, 7), (1, 13), (3, 29), (7, 41), (13, 3)]]
        grid = [_grid(_at(h, m), h % 3 != 0) for h, m in [(0, 19), (2, 47), (5, 11), (9, 59), (17, 37)]]
        timeline = build_timeline(gen, grid, DAY_START, _at(21, 17))
        result = accumulate_runtime(timeline)
        assert result.offline_hours >= 0
        assert abs(result.total_hours - result.elapsed_hours) <= 0.01 + 1e-9

    def test_evaluation_end_equal_to_start(self) -> None:
        result = accumulate_runtime(build_timeline([], [], DAY_START, DAY_START))
        assert result.total_hours == 0.0
        assert result.elapsed_hours == 0.0
