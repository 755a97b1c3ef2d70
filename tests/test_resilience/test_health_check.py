"""Tests for component health tracking."""

from __future__ import annotations

from fuel_monitor.resilience.health_check import SAMPLE_STORE, HealthChecker, device_component


class TestHealthChecker:
    def test_initial_state_healthy(self) -> None:
        checker = HealthChecker()
        checker.register(SAMPLE_STORE)
        assert checker.is_healthy(SAMPLE_STORE) is True
        assert checker.all_healthy() is True

    def test_single_failure_stays_healthy(self) -> None:
        checker = HealthChecker(max_consecutive_failures=3)
        checker.record_failure(SAMPLE_STORE, "timeout")
        assert checker.is_healthy(SAMPLE_STORE) is True

    def test_consecutive_failures_mark_unhealthy(self) -> None:
        checker = HealthChecker(max_consecutive_failures=3)
        name = device_component("simbisa-avondale")
        for _ in range(3):
            checker.record_failure(name, "no data")
        assert checker.is_healthy(name) is False
        assert checker.get_unhealthy() == [name]
        assert checker.all_healthy() is False

    def test_success_recovers(self) -> None:
        checker = HealthChecker(max_consecutive_failures=2)
        checker.record_failure(SAMPLE_STORE, "a")
        checker.record_failure(SAMPLE_STORE, "b")
        assert checker.is_healthy(SAMPLE_STORE) is False
        checker.record_success(SAMPLE_STORE)
        health = checker.get_health(SAMPLE_STORE)
        assert health.healthy is True
        assert health.consecutive_failures == 0
        assert health.total_failures == 2

    def test_unknown_component_assumed_healthy(self) -> None:
        assert HealthChecker().is_healthy("nonexistent") is True

    def test_to_dict(self) -> None:
        checker = HealthChecker(max_consecutive_failures=1)
        checker.record_success(SAMPLE_STORE)
        checker.record_failure(device_component("dev-1"), "boom")
        data = checker.to_dict()
        assert data["healthy"] is False
        assert data["unhealthy"] == ["capture:dev-1"]
        assert data["components"]["capture:dev-1"]["last_error"] == "boom"
        assert data["components"][SAMPLE_STORE]["last_success"] is not None
