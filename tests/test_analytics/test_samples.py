"""Tests for state-token parsing."""

from __future__ import annotations

from fuel_monitor.analytics.samples import format_state, is_online, state_is_on


class TestStateTokens:
    def test_state_is_on(self) -> None:
        assert state_is_on(1.0)
        assert state_is_on(1)
        assert not state_is_on(0.0)
        assert not state_is_on(2.0)
        assert not state_is_on(float("nan"))

    def test_format_state(self) -> None:
        assert format_state(1.0) == "1"
        assert format_state(0.0) == "0"
        assert format_state(None) == "unknown"

    def test_is_online_tokens(self) -> None:
        for token in ("1", "on", "ON", "True", "1.0", " on "):
            assert is_online(token), token
        for token in ("0", "off", "unknown", "", None, "2"):
            assert not is_online(token), token
