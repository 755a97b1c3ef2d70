"""Tests for closure reconciliation of rounded buckets."""

from __future__ import annotations

import logging

from fuel_monitor.analytics.rounding import reconcile_to_total


class TestReconcileToTotal:
    def test_empty(self) -> None:
        assert reconcile_to_total([], 5.0) == []

    def test_within_tolerance_unchanged(self) -> None:
        assert reconcile_to_total([1.004, 2.004], 3.008) == [1.0, 2.0]

    def test_last_bucket_absorbs_residual(self) -> None:
        result = reconcile_to_total([1.006, 2.006, 6.988], 10.0, tolerance=0.0)
        assert result == [1.01, 2.01, 6.98]
        assert round(sum(result), 2) == 10.0

    def test_negative_residual_clamped(self, caplog) -> None:
        with caplog.at_level(logging.WARNING):
            result = reconcile_to_total([0.0051] * 4, 0.0204)
        assert result == [0.01, 0.01, 0.01, 0.0]
        assert "clamping" in caplog.text

    def test_custom_precision(self) -> None:
        assert reconcile_to_total([1.26, 2.26], 3.52, ndigits=1, tolerance=0.0) == [1.3, 2.2]
