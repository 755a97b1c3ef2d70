"""Rounding reconciliation for buckets that must sum to a fixed total."""

from __future__ import annotations

import logging
from collections.abc import Sequence

logger = logging.getLogger(__name__)

# Absorbs binary-float noise when comparing against the tolerance.
_EPSILON = 1e-9


def reconcile_to_total(
    values: Sequence[float],
    total: float,
    ndigits: int = 2,
    tolerance: float = 0.01,
) -> list[float]:
    """Round ``values`` so they sum to ``round(total, ndigits)``.

    Every bucket is rounded independently. If the rounded sum drifts from the
    rounded total by more than ``tolerance``, the last bucket is re-derived by
    subtraction from the total and clamped at zero. The last bucket therefore
    absorbs any residual; callers order their buckets accordingly.
    """
    if not values:
        return []

    rounded = [round(v, ndigits) for v in values]
    target = round(total, ndigits)
    drift = abs(sum(rounded) - target)
    if drift <= tolerance + _EPSILON:
        return rounded

    head = rounded[:-1]
    residual = round(target - sum(head), ndigits)
    if residual < 0:
        logger.warning(
            "Reconciled bucket would be negative (%.4f); clamping to 0 (total=%.2f, buckets=%s)",
            residual, target, head,
        )
        residual = 0.0
    return [*head, residual]
