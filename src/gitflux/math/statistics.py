"""Descriptive statistics over durations and counts."""

from collections.abc import Sequence
from typing import Optional

import numpy as np


class Statistics:
    """Statistical summaries used by the analytics transforms."""

    @staticmethod
    def mean(values: Sequence[float]) -> Optional[float]:
        """Arithmetic mean, or None for an empty sample.

        An empty sample never reads as zero.
        """
        if not values:
            return None
        return float(np.mean(np.asarray(values, dtype=float)))

    @staticmethod
    def median(values: Sequence[float]) -> Optional[float]:
        """Median, or None for an empty sample."""
        if not values:
            return None
        return float(np.median(np.asarray(values, dtype=float)))

    @staticmethod
    def percentage(part: float, whole: float) -> float:
        """part / whole * 100, unrounded; 0.0 when whole is 0."""
        if whole == 0:
            return 0.0
        return part / whole * 100

    @staticmethod
    def rate(part: float, whole: float) -> float:
        """part / whole in [0, 1]; 0.0 when whole is 0."""
        if whole == 0:
            return 0.0
        return part / whole
