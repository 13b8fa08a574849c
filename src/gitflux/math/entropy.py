"""Information theory: Shannon entropy and the diversity score built on it."""

import math
from collections.abc import Mapping
from typing import Union

# Normalization ceiling: distributions with more than this many categories
# are still scored against log2(8)
MAX_DIVERSITY_CATEGORIES = 8


class Entropy:
    """Information entropy calculations."""

    @staticmethod
    def shannon(distribution: Mapping[str, Union[int, float]]) -> float:
        """
        Compute Shannon entropy H(X) = -Σ p(x) log₂ p(x).

        Args:
            distribution: Dictionary with event -> count mapping

        Returns:
            Entropy in bits
        """
        total = sum(distribution.values())
        if total == 0:
            return 0.0

        entropy = 0.0
        for count in distribution.values():
            p = count / total
            if p > 0:
                entropy -= p * math.log2(p)

        return entropy

    @staticmethod
    def normalized(distribution: Mapping[str, Union[int, float]]) -> float:
        """
        Normalize entropy by maximum possible entropy.

        H_norm = H / log₂(N) where N is number of unique events

        Returns:
            Normalized entropy in [0, 1]
        """
        h = Entropy.shannon(distribution)
        n = sum(1 for count in distribution.values() if count > 0)
        if n <= 1:
            return 0.0
        max_h = math.log2(n)
        return h / max_h if max_h > 0 else 0.0

    @staticmethod
    def diversity_score(distribution: Mapping[str, Union[int, float]]) -> int:
        """
        Integer percentage of how evenly counts spread across categories.

        score = round(100 * H / log₂(min(N, 8))), clamped to [0, 100]

        Empty and single-category distributions score 0. With more than
        eight categories the ceiling stays at log₂(8), so very wide
        distributions saturate at 100.
        """
        n = sum(1 for count in distribution.values() if count > 0)
        if n <= 1:
            return 0
        max_h = math.log2(min(n, MAX_DIVERSITY_CATEGORIES))
        score = round(Entropy.shannon(distribution) / max_h * 100)
        return max(0, min(100, score))
