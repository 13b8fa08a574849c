"""Mathematical utilities for repository analytics."""

from .entropy import Entropy
from .statistics import Statistics

__all__ = [
    "Entropy",
    "Statistics",
]
