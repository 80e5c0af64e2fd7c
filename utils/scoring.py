"""
Score arithmetic shared by assessments and certificates.
"""
import math
from typing import Iterable


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded up."""
    return int(math.floor(value + 0.5))


def score_percentage(score: float, total_score: float) -> int:
    """Whole-number percentage of score over total; 0 when total is 0."""
    if not total_score:
        return 0
    return round_half_up(score / total_score * 100)


def mean_percentage(percentages: Iterable[float]) -> int:
    values = list(percentages)
    if not values:
        return 0
    return round_half_up(sum(values) / len(values))
