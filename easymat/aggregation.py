"""
aggregation.py — Vehicle score aggregation
===========================================
Pure arithmetic over a vehicle's ratings. The rating service feeds it
every rating row for the vehicle inside the submission transaction and
writes the result back onto the vehicle.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Protocol


class ScoredRating(Protocol):
    score: float
    safety_score: float
    cleanliness_score: float


@dataclass(frozen=True)
class AggregateScores:
    avg_rating: float
    rating_count: int
    safety_score: float
    cleanliness_score: float


EMPTY_SCORES = AggregateScores(avg_rating=0.0, rating_count=0, safety_score=0.0, cleanliness_score=0.0)


def calculate_vehicle_rating(ratings: Iterable[ScoredRating]) -> AggregateScores:
    """Plain means of the primary, safety and cleanliness scores.

    No weighting, outlier rejection or rounding. An empty input yields
    all zeros.
    """
    count = 0
    score_total = safety_total = cleanliness_total = 0.0
    for r in ratings:
        count += 1
        score_total += r.score
        safety_total += r.safety_score
        cleanliness_total += r.cleanliness_score

    if count == 0:
        return EMPTY_SCORES

    return AggregateScores(
        avg_rating=score_total / count,
        rating_count=count,
        safety_score=safety_total / count,
        cleanliness_score=cleanliness_total / count,
    )


def score_distribution(scores: Iterable[float]) -> dict[str, int]:
    """Count scores per star bucket "1".."5", rounding halves up."""
    buckets = {str(star): 0 for star in range(5, 0, -1)}
    for score in scores:
        star = int(score + 0.5)
        key = str(star)
        if key in buckets:
            buckets[key] += 1
    return buckets
