"""
Unit tests for the pure score aggregation helpers.

Run with: pytest tests/test_aggregation.py -v
"""
from __future__ import annotations

from types import SimpleNamespace

import pytest

from easymat.aggregation import EMPTY_SCORES, calculate_vehicle_rating, score_distribution


def _r(score, safety=None, cleanliness=None):
    return SimpleNamespace(
        score=score,
        safety_score=safety if safety is not None else score,
        cleanliness_score=cleanliness if cleanliness is not None else score,
    )


class TestCalculateVehicleRating:

    def test_empty_is_all_zero(self):
        assert calculate_vehicle_rating([]) == EMPTY_SCORES

    def test_single_rating(self):
        s = calculate_vehicle_rating([_r(4, 5, 3)])
        assert s.avg_rating == 4
        assert s.safety_score == 5
        assert s.cleanliness_score == 3
        assert s.rating_count == 1

    def test_plain_means(self):
        s = calculate_vehicle_rating([_r(5, 4, 2), _r(2, 3, 4), _r(1, 2, 3)])
        assert s.avg_rating == pytest.approx(8 / 3)
        assert s.safety_score == pytest.approx(3.0)
        assert s.cleanliness_score == pytest.approx(3.0)
        assert s.rating_count == 3

    def test_no_rounding(self):
        s = calculate_vehicle_rating([_r(4), _r(4), _r(5)])
        assert s.avg_rating == pytest.approx(13 / 3)
        assert s.avg_rating != round(s.avg_rating, 2)

    def test_extreme_values_not_discarded(self):
        s = calculate_vehicle_rating([_r(5)] * 9 + [_r(1)])
        assert s.avg_rating == pytest.approx(4.6)

    def test_accepts_generator(self):
        s = calculate_vehicle_rating(_r(x) for x in (1, 2, 3, 4, 5))
        assert s.avg_rating == 3
        assert s.rating_count == 5


class TestScoreDistribution:

    def test_all_buckets_present(self):
        assert score_distribution([]) == {"5": 0, "4": 0, "3": 0, "2": 0, "1": 0}

    def test_halves_round_up(self):
        d = score_distribution([4.5, 3.5, 2.4, 1.0, 5])
        assert d == {"5": 2, "4": 1, "3": 0, "2": 1, "1": 1}
