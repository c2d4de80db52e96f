"""
Tests for rating submission: aggregate recomputation, one-per-day rule,
hourly rate limit, new-account flagging and the rating feed.

Run with: pytest tests/test_ratings.py -v
"""
from __future__ import annotations

import logging
from datetime import timedelta
from statistics import mean

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select

from easymat.database import db_session
from easymat.main import app
from easymat.models import Rating, Vehicle, utcnow
from easymat.services.base import local_day_start

from factories import auth_headers, make_rating, make_user, make_vehicle

client = TestClient(app)


def _rate(vehicle_id, user, score=4, **extra):
    body = {"score": score, "safetyScore": extra.pop("safety", score),
            "cleanlinessScore": extra.pop("cleanliness", score), **extra}
    return client.post(f"/vehicles/{vehicle_id}/ratings", json=body, headers=auth_headers(user))


def _vehicle_row(vehicle_id) -> Vehicle:
    with db_session() as session:
        return session.get(Vehicle, vehicle_id)


# ═══════════════════════════════════════════════════════════
# SUBMISSION
# ═══════════════════════════════════════════════════════════

class TestSubmitRating:
    """POST /vehicles/{id}/ratings"""

    def test_requires_authentication(self):
        vehicle = make_vehicle()
        resp = client.post(f"/vehicles/{vehicle.id}/ratings",
                           json={"score": 4, "safetyScore": 4, "cleanlinessScore": 4})
        assert resp.status_code == 401
        assert resp.json() == {
            "success": False,
            "error": {"code": "UNAUTHORIZED", "message": "Authentication required"},
        }

    def test_invalid_token_rejected(self):
        vehicle = make_vehicle()
        resp = client.post(f"/vehicles/{vehicle.id}/ratings",
                           json={"score": 4, "safetyScore": 4, "cleanlinessScore": 4},
                           headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "UNAUTHORIZED"

    def test_success_envelope(self):
        user, vehicle = make_user(), make_vehicle()
        resp = _rate(vehicle.id, user, score=4, safety=5, cleanliness=3, comments="Smooth ride")
        assert resp.status_code == 201
        body = resp.json()
        assert body["success"] is True
        assert body["message"] == "Rating submitted successfully"
        rating = body["data"]["rating"]
        assert rating["vehicleId"] == vehicle.id
        assert rating["score"] == 4
        assert rating["safetyScore"] == 5
        assert rating["cleanlinessScore"] == 3
        agg = body["data"]["vehicle"]
        assert agg["registrationPlate"] == vehicle.registration_plate
        assert agg["avgRating"] == 4
        assert agg["ratingCount"] == 1
        assert agg["safetyScore"] == 5
        assert agg["cleanlinessScore"] == 3

    def test_unknown_vehicle(self):
        resp = _rate(999999, make_user())
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "NOT_FOUND"

    @pytest.mark.parametrize("field,value", [
        ("score", 0), ("score", 5.5), ("safetyScore", 6), ("cleanlinessScore", 0.5),
        ("comfortScore", 7), ("punctualityScore", 0),
    ])
    def test_scores_bounded(self, field, value):
        vehicle = make_vehicle()
        body = {"score": 3, "safetyScore": 3, "cleanlinessScore": 3, field: value}
        resp = client.post(f"/vehicles/{vehicle.id}/ratings", json=body, headers=auth_headers(make_user()))
        assert resp.status_code == 400
        err = resp.json()["error"]
        assert err["code"] == "VALIDATION_ERROR"
        assert any(d["field"] == field for d in err["details"])

    def test_required_subscores(self):
        vehicle = make_vehicle()
        resp = client.post(f"/vehicles/{vehicle.id}/ratings", json={"score": 3},
                           headers=auth_headers(make_user()))
        assert resp.status_code == 400
        fields = {d["field"] for d in resp.json()["error"]["details"]}
        assert {"safetyScore", "cleanlinessScore"} <= fields

    def test_comment_length_limit(self):
        resp = _rate(make_vehicle().id, make_user(), comments="x" * 501)
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_optional_subscores_persisted(self):
        user, vehicle = make_user(), make_vehicle()
        resp = _rate(vehicle.id, user, comfortScore=2, punctualityScore=5, tripId="trip-42")
        assert resp.status_code == 201
        with db_session() as session:
            row = session.execute(select(Rating).where(Rating.vehicle_id == vehicle.id)).scalar_one()
            assert row.comfort_score == 2
            assert row.punctuality_score == 5
            assert row.trip_id == "trip-42"
            assert row.user_id == user.id


# ═══════════════════════════════════════════════════════════
# AGGREGATE INVARIANT
# ═══════════════════════════════════════════════════════════

class TestAggregates:

    def test_avg_equals_mean_after_every_insert(self):
        vehicle = make_vehicle()
        submitted = []
        for score, safety, clean in [(5, 4, 3), (2, 2, 5), (3.5, 1, 4), (1, 5, 5), (4, 3, 2)]:
            resp = _rate(vehicle.id, make_user(), score=score, safety=safety, cleanliness=clean)
            assert resp.status_code == 201
            submitted.append((score, safety, clean))

            row = _vehicle_row(vehicle.id)
            assert row.avg_rating == pytest.approx(mean(s[0] for s in submitted))
            assert row.safety_score == pytest.approx(mean(s[1] for s in submitted))
            assert row.cleanliness_score == pytest.approx(mean(s[2] for s in submitted))
            assert row.rating_count == len(submitted)

    def test_existing_rows_included(self):
        vehicle = make_vehicle()
        make_rating(make_user(), vehicle, score=1, ago=timedelta(days=3))
        make_rating(make_user(), vehicle, score=2, ago=timedelta(days=2))
        resp = _rate(vehicle.id, make_user(), score=5)
        assert resp.json()["data"]["vehicle"]["avgRating"] == pytest.approx(8 / 3)
        assert resp.json()["data"]["vehicle"]["ratingCount"] == 3

    def test_other_vehicles_untouched(self):
        a, b = make_vehicle(), make_vehicle(avg_rating=3.0, rating_count=7)
        _rate(a.id, make_user(), score=5)
        row = _vehicle_row(b.id)
        assert row.avg_rating == 3.0
        assert row.rating_count == 7


# ═══════════════════════════════════════════════════════════
# ABUSE CONTROLS
# ═══════════════════════════════════════════════════════════

class TestDuplicateRating:

    def test_second_rating_same_day_rejected(self):
        user, vehicle = make_user(), make_vehicle()
        assert _rate(vehicle.id, user).status_code == 201
        resp = _rate(vehicle.id, user, score=2)
        assert resp.status_code == 400
        assert resp.json()["error"] == {
            "code": "DUPLICATE_RATING",
            "message": "You have already rated this vehicle today",
        }
        assert _vehicle_row(vehicle.id).rating_count == 1

    def test_anonymous_rating_still_counts(self):
        user, vehicle = make_user(), make_vehicle()
        assert _rate(vehicle.id, user, isAnonymous=True).status_code == 201
        assert _rate(vehicle.id, user).status_code == 400

    def test_other_user_same_vehicle_allowed(self):
        vehicle = make_vehicle()
        assert _rate(vehicle.id, make_user()).status_code == 201
        assert _rate(vehicle.id, make_user()).status_code == 201

    def test_same_user_other_vehicle_allowed(self):
        user = make_user()
        assert _rate(make_vehicle().id, user).status_code == 201
        assert _rate(make_vehicle().id, user).status_code == 201

    def test_rating_from_previous_day_allowed(self):
        user, vehicle = make_user(), make_vehicle()
        now = utcnow()
        before_midnight = now - local_day_start(now) + timedelta(minutes=1)
        make_rating(user, vehicle, score=3, ago=before_midnight)
        assert _rate(vehicle.id, user).status_code == 201


class TestRatingRateLimit:

    def test_eleventh_rating_in_an_hour_rejected(self):
        user = make_user()
        for _ in range(10):
            assert _rate(make_vehicle().id, user).status_code == 201

        resp = _rate(make_vehicle().id, user)
        assert resp.status_code == 429
        err = resp.json()["error"]
        assert err["code"] == "RATE_LIMIT_EXCEEDED"
        assert err["retryAfter"] == 3600
        assert resp.headers["Retry-After"] == "3600"

    def test_ratings_older_than_an_hour_do_not_count(self):
        user = make_user()
        for _ in range(10):
            make_rating(user, make_vehicle(), ago=timedelta(minutes=61))
        assert _rate(make_vehicle().id, user).status_code == 201

    def test_rejected_rating_leaves_aggregates_alone(self):
        user = make_user()
        for _ in range(10):
            make_rating(user, make_vehicle(), ago=timedelta(minutes=5))
        vehicle = make_vehicle()
        assert _rate(vehicle.id, user).status_code == 429
        assert _vehicle_row(vehicle.id).rating_count == 0


class TestSuspiciousRatings:

    @pytest.mark.parametrize("score", [1, 5])
    def test_new_account_extreme_score_logged_but_accepted(self, caplog, score):
        user, vehicle = make_user(age=timedelta(days=2)), make_vehicle()
        with caplog.at_level(logging.WARNING, logger="easymat.ratings"):
            resp = _rate(vehicle.id, user, score=score)
        assert resp.status_code == 201
        assert any("Suspicious rating from new user" in r.getMessage() for r in caplog.records)

    def test_new_account_moderate_score_not_flagged(self, caplog):
        user, vehicle = make_user(age=timedelta(days=2)), make_vehicle()
        with caplog.at_level(logging.WARNING, logger="easymat.ratings"):
            assert _rate(vehicle.id, user, score=3).status_code == 201
        assert not any("Suspicious" in r.getMessage() for r in caplog.records)

    def test_established_account_not_flagged(self, caplog):
        user, vehicle = make_user(age=timedelta(days=8)), make_vehicle()
        with caplog.at_level(logging.WARNING, logger="easymat.ratings"):
            assert _rate(vehicle.id, user, score=5).status_code == 201
        assert not any("Suspicious" in r.getMessage() for r in caplog.records)


# ═══════════════════════════════════════════════════════════
# LISTING
# ═══════════════════════════════════════════════════════════

class TestListRatings:
    """GET /vehicles/{id}/ratings"""

    def test_newest_first_with_distribution(self):
        vehicle = make_vehicle()
        make_rating(make_user(), vehicle, score=5, ago=timedelta(hours=3))
        make_rating(make_user(), vehicle, score=4.5, ago=timedelta(hours=2))
        make_rating(make_user(), vehicle, score=2, ago=timedelta(hours=1))

        resp = client.get(f"/vehicles/{vehicle.id}/ratings")
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["total"] == 3
        assert [r["score"] for r in data["ratings"]] == [2, 4.5, 5]
        assert data["distribution"] == {"5": 2, "4": 0, "3": 0, "2": 1, "1": 0}
        assert data["page"] == 1
        assert data["limit"] == 20

    def test_anonymous_author_hidden(self):
        vehicle = make_vehicle()
        make_rating(make_user(name="Jane Wanjiku"), vehicle, is_anonymous=True)
        make_rating(make_user(name="John Kamau"), vehicle, ago=timedelta(minutes=1))
        ratings = client.get(f"/vehicles/{vehicle.id}/ratings").json()["data"]["ratings"]
        assert ratings[0]["user"] is None
        assert ratings[0]["isAnonymous"] is True
        assert ratings[1]["user"]["name"] == "John Kamau"

    def test_pagination(self):
        vehicle = make_vehicle()
        for i in range(5):
            make_rating(make_user(), vehicle, ago=timedelta(minutes=i))
        data = client.get(f"/vehicles/{vehicle.id}/ratings?limit=2&offset=2").json()["data"]
        assert len(data["ratings"]) == 2
        assert data["page"] == 2
        assert data["total"] == 5

    def test_limit_capped(self):
        vehicle = make_vehicle()
        assert client.get(f"/vehicles/{vehicle.id}/ratings?limit=500").json()["data"]["limit"] == 100

    def test_unknown_vehicle(self):
        resp = client.get("/vehicles/424242/ratings")
        assert resp.status_code == 404

    def test_oversized_vehicle_id(self):
        resp = client.get("/vehicles/99999999999999999999/ratings")
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "VALIDATION_ERROR"
