"""
services/ratings.py — Rating submission and vehicle score aggregation
======================================================================
Submission checks, in order:

1. vehicle exists                              → NOT_FOUND
2. one rating per user/vehicle/local day       → DUPLICATE_RATING
3. new account (< 7 days) giving a 1 or a 5    → warning log only
4. ten ratings per user per rolling hour       → RATE_LIMIT_EXCEEDED

The insert and the aggregate rewrite share one transaction. The vehicle
row is selected FOR UPDATE first so concurrent submissions for the same
vehicle serialise on stores that support row locks; SQLite serialises
writers anyway.
"""
from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.orm import selectinload

from .base import BaseService, local_day_start, page_bounds, page_number
from ..aggregation import calculate_vehicle_rating, score_distribution
from ..constants import EXTREME_SCORES, NEW_ACCOUNT_AGE
from ..errors import DuplicateRatingError, NotFoundError
from ..models import Rating, User, Vehicle
from ..rate_limit import RATING_WINDOW
from ..schemas import (
    RatingCreate,
    RatingListResult,
    RatingRead,
    RatingSubmitted,
    RatingSummary,
    UserSummary,
    VehicleScores,
)

logger = logging.getLogger("easymat.ratings")


def rating_to_read(rating: Rating) -> RatingRead:
    """Public view of a rating; the author is withheld when anonymous."""
    user = None
    if not rating.is_anonymous and rating.user is not None:
        user = UserSummary(name=rating.user.name)
    return RatingRead.model_validate(rating).model_copy(update={"user": user})


class RatingService(BaseService):

    def _lock_vehicle(self, vehicle_id: int) -> Vehicle:
        vehicle = self.session.execute(
            select(Vehicle).where(Vehicle.id == vehicle_id).with_for_update()
        ).scalar_one_or_none()
        if vehicle is None:
            raise NotFoundError("Vehicle not found")
        return vehicle

    def has_rated_today(self, user_id: int, vehicle_id: int) -> bool:
        day_start = local_day_start(self.clock())
        return self.session.execute(
            select(Rating.id)
            .where(Rating.user_id == user_id)
            .where(Rating.vehicle_id == vehicle_id)
            .where(Rating.created_at >= day_start)
            .limit(1)
        ).first() is not None

    def recent_rating_count(self, user_id: int) -> int:
        since = RATING_WINDOW.start(self.clock())
        return self.session.execute(
            select(func.count(Rating.id))
            .where(Rating.user_id == user_id)
            .where(Rating.created_at >= since)
        ).scalar_one()

    def _flag_if_suspicious(self, user: User, vehicle_id: int, score: float) -> None:
        """New accounts handing out extreme scores are logged, never blocked."""
        account_age = self.clock() - user.created_at
        if account_age < NEW_ACCOUNT_AGE and score in EXTREME_SCORES:
            logger.warning(
                "Suspicious rating from new user: %s for vehicle %s",
                user.id,
                vehicle_id,
                extra={"user_id": user.id, "vehicle_id": vehicle_id, "score": score},
            )

    def recalculate(self, vehicle: Vehicle) -> Vehicle:
        """Overwrite the vehicle's aggregates from every one of its ratings."""
        ratings = self.session.execute(
            select(Rating.score, Rating.safety_score, Rating.cleanliness_score)
            .where(Rating.vehicle_id == vehicle.id)
        ).all()
        scores = calculate_vehicle_rating(ratings)

        vehicle.avg_rating = scores.avg_rating
        vehicle.rating_count = scores.rating_count
        vehicle.safety_score = scores.safety_score
        vehicle.cleanliness_score = scores.cleanliness_score
        return vehicle

    def submit_rating(self, user: User, vehicle_id: int, data: RatingCreate) -> RatingSubmitted:
        vehicle = self._lock_vehicle(vehicle_id)

        if self.has_rated_today(user.id, vehicle_id):
            raise DuplicateRatingError()

        self._flag_if_suspicious(user, vehicle_id, data.score)

        RATING_WINDOW.check(self.recent_rating_count(user.id))

        rating = Rating(
            user_id=user.id,
            vehicle_id=vehicle_id,
            trip_id=data.trip_id,
            score=data.score,
            safety_score=data.safety_score,
            cleanliness_score=data.cleanliness_score,
            comfort_score=data.comfort_score,
            punctuality_score=data.punctuality_score,
            comments=data.comments,
            is_anonymous=data.is_anonymous,
            created_at=self.clock(),
        )
        self.session.add(rating)
        self.session.flush()

        self.recalculate(vehicle)
        self.session.commit()

        logger.info(
            "Rating %s recorded for vehicle %s (avg %.2f over %d)",
            rating.id, vehicle.id, vehicle.avg_rating, vehicle.rating_count,
        )
        return RatingSubmitted(
            rating=RatingSummary.model_validate(rating),
            vehicle=VehicleScores.model_validate(vehicle),
        )

    def list_ratings(self, vehicle_id: int, limit: int | None = None, offset: int | None = None) -> RatingListResult:
        vehicle = self.session.get(Vehicle, vehicle_id)
        if vehicle is None:
            raise NotFoundError("Vehicle not found")
        limit, offset = page_bounds(limit, offset)

        rows = self.session.execute(
            select(Rating)
            .options(selectinload(Rating.user))
            .where(Rating.vehicle_id == vehicle_id)
            .order_by(Rating.created_at.desc(), Rating.id.desc())
            .offset(offset)
            .limit(limit)
        ).scalars().all()
        all_scores = self.session.execute(
            select(Rating.score).where(Rating.vehicle_id == vehicle_id)
        ).scalars().all()

        return RatingListResult(
            ratings=[rating_to_read(r) for r in rows],
            total=len(all_scores),
            avg_rating=vehicle.avg_rating or 0.0,
            distribution=score_distribution(all_scores),
            page=page_number(limit, offset),
            limit=limit,
        )
