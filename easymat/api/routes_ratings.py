from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..auth.dependencies import require_any
from .params import ResourceId
from ..models import User
from ..schemas import RatingCreate, envelope
from ..services import RatingService

router = APIRouter(prefix="/vehicles/{vehicle_id}/ratings", tags=["ratings"])


@router.post("", status_code=201)
def submit_rating(
    vehicle_id: ResourceId,
    body: RatingCreate,
    user: User = Depends(require_any),
    ratings: RatingService = Depends(RatingService.dependency()),
) -> dict:
    """Rate a vehicle and refresh its aggregate scores."""
    result = ratings.submit_rating(user, vehicle_id, body)
    return envelope(result, "Rating submitted successfully")


@router.get("")
def list_ratings(
    vehicle_id: ResourceId,
    limit: Optional[int] = Query(None, ge=0),
    offset: int = Query(0, ge=0),
    ratings: RatingService = Depends(RatingService.dependency()),
) -> dict:
    return envelope(ratings.list_ratings(vehicle_id, limit=limit, offset=offset))
