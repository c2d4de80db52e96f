from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..auth.dependencies import require_admin
from .params import ResourceId
from ..models import User
from ..schemas import SaccoCreate, VehicleCreate, VehicleFilters, envelope
from ..services import VehicleService

router = APIRouter(tags=["vehicles"])


@router.get("/vehicles")
def list_vehicles(
    plate: Optional[str] = Query(None, description="Case-insensitive substring of the plate"),
    route: Optional[str] = Query(None, description="Case-insensitive substring of the route"),
    sacco: Optional[str] = Query(None, description="Case-insensitive substring of the sacco name"),
    min_rating: Optional[float] = Query(None, alias="minRating", ge=0, le=5),
    limit: Optional[int] = Query(None, ge=0, description="Page size (max 100)"),
    offset: int = Query(0, ge=0),
    vehicles: VehicleService = Depends(VehicleService.dependency()),
) -> dict:
    """Public vehicle search, best rated first."""
    filters = VehicleFilters(
        plate=plate, route=route, sacco=sacco, min_rating=min_rating, limit=limit, offset=offset,
    )
    return envelope(vehicles.list_vehicles(filters))


@router.post("/vehicles", status_code=201)
def create_vehicle(
    body: VehicleCreate,
    _admin: User = Depends(require_admin),
    vehicles: VehicleService = Depends(VehicleService.dependency()),
) -> dict:
    return envelope(vehicles.create_vehicle(body), "Vehicle created successfully")


@router.get("/vehicles/{vehicle_id}")
def get_vehicle(
    vehicle_id: ResourceId,
    vehicles: VehicleService = Depends(VehicleService.dependency()),
) -> dict:
    return envelope(vehicles.get_vehicle_detail(vehicle_id))


@router.get("/saccos")
def list_saccos(vehicles: VehicleService = Depends(VehicleService.dependency())) -> dict:
    return envelope([s.model_dump(by_alias=True, mode="json") for s in vehicles.list_saccos()])


@router.post("/saccos", status_code=201)
def create_sacco(
    body: SaccoCreate,
    _admin: User = Depends(require_admin),
    vehicles: VehicleService = Depends(VehicleService.dependency()),
) -> dict:
    return envelope(vehicles.create_sacco(body), "Sacco created successfully")
