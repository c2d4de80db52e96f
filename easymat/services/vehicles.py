"""
services/vehicles.py — Vehicle and sacco queries
=================================================
Public browsing (filtered listing, detail) and the admin-only creation
paths. Aggregate columns are read here but never written; see
services/ratings.py.
"""
from __future__ import annotations

import logging
from typing import List

from sqlalchemy import func, select
from sqlalchemy.orm import selectinload

from .base import BaseService, page_bounds, page_number
from .ratings import rating_to_read
from .reports import ReportService
from ..constants import ReportStatus
from ..errors import NotFoundError, SaccoExistsError, VehicleExistsError
from ..models import Rating, Report, Sacco, Vehicle
from ..schemas import (
    SaccoCreate,
    SaccoRead,
    VehicleCreate,
    VehicleDetail,
    VehicleFilters,
    VehicleListItem,
    VehicleListResult,
)

logger = logging.getLogger("easymat.vehicles")

RECENT_RATINGS = 10


class VehicleService(BaseService):

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_vehicle(self, vehicle_id: int) -> Vehicle:
        vehicle = self.session.get(Vehicle, vehicle_id)
        if vehicle is None:
            raise NotFoundError("Vehicle not found")
        return vehicle

    def vehicle_exists(self, registration_plate: str) -> bool:
        return self.session.execute(
            select(Vehicle.id).where(Vehicle.registration_plate == registration_plate)
        ).first() is not None

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def list_vehicles(self, filters: VehicleFilters) -> VehicleListResult:
        """Filter, sort by rating (then rating count) and paginate vehicles."""
        limit, offset = page_bounds(filters.limit, filters.offset)

        conditions = []
        if filters.plate:
            conditions.append(Vehicle.registration_plate.icontains(filters.plate, autoescape=True))
        if filters.route:
            conditions.append(Vehicle.route.icontains(filters.route, autoescape=True))
        if filters.sacco:
            conditions.append(Sacco.name.icontains(filters.sacco, autoescape=True))
        if filters.min_rating is not None:
            conditions.append(Vehicle.avg_rating >= filters.min_rating)

        pending = (
            select(Report.vehicle_id, func.count(Report.id).label("pending"))
            .where(Report.status == ReportStatus.PENDING.value)
            .group_by(Report.vehicle_id)
            .subquery()
        )

        stmt = (
            select(Vehicle, func.coalesce(pending.c.pending, 0))
            .join(Vehicle.sacco)
            .outerjoin(pending, pending.c.vehicle_id == Vehicle.id)
            .options(selectinload(Vehicle.sacco))
            .where(*conditions)
            .order_by(Vehicle.avg_rating.desc(), Vehicle.rating_count.desc(), Vehicle.id.asc())
            .offset(offset)
            .limit(limit)
        )
        rows = self.session.execute(stmt).all()

        total = self.session.execute(
            select(func.count(Vehicle.id)).join(Vehicle.sacco).where(*conditions)
        ).scalar_one()

        vehicles = [
            VehicleListItem.model_validate(vehicle).model_copy(update={"report_count": count})
            for vehicle, count in rows
        ]
        return VehicleListResult(
            vehicles=vehicles,
            total=total,
            page=page_number(limit, offset),
            limit=limit,
            has_more=offset + limit < total,
        )

    def get_vehicle_detail(self, vehicle_id: int) -> VehicleDetail:
        vehicle = self.get_vehicle(vehicle_id)

        recent = self.session.execute(
            select(Rating)
            .options(selectinload(Rating.user))
            .where(Rating.vehicle_id == vehicle_id)
            .order_by(Rating.created_at.desc(), Rating.id.desc())
            .limit(RECENT_RATINGS)
        ).scalars().all()
        total_ratings = self.session.execute(
            select(func.count(Rating.id)).where(Rating.vehicle_id == vehicle_id)
        ).scalar_one()
        total_reports = self.session.execute(
            select(func.count(Report.id)).where(Report.vehicle_id == vehicle_id)
        ).scalar_one()

        return VehicleDetail.model_validate(vehicle).model_copy(update={
            "recent_ratings": [rating_to_read(r) for r in recent],
            "total_ratings": total_ratings,
            "total_reports": total_reports,
            "report_count": ReportService(self.session, self.clock).pending_count(vehicle_id),
        })

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    def create_vehicle(self, data: VehicleCreate) -> VehicleDetail:
        if self.session.get(Sacco, data.sacco_id) is None:
            raise NotFoundError("Sacco not found")
        if self.vehicle_exists(data.registration_plate):
            raise VehicleExistsError()

        vehicle = Vehicle(
            sacco_id=data.sacco_id,
            registration_plate=data.registration_plate,
            route=data.route,
            capacity=data.capacity,
            photo_url=data.photo_url,
        )
        self.session.add(vehicle)
        self.session.flush()
        self.session.refresh(vehicle)
        logger.info("Vehicle %s registered under sacco %s", vehicle.registration_plate, data.sacco_id)
        return VehicleDetail.model_validate(vehicle)

    def create_sacco(self, data: SaccoCreate) -> SaccoRead:
        existing = self.session.execute(
            select(Sacco.id).where(func.lower(Sacco.name) == data.name.lower())
        ).first()
        if existing:
            raise SaccoExistsError()
        sacco = Sacco(name=data.name, contact=data.contact, email=data.email, address=data.address)
        self.session.add(sacco)
        self.session.flush()
        return SaccoRead.model_validate(sacco)

    def list_saccos(self) -> List[SaccoRead]:
        rows = self.session.execute(select(Sacco).order_by(Sacco.name)).scalars().all()
        return [SaccoRead.model_validate(s) for s in rows]
