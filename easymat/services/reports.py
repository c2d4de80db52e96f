"""
services/reports.py — Safety report submission, listing and moderation
=======================================================================
Reports always record the submitting user so rate limits and duplicate
windows apply to anonymous reports too; anonymity only hides the
reporter when the report is read back.
"""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import selectinload

from .base import BaseService, page_bounds, page_number
from ..constants import DUPLICATE_REPORT_WINDOW, ReportStatus
from ..errors import DuplicateReportError, InvalidStatusTransitionError, NotFoundError
from ..models import Report, User, Vehicle
from ..rate_limit import REPORT_WINDOW
from ..schemas import (
    PhotoUpload,
    ReportCreate,
    ReportFilters,
    ReportListResult,
    ReportModeration,
    ReportRead,
    ReportSubmitted,
    ReportSummary,
    ReportVehicle,
    ReportVehicleCount,
    UserSummary,
)
from ..storage import Storage, store_photo

logger = logging.getLogger("easymat.reports")


def report_to_read(report: Report, include_contact: bool = False) -> ReportRead:
    """Reporter identity is dropped for anonymous reports."""
    user = None
    if not report.is_anonymous and report.user is not None:
        user = UserSummary(
            id=report.user.id,
            name=report.user.name,
            email=report.user.email if include_contact else None,
        )
    moderator = UserSummary(name=report.moderator.name) if report.moderator else None
    return ReportRead.model_validate(report).model_copy(update={
        "user": user,
        "moderator": moderator,
        "vehicle": ReportVehicle.model_validate(report.vehicle),
    })


class ReportService(BaseService):

    def _report_query(self):
        return select(Report).options(
            selectinload(Report.user),
            selectinload(Report.moderator),
            selectinload(Report.vehicle).selectinload(Vehicle.sacco),
        )

    # ------------------------------------------------------------------
    # Abuse checks
    # ------------------------------------------------------------------

    def check_rate_limit(self, user: User) -> None:
        since = REPORT_WINDOW.start(self.clock())
        used = self.session.execute(
            select(func.count(Report.id))
            .where(Report.user_id == user.id)
            .where(Report.created_at >= since)
        ).scalar_one()
        REPORT_WINDOW.check(used)

    def is_duplicate(self, user_id: int, vehicle_id: int, category: str) -> bool:
        since = self.clock() - DUPLICATE_REPORT_WINDOW
        return self.session.execute(
            select(Report.id)
            .where(Report.user_id == user_id)
            .where(Report.vehicle_id == vehicle_id)
            .where(Report.category == category)
            .where(Report.created_at >= since)
            .limit(1)
        ).first() is not None

    def pending_count(self, vehicle_id: int) -> int:
        return self.session.execute(
            select(func.count(Report.id))
            .where(Report.vehicle_id == vehicle_id)
            .where(Report.status == ReportStatus.PENDING.value)
        ).scalar_one()

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit_report(
        self,
        user: User,
        vehicle_id: int,
        data: ReportCreate,
        photo: Optional[PhotoUpload] = None,
        storage: Optional[Storage] = None,
    ) -> ReportSubmitted:
        """Validate, de-duplicate and persist a PENDING report.

        The rate limit is checked by the caller before the payload is
        parsed; see ``check_rate_limit``.
        """
        vehicle = self.session.get(Vehicle, vehicle_id)
        if vehicle is None:
            raise NotFoundError("Vehicle not found")

        category = data.category.value
        if self.is_duplicate(user.id, vehicle_id, category):
            raise DuplicateReportError()

        photo_url = None
        if photo is not None and photo.size > 0:
            if storage is None:
                raise ValueError("A storage backend is required to attach photos")
            photo_url = store_photo(storage, photo)

        report = Report(
            user_id=user.id,
            vehicle_id=vehicle_id,
            trip_id=data.trip_id,
            category=category,
            description=data.description,
            photo_url=photo_url,
            is_anonymous=data.is_anonymous,
            status=ReportStatus.PENDING.value,
            created_at=self.clock(),
        )
        self.session.add(report)
        self.session.flush()
        self.session.commit()

        pending = self.pending_count(vehicle_id)
        logger.info("Report %s (%s) filed against vehicle %s; %d pending",
                    report.id, category, vehicle_id, pending)
        return ReportSubmitted(
            report=ReportSummary.model_validate(report),
            vehicle=ReportVehicleCount(
                id=vehicle.id,
                registration_plate=vehicle.registration_plate,
                report_count=pending,
            ),
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_reports(self, filters: ReportFilters, include_contact: bool = False) -> ReportListResult:
        limit, offset = page_bounds(filters.limit, filters.offset)

        conditions = []
        if filters.vehicle_id is not None:
            conditions.append(Report.vehicle_id == filters.vehicle_id)
        if filters.status is not None:
            conditions.append(Report.status == filters.status.value)
        if filters.category is not None:
            conditions.append(Report.category == filters.category.value)

        rows = self.session.execute(
            self._report_query()
            .where(*conditions)
            .order_by(Report.created_at.desc(), Report.id.desc())
            .offset(offset)
            .limit(limit)
        ).scalars().all()
        total = self.session.execute(
            select(func.count(Report.id)).where(*conditions)
        ).scalar_one()

        return ReportListResult(
            reports=[report_to_read(r, include_contact=include_contact) for r in rows],
            total=total,
            page=page_number(limit, offset),
            limit=limit,
            has_more=offset + limit < total,
        )

    def get_report(self, report_id: int) -> Report:
        report = self.session.execute(
            self._report_query().where(Report.id == report_id)
        ).scalar_one_or_none()
        if report is None:
            raise NotFoundError("Report not found")
        return report

    # ------------------------------------------------------------------
    # Moderation
    # ------------------------------------------------------------------

    def moderate_report(self, moderator: User, report_id: int, decision: ReportModeration) -> ReportRead:
        """PENDING → VERIFIED | DISMISSED. Any other transition is refused."""
        report = self.get_report(report_id)
        if report.status != ReportStatus.PENDING.value:
            raise InvalidStatusTransitionError(
                f"Report is already {report.status.lower()}; only pending reports can be moderated"
            )

        report.status = decision.status.value
        report.moderator_id = moderator.id
        report.moderated_at = self.clock()
        report.moderation_note = decision.note
        self.session.flush()
        self.session.refresh(report)
        self.session.commit()

        logger.info("Report %s marked %s by moderator %s", report.id, report.status, moderator.id)
        return report_to_read(report, include_contact=True)
