"""
routes_reports.py — Safety report endpoints
============================================
  - POST  /vehicles/{id}/reports   file a report (multipart, optional photo)
  - GET   /vehicles/{id}/reports   reports for one vehicle (admin)
  - GET   /reports                 filtered report feed (authenticated)
  - GET   /reports/{id}            report detail (admin)
  - PATCH /reports/{id}            moderation decision (admin)
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from ..auth.dependencies import require_admin, require_any
from .params import MAX_ID, ResourceId
from ..constants import ReportCategory, ReportStatus
from ..models import User
from ..schemas import PhotoUpload, ReportCreate, ReportFilters, ReportModeration, envelope
from ..services import ReportService
from ..services.reports import report_to_read
from ..storage import Storage, get_storage

router = APIRouter(tags=["reports"])


def rate_limited_reporter(
    user: User = Depends(require_any),
    reports: ReportService = Depends(ReportService.dependency()),
) -> User:
    """Authenticated caller who still has report quota this hour."""
    reports.check_rate_limit(user)
    return user


@router.post("/vehicles/{vehicle_id}/reports", status_code=201)
def submit_report(
    vehicle_id: ResourceId,
    user: User = Depends(rate_limited_reporter),
    category: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    trip_id: Optional[str] = Form(None, alias="tripId"),
    is_anonymous: Optional[str] = Form(None, alias="isAnonymous"),
    photo: Optional[UploadFile] = File(None),
    reports: ReportService = Depends(ReportService.dependency()),
    storage: Storage = Depends(get_storage),
) -> dict:
    data = ReportCreate(
        category=category,
        description=description,
        trip_id=trip_id or None,
        is_anonymous=(is_anonymous or "").lower() == "true",
    )

    upload = None
    if photo is not None:
        upload = PhotoUpload(
            content=photo.file.read(),
            content_type=photo.content_type,
            filename=photo.filename,
        )

    result = reports.submit_report(user, vehicle_id, data, photo=upload, storage=storage)
    return envelope(result, "Report submitted successfully. Our team will review it shortly.")


@router.get("/vehicles/{vehicle_id}/reports")
def list_vehicle_reports(
    vehicle_id: ResourceId,
    status: Optional[ReportStatus] = Query(None),
    limit: Optional[int] = Query(None, ge=0),
    offset: int = Query(0, ge=0),
    _admin: User = Depends(require_admin),
    reports: ReportService = Depends(ReportService.dependency()),
) -> dict:
    filters = ReportFilters(vehicle_id=vehicle_id, status=status, limit=limit, offset=offset)
    return envelope(reports.list_reports(filters, include_contact=True))


@router.get("/reports")
def list_reports(
    vehicle_id: Optional[int] = Query(None, alias="vehicleId", ge=1, le=MAX_ID),
    status: Optional[ReportStatus] = Query(None),
    category: Optional[ReportCategory] = Query(None),
    limit: Optional[int] = Query(None, ge=0),
    offset: int = Query(0, ge=0),
    _user: User = Depends(require_any),
    reports: ReportService = Depends(ReportService.dependency()),
) -> dict:
    filters = ReportFilters(
        vehicle_id=vehicle_id, status=status, category=category, limit=limit, offset=offset,
    )
    return envelope(reports.list_reports(filters))


@router.get("/reports/{report_id}")
def get_report(
    report_id: ResourceId,
    _admin: User = Depends(require_admin),
    reports: ReportService = Depends(ReportService.dependency()),
) -> dict:
    return envelope(report_to_read(reports.get_report(report_id), include_contact=True))


@router.patch("/reports/{report_id}")
def moderate_report(
    report_id: ResourceId,
    body: ReportModeration,
    admin: User = Depends(require_admin),
    reports: ReportService = Depends(ReportService.dependency()),
) -> dict:
    """Verify or dismiss a pending report."""
    return envelope(reports.moderate_report(admin, report_id, body), "Report moderated")
