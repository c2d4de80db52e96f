from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .constants import (
    DEFAULT_CAPACITY,
    MAX_COMMENT_LENGTH,
    MAX_DESCRIPTION_LENGTH,
    MAX_SCORE,
    MIN_DESCRIPTION_LENGTH,
    MIN_PASSWORD_LENGTH,
    MIN_SCORE,
    PHONE_PATTERN,
    PLATE_PATTERN,
    ReportCategory,
    ReportStatus,
)


class ApiModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


def envelope(data: Any, message: Optional[str] = None) -> Dict[str, Any]:
    """Wrap a payload in the ``{success, data, message?}`` response envelope."""
    if isinstance(data, BaseModel):
        data = data.model_dump(by_alias=True, mode="json")
    body: Dict[str, Any] = {"success": True, "data": data}
    if message:
        body["message"] = message
    return body


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

class RegisterInput(ApiModel):
    email: str = Field(..., max_length=256, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH)
    name: str = Field(..., min_length=2, max_length=100)
    phone: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("password")
    @classmethod
    def password_strength(cls, v: str) -> str:
        if not re.search(r"[A-Z]", v):
            raise ValueError("Password must contain at least one uppercase letter")
        if not re.search(r"[a-z]", v):
            raise ValueError("Password must contain at least one lowercase letter")
        if not re.search(r"[0-9]", v):
            raise ValueError("Password must contain at least one number")
        return v


class UserRead(ApiModel):
    id: int
    email: str
    name: str
    role: str
    created_at: datetime


class UserSummary(ApiModel):
    id: Optional[int] = None
    name: str
    email: Optional[str] = None


# ---------------------------------------------------------------------------
# Saccos & vehicles
# ---------------------------------------------------------------------------

class SaccoCreate(ApiModel):
    name: str = Field(..., min_length=2, max_length=128)
    contact: Optional[str] = Field(default=None, max_length=32)
    email: Optional[str] = Field(default=None, max_length=256)
    address: Optional[str] = Field(default=None, max_length=256)


class SaccoRead(ApiModel):
    id: int
    name: str
    contact: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None


class SaccoSummary(ApiModel):
    id: int
    name: str


class VehicleCreate(ApiModel):
    sacco_id: int
    registration_plate: str = Field(..., pattern=PLATE_PATTERN)
    route: str = Field(..., min_length=3, max_length=256)
    capacity: int = Field(default=DEFAULT_CAPACITY, ge=1, le=100)
    photo_url: Optional[str] = Field(default=None, max_length=512, pattern=r"^https?://")


class VehicleFilters(ApiModel):
    plate: Optional[str] = None
    route: Optional[str] = None
    sacco: Optional[str] = None
    min_rating: Optional[float] = Field(default=None, ge=0, le=MAX_SCORE)
    limit: Optional[int] = Field(default=None, ge=0)
    offset: int = Field(default=0, ge=0)


class VehicleScores(ApiModel):
    """Aggregate block written back to a vehicle after each rating."""

    id: int
    registration_plate: str
    avg_rating: float
    rating_count: int
    safety_score: float
    cleanliness_score: float


class VehicleListItem(ApiModel):
    id: int
    registration_plate: str
    route: str
    capacity: int
    avg_rating: float
    rating_count: int
    safety_score: float
    cleanliness_score: float
    photo_url: Optional[str] = None
    sacco: SaccoSummary
    report_count: int = 0


class VehicleListResult(ApiModel):
    vehicles: List[VehicleListItem]
    total: int
    page: int
    limit: int
    has_more: bool


# ---------------------------------------------------------------------------
# Ratings
# ---------------------------------------------------------------------------

class RatingCreate(ApiModel):
    trip_id: Optional[str] = Field(default=None, max_length=64)
    score: float = Field(..., ge=MIN_SCORE, le=MAX_SCORE)
    safety_score: float = Field(..., ge=MIN_SCORE, le=MAX_SCORE)
    cleanliness_score: float = Field(..., ge=MIN_SCORE, le=MAX_SCORE)
    comfort_score: Optional[float] = Field(default=None, ge=MIN_SCORE, le=MAX_SCORE)
    punctuality_score: Optional[float] = Field(default=None, ge=MIN_SCORE, le=MAX_SCORE)
    comments: Optional[str] = Field(default=None, max_length=MAX_COMMENT_LENGTH)
    is_anonymous: bool = False


class RatingSummary(ApiModel):
    id: int
    vehicle_id: int
    score: float
    safety_score: float
    cleanliness_score: float
    created_at: datetime


class RatingSubmitted(ApiModel):
    rating: RatingSummary
    vehicle: VehicleScores


class RatingRead(ApiModel):
    id: int
    score: float
    safety_score: float
    cleanliness_score: float
    comfort_score: Optional[float] = None
    punctuality_score: Optional[float] = None
    comments: Optional[str] = None
    is_anonymous: bool
    created_at: datetime
    user: Optional[UserSummary] = None


class RatingListResult(ApiModel):
    ratings: List[RatingRead]
    total: int
    avg_rating: float
    distribution: Dict[str, int]
    page: int
    limit: int


class VehicleDetail(VehicleListItem):
    sacco: SaccoRead  # type: ignore[assignment]
    recent_ratings: List[RatingRead] = Field(default_factory=list)
    total_ratings: int = 0
    total_reports: int = 0
    created_at: datetime


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------

class ReportCreate(ApiModel):
    trip_id: Optional[str] = Field(default=None, max_length=64)
    category: ReportCategory
    description: str = Field(..., min_length=MIN_DESCRIPTION_LENGTH, max_length=MAX_DESCRIPTION_LENGTH)
    is_anonymous: bool = False


class PhotoUpload(BaseModel):
    """Framework-neutral view of an uploaded file."""

    content: bytes
    content_type: Optional[str] = None
    filename: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.content)


class ReportSummary(ApiModel):
    id: int
    vehicle_id: int
    category: str
    description: str
    photo_url: Optional[str] = None
    status: str
    created_at: datetime


class ReportVehicleCount(ApiModel):
    id: int
    registration_plate: str
    report_count: int


class ReportSubmitted(ApiModel):
    report: ReportSummary
    vehicle: ReportVehicleCount


class ReportVehicle(ApiModel):
    id: int
    registration_plate: str
    route: str
    sacco: SaccoSummary


class ReportRead(ApiModel):
    id: int
    vehicle_id: int
    trip_id: Optional[str] = None
    category: str
    description: str
    photo_url: Optional[str] = None
    status: str
    is_anonymous: bool
    created_at: datetime
    vehicle: Optional[ReportVehicle] = None
    user: Optional[UserSummary] = None
    moderator: Optional[UserSummary] = None
    moderated_at: Optional[datetime] = None
    moderation_note: Optional[str] = None


class ReportFilters(ApiModel):
    vehicle_id: Optional[int] = None
    status: Optional[ReportStatus] = None
    category: Optional[ReportCategory] = None
    limit: Optional[int] = Field(default=None, ge=0)
    offset: int = Field(default=0, ge=0)


class ReportListResult(ApiModel):
    reports: List[ReportRead]
    total: int
    page: int
    limit: int
    has_more: bool


class ReportModeration(ApiModel):
    status: ReportStatus
    note: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("status")
    @classmethod
    def final_status(cls, v: ReportStatus) -> ReportStatus:
        if v == ReportStatus.PENDING:
            raise ValueError("Status must be VERIFIED or DISMISSED")
        return v
