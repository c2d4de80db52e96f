"""
constants.py — Domain enumerations and abuse-control thresholds
================================================================
Values here are part of the platform's rules rather than deployment
settings, so they are not read from the environment.
"""
from __future__ import annotations

import enum
from datetime import timedelta


class UserRole(str, enum.Enum):
    USER = "USER"
    ADMIN = "ADMIN"
    SACCO_ADMIN = "SACCO_ADMIN"


class ReportStatus(str, enum.Enum):
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    DISMISSED = "DISMISSED"


class ReportCategory(str, enum.Enum):
    RECKLESS_DRIVING = "RECKLESS_DRIVING"
    SPEEDING = "SPEEDING"
    HARASSMENT = "HARASSMENT"
    OVERLOADING = "OVERLOADING"
    UNROADWORTHY = "UNROADWORTHY"
    ROUTE_DEVIATION = "ROUTE_DEVIATION"
    FARE_DISPUTE = "FARE_DISPUTE"
    DRUNK_DRIVING = "DRUNK_DRIVING"
    OTHER = "OTHER"


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------

DEFAULT_PAGE_LIMIT = 20
MAX_PAGE_LIMIT = 100

# ---------------------------------------------------------------------------
# Ratings
# ---------------------------------------------------------------------------

MIN_SCORE = 1
MAX_SCORE = 5
MAX_COMMENT_LENGTH = 500

RATINGS_PER_HOUR = 10
NEW_ACCOUNT_AGE = timedelta(days=7)
EXTREME_SCORES = (MIN_SCORE, MAX_SCORE)

# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------

REPORTS_PER_HOUR = 5
DUPLICATE_REPORT_WINDOW = timedelta(hours=1)
MIN_DESCRIPTION_LENGTH = 10
MAX_DESCRIPTION_LENGTH = 1000

ALLOWED_PHOTO_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}
MAX_PHOTO_BYTES = 5 * 1024 * 1024

# ---------------------------------------------------------------------------
# Accounts & vehicles
# ---------------------------------------------------------------------------

MIN_PASSWORD_LENGTH = 8
PHONE_PATTERN = r"^\+254[17]\d{8}$"
PLATE_PATTERN = r"^K[A-Z]{2}\s?\d{3}[A-Z]$"
DEFAULT_CAPACITY = 14

RATE_LIMIT_RETRY_AFTER_SECONDS = 3600
