from .ratings import RatingService
from .reports import ReportService
from .users import UserService
from .vehicles import VehicleService

__all__ = ["RatingService", "ReportService", "UserService", "VehicleService"]
