from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Tuple, Type, TypeVar

from fastapi import Depends
from sqlalchemy.orm import Session

from ..config import settings
from ..constants import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT
from ..database import get_db_session
from ..models import utcnow

T = TypeVar("T", bound="BaseService")


class BaseService:
    def __init__(self, session: Session, clock: Callable[[], datetime] = utcnow):
        """
        :param session: Request-scoped SQLAlchemy session.
        :param clock: Returns the current naive-UTC time.
        """
        self.session = session
        self.clock = clock

    @classmethod
    def dependency(cls: Type[T]) -> Callable[..., T]:
        """FastAPI dependency building the service on the request's session."""

        def _build(session: Session = Depends(get_db_session)) -> T:
            return cls(session=session)

        return _build


def page_bounds(limit: Optional[int], offset: Optional[int]) -> Tuple[int, int]:
    """Clamp pagination: missing/zero limit → default, never above the max."""
    return min(limit or DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT), max(offset or 0, 0)


def page_number(limit: int, offset: int) -> int:
    return offset // limit + 1


def local_day_start(now: datetime) -> datetime:
    """Naive-UTC instant at which the service's local calendar day began."""
    tz = timezone(timedelta(hours=settings.local_utc_offset_hours))
    local = now.replace(tzinfo=timezone.utc).astimezone(tz)
    midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight.astimezone(timezone.utc).replace(tzinfo=None)
