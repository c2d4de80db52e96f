"""
rate_limit.py — Request throttling
===================================
Two mechanisms:

* slowapi ``limiter``: per-IP limits on unauthenticated endpoints
  (registration), applied as route decorators.
* ``RateWindow``: per-user rolling windows for ratings and reports.
  The count comes from rows already persisted in the store, so the
  window survives restarts and is shared across instances. Concurrent
  submissions can overshoot by a request or two.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from slowapi import Limiter
from slowapi.util import get_remote_address

from .config import settings
from .constants import RATE_LIMIT_RETRY_AFTER_SECONDS, RATINGS_PER_HOUR, REPORTS_PER_HOUR
from .errors import RateLimitExceededError

limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)


@dataclass(frozen=True)
class RateWindow:
    """At most ``limit`` events per user within a rolling ``window``."""

    limit: int
    window: timedelta
    message: str
    retry_after: int = RATE_LIMIT_RETRY_AFTER_SECONDS

    def start(self, now: datetime) -> datetime:
        return now - self.window

    def check(self, used: int) -> None:
        """Raise once ``used`` events already fill the window."""
        if used >= self.limit:
            raise RateLimitExceededError(self.message, retry_after=self.retry_after)


RATING_WINDOW = RateWindow(
    limit=RATINGS_PER_HOUR,
    window=timedelta(hours=1),
    message="Too many ratings submitted. Please try again later.",
)

REPORT_WINDOW = RateWindow(
    limit=REPORTS_PER_HOUR,
    window=timedelta(hours=1),
    message="Too many reports. Please try again later.",
)
