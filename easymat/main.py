from __future__ import annotations

import logging
import sys

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pythonjsonlogger.json import JsonFormatter
from slowapi.errors import RateLimitExceeded

from .config import settings
from .database import Base, engine
from .errors import RateLimitExceededError, error_response, register_error_handlers
from .rate_limit import limiter
from .api import routes_ratings, routes_reports, routes_vehicles
from .auth.routes_auth import router as auth_router
from . import models as _models  # noqa: F401  register tables

# ---------------------------------------------------------------------------
# Structured logging
# ---------------------------------------------------------------------------

def _configure_logging() -> None:
    """JSON lines when log_format=json (default), plain text otherwise."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stdout)
    if settings.log_format == "json":
        handler.setFormatter(JsonFormatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s",
            rename_fields={"asctime": "timestamp", "levelname": "level"},
        ))
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))
    root.addHandler(handler)

_configure_logging()

# Initialise database tables on startup
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="EasyMat",
    version="0.1.0",
    description=(
        "Matatu safety platform: passengers rate vehicles and file safety "
        "reports; administrators moderate reports."
    ),
    docs_url="/docs",
    redoc_url="/redoc",
)

register_error_handlers(app)


async def _throttled(request, exc: RateLimitExceeded):
    return error_response(RateLimitExceededError(f"Rate limit exceeded: {exc.detail}", retry_after=60))

# Per-IP throttling (registration)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _throttled)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allow_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(routes_vehicles.router)
app.include_router(routes_ratings.router)
app.include_router(routes_reports.router)


@app.get("/", tags=["meta"])
def root() -> dict:
    return {"status": "ok", "service": "easymat", "version": "0.1.0"}


@app.get("/health", tags=["meta"])
def health() -> dict:
    return {"status": "healthy"}
