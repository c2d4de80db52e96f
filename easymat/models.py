from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import Integer, String, DateTime, Text, Boolean, Float, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .database import Base


def utcnow() -> datetime:
    """Naive UTC timestamp; every DateTime column stores naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    """Passenger, sacco admin or platform admin account."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    email: Mapped[str] = mapped_column(String(256), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(128))
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    password_hash: Mapped[str] = mapped_column(String(256))
    role: Mapped[str] = mapped_column(String(32), index=True, default="USER")  # USER | ADMIN | SACCO_ADMIN
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class Sacco(Base):
    """Operator cooperative that owns a fleet of matatus."""

    __tablename__ = "saccos"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(128), unique=True, index=True)
    contact: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    vehicles: Mapped[List["Vehicle"]] = relationship(back_populates="sacco")


class Vehicle(Base):
    """
    A registered matatu.

    The four aggregate columns are a cache over the vehicle's ratings and
    are only ever written by the rating service.
    """

    __tablename__ = "vehicles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    registration_plate: Mapped[str] = mapped_column(String(16), unique=True, index=True)
    sacco_id: Mapped[int] = mapped_column(ForeignKey("saccos.id"), index=True)
    route: Mapped[str] = mapped_column(String(256), index=True)
    capacity: Mapped[int] = mapped_column(Integer, default=14)
    photo_url: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)

    # Aggregates
    avg_rating: Mapped[float] = mapped_column(Float, default=0.0, index=True)
    rating_count: Mapped[int] = mapped_column(Integer, default=0)
    safety_score: Mapped[float] = mapped_column(Float, default=0.0)
    cleanliness_score: Mapped[float] = mapped_column(Float, default=0.0)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    sacco: Mapped[Sacco] = relationship(back_populates="vehicles")
    ratings: Mapped[List["Rating"]] = relationship(back_populates="vehicle")
    reports: Mapped[List["Report"]] = relationship(back_populates="vehicle")


class Rating(Base):
    """A passenger's star rating of one trip. Immutable once created."""

    __tablename__ = "ratings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True, index=True)
    vehicle_id: Mapped[int] = mapped_column(ForeignKey("vehicles.id"), index=True)
    trip_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    score: Mapped[float] = mapped_column(Float)
    safety_score: Mapped[float] = mapped_column(Float)
    cleanliness_score: Mapped[float] = mapped_column(Float)
    comfort_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    punctuality_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    comments: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_anonymous: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)

    user: Mapped[Optional[User]] = relationship()
    vehicle: Mapped[Vehicle] = relationship(back_populates="ratings")


class Report(Base):
    """Safety incident filed against a vehicle, awaiting moderation."""

    __tablename__ = "reports"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True, index=True)
    vehicle_id: Mapped[int] = mapped_column(ForeignKey("vehicles.id"), index=True)
    trip_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    category: Mapped[str] = mapped_column(String(32), index=True)
    description: Mapped[str] = mapped_column(Text)
    photo_url: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    is_anonymous: Mapped[bool] = mapped_column(Boolean, default=False)
    status: Mapped[str] = mapped_column(String(16), default="PENDING", index=True)  # PENDING | VERIFIED | DISMISSED

    # Moderation
    moderator_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True)
    moderated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    moderation_note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    user: Mapped[Optional[User]] = relationship(foreign_keys=[user_id])
    moderator: Mapped[Optional[User]] = relationship(foreign_keys=[moderator_id])
    vehicle: Mapped[Vehicle] = relationship(back_populates="reports")
