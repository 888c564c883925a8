# SQLAlchemy ORM models mirroring the marketplace tables (users, profiles, properties, tours, services).
# Models stay dumb: lifecycle rules live in keyat.tours, filtering in keyat.search.
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import declarative_mixin

from .db import Base


@declarative_mixin
class TimestampMixin:
    """Database-managed UTC timestamps.

    - created_at: set on insert
    - updated_at: set on insert and refreshed on every update
    """
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class User(Base, TimestampMixin):
    """Authentication identity. The role chosen at signup is also copied to the profile row."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(32), nullable=False, index=True)


class Profile(Base, TimestampMixin):
    """Public profile of a user; `id` mirrors `users.id`.

    `role` is the column the role resolver reads. It may be empty for rows
    created by older clients, in which case the user is treated as a consumer.
    """
    __tablename__ = "profiles"

    id = Column(Integer, ForeignKey("users.id"), primary_key=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(32), nullable=True)
    role = Column(String(32), nullable=True, index=True)
    avatar_url = Column(String(1024), nullable=True)
    location = Column(String(255), nullable=True)
    bio = Column(Text, nullable=True)
    id_verified = Column(Boolean, nullable=False, default=False)


class Property(Base, TimestampMixin):
    """Rentable listing owned by a landlord or agent. Prices are whole Pula."""
    __tablename__ = "properties"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    agent_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    location = Column(String(255), nullable=False)
    city = Column(String(100), nullable=True)
    price = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False, default="BWP")
    property_type = Column(String(32), nullable=False, default="apartment")
    bedrooms = Column(Integer, nullable=True)
    bathrooms = Column(Float, nullable=True)
    area = Column(Integer, nullable=True)
    # available | rented | maintenance | unavailable
    status = Column(String(20), nullable=False, default="available", index=True)
    images = Column(JSON, nullable=False, default=list)
    features = Column(JSON, nullable=False, default=list)
    is_featured = Column(Boolean, nullable=False, default=False)
    rating = Column(Float, nullable=True)
    views = Column(Integer, nullable=False, default=0)


class Tour(Base, TimestampMixin):
    """Property viewing appointment.

    Status transitions (see keyat.tours):
    scheduled -> confirmed -> completed
        └────────┴── cancelled
    """
    __tablename__ = "tours"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    property_id = Column(Integer, ForeignKey("properties.id"), nullable=False, index=True)
    tenant_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    agent_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    preferred_date = Column(DateTime(timezone=True), nullable=False)
    viewing_time = Column(String(5), nullable=False)  # HH:MM
    notes = Column(Text, nullable=True)
    meeting_point = Column(String(255), nullable=True)
    duration = Column(Integer, nullable=False, default=30)  # minutes
    status = Column(String(20), nullable=False, default="scheduled")

    __table_args__ = (
        Index("ix_tours_status", "status"),
        Index("ix_tours_property_date", "property_id", "preferred_date"),
    )


class ServiceProvider(Base, TimestampMixin):
    """Service marketplace listing (cleaning, moving, plumbing, ...).

    Rating and review count are stored aggregates; price_range and
    availability are display strings, not structured values.
    """
    __tablename__ = "service_providers"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    name = Column(String(255), nullable=False)
    category = Column(String(32), nullable=False, index=True)
    description = Column(Text, nullable=False, default="")
    rating = Column(Float, nullable=False, default=0.0)
    reviews = Column(Integer, nullable=False, default=0)
    price_range = Column(String(100), nullable=True)
    response_time = Column(String(100), nullable=True)
    location = Column(String(255), nullable=True)
    verified = Column(Boolean, nullable=False, default=False)
    featured = Column(Boolean, nullable=False, default=False)
    services = Column(JSON, nullable=False, default=list)
    experience = Column(String(100), nullable=True)
    languages = Column(JSON, nullable=False, default=list)
    availability = Column(String(100), nullable=True)
