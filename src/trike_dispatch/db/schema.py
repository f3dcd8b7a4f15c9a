"""SQLAlchemy ORM models for the dispatch record store."""

from datetime import datetime

from sqlalchemy import Boolean, Float, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from trike_dispatch.trip import ACTIVE_STATUSES

from .utils import utc_now

_ACTIVE_STATUS_VALUES = sorted(status.value for status in ACTIVE_STATUSES)


class Base(DeclarativeBase):
    pass


class DriverPresence(Base):
    __tablename__ = "driver_presence"

    driver_id: Mapped[str] = mapped_column(String, primary_key=True)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    is_online: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    occupancy: Mapped[str] = mapped_column(String, default="offline", nullable=False)
    active_trip_id: Mapped[str | None] = mapped_column(String, nullable=True)
    last_location_update: Mapped[datetime | None] = mapped_column(nullable=True)
    full_name: Mapped[str] = mapped_column(String, default="", nullable=False)
    vehicle_model: Mapped[str | None] = mapped_column(String, nullable=True)
    vehicle_color: Mapped[str | None] = mapped_column(String, nullable=True)
    plate_number: Mapped[str | None] = mapped_column(String, nullable=True)
    average_rating: Mapped[float | None] = mapped_column(Float, nullable=True)
    total_rides: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    registered_at: Mapped[datetime] = mapped_column(default=lambda: utc_now())
    updated_at: Mapped[datetime] = mapped_column(
        default=lambda: utc_now(),
        onupdate=lambda: utc_now(),
    )

    __table_args__ = (Index("idx_presence_occupancy", "occupancy", "is_online"),)


class Passenger(Base):
    __tablename__ = "passengers"

    passenger_id: Mapped[str] = mapped_column(String, primary_key=True)
    average_rating: Mapped[float | None] = mapped_column(Float, nullable=True)
    rating_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    discount_type: Mapped[str] = mapped_column(String, default="none", nullable=False)
    discount_status: Mapped[str] = mapped_column(String, default="none", nullable=False)
    discount_requested_at: Mapped[datetime | None] = mapped_column(nullable=True)
    discount_reviewed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    discount_rejection_reason: Mapped[str | None] = mapped_column(String, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        default=lambda: utc_now(),
        onupdate=lambda: utc_now(),
    )


class Trip(Base):
    __tablename__ = "trips"

    trip_id: Mapped[str] = mapped_column(String, primary_key=True)
    passenger_id: Mapped[str] = mapped_column(String, nullable=False)
    driver_id: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False)
    pickup_latitude: Mapped[float] = mapped_column(Float, nullable=False)
    pickup_longitude: Mapped[float] = mapped_column(Float, nullable=False)
    pickup_address: Mapped[str] = mapped_column(String, default="", nullable=False)
    dropoff_latitude: Mapped[float] = mapped_column(Float, nullable=False)
    dropoff_longitude: Mapped[float] = mapped_column(Float, nullable=False)
    dropoff_address: Mapped[str] = mapped_column(String, default="", nullable=False)
    distance_km: Mapped[float] = mapped_column(Float, nullable=False)
    base_fare: Mapped[float] = mapped_column(Float, nullable=False)
    discount_type: Mapped[str] = mapped_column(String, default="none", nullable=False)
    discount_amount: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    estimated_fare: Mapped[float] = mapped_column(Float, nullable=False)
    fare: Mapped[float | None] = mapped_column(Float, nullable=True)
    payment_method: Mapped[str] = mapped_column(String, default="cash", nullable=False)
    payment_status: Mapped[str] = mapped_column(String, default="pending", nullable=False)
    ride_type: Mapped[str] = mapped_column(String, default="normal", nullable=False)
    errand_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    rating_for_driver: Mapped[int | None] = mapped_column(Integer, nullable=True)
    feedback_for_driver: Mapped[str | None] = mapped_column(Text, nullable=True)
    rating_for_passenger: Mapped[int | None] = mapped_column(Integer, nullable=True)
    feedback_for_passenger: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancelled_by: Mapped[str | None] = mapped_column(String, nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False)
    accepted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    arrived_at: Mapped[datetime | None] = mapped_column(nullable=True)
    started_at: Mapped[datetime | None] = mapped_column(nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(nullable=True)
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=lambda: utc_now(),
        onupdate=lambda: utc_now(),
    )

    __table_args__ = (
        Index("idx_trip_status", "status"),
        Index("idx_trip_driver", "driver_id"),
        Index("idx_trip_passenger", "passenger_id"),
    )


# At most one active trip per passenger and per driver, enforced by the store.
Index(
    "uq_trip_active_passenger",
    Trip.passenger_id,
    unique=True,
    sqlite_where=Trip.status.in_(_ACTIVE_STATUS_VALUES),
    postgresql_where=Trip.status.in_(_ACTIVE_STATUS_VALUES),
)
Index(
    "uq_trip_active_driver",
    Trip.driver_id,
    unique=True,
    sqlite_where=Trip.status.in_(_ACTIVE_STATUS_VALUES),
    postgresql_where=Trip.status.in_(_ACTIVE_STATUS_VALUES),
)


class ScheduledRide(Base):
    __tablename__ = "scheduled_rides"

    ride_id: Mapped[str] = mapped_column(String, primary_key=True)
    passenger_id: Mapped[str] = mapped_column(String, nullable=False)
    driver_id: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False)
    pickup_latitude: Mapped[float] = mapped_column(Float, nullable=False)
    pickup_longitude: Mapped[float] = mapped_column(Float, nullable=False)
    pickup_address: Mapped[str] = mapped_column(String, default="", nullable=False)
    dropoff_latitude: Mapped[float] = mapped_column(Float, nullable=False)
    dropoff_longitude: Mapped[float] = mapped_column(Float, nullable=False)
    dropoff_address: Mapped[str] = mapped_column(String, default="", nullable=False)
    scheduled_at: Mapped[datetime] = mapped_column(nullable=False)
    distance_km: Mapped[float] = mapped_column(Float, nullable=False)
    estimated_fare: Mapped[float] = mapped_column(Float, nullable=False)
    payment_method: Mapped[str] = mapped_column(String, default="cash", nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False)
    accepted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    __table_args__ = (
        Index("idx_scheduled_passenger", "passenger_id"),
        Index("idx_scheduled_status_time", "status", "scheduled_at"),
    )


class SafetyRecord(Base):
    __tablename__ = "safety_records"

    record_id: Mapped[str] = mapped_column(String, primary_key=True)
    driver_id: Mapped[str] = mapped_column(String, nullable=False)
    kind: Mapped[str] = mapped_column(String, nullable=False)
    severity: Mapped[str] = mapped_column(String, nullable=False)
    trip_id: Mapped[str | None] = mapped_column(String, nullable=True)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    reported_by: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(String, default="pending", nullable=False)
    created_at: Mapped[datetime] = mapped_column(nullable=False)

    __table_args__ = (Index("idx_safety_driver_kind", "driver_id", "kind"),)


class FavoriteLocation(Base):
    __tablename__ = "favorite_locations"

    favorite_id: Mapped[str] = mapped_column(String, primary_key=True)
    owner_id: Mapped[str] = mapped_column(String, nullable=False)
    label: Mapped[str] = mapped_column(String, nullable=False)
    address: Mapped[str] = mapped_column(String, default="", nullable=False)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    icon: Mapped[str] = mapped_column(String, default="location", nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=lambda: utc_now())

    __table_args__ = (Index("idx_favorite_owner", "owner_id"),)


class SchemaMetadata(Base):
    __tablename__ = "schema_metadata"

    key: Mapped[str] = mapped_column(String, primary_key=True)
    value: Mapped[str] = mapped_column(String, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=lambda: utc_now(),
        onupdate=lambda: utc_now(),
    )
