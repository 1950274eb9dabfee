"""
Ride Models

A Ride is a carpool offer: route, schedule, vehicle, contact details,
an operational status and an independent moderation block.

Stops and available days live in child tables so rides can be matched
against them in SQL.
"""

import enum

from sqlalchemy import (
    Column,
    String,
    Boolean,
    ForeignKey,
    Text,
    DateTime,
    Enum,
    Integer,
    JSON,
    Uuid,
)
from sqlalchemy.ext.associationproxy import association_proxy
from sqlalchemy.ext.orderinglist import ordering_list
from sqlalchemy.orm import relationship

from carpool.db.database import Base
from .base import BaseModel


def _values(enum_cls):
    return [e.value for e in enum_cls]


class RideFrequency(enum.Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    ONE_TIME = "one-time"


class TripType(enum.Enum):
    ONE_WAY = "one-way"
    ROUND_TRIP = "round-trip"


class VehicleType(enum.Enum):
    CAR = "car"
    BIKE = "bike"


class ContactMethod(enum.Enum):
    WHATSAPP = "whatsapp"
    CALL = "call"
    SMS = "sms"
    EMAIL = "email"


class RideStatus(enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ModerationStatus(enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


def default_preferences() -> dict:
    return {
        "car": {
            "airConditioned": False,
            "smokingAllowed": False,
            "petsAllowed": False,
            "musicAllowed": False,
        },
        "bike": {
            "helmetProvided": False,
            "rainGearAvailable": False,
        },
    }


class RideStop(Base):
    """One intermediate stop; `position` keeps the declared order."""
    __tablename__ = "ride_stops"

    id = Column(Integer, primary_key=True, autoincrement=True)
    ride_id = Column(Uuid(as_uuid=True), ForeignKey("rides.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    name = Column(String(255), nullable=False)


class RideDay(Base):
    __tablename__ = "ride_days"

    id = Column(Integer, primary_key=True, autoincrement=True)
    ride_id = Column(Uuid(as_uuid=True), ForeignKey("rides.id", ondelete="CASCADE"), nullable=False, index=True)
    day = Column(String(20), nullable=False, index=True)


class Ride(BaseModel):
    __tablename__ = "rides"

    rider_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Route
    starting_point = Column(String(255), nullable=False)
    destination = Column(String(255), nullable=False)
    is_nust_start = Column(Boolean, default=False, nullable=False)
    is_nust_dest = Column(Boolean, default=False, nullable=False)

    # Schedule
    ride_frequency = Column(
        Enum(RideFrequency, name="ride_frequency", values_callable=_values),
        nullable=False,
        default=RideFrequency.MONTHLY
    )
    trip_type = Column(
        Enum(TripType, name="trip_type", values_callable=_values),
        nullable=False,
        default=TripType.ROUND_TRIP
    )
    departure_time = Column(String(50), nullable=False)
    return_time = Column(String(50), nullable=True)
    price = Column(String(50), nullable=False)

    # Vehicle
    vehicle_type = Column(
        Enum(VehicleType, name="vehicle_type", values_callable=_values),
        nullable=False,
        default=VehicleType.CAR
    )
    vehicle_details = Column(String(255), nullable=False)
    passenger_capacity = Column(String(20), nullable=True)
    preferences = Column(JSON, nullable=False, default=default_preferences)
    additional_info = Column(Text, nullable=True)

    # Contact
    user_name = Column(String(100), nullable=False)
    student_id = Column(String(50), nullable=False)
    phone_number = Column(String(30), nullable=False)
    is_primary_whatsapp = Column(Boolean, default=False, nullable=False)
    email = Column(String(255), nullable=True)
    preferred_contact_method = Column(
        Enum(ContactMethod, name="contact_method", values_callable=_values),
        nullable=False,
        default=ContactMethod.WHATSAPP
    )
    share_contact_consent = Column(Boolean, nullable=False)

    status = Column(
        Enum(RideStatus, name="ride_status", values_callable=_values),
        nullable=False,
        default=RideStatus.ACTIVE,
        index=True
    )

    # Moderation
    is_flagged = Column(Boolean, default=False, nullable=False)
    flag_reason = Column(Text, default="", nullable=False)
    moderation_status = Column(
        Enum(ModerationStatus, name="moderation_status", values_callable=_values),
        nullable=False,
        default=ModerationStatus.APPROVED
    )
    admin_notes = Column(Text, default="", nullable=False)
    last_moderated_by = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    last_moderated_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    rider = relationship("User", foreign_keys=[rider_id], lazy="joined")
    moderator = relationship("User", foreign_keys=[last_moderated_by], lazy="joined")
    stop_entries = relationship(
        "RideStop",
        order_by="RideStop.position",
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
        lazy="selectin"
    )
    day_entries = relationship(
        "RideDay",
        order_by="RideDay.id",
        cascade="all, delete-orphan",
        lazy="selectin"
    )

    stops = association_proxy("stop_entries", "name", creator=lambda name: RideStop(name=name))
    days_available = association_proxy("day_entries", "day", creator=lambda day: RideDay(day=day))
