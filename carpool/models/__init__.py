from carpool.models.base import Base
from carpool.models.user import User
from carpool.models.otp import OTPRecord, OTPPurpose, OTPStatus
from carpool.models.ride import (
    Ride,
    RideStop,
    RideDay,
    RideFrequency,
    TripType,
    VehicleType,
    ContactMethod,
    RideStatus,
    ModerationStatus,
)

__all__ = [
    "Base",
    "User",
    "OTPRecord",
    "OTPPurpose",
    "OTPStatus",
    "Ride",
    "RideStop",
    "RideDay",
    "RideFrequency",
    "TripType",
    "VehicleType",
    "ContactMethod",
    "RideStatus",
    "ModerationStatus",
]
