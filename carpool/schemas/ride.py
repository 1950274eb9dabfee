from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID

from pydantic import ConfigDict, EmailStr, Field, field_validator

from carpool.models.ride import (
    RideFrequency,
    TripType,
    VehicleType,
    ContactMethod,
    RideStatus,
    ModerationStatus,
)
from carpool.schemas.common import CamelModel


def _stringify(value: Any) -> Any:
    """Prices and capacities arrive as numbers from some clients."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


def _clean_list(values: List[str]) -> List[str]:
    return [v.strip() for v in values if v and v.strip()]


# ============================================================
# Preferences
# ============================================================

class CarPreferences(CamelModel):
    air_conditioned: bool = False
    smoking_allowed: bool = False
    pets_allowed: bool = False
    music_allowed: bool = False


class BikePreferences(CamelModel):
    helmet_provided: bool = False
    rain_gear_available: bool = False


class RidePreferences(CamelModel):
    car: CarPreferences = Field(default_factory=CarPreferences)
    bike: BikePreferences = Field(default_factory=BikePreferences)


# ============================================================
# Request Schemas (What client sends)
# ============================================================

class RideCreate(CamelModel):
    """
    Payload for a new ride offer.

    Required fields and the cross-field rules (campus endpoint, days,
    return time, consent, contact details) are enforced by RideService
    so that the first failing rule is the one reported.
    """

    # Route
    starting_point: Optional[str] = Field(None, max_length=255)
    destination: Optional[str] = Field(None, max_length=255)
    is_nust_start: bool = False
    is_nust_dest: bool = False
    stops: List[str] = Field(default_factory=list)

    # Schedule
    ride_frequency: RideFrequency = RideFrequency.MONTHLY
    days_available: List[str] = Field(default_factory=list)
    trip_type: TripType = TripType.ROUND_TRIP
    departure_time: Optional[str] = Field(None, max_length=50)
    return_time: Optional[str] = Field(None, max_length=50)
    price: Optional[str] = Field(None, max_length=50)

    # Vehicle
    vehicle_type: VehicleType = VehicleType.CAR
    vehicle_details: Optional[str] = Field(None, max_length=255)
    passenger_capacity: Optional[str] = Field(None, max_length=20)
    preferences: RidePreferences = Field(default_factory=RidePreferences)
    additional_info: Optional[str] = Field(None, max_length=2000)

    # Contact
    user_name: Optional[str] = Field(None, max_length=100)
    student_id: Optional[str] = Field(None, max_length=50)
    phone_number: Optional[str] = Field(None, max_length=30)
    is_primary_whatsapp: bool = False
    email: Optional[EmailStr] = None
    preferred_contact_method: ContactMethod = ContactMethod.WHATSAPP
    share_contact_consent: bool = False

    @field_validator("price", "passenger_capacity", mode="before")
    @classmethod
    def coerce_numbers(cls, v):
        return _stringify(v)

    @field_validator("stops", "days_available")
    @classmethod
    def strip_entries(cls, v: List[str]) -> List[str]:
        return _clean_list(v)

    @field_validator(
        "starting_point", "destination", "return_time",
        "user_name", "student_id", "phone_number",
        "departure_time", "price", "vehicle_details",
    )
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        """Trim; treat empty strings as missing."""
        if v is None:
            return None
        return v.strip() or None

    @field_validator("email", mode="before")
    @classmethod
    def empty_email_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "startingPoint": "NUST H-12",
                "destination": "F-10 Markaz",
                "isNustStart": True,
                "stops": ["G-11", "F-11"],
                "rideFrequency": "daily",
                "daysAvailable": ["Mon", "Wed", "Fri"],
                "tripType": "one-way",
                "departureTime": "17:30",
                "price": "250",
                "vehicleType": "car",
                "vehicleDetails": "White Corolla",
                "passengerCapacity": "3",
                "userName": "Ayesha Khan",
                "studentId": "2021-SEECS-123",
                "phoneNumber": "03001234567",
                "shareContactConsent": True
            }
        }
    )


_REQUIRED_TEXT = (
    "starting_point", "destination", "departure_time", "price",
    "vehicle_details", "user_name", "student_id", "phone_number",
)


class RideUpdate(CamelModel):
    """
    Partial update by the ride owner.

    Only the fields present in the request are validated and written.
    Moderation fields are not part of this schema and are ignored.
    """

    starting_point: Optional[str] = Field(None, max_length=255)
    destination: Optional[str] = Field(None, max_length=255)
    is_nust_start: Optional[bool] = None
    is_nust_dest: Optional[bool] = None
    stops: Optional[List[str]] = None

    ride_frequency: Optional[RideFrequency] = None
    days_available: Optional[List[str]] = None
    trip_type: Optional[TripType] = None
    departure_time: Optional[str] = Field(None, max_length=50)
    return_time: Optional[str] = Field(None, max_length=50)
    price: Optional[str] = Field(None, max_length=50)

    vehicle_type: Optional[VehicleType] = None
    vehicle_details: Optional[str] = Field(None, max_length=255)
    passenger_capacity: Optional[str] = Field(None, max_length=20)
    preferences: Optional[RidePreferences] = None
    additional_info: Optional[str] = Field(None, max_length=2000)

    user_name: Optional[str] = Field(None, max_length=100)
    student_id: Optional[str] = Field(None, max_length=50)
    phone_number: Optional[str] = Field(None, max_length=30)
    is_primary_whatsapp: Optional[bool] = None
    email: Optional[EmailStr] = None
    preferred_contact_method: Optional[ContactMethod] = None
    share_contact_consent: Optional[bool] = None

    status: Optional[RideStatus] = None

    @field_validator("price", "passenger_capacity", mode="before")
    @classmethod
    def coerce_numbers(cls, v):
        return _stringify(v)

    @field_validator(*_REQUIRED_TEXT)
    @classmethod
    def required_text_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            raise ValueError("Field cannot be null")
        v = v.strip()
        if not v:
            raise ValueError("Field cannot be empty")
        return v

    @field_validator("days_available")
    @classmethod
    def days_not_empty(cls, v: Optional[List[str]]) -> List[str]:
        days = _clean_list(v or [])
        if not days:
            raise ValueError("At least one day must be selected")
        return days

    @field_validator("stops")
    @classmethod
    def clean_stops(cls, v: Optional[List[str]]) -> List[str]:
        return _clean_list(v or [])

    @field_validator("share_contact_consent")
    @classmethod
    def consent_stays_true(cls, v: Optional[bool]) -> bool:
        if v is not True:
            raise ValueError("Contact sharing consent is required")
        return v

    @field_validator(
        "is_nust_start", "is_nust_dest", "ride_frequency", "trip_type",
        "vehicle_type", "preferences", "is_primary_whatsapp",
        "preferred_contact_method", "status",
    )
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("Field cannot be null")
        return v

    @field_validator("email", mode="before")
    @classmethod
    def empty_email_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class FlagRequest(CamelModel):
    flag_reason: Optional[str] = Field(None, max_length=2000)


class ModerateRequest(CamelModel):
    moderation_status: Optional[ModerationStatus] = None
    admin_notes: Optional[str] = Field(None, max_length=2000)


class RideFilter(CamelModel):
    """Search criteria for the public ride filter."""

    starting_point: Optional[str] = None
    destination: Optional[str] = None
    is_nust_start: Optional[bool] = None
    is_nust_dest: Optional[bool] = None
    days_available: List[str] = Field(default_factory=list)
    vehicle_type: Optional[VehicleType] = None

    @field_validator("starting_point", "destination")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None

    @field_validator("days_available", mode="before")
    @classmethod
    def split_days(cls, v):
        """Accept "Mon,Tue" as well as a list."""
        if v is None:
            return []
        if isinstance(v, str):
            v = v.split(",")
        return _clean_list(v)


# ============================================================
# Response Schemas (What server sends back)
# ============================================================

class RiderSummary(CamelModel):
    id: UUID
    first_name: str
    last_name: str
    email: str


class ModeratorSummary(CamelModel):
    id: UUID
    first_name: str
    last_name: str


class RideResponse(CamelModel):
    id: UUID
    rider_id: UUID
    rider: Optional[RiderSummary] = None

    starting_point: str
    destination: str
    is_nust_start: bool
    is_nust_dest: bool
    stops: List[str]

    ride_frequency: RideFrequency
    days_available: List[str]
    trip_type: TripType
    departure_time: str
    return_time: Optional[str] = None
    price: str

    vehicle_type: VehicleType
    vehicle_details: str
    passenger_capacity: Optional[str] = None
    preferences: RidePreferences
    additional_info: Optional[str] = None

    user_name: str
    student_id: str
    phone_number: str
    is_primary_whatsapp: bool
    email: Optional[str] = None
    preferred_contact_method: ContactMethod
    share_contact_consent: bool

    status: RideStatus

    is_flagged: bool
    flag_reason: str
    moderation_status: ModerationStatus
    admin_notes: str
    last_moderated_by: Optional[UUID] = None
    moderator: Optional[ModeratorSummary] = None
    last_moderated_at: Optional[datetime] = None

    created_at: datetime
    updated_at: datetime

    @field_validator("stops", "days_available", mode="before")
    @classmethod
    def proxy_to_list(cls, v):
        # association proxies are list-like but not lists
        return list(v) if v is not None else []


class RideCreateResponse(CamelModel):
    success: bool = True
    ride: RideResponse


class RideDeleteResponse(CamelModel):
    success: bool = True
    message: str
    id: UUID
