"""
Ride Service
Business logic for ride listings and their moderation.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession

from carpool.core.config import settings
from carpool.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from carpool.repositories.ride_repo import RideRepository
from carpool.models.ride import (
    Ride,
    RideStatus,
    ModerationStatus,
    TripType,
    VehicleType,
)
from carpool.schemas.ride import RideCreate, RideFilter, RideUpdate

logger = logging.getLogger(__name__)


class RideService:
    """Service class for ride operations."""

    def __init__(self, db: AsyncSession):
        """Initialize with database session."""
        self.db = db
        self.ride_repo = RideRepository(db)

    # ============================================================
    # Create Ride
    # ============================================================
    async def create_ride(self, ride_data: RideCreate, rider_id: UUID) -> Ride:
        """
        Create a new ride offer for a user.

        Rules are checked in a fixed order and the first failure is
        reported.

        Args:
            ride_data: Parsed ride payload
            rider_id: ID of the user offering the ride

        Returns:
            Created ride with its rider loaded

        Raises:
            ValidationError: If a listing rule is violated
        """
        self._check_new_ride(ride_data)

        fields = ride_data.model_dump(exclude={"stops", "days_available", "preferences"})
        fields["preferences"] = ride_data.preferences.model_dump(by_alias=True)
        fields.update(
            status=RideStatus.ACTIVE,
            moderation_status=ModerationStatus.APPROVED,
            is_flagged=False,
        )

        ride = await self.ride_repo.create_ride(
            rider_id=rider_id,
            fields=fields,
            stops=ride_data.stops,
            days_available=ride_data.days_available,
        )
        logger.info(f"Ride {ride.id} created by user {rider_id}")
        return ride

    @staticmethod
    def _check_new_ride(data: RideCreate) -> None:
        if not data.starting_point or not data.destination:
            raise ValidationError("Please provide both starting point and destination")

        if not data.is_nust_start and not data.is_nust_dest:
            raise ValidationError("At least one location must be NUST campus")

        if not data.days_available:
            raise ValidationError("Please select at least one day")

        if data.trip_type == TripType.ROUND_TRIP and not data.return_time:
            raise ValidationError("Return time is required for round trips")

        if not data.share_contact_consent:
            raise ValidationError("Contact sharing consent is required")

        if not data.user_name or not data.student_id or not data.phone_number:
            raise ValidationError("Please provide your name, student ID, and phone number")

        if data.vehicle_type == VehicleType.CAR and not data.passenger_capacity:
            raise ValidationError("Passenger capacity is required for cars")

        if not data.departure_time or not data.price or not data.vehicle_details:
            raise ValidationError("Please provide departure time, price, and vehicle details")

    # ============================================================
    # Listings
    # ============================================================
    async def list_active_rides(self) -> List[Ride]:
        """Newest active rides, capped at RIDES_LIST_LIMIT."""
        return await self.ride_repo.list_active(settings.RIDES_LIST_LIMIT)

    async def list_my_rides(self, rider_id: UUID) -> List[Ride]:
        return await self.ride_repo.list_for_rider(rider_id)

    async def filter_rides(self, criteria: RideFilter) -> List[Ride]:
        """Search active rides by route, campus flags, days and vehicle."""
        return await self.ride_repo.search(criteria)

    async def list_all_rides_for_admin(self) -> List[Ride]:
        return await self.ride_repo.list_all()

    # ============================================================
    # Get Single Ride
    # ============================================================
    async def get_ride(self, ride_id: UUID) -> Ride:
        """
        Get a ride by ID.

        Raises:
            NotFoundError: If the ride does not exist
        """
        ride = await self.ride_repo.get_by_id(ride_id)
        if not ride:
            raise NotFoundError("Ride not found")
        return ride

    async def get_owned_ride(self, ride_id: UUID, user_id: UUID) -> Ride:
        """
        Get a ride by ID, verifying ownership.

        Raises:
            NotFoundError: If the ride does not exist
            ForbiddenError: If the ride belongs to someone else
        """
        ride = await self.get_ride(ride_id)
        if ride.rider_id != user_id:
            raise ForbiddenError("Not authorized to perform this action")
        return ride

    # ============================================================
    # Update Ride
    # ============================================================
    async def update_ride(
        self,
        ride_id: UUID,
        ride_data: RideUpdate,
        user_id: UUID
    ) -> Ride:
        """
        Update a ride, verifying ownership.

        Only fields present in the request are written. The merged ride
        is not re-validated as a whole.

        Args:
            ride_id: ID of the ride to update
            ride_data: Fields to update
            user_id: ID of the requesting user

        Returns:
            Updated ride

        Raises:
            NotFoundError: If the ride does not exist
            ForbiddenError: If the ride belongs to someone else
            ValidationError: If a rejected ride would leave the cancelled state
        """
        ride = await self.get_owned_ride(ride_id, user_id)

        update_data = ride_data.model_dump(exclude_unset=True)

        new_status = update_data.get("status")
        if (
            new_status is not None
            and ride.moderation_status == ModerationStatus.REJECTED
            and new_status != RideStatus.CANCELLED
        ):
            raise ValidationError("A rejected ride cannot be reactivated")

        if "preferences" in update_data:
            update_data["preferences"] = ride_data.preferences.model_dump(by_alias=True)

        if not update_data:
            return ride

        ride = await self.ride_repo.update_ride(ride, **update_data)
        logger.info(f"Ride {ride.id} updated by owner")
        return ride

    # ============================================================
    # Delete Ride
    # ============================================================
    async def delete_ride(self, ride_id: UUID, user_id: UUID) -> None:
        """
        Delete a ride, verifying ownership.

        Raises:
            NotFoundError: If the ride does not exist
            ForbiddenError: If the ride belongs to someone else
        """
        ride = await self.get_owned_ride(ride_id, user_id)
        await self.ride_repo.delete_ride(ride)
        logger.info(f"Ride {ride_id} deleted by owner")

    # ============================================================
    # Moderation
    # ============================================================
    async def flag_ride(
        self,
        ride_id: UUID,
        admin_id: UUID,
        reason: Optional[str]
    ) -> Ride:
        """
        Flag a ride for review. The ride's status is left alone.

        Raises:
            ValidationError: If no reason is given
            NotFoundError: If the ride does not exist
        """
        if not reason or not reason.strip():
            raise ValidationError("Flag reason is required")

        ride = await self.get_ride(ride_id)

        ride = await self.ride_repo.update_ride(
            ride,
            is_flagged=True,
            flag_reason=reason.strip(),
            last_moderated_by=admin_id,
            last_moderated_at=datetime.now(timezone.utc),
        )
        logger.info(f"Ride {ride_id} flagged by admin {admin_id}")
        return ride

    async def moderate_ride(
        self,
        ride_id: UUID,
        admin_id: UUID,
        decision: Optional[ModerationStatus],
        notes: Optional[str] = None
    ) -> Ride:
        """
        Record a moderation decision.

        `pending` keeps the ride flagged; `approved` clears the flag;
        `rejected` clears the flag and cancels the ride.

        Raises:
            ValidationError: If no decision is given
            NotFoundError: If the ride does not exist
        """
        if decision is None:
            raise ValidationError("Moderation status is required")

        ride = await self.get_ride(ride_id)

        update_data = {
            "moderation_status": decision,
            "is_flagged": decision == ModerationStatus.PENDING,
            "last_moderated_by": admin_id,
            "last_moderated_at": datetime.now(timezone.utc),
        }
        if decision == ModerationStatus.REJECTED:
            update_data["status"] = RideStatus.CANCELLED
        if notes:
            update_data["admin_notes"] = notes

        ride = await self.ride_repo.update_ride(ride, **update_data)
        logger.info(f"Ride {ride_id} moderated as {decision.value} by admin {admin_id}")
        return ride

    async def admin_delete_ride(self, ride_id: UUID) -> None:
        """
        Delete any ride regardless of owner.

        Raises:
            NotFoundError: If the ride does not exist
        """
        ride = await self.get_ride(ride_id)
        await self.ride_repo.delete_ride(ride)
        logger.info(f"Ride {ride_id} deleted by admin")
