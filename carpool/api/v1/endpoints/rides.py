"""
Ride Endpoints
HTTP API for ride listings, owner updates and admin moderation.
"""

from typing import List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from carpool.db.database import get_db
from carpool.api.deps import get_current_user, get_current_admin, get_owned_ride
from carpool.models.user import User
from carpool.models.ride import Ride, VehicleType
from carpool.schemas.common import ErrorResponse
from carpool.schemas.ride import (
    RideCreate,
    RideUpdate,
    RideFilter,
    FlagRequest,
    ModerateRequest,
    RideResponse,
    RideCreateResponse,
    RideDeleteResponse,
)
from carpool.services.ride_service import RideService

# ============================================================
# Router Setup
# ============================================================
router = APIRouter(tags=["Rides"])


def filter_params(
    starting_point: Optional[str] = Query(None, alias="startingPoint"),
    destination: Optional[str] = Query(None),
    is_nust_start: Optional[bool] = Query(None, alias="isNustStart"),
    is_nust_dest: Optional[bool] = Query(None, alias="isNustDest"),
    days_available: Optional[str] = Query(
        None,
        alias="daysAvailable",
        description="Comma-separated days, e.g. Mon,Wed"
    ),
    vehicle_type: Optional[VehicleType] = Query(None, alias="vehicleType"),
) -> RideFilter:
    return RideFilter(
        starting_point=starting_point,
        destination=destination,
        is_nust_start=is_nust_start,
        is_nust_dest=is_nust_dest,
        days_available=days_available,
        vehicle_type=vehicle_type,
    )


# ============================================================
# Create Ride
# ============================================================

@router.post(
    "",
    response_model=RideCreateResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        201: {"description": "Ride created successfully"},
        400: {"model": ErrorResponse, "description": "Invalid ride data"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    }
)
async def create_ride(
    ride_data: RideCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Offer a new ride.

    The ride is owned by the authenticated user and starts out active
    and approved.
    """
    ride_service = RideService(db)
    ride = await ride_service.create_ride(ride_data, current_user.id)
    return RideCreateResponse(ride=RideResponse.model_validate(ride))


# ============================================================
# List Rides
# ============================================================
@router.get(
    "",
    response_model=List[RideResponse],
)
async def list_rides(db: AsyncSession = Depends(get_db)):
    """Newest active rides."""
    ride_service = RideService(db)
    return await ride_service.list_active_rides()


@router.get(
    "/filter",
    response_model=List[RideResponse],
)
async def filter_rides(
    criteria: RideFilter = Depends(filter_params),
    db: AsyncSession = Depends(get_db)
):
    """
    Search active rides.

    Places match case-insensitively against the start, destination and
    stops. Campus flags only narrow the search when set to true.
    """
    ride_service = RideService(db)
    return await ride_service.filter_rides(criteria)


@router.get(
    "/myrides",
    response_model=List[RideResponse],
    responses={
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    }
)
async def my_rides(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """All rides offered by the authenticated user, in any status."""
    ride_service = RideService(db)
    return await ride_service.list_my_rides(current_user.id)


# ============================================================
# Admin
# ============================================================
@router.get(
    "/admin/all",
    response_model=List[RideResponse],
    responses={
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Admin privileges required"},
    }
)
async def admin_list_rides(
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """Every ride, including cancelled and completed ones."""
    ride_service = RideService(db)
    return await ride_service.list_all_rides_for_admin()


@router.delete(
    "/admin/{ride_id}",
    response_model=RideDeleteResponse,
    responses={
        403: {"model": ErrorResponse, "description": "Admin privileges required"},
        404: {"model": ErrorResponse, "description": "Ride not found"},
    }
)
async def admin_delete_ride(
    ride_id: UUID,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """Delete any ride regardless of its owner."""
    ride_service = RideService(db)
    await ride_service.admin_delete_ride(ride_id)
    return RideDeleteResponse(message="Ride deleted by admin", id=ride_id)


@router.put(
    "/{ride_id}/flag",
    response_model=RideResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Flag reason is required"},
        403: {"model": ErrorResponse, "description": "Admin privileges required"},
        404: {"model": ErrorResponse, "description": "Ride not found"},
    }
)
async def flag_ride(
    ride_id: UUID,
    flag_data: FlagRequest,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """Flag a ride for review."""
    ride_service = RideService(db)
    return await ride_service.flag_ride(ride_id, admin.id, flag_data.flag_reason)


@router.put(
    "/{ride_id}/moderate",
    response_model=RideResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Moderation status is required"},
        403: {"model": ErrorResponse, "description": "Admin privileges required"},
        404: {"model": ErrorResponse, "description": "Ride not found"},
    }
)
async def moderate_ride(
    ride_id: UUID,
    moderation_data: ModerateRequest,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Record a moderation decision.

    Rejecting a ride also cancels it.
    """
    ride_service = RideService(db)
    return await ride_service.moderate_ride(
        ride_id,
        admin.id,
        moderation_data.moderation_status,
        moderation_data.admin_notes
    )


# ============================================================
# Get Single Ride
# ============================================================
@router.get(
    "/{ride_id}",
    response_model=RideResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Ride not found"},
    }
)
async def get_ride(
    ride_id: UUID,
    db: AsyncSession = Depends(get_db)
):
    ride_service = RideService(db)
    return await ride_service.get_ride(ride_id)


# ============================================================
# Update Ride
# ============================================================
@router.put(
    "/{ride_id}",
    response_model=RideResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid field value"},
        403: {"model": ErrorResponse, "description": "Not the ride owner"},
        404: {"model": ErrorResponse, "description": "Ride not found"},
    }
)
async def update_ride(
    ride_data: RideUpdate,
    ride: Ride = Depends(get_owned_ride),
    db: AsyncSession = Depends(get_db)
):
    """
    Update a ride you own.

    Only provided fields are changed. Moderation fields are ignored.
    """
    ride_service = RideService(db)
    return await ride_service.update_ride(ride.id, ride_data, ride.rider_id)


# ============================================================
# Delete Ride
# ============================================================
@router.delete(
    "/{ride_id}",
    response_model=RideDeleteResponse,
    responses={
        403: {"model": ErrorResponse, "description": "Not the ride owner"},
        404: {"model": ErrorResponse, "description": "Ride not found"},
    }
)
async def delete_ride(
    ride: Ride = Depends(get_owned_ride),
    db: AsyncSession = Depends(get_db)
):
    """Delete a ride you own."""
    ride_service = RideService(db)
    await ride_service.delete_ride(ride.id, ride.rider_id)
    return RideDeleteResponse(message="Ride deleted successfully", id=ride.id)
