"""
Ride Repository

Data access layer for Ride model, including the route search.
"""

from typing import Any, Dict, List, Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, or_

from carpool.repositories.base import BaseRepository
from carpool.models.ride import Ride, RideStop, RideDay, RideStatus
from carpool.schemas.ride import RideFilter


def _like_pattern(term: str) -> str:
    """Case-insensitive substring pattern with LIKE wildcards escaped."""
    escaped = (
        term.replace("\\", "\\\\")
        .replace("%", "\\%")
        .replace("_", "\\_")
    )
    return f"%{escaped}%"


def _matches(column, term: str):
    return column.ilike(_like_pattern(term), escape="\\")


def _stop_matches(term: str):
    return Ride.stop_entries.any(_matches(RideStop.name, term))


def route_clause(starting_point: Optional[str], destination: Optional[str]):
    """
    Build the route part of a ride search.

    With both ends given a ride matches when any of these hold:
      a) start ~ S and destination ~ D
      b) start ~ S and some stop ~ D
      c) some stop ~ S and destination ~ D
      d) some stop ~ S or some stop ~ D
    This approximates "the declared route touches both places"; it is
    not a reachability check over the stop order.
    """
    if starting_point and destination:
        return or_(
            and_(_matches(Ride.starting_point, starting_point), _matches(Ride.destination, destination)),
            and_(_matches(Ride.starting_point, starting_point), _stop_matches(destination)),
            and_(_stop_matches(starting_point), _matches(Ride.destination, destination)),
            or_(_stop_matches(starting_point), _stop_matches(destination)),
        )
    if starting_point:
        return or_(_matches(Ride.starting_point, starting_point), _stop_matches(starting_point))
    if destination:
        return or_(_matches(Ride.destination, destination), _stop_matches(destination))
    return None


class RideRepository(BaseRepository[Ride]):
    """Repository for Ride model."""

    def __init__(self, db: AsyncSession):
        super().__init__(Ride, db)

    def _select(self):
        # Reload eager relationships even for objects already in the session
        return select(Ride).execution_options(populate_existing=True)

    async def _all(self, stmt) -> List[Ride]:
        result = await self.db.execute(stmt)
        return list(result.unique().scalars().all())

    async def get_by_id(self, id: Any) -> Optional[Ride]:
        result = await self.db.execute(self._select().where(Ride.id == id))
        return result.unique().scalar_one_or_none()

    # =================
    # Create
    # =================
    async def create_ride(
        self,
        rider_id: UUID,
        fields: Dict[str, Any],
        stops: List[str],
        days_available: List[str],
    ) -> Ride:
        ride = Ride(rider_id=rider_id, **fields)
        ride.stops = stops
        ride.days_available = days_available

        self.db.add(ride)
        await self.db.commit()
        return await self.get_by_id(ride.id)

    # =================
    # Listings
    # =================
    async def list_active(self, limit: int) -> List[Ride]:
        """Active rides, newest first, capped at `limit`."""
        stmt = (
            self._select()
            .where(Ride.status == RideStatus.ACTIVE)
            .order_by(Ride.created_at.desc())
            .limit(limit)
        )
        return await self._all(stmt)

    async def list_for_rider(self, rider_id: UUID) -> List[Ride]:
        """Every ride a user owns, newest first."""
        stmt = (
            self._select()
            .where(Ride.rider_id == rider_id)
            .order_by(Ride.created_at.desc())
        )
        return await self._all(stmt)

    async def list_all(self) -> List[Ride]:
        stmt = self._select().order_by(Ride.created_at.desc())
        return await self._all(stmt)

    # =================
    # Search
    # =================
    async def search(self, criteria: RideFilter) -> List[Ride]:
        """
        Active rides matching a route and optional narrowing filters.

        Args:
            criteria: Parsed filter parameters

        Returns:
            Matching rides, newest first
        """
        conditions = [Ride.status == RideStatus.ACTIVE]

        route = route_clause(criteria.starting_point, criteria.destination)
        if route is not None:
            conditions.append(route)

        # Campus flags only narrow when asked for
        if criteria.is_nust_start:
            conditions.append(Ride.is_nust_start.is_(True))
        if criteria.is_nust_dest:
            conditions.append(Ride.is_nust_dest.is_(True))

        if criteria.days_available:
            conditions.append(
                Ride.day_entries.any(RideDay.day.in_(criteria.days_available))
            )

        if criteria.vehicle_type is not None:
            conditions.append(Ride.vehicle_type == criteria.vehicle_type)

        stmt = (
            self._select()
            .where(and_(*conditions))
            .order_by(Ride.created_at.desc())
        )
        return await self._all(stmt)

    # =================
    # Update
    # =================
    async def update_ride(self, ride: Ride, **fields) -> Ride:
        """Write the given fields; `stops`/`days_available` replace the lists."""
        for key, value in fields.items():
            setattr(ride, key, value)

        await self.db.commit()
        return await self.get_by_id(ride.id)

    # =================
    # Delete
    # =================
    async def delete_ride(self, ride: Ride) -> None:
        await self.db.delete(ride)
        await self.db.commit()
