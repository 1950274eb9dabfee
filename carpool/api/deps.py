from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional
from uuid import UUID
import logging

from carpool.core.exceptions import ForbiddenError, UnauthorizedError
from carpool.db.database import get_db
from carpool.models import User, Ride
from carpool.services.auth_service import AuthService
from carpool.services.ride_service import RideService
from carpool.utils.email import EmailService

logger = logging.getLogger(__name__)

# Security scheme for Swagger UI; missing headers are reported by get_current_user
security = HTTPBearer(auto_error=False)


# =====================================================
# Mail gateway
# =====================================================
def get_email_service(request: Request) -> EmailService:
    """The gateway built at startup and kept on app.state."""
    return request.app.state.email_service


# =====================================================
# Get Current user
# =====================================================
async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    Dependency that validates the bearer token and returns current user.

    Raises:
        UnauthorizedError: If the token is missing, invalid or its user is gone
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("Not authorized, no token provided")

    auth_service = AuthService(db)
    return await auth_service.get_current_user(credentials.credentials)


async def get_current_admin(
    current_user: User = Depends(get_current_user)
) -> User:
    """
    Dependency that ensures the user is an administrator.

    Builds on get_current_user, adds role check.
    """
    if not current_user.is_admin:
        logger.warning(f"Non-admin user {current_user.id} denied admin access")
        raise ForbiddenError("Access denied. Admin privileges required")
    return current_user


# =====================================================
# Ride ownership
# =====================================================
async def get_owned_ride(
    ride_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Ride:
    """Load a ride (404) and require the caller to own it (403)."""
    return await RideService(db).get_owned_ride(ride_id, current_user.id)
