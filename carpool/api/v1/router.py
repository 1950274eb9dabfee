from fastapi import APIRouter
from carpool.api.v1.endpoints import auth, rides, contact

# ============================================================
# Main API v1 Router
# ============================================================

api_router = APIRouter()

# Include auth routes at /auth
api_router.include_router(
    auth.router,
    prefix="/auth"
)

# Include ride routes at /rides
api_router.include_router(
    rides.router,
    prefix="/rides"
)

# Contact form at /contact
api_router.include_router(
    contact.router,
    prefix="/contact"
)
