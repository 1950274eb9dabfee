from carpool.repositories.base import BaseRepository
from carpool.repositories.user_repo import UserRepository
from carpool.repositories.otp_repo import OTPRepository
from carpool.repositories.ride_repo import RideRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
    "OTPRepository",
    "RideRepository",
]
