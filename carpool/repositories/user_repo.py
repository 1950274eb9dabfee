"""
User Repository

Data access layer for User model.
All user-related database operations.
"""

from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_

from carpool.repositories.base import BaseRepository
from carpool.models import User


class UserRepository(BaseRepository[User]):
    """Repository for User model."""

    def __init__(self, db: AsyncSession):
        super().__init__(User, db)

    # =================
    # Get by email
    # =================
    async def get_by_email(self, email: str) -> Optional[User]:
        """Get a user by (lower-cased) email address."""
        result = await self.db.execute(
            select(User).where(User.email == email.lower())
        )
        return result.scalar_one_or_none()

    # =================
    # Get by username
    # =================
    async def get_by_username(self, username: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.username == username)
        )
        return result.scalar_one_or_none()

    # =================
    # Get by email or username
    # =================
    async def get_by_email_or_username(self, email: str, username: str) -> Optional[User]:
        """Return any user holding either identifier."""
        result = await self.db.execute(
            select(User)
            .where(or_(User.email == email.lower(), User.username == username))
            .limit(1)
        )
        return result.scalar_one_or_none()

    # =================
    # Add user (no commit)
    # =================
    async def add_user(
        self,
        username: str,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
    ) -> User:
        """
        Stage a new user in the current transaction.

        The caller commits, so the insert can share a transaction with
        the OTP consumption that authorizes it.
        """
        return await self.add(User(
            username=username,
            email=email.lower(),
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            is_admin=False,
        ))

    # =================
    # Update user
    # =================
    async def update_user(self, user_id, **kwargs) -> Optional[User]:
        """Update user fields."""
        return await self.update(user_id, **kwargs)
