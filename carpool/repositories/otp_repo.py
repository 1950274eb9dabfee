"""
OTP Repository

Data access layer for OTPRecord model.

Status changes are conditional single-row UPDATEs: a transition only
happens if the row is still in the expected state and unexpired, so two
concurrent requests can never both spend the same code.
"""

from typing import Optional
from datetime import datetime, timezone, timedelta
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, and_

from carpool.repositories.base import BaseRepository
from carpool.models.otp import OTPRecord, OTPPurpose, OTPStatus
from carpool.core.config import settings
from carpool.core.security import generate_otp


class OTPRepository(BaseRepository[OTPRecord]):
    """Repository for OTPRecord model."""

    def __init__(self, db: AsyncSession):
        super().__init__(OTPRecord, db)

    # =================
    # Issue code
    # =================
    async def create_code(self, email: str, purpose: OTPPurpose) -> OTPRecord:
        """
        Issue a new code for an email and purpose.

        Outstanding codes for the same pair are consumed first and
        expired rows are purged. The email is stored lower-cased.

        Args:
            email: Address the code will be sent to
            purpose: Registration or password reset

        Returns:
            The new OTPRecord
        """
        await self.purge_expired()
        email = email.lower()
        await self.invalidate_codes(email, purpose)

        expires_at = datetime.now(timezone.utc) + timedelta(
            minutes=settings.OTP_EXPIRE_MINUTES
        )

        return await self.create(
            email=email,
            code=generate_otp(),
            purpose=purpose,
            status=OTPStatus.ISSUED,
            expires_at=expires_at,
        )

    # =================
    # Invalidate outstanding codes
    # =================
    async def invalidate_codes(self, email: str, purpose: OTPPurpose) -> None:
        """Mark every unspent code for this email and purpose as consumed."""
        await self.db.execute(
            update(OTPRecord)
            .where(
                and_(
                    OTPRecord.email == email.lower(),
                    OTPRecord.purpose == purpose,
                    OTPRecord.status != OTPStatus.CONSUMED,
                )
            )
            .values(status=OTPStatus.CONSUMED, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )

    # =================
    # Purge expired
    # =================
    async def purge_expired(self) -> int:
        """Delete rows past their expiry. Returns the number removed."""
        result = await self.db.execute(
            delete(OTPRecord)
            .where(OTPRecord.expires_at <= datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    # =================
    # Find usable code
    # =================
    async def find_code(
        self,
        email: str,
        code: str,
        purpose: OTPPurpose,
        status: OTPStatus,
    ) -> Optional[OTPRecord]:
        """
        Find an unexpired code in the given state.

        Returns:
            OTPRecord if found, None otherwise
        """
        result = await self.db.execute(
            select(OTPRecord)
            .where(
                and_(
                    OTPRecord.email == email.lower(),
                    OTPRecord.code == code,
                    OTPRecord.purpose == purpose,
                    OTPRecord.status == status,
                    OTPRecord.expires_at > datetime.now(timezone.utc),
                )
            )
            .order_by(OTPRecord.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    # =================
    # Transition status
    # =================
    async def transition(
        self,
        record_id,
        from_status: OTPStatus,
        to_status: OTPStatus,
    ) -> bool:
        """
        Move a code from one state to the next without committing.

        Returns:
            True if exactly this request performed the transition
        """
        result = await self.db.execute(
            update(OTPRecord)
            .where(
                and_(
                    OTPRecord.id == record_id,
                    OTPRecord.status == from_status,
                    OTPRecord.expires_at > datetime.now(timezone.utc),
                )
            )
            .values(status=to_status, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
