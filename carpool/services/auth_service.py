import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from carpool.core.exceptions import (
    ConflictError,
    InvalidCredentialError,
    NotFoundError,
    ServiceUnavailableError,
    UnauthorizedError,
)
from carpool.core.security import (
    create_access_token,
    hash_password,
    get_token_subject,
    verify_password,
)
from carpool.models import User
from carpool.models.otp import OTPPurpose, OTPStatus
from carpool.repositories.otp_repo import OTPRepository
from carpool.repositories.user_repo import UserRepository
from carpool.schemas.auth import AuthResponse, ProfileUpdate, RegisterRequest
from carpool.utils.email import EmailService

logger = logging.getLogger(__name__)

INVALID_OTP = "Invalid or expired OTP"


class AuthService:
    """
    Service class for identity operations: one-time passcodes,
    registration, login, password reset and profile management.
    """
    def __init__(self, db: AsyncSession, email_service: Optional[EmailService] = None):
        """
        Initialize with database session.

        Args:
            db: AsyncSession instance
            email_service: Mail gateway; only needed by flows that send codes
        """
        self.db = db
        self.email_service = email_service
        self.user_repo = UserRepository(db)
        self.otp_repo = OTPRepository(db)

    # ============================================================
    # Sign-up: request code
    # ============================================================
    async def request_otp(self, email: str) -> None:
        """
        Issue and email a registration code.

        Raises:
            ConflictError: If the email is already registered
            ServiceUnavailableError: If the email could not be sent
        """
        if await self.user_repo.get_by_email(email):
            raise ConflictError("User already exists with this email")

        record = await self.otp_repo.create_code(email, OTPPurpose.REGISTRATION)
        logger.info(f"Registration code issued for {email}")

        # The stored code is left to expire if delivery fails
        if not await self.email_service.send_otp_email(email, record.code):
            raise ServiceUnavailableError("Failed to send OTP email")

    # ============================================================
    # Sign-up: verify code and create account
    # ============================================================
    async def verify_and_register(self, data: RegisterRequest) -> AuthResponse:
        """
        Create the account authorized by a registration code.

        The user insert and the code consumption commit together, so a
        code yields at most one account.

        Raises:
            InvalidCredentialError: If the code is wrong, expired or spent
            ConflictError: If email or username is taken
        """
        record = await self.otp_repo.find_code(
            data.email, data.otp, OTPPurpose.REGISTRATION, OTPStatus.ISSUED
        )
        if not record:
            raise InvalidCredentialError(INVALID_OTP)

        if await self.user_repo.get_by_email_or_username(data.email, data.username):
            raise ConflictError("User already exists with this email or username")

        password_hash = hash_password(data.password)

        try:
            user = await self.user_repo.add_user(
                username=data.username,
                email=data.email,
                password_hash=password_hash,
                first_name=data.first_name,
                last_name=data.last_name,
            )
            consumed = await self.otp_repo.transition(
                record.id, OTPStatus.ISSUED, OTPStatus.CONSUMED
            )
            if not consumed:
                # Someone else spent the code first
                await self.db.rollback()
                raise InvalidCredentialError(INVALID_OTP)
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("User already exists with this email or username")

        await self.db.refresh(user)
        logger.info(f"User registered: {user.id}")
        return self._auth_response(user)

    # ============================================================
    # Login
    # ============================================================
    async def login(self, username: str, password: str) -> AuthResponse:
        """
        Authenticate by username and password.

        Raises:
            InvalidCredentialError: (401) for unknown user or wrong password alike
        """
        user = await self.user_repo.get_by_username(username)

        if not user or not verify_password(password, user.password_hash):
            raise InvalidCredentialError("Invalid username or password", status_code=401)

        return self._auth_response(user)

    # ============================================================
    # Current user from token
    # ============================================================
    async def get_current_user(self, token: str) -> User:
        """
        Resolve a session token to its user.

        Raises:
            UnauthorizedError: If the token is invalid/expired or the user is gone
        """
        user_id = get_token_subject(token)
        if not user_id:
            raise UnauthorizedError("Not authorized, token failed")

        try:
            user_uuid = UUID(user_id)
        except ValueError:
            raise UnauthorizedError("Not authorized, token failed")

        user = await self.user_repo.get_by_id(user_uuid)
        if not user:
            raise UnauthorizedError("Not authorized, user not found")

        return user

    # ============================================================
    # Password Reset - Request
    # ============================================================
    async def request_password_reset(self, email: str) -> None:
        """
        Issue and email a password reset code.

        Raises:
            NotFoundError: If no account uses this email
            ServiceUnavailableError: If the email could not be sent
        """
        if not await self.user_repo.get_by_email(email):
            raise NotFoundError("No user found with this email")

        record = await self.otp_repo.create_code(email, OTPPurpose.PASSWORD_RESET)
        logger.info(f"Password reset code issued for {email}")

        if not await self.email_service.send_password_reset_email(email, record.code):
            raise ServiceUnavailableError("Failed to send password reset email")

    # ============================================================
    # Password Reset - Verify Code
    # ============================================================
    async def verify_reset_otp(self, email: str, code: str) -> None:
        """
        Mark a reset code as verified so it can be used to set a password.

        Raises:
            InvalidCredentialError: If the code is wrong, expired or already used
        """
        record = await self.otp_repo.find_code(
            email, code, OTPPurpose.PASSWORD_RESET, OTPStatus.ISSUED
        )
        if not record or not await self.otp_repo.transition(
            record.id, OTPStatus.ISSUED, OTPStatus.VERIFIED
        ):
            await self.db.rollback()
            raise InvalidCredentialError(INVALID_OTP)

        await self.db.commit()

    # ============================================================
    # Password Reset - Reset Password
    # ============================================================
    async def reset_password(self, email: str, code: str, new_password: str) -> None:
        """
        Set a new password using a verified reset code.

        The code is consumed in the same transaction, so it cannot be
        replayed.

        Raises:
            InvalidCredentialError: If the code was not verified, expired or spent
            NotFoundError: If the account no longer exists
        """
        record = await self.otp_repo.find_code(
            email, code, OTPPurpose.PASSWORD_RESET, OTPStatus.VERIFIED
        )
        if not record:
            raise InvalidCredentialError(INVALID_OTP)

        user = await self.user_repo.get_by_email(email)
        if not user:
            raise NotFoundError("No user found with this email")

        user.password_hash = hash_password(new_password)

        if not await self.otp_repo.transition(
            record.id, OTPStatus.VERIFIED, OTPStatus.CONSUMED
        ):
            await self.db.rollback()
            raise InvalidCredentialError(INVALID_OTP)

        await self.db.commit()
        logger.info(f"Password reset for user {user.id}")

    # ============================================================
    # Profile
    # ============================================================
    async def get_profile(self, user_id: UUID) -> User:
        user = await self.user_repo.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    async def update_profile(self, user_id: UUID, patch: ProfileUpdate) -> AuthResponse:
        """
        Apply a sparse profile patch.

        Omitted and null fields keep their current values; a password,
        if present, is re-hashed.

        Raises:
            NotFoundError: If the user does not exist
        """
        user = await self.get_profile(user_id)

        update_data = patch.model_dump(exclude_unset=True, exclude_none=True)

        password = update_data.pop("password", None)
        if password:
            update_data["password_hash"] = hash_password(password)

        if update_data:
            user = await self.user_repo.update_user(user.id, **update_data)

        return self._auth_response(user)

    # ============================================================
    # Helper Methods
    # ============================================================
    def _auth_response(self, user: User) -> AuthResponse:
        """Public profile plus a fresh session token."""
        return AuthResponse(
            id=user.id,
            first_name=user.first_name,
            last_name=user.last_name,
            username=user.username,
            email=user.email,
            is_admin=user.is_admin,
            phone=user.phone,
            bio=user.bio,
            profile_picture=user.profile_picture,
            created_at=user.created_at,
            token=create_access_token(subject=str(user.id)),
        )
