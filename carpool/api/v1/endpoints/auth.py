from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from carpool.db.database import get_db
from carpool.schemas.auth import (
    SendOTPRequest,
    RegisterRequest,
    LoginRequest,
    ForgotPasswordRequest,
    VerifyResetOTPRequest,
    ResetPasswordRequest,
    ProfileUpdate,
    UserResponse,
    AuthResponse,
)
from carpool.schemas.common import MessageResponse, ErrorResponse
from carpool.services.auth_service import AuthService
from carpool.api.deps import get_current_user, get_email_service
from carpool.models.user import User
from carpool.utils.email import EmailService

# ============================================================
# Router Setup
# ============================================================

router = APIRouter(tags=["Authentication"])


# ============================================================
# Registration Endpoints
# ============================================================

@router.post(
    "/send-otp",
    response_model=MessageResponse,
    responses={
        200: {"description": "Verification code sent"},
        400: {"model": ErrorResponse, "description": "Email already registered"},
        500: {"model": ErrorResponse, "description": "Email could not be sent"},
    }
)
async def send_otp(
    request_data: SendOTPRequest,
    db: AsyncSession = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
):
    """
    Email a sign-up verification code.

    Any earlier unused code for the same address stops working.
    """
    auth_service = AuthService(db, email_service)
    await auth_service.request_otp(request_data.email)
    return MessageResponse(message="OTP sent successfully")


@router.post(
    "/verify-otp",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        201: {"description": "User created successfully"},
        400: {"model": ErrorResponse, "description": "Invalid code or user already exists"},
    }
)
async def verify_otp(
    user_data: RegisterRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Verify the emailed code and create the account.

    Returns the user's profile and a session token.
    """
    auth_service = AuthService(db)
    return await auth_service.verify_and_register(user_data)


# ============================================================
# Login Endpoint
# ============================================================
@router.post(
    "/login",
    response_model=AuthResponse,
    responses={
        200: {"description": "Login successful"},
        401: {"model": ErrorResponse, "description": "Invalid credentials"},
    }
)
async def login(
    login_data: LoginRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Authenticate with username and password.

    - **username**: Account username
    - **password**: Account password
    """
    auth_service = AuthService(db)
    return await auth_service.login(login_data.username, login_data.password)


# ============================================================
# Password Reset Endpoints
# ============================================================

@router.post(
    "/forgot-password",
    response_model=MessageResponse,
    responses={
        404: {"model": ErrorResponse, "description": "No user with this email"},
        500: {"model": ErrorResponse, "description": "Email could not be sent"},
    }
)
async def forgot_password(
    request_data: ForgotPasswordRequest,
    db: AsyncSession = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
):
    """Email a password reset code."""
    auth_service = AuthService(db, email_service)
    await auth_service.request_password_reset(request_data.email)
    return MessageResponse(message="OTP sent to email for password reset")


@router.post(
    "/verify-reset-otp",
    response_model=MessageResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid or expired code"},
    }
)
async def verify_reset_otp(
    request_data: VerifyResetOTPRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Check a password reset code.

    A verified code can then be used once with /reset-password.
    """
    auth_service = AuthService(db)
    await auth_service.verify_reset_otp(request_data.email, request_data.otp)
    return MessageResponse(message="OTP verified. You can now reset your password.")


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Code not verified, expired or used"},
        404: {"model": ErrorResponse, "description": "User not found"},
    }
)
async def reset_password(
    request_data: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db)
):
    """Set a new password using a verified reset code."""
    auth_service = AuthService(db)
    await auth_service.reset_password(
        request_data.email,
        request_data.otp,
        request_data.new_password
    )
    return MessageResponse(message="Password reset successful. Please login.")


# ============================================================
# Profile Endpoints
# ============================================================

@router.get(
    "/profile",
    response_model=UserResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    }
)
async def get_profile(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get the current user's profile."""
    auth_service = AuthService(db)
    return await auth_service.get_profile(current_user.id)


@router.put(
    "/profile",
    response_model=AuthResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    }
)
async def update_profile(
    update_data: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Update the current user's profile.

    Only provided fields are changed. The response carries a fresh token.
    """
    auth_service = AuthService(db)
    return await auth_service.update_profile(current_user.id, update_data)
