from pydantic import ConfigDict, EmailStr, Field, field_validator
from typing import Optional
from datetime import datetime
from uuid import UUID
import re

from carpool.schemas.common import CamelModel


def _check_password_strength(v: str) -> str:
    """
    Requirements:
    - At least 8 characters (checked by min_length)
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    """
    if not re.search(r"[A-Z]", v):
        raise ValueError("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", v):
        raise ValueError("Password must contain at least one lowercase letter")
    if not re.search(r"\d", v):
        raise ValueError("Password must contain at least one digit")
    return v


def _normalize_email(v: str) -> str:
    return v.strip().lower()


def _otp_field():
    return Field(
        min_length=4,
        max_length=10,
        pattern=r"^\d+$",
        description="Numeric one-time passcode from the email"
    )


# ============================================================
# Request Schemas (What client sends)
# ============================================================

class SendOTPRequest(CamelModel):
    """Ask for a sign-up verification code"""
    email: EmailStr

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return _normalize_email(v)


class RegisterRequest(CamelModel):
    """Profile plus the emailed code; creates the account"""

    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    username: str = Field(
        min_length=3,
        max_length=50,
        pattern=r"^[A-Za-z0-9_.-]+$",
        description="Letters, digits, dot, dash and underscore"
    )
    email: EmailStr
    password: str = Field(
        min_length=8,
        max_length=100,
        description="Password must be 8-100 characters"
    )
    otp: str = _otp_field()

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return _normalize_email(v)

    @field_validator("password")
    @classmethod
    def validate_password_strength(cls, v: str) -> str:
        return _check_password_strength(v)

    @field_validator("first_name", "last_name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Remove extra whitespace from name"""
        normalized = " ".join(v.split())
        if not normalized:
            raise ValueError("Name cannot be empty")
        return normalized

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "firstName": "Ayesha",
                "lastName": "Khan",
                "username": "ayesha_k",
                "email": "ayesha@example.com",
                "password": "SecurePass123",
                "otp": "482913"
            }
        }
    )


class LoginRequest(CamelModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class ForgotPasswordRequest(CamelModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return _normalize_email(v)


class VerifyResetOTPRequest(CamelModel):
    email: EmailStr
    otp: str = _otp_field()

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return _normalize_email(v)


class ResetPasswordRequest(CamelModel):
    """Schema for setting new password after the code was verified"""
    email: EmailStr
    otp: str = _otp_field()
    new_password: str = Field(
        min_length=8,
        max_length=100,
        description="Password must be 8-100 characters"
    )

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return _normalize_email(v)

    @field_validator("new_password")
    @classmethod
    def validate_password_strength(cls, v: str) -> str:
        return _check_password_strength(v)


class ProfileUpdate(CamelModel):
    """Sparse patch: omitted or null fields keep their current value"""

    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    bio: Optional[str] = Field(None, max_length=2000)
    profile_picture: Optional[str] = None
    password: Optional[str] = Field(None, min_length=8, max_length=100)

    @field_validator("password")
    @classmethod
    def validate_password_strength(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _check_password_strength(v)


# ============================================================
# Response Schemas (What server sends back)
# ============================================================

class UserResponse(CamelModel):
    """Public profile (NO password!)"""

    id: UUID
    first_name: str
    last_name: str
    username: str
    email: str
    is_admin: bool
    phone: Optional[str] = None
    bio: Optional[str] = None
    profile_picture: Optional[str] = None
    created_at: datetime


class AuthResponse(UserResponse):
    """Profile plus a session token"""

    token: str

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "550e8400-e29b-41d4-a716-446655440000",
                "firstName": "Ayesha",
                "lastName": "Khan",
                "username": "ayesha_k",
                "email": "ayesha@example.com",
                "isAdmin": False,
                "createdAt": "2024-01-01T00:00:00Z",
                "token": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9..."
            }
        }
    )
