"""
OTP Model

Stores one-time passcodes for email verification at sign-up and for
the forgot-password flow.

A code moves through ISSUED -> VERIFIED -> CONSUMED and never back.
Registration consumes an ISSUED code directly; password reset needs the
intermediate VERIFIED step. Rows past `expires_at` are dead regardless
of status and get purged when new codes are issued.
"""

import enum

from sqlalchemy import Column, String, DateTime, Enum, Index
from .base import BaseModel


class OTPPurpose(enum.Enum):
    """What a code was issued for; codes never cross flows."""
    REGISTRATION = "registration"
    PASSWORD_RESET = "password_reset"


class OTPStatus(enum.Enum):
    ISSUED = "issued"
    VERIFIED = "verified"
    CONSUMED = "consumed"


class OTPRecord(BaseModel):
    __tablename__ = "otp_records"

    # No foreign key: registration codes exist before the user does
    email = Column(String(255), nullable=False, index=True)
    code = Column(String(10), nullable=False)
    purpose = Column(
        Enum(OTPPurpose, name="otp_purpose", values_callable=lambda x: [e.value for e in x]),
        nullable=False
    )
    status = Column(
        Enum(OTPStatus, name="otp_status", values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=OTPStatus.ISSUED
    )
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)

    __table_args__ = (
        Index("ix_otp_records_lookup", "email", "purpose", "status"),
    )
