from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class MessageResponse(BaseModel):
    """Schema for simple message responses"""
    message: str
    success: bool = True

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "message": "OTP sent successfully",
                "success": True
            }
        }
    )


class ErrorResponse(BaseModel):
    """Uniform error envelope; `stack` only outside production."""
    success: bool = False
    message: str
    stack: Optional[str] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": False,
                "message": "Invalid or expired OTP"
            }
        }
    )
