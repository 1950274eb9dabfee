from typing import Optional

from pydantic import EmailStr, Field, field_validator

from carpool.schemas.common import CamelModel


class ContactRequest(CamelModel):
    """Contact form submission relayed to the support inbox"""

    name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    subject: str = Field(min_length=1, max_length=200)
    phone: Optional[str] = Field(None, max_length=30)
    message: str = Field(min_length=1, max_length=5000)

    @field_validator("name", "subject", "message")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Please fill in all required fields.")
        return v
