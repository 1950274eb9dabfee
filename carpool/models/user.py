from sqlalchemy import Column, String, Boolean, Text
from .base import BaseModel


class User(BaseModel):
    __tablename__ = "users"

    username = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)

    # Profile
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    phone = Column(String(30), nullable=True)
    bio = Column(Text, nullable=True)
    profile_picture = Column(Text, nullable=True)

    is_admin = Column(Boolean, default=False, nullable=False)
