"""
Security helpers: bcrypt password hashing, JWT session tokens and
numeric one-time passcodes.
"""

import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
from jose import JWTError, jwt

from carpool.core.config import settings

ACCESS_TOKEN_TYPE = "access"

# bcrypt only looks at the first 72 bytes and newer releases refuse longer input
BCRYPT_MAX_BYTES = 72


# =====================================================
# Passwords
# =====================================================
def _bcrypt_input(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    """
    Hash a plain-text password with a fresh bcrypt salt.

    Raises:
        ValueError: If the password is empty
    """
    if not password:
        raise ValueError("Password cannot be empty")
    return bcrypt.hashpw(_bcrypt_input(password), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not plain_password or not hashed_password:
        return False
    return bcrypt.checkpw(_bcrypt_input(plain_password), hashed_password.encode("utf-8"))


# =====================================================
# Session Tokens
# =====================================================
def create_access_token(subject: Any, expires_delta: Optional[timedelta] = None) -> str:
    """
    Sign a session token for a user id.

    Tokens are stateless: nothing is stored server-side and a token
    stops verifying once `exp` passes.
    """
    issued_at = datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(days=settings.ACCESS_TOKEN_EXPIRE_DAYS)

    claims = {
        "sub": str(subject),
        "type": ACCESS_TOKEN_TYPE,
        "iat": issued_at,
        "exp": issued_at + lifetime,
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Claims of a valid, unexpired session token; None otherwise."""
    try:
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None

    if claims.get("type") != ACCESS_TOKEN_TYPE:
        return None
    return claims


def get_token_subject(token: str) -> Optional[str]:
    claims = decode_access_token(token)
    return claims.get("sub") if claims else None


# =====================================================
# One-time Passcodes
# =====================================================
def generate_otp(length: Optional[int] = None) -> str:
    """Numeric passcode drawn from the OS CSPRNG."""
    length = length or settings.OTP_LENGTH
    return "".join(secrets.choice("0123456789") for _ in range(length))
