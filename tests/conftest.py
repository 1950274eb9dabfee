# tests/conftest.py
"""
Shared fixtures: in-memory database, recording mail gateway, HTTP client.
"""

import os
from typing import Any, AsyncGenerator, Dict, List, Optional, Tuple

# Environment must be set before carpool modules are imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("DEBUG", "false")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.pool import StaticPool

from carpool.api.deps import get_email_service
from carpool.core.security import create_access_token, hash_password
from carpool.db.database import Database
from carpool.main import create_app
from carpool.models import User
from carpool.repositories.user_repo import UserRepository


DEFAULT_PASSWORD = "SecurePass123"


# =============================================================================
# MAIL GATEWAY
# =============================================================================

class RecordingEmailService:
    """Mail gateway double that keeps every message instead of sending it."""

    def __init__(self, deliver: bool = True):
        self.deliver = deliver
        self.sent: List[Tuple[str, str, Dict[str, Any]]] = []

    async def send_otp_email(self, email: str, code: str) -> bool:
        self.sent.append(("otp", email, {"code": code}))
        return self.deliver

    async def send_password_reset_email(self, email: str, code: str) -> bool:
        self.sent.append(("reset", email, {"code": code}))
        return self.deliver

    async def send_contact_email(
        self,
        name: str,
        email: str,
        subject: str,
        message: str,
        phone: Optional[str] = None,
    ) -> bool:
        self.sent.append(
            ("contact", email, {"name": name, "subject": subject, "message": message, "phone": phone})
        )
        return self.deliver

    def last_code(self, email: str, kind: str = "otp") -> str:
        for sent_kind, recipient, data in reversed(self.sent):
            if sent_kind == kind and recipient == email:
                return data["code"]
        raise AssertionError(f"No {kind} email sent to {email}")


# =============================================================================
# DATABASE
# =============================================================================

@pytest.fixture
async def database() -> AsyncGenerator[Database, None]:
    """Fresh in-memory database per test; one shared connection."""
    db = Database(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
async def session(database: Database) -> AsyncGenerator[AsyncSession, None]:
    async with database.session_factory() as session:
        yield session


@pytest.fixture
def email_service() -> RecordingEmailService:
    return RecordingEmailService()


# =============================================================================
# APPLICATION
# =============================================================================

@pytest.fixture
def app(database: Database, email_service: RecordingEmailService):
    application = create_app()
    # The lifespan does not run under ASGITransport; wire state by hand
    application.state.database = database
    application.dependency_overrides[get_email_service] = lambda: email_service
    return application


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


# =============================================================================
# USERS
# =============================================================================

async def make_user(
    session: AsyncSession,
    username: str,
    email: Optional[str] = None,
    password: str = DEFAULT_PASSWORD,
    is_admin: bool = False,
) -> User:
    repo = UserRepository(session)
    user = await repo.add_user(
        username=username,
        email=email or f"{username}@nust.edu.pk",
        password_hash=hash_password(password),
        first_name=username.capitalize(),
        last_name="Tester",
    )
    user.is_admin = is_admin
    await session.commit()
    return user


def bearer(user: User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(subject=str(user.id))}"}


@pytest.fixture
async def rider(session: AsyncSession) -> User:
    return await make_user(session, "ayesha")


@pytest.fixture
async def other_rider(session: AsyncSession) -> User:
    return await make_user(session, "bilal")


@pytest.fixture
async def admin(session: AsyncSession) -> User:
    return await make_user(session, "moderator", is_admin=True)


# =============================================================================
# RIDES
# =============================================================================

def ride_payload(**overrides: Any) -> Dict[str, Any]:
    """A valid ride offer in wire (camelCase) form."""
    payload = {
        "startingPoint": "NUST H-12",
        "destination": "F-10 Markaz",
        "isNustStart": True,
        "isNustDest": False,
        "stops": ["G-11", "F-11"],
        "rideFrequency": "daily",
        "daysAvailable": ["Mon", "Wed", "Fri"],
        "tripType": "round-trip",
        "departureTime": "08:00",
        "returnTime": "17:30",
        "price": "250",
        "vehicleType": "car",
        "vehicleDetails": "White Corolla",
        "passengerCapacity": "3",
        "userName": "Ayesha Khan",
        "studentId": "2021-SEECS-123",
        "phoneNumber": "03001234567",
        "isPrimaryWhatsapp": True,
        "preferredContactMethod": "whatsapp",
        "shareContactConsent": True,
    }
    payload.update(overrides)
    return payload
