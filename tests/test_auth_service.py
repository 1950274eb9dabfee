# tests/test_auth_service.py
"""
Tests for AuthService: passcodes, registration, login, reset, profile.
"""

import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select, update

from carpool.core.exceptions import (
    ConflictError,
    InvalidCredentialError,
    NotFoundError,
    ServiceUnavailableError,
    UnauthorizedError,
)
from carpool.core.security import create_access_token, get_token_subject, verify_password
from carpool.models import OTPRecord, OTPPurpose, OTPStatus, User
from carpool.schemas.auth import ProfileUpdate, RegisterRequest
from carpool.services.auth_service import AuthService

from conftest import DEFAULT_PASSWORD, RecordingEmailService


def register_request(email: str, otp: str, username: str = "ayesha_k") -> RegisterRequest:
    return RegisterRequest(
        first_name="Ayesha",
        last_name="Khan",
        username=username,
        email=email,
        password=DEFAULT_PASSWORD,
        otp=otp,
    )


async def expire_codes(session, email: str) -> None:
    await session.execute(
        update(OTPRecord)
        .where(OTPRecord.email == email)
        .values(expires_at=datetime.now(timezone.utc) - timedelta(seconds=1))
    )
    await session.commit()


async def codes_for(database, email: str):
    async with database.session_factory() as fresh:
        result = await fresh.execute(
            select(OTPRecord).where(OTPRecord.email == email).order_by(OTPRecord.created_at)
        )
        return list(result.scalars().all())


@pytest.fixture
def auth_service(session, email_service) -> AuthService:
    return AuthService(session, email_service)


# =============================================================================
# REGISTRATION CODES
# =============================================================================

class TestRequestOTP:

    @pytest.mark.asyncio
    async def test_issues_and_sends_code(self, auth_service, email_service, database):
        await auth_service.request_otp("new@nust.edu.pk")

        code = email_service.last_code("new@nust.edu.pk")
        records = await codes_for(database, "new@nust.edu.pk")
        assert len(records) == 1
        assert records[0].code == code
        assert records[0].purpose == OTPPurpose.REGISTRATION
        assert records[0].status == OTPStatus.ISSUED

    @pytest.mark.asyncio
    async def test_conflict_when_email_registered(self, auth_service, rider, email_service):
        with pytest.raises(ConflictError):
            await auth_service.request_otp(rider.email)

        assert email_service.sent == []

    @pytest.mark.asyncio
    async def test_reissue_supersedes_previous_code(self, auth_service, email_service, database):
        await auth_service.request_otp("new@nust.edu.pk")
        await auth_service.request_otp("new@nust.edu.pk")

        records = await codes_for(database, "new@nust.edu.pk")
        assert [r.status for r in records] == [OTPStatus.CONSUMED, OTPStatus.ISSUED]

    @pytest.mark.asyncio
    async def test_delivery_failure(self, session, database):
        service = AuthService(session, RecordingEmailService(deliver=False))

        with pytest.raises(ServiceUnavailableError):
            await service.request_otp("new@nust.edu.pk")

        # The row stays and simply expires
        assert len(await codes_for(database, "new@nust.edu.pk")) == 1


# =============================================================================
# REGISTRATION
# =============================================================================

class TestVerifyAndRegister:

    @pytest.mark.asyncio
    async def test_creates_user_and_returns_token(self, auth_service, email_service, database):
        await auth_service.request_otp("new@nust.edu.pk")
        code = email_service.last_code("new@nust.edu.pk")

        result = await auth_service.verify_and_register(register_request("new@nust.edu.pk", code))

        assert result.username == "ayesha_k"
        assert result.email == "new@nust.edu.pk"
        assert result.is_admin is False
        assert get_token_subject(result.token) == str(result.id)

        async with database.session_factory() as fresh:
            user = await fresh.get(User, result.id)
            assert user is not None
            assert user.password_hash != DEFAULT_PASSWORD
            assert verify_password(DEFAULT_PASSWORD, user.password_hash)

        records = await codes_for(database, "new@nust.edu.pk")
        assert records[0].status == OTPStatus.CONSUMED

    @pytest.mark.asyncio
    async def test_code_is_single_use(self, auth_service, email_service):
        await auth_service.request_otp("new@nust.edu.pk")
        code = email_service.last_code("new@nust.edu.pk")
        await auth_service.verify_and_register(register_request("new@nust.edu.pk", code))

        with pytest.raises(InvalidCredentialError):
            await auth_service.verify_and_register(
                register_request("new@nust.edu.pk", code, username="someone_else")
            )

    @pytest.mark.asyncio
    async def test_wrong_code_rejected(self, auth_service, email_service):
        await auth_service.request_otp("new@nust.edu.pk")
        code = email_service.last_code("new@nust.edu.pk")
        wrong = "000000" if code != "000000" else "111111"

        with pytest.raises(InvalidCredentialError):
            await auth_service.verify_and_register(register_request("new@nust.edu.pk", wrong))

    @pytest.mark.asyncio
    async def test_expired_code_rejected(self, auth_service, email_service, session):
        await auth_service.request_otp("new@nust.edu.pk")
        code = email_service.last_code("new@nust.edu.pk")
        await expire_codes(session, "new@nust.edu.pk")

        with pytest.raises(InvalidCredentialError):
            await auth_service.verify_and_register(register_request("new@nust.edu.pk", code))

    @pytest.mark.asyncio
    async def test_superseded_code_rejected(self, auth_service, email_service):
        await auth_service.request_otp("new@nust.edu.pk")
        first = email_service.last_code("new@nust.edu.pk")
        await auth_service.request_otp("new@nust.edu.pk")
        second = email_service.last_code("new@nust.edu.pk")

        if first != second:
            with pytest.raises(InvalidCredentialError):
                await auth_service.verify_and_register(register_request("new@nust.edu.pk", first))

        result = await auth_service.verify_and_register(register_request("new@nust.edu.pk", second))
        assert result.email == "new@nust.edu.pk"

    @pytest.mark.asyncio
    async def test_reset_code_cannot_register(self, auth_service, email_service, rider):
        await auth_service.request_password_reset(rider.email)
        code = email_service.last_code(rider.email, kind="reset")

        with pytest.raises(InvalidCredentialError):
            await auth_service.verify_and_register(register_request(rider.email, code))

    @pytest.mark.asyncio
    async def test_username_taken(self, auth_service, email_service, rider, database):
        await auth_service.request_otp("new@nust.edu.pk")
        code = email_service.last_code("new@nust.edu.pk")

        with pytest.raises(ConflictError):
            await auth_service.verify_and_register(
                register_request("new@nust.edu.pk", code, username=rider.username)
            )

        # The code was not spent on the failed attempt
        records = await codes_for(database, "new@nust.edu.pk")
        assert records[0].status == OTPStatus.ISSUED

    @pytest.mark.asyncio
    async def test_mixed_case_email(self, auth_service, email_service, database):
        await auth_service.request_otp("New.Student@NUST.edu.pk")
        code = email_service.last_code("New.Student@NUST.edu.pk")

        records = await codes_for(database, "new.student@nust.edu.pk")
        assert len(records) == 1

        result = await auth_service.verify_and_register(
            register_request("New.Student@NUST.edu.pk", code)
        )
        assert result.email == "new.student@nust.edu.pk"

    @pytest.mark.asyncio
    async def test_code_spent_concurrently(self, auth_service, email_service, session, database):
        await auth_service.request_otp("late@nust.edu.pk")
        code = email_service.last_code("late@nust.edu.pk")
        find_code = auth_service.otp_repo.find_code

        async def find_then_spend(*args, **kwargs):
            # Another request consumes the code right after this one read it
            record = await find_code(*args, **kwargs)
            await session.execute(
                update(OTPRecord)
                .where(OTPRecord.id == record.id)
                .values(status=OTPStatus.CONSUMED)
                .execution_options(synchronize_session=False)
            )
            return record

        with patch.object(auth_service.otp_repo, "find_code", new=find_then_spend):
            with pytest.raises(InvalidCredentialError):
                await auth_service.verify_and_register(
                    register_request("late@nust.edu.pk", code, username="late_comer")
                )

        # The half-written account was rolled back
        async with database.session_factory() as fresh:
            result = await fresh.execute(select(User).where(User.email == "late@nust.edu.pk"))
            assert result.scalar_one_or_none() is None

    @pytest.mark.asyncio
    async def test_unique_violation_on_insert_is_conflict(
        self, auth_service, email_service, rider, database
    ):
        taken_username = rider.username
        await auth_service.request_otp("new@nust.edu.pk")
        code = email_service.last_code("new@nust.edu.pk")

        # Both requests passed the availability check before either inserted
        with patch.object(
            auth_service.user_repo,
            "get_by_email_or_username",
            new=AsyncMock(return_value=None),
        ):
            with pytest.raises(ConflictError):
                await auth_service.verify_and_register(
                    register_request("new@nust.edu.pk", code, username=taken_username)
                )

        records = await codes_for(database, "new@nust.edu.pk")
        assert records[0].status == OTPStatus.ISSUED


# =============================================================================
# LOGIN
# =============================================================================

class TestLogin:

    @pytest.mark.asyncio
    async def test_success(self, auth_service, rider):
        result = await auth_service.login(rider.username, DEFAULT_PASSWORD)

        assert result.id == rider.id
        assert get_token_subject(result.token) == str(rider.id)

    @pytest.mark.asyncio
    async def test_wrong_password_and_unknown_user_look_the_same(self, auth_service, rider):
        with pytest.raises(InvalidCredentialError) as wrong_password:
            await auth_service.login(rider.username, "WrongPass123")
        with pytest.raises(InvalidCredentialError) as unknown_user:
            await auth_service.login("nobody", DEFAULT_PASSWORD)

        assert wrong_password.value.status_code == 401
        assert wrong_password.value.message == unknown_user.value.message == "Invalid username or password"


class TestCurrentUser:

    @pytest.mark.asyncio
    async def test_resolves_token(self, auth_service, rider):
        token = create_access_token(subject=str(rider.id))

        user = await auth_service.get_current_user(token)

        assert user.id == rider.id

    @pytest.mark.asyncio
    async def test_invalid_token(self, auth_service):
        with pytest.raises(UnauthorizedError):
            await auth_service.get_current_user("garbage")

    @pytest.mark.asyncio
    async def test_non_uuid_subject(self, auth_service):
        with pytest.raises(UnauthorizedError):
            await auth_service.get_current_user(create_access_token(subject="not-a-uuid"))

    @pytest.mark.asyncio
    async def test_deleted_user(self, auth_service, session, rider):
        token = create_access_token(subject=str(rider.id))
        await session.delete(rider)
        await session.commit()

        with pytest.raises(UnauthorizedError):
            await auth_service.get_current_user(token)


# =============================================================================
# PASSWORD RESET
# =============================================================================

class TestPasswordReset:

    @pytest.mark.asyncio
    async def test_unknown_email(self, auth_service):
        with pytest.raises(NotFoundError):
            await auth_service.request_password_reset("ghost@nust.edu.pk")

    @pytest.mark.asyncio
    async def test_full_flow(self, auth_service, email_service, rider):
        await auth_service.request_password_reset(rider.email)
        code = email_service.last_code(rider.email, kind="reset")

        await auth_service.verify_reset_otp(rider.email, code)
        await auth_service.reset_password(rider.email, code, "BrandNew456")

        result = await auth_service.login(rider.username, "BrandNew456")
        assert result.id == rider.id
        with pytest.raises(InvalidCredentialError):
            await auth_service.login(rider.username, DEFAULT_PASSWORD)

    @pytest.mark.asyncio
    async def test_reset_requires_verification(self, auth_service, email_service, rider):
        await auth_service.request_password_reset(rider.email)
        code = email_service.last_code(rider.email, kind="reset")

        with pytest.raises(InvalidCredentialError):
            await auth_service.reset_password(rider.email, code, "BrandNew456")

    @pytest.mark.asyncio
    async def test_reset_code_cannot_be_replayed(self, auth_service, email_service, rider):
        await auth_service.request_password_reset(rider.email)
        code = email_service.last_code(rider.email, kind="reset")
        await auth_service.verify_reset_otp(rider.email, code)
        await auth_service.reset_password(rider.email, code, "BrandNew456")

        with pytest.raises(InvalidCredentialError):
            await auth_service.reset_password(rider.email, code, "Another789")
        with pytest.raises(InvalidCredentialError):
            await auth_service.verify_reset_otp(rider.email, code)

    @pytest.mark.asyncio
    async def test_verify_twice_fails(self, auth_service, email_service, rider):
        await auth_service.request_password_reset(rider.email)
        code = email_service.last_code(rider.email, kind="reset")
        await auth_service.verify_reset_otp(rider.email, code)

        with pytest.raises(InvalidCredentialError):
            await auth_service.verify_reset_otp(rider.email, code)

    @pytest.mark.asyncio
    async def test_expired_verified_code(self, auth_service, email_service, rider, session):
        await auth_service.request_password_reset(rider.email)
        code = email_service.last_code(rider.email, kind="reset")
        await auth_service.verify_reset_otp(rider.email, code)
        await expire_codes(session, rider.email)

        with pytest.raises(InvalidCredentialError):
            await auth_service.reset_password(rider.email, code, "BrandNew456")

    @pytest.mark.asyncio
    async def test_code_spent_concurrently(self, auth_service, email_service, rider, session):
        email, username = rider.email, rider.username
        await auth_service.request_password_reset(email)
        code = email_service.last_code(email, kind="reset")
        await auth_service.verify_reset_otp(email, code)
        find_code = auth_service.otp_repo.find_code

        async def find_then_spend(*args, **kwargs):
            record = await find_code(*args, **kwargs)
            await session.execute(
                update(OTPRecord)
                .where(OTPRecord.id == record.id)
                .values(status=OTPStatus.CONSUMED)
                .execution_options(synchronize_session=False)
            )
            return record

        with patch.object(auth_service.otp_repo, "find_code", new=find_then_spend):
            with pytest.raises(InvalidCredentialError):
                await auth_service.reset_password(email, code, "BrandNew456")

        # The new password was rolled back with the code
        result = await auth_service.login(username, DEFAULT_PASSWORD)
        assert result.email == email


# =============================================================================
# PROFILE
# =============================================================================

class TestProfile:

    @pytest.mark.asyncio
    async def test_get_missing_profile(self, auth_service):
        with pytest.raises(NotFoundError):
            await auth_service.get_profile(uuid.uuid4())

    @pytest.mark.asyncio
    async def test_empty_patch_changes_nothing(self, auth_service, rider):
        before = (rider.first_name, rider.last_name, rider.phone, rider.bio, rider.password_hash)

        result = await auth_service.update_profile(rider.id, ProfileUpdate())

        user = await auth_service.get_profile(rider.id)
        assert (user.first_name, user.last_name, user.phone, user.bio, user.password_hash) == before
        assert result.token

    @pytest.mark.asyncio
    async def test_sparse_patch(self, auth_service, rider):
        patch = ProfileUpdate.model_validate({"bio": "Daily commuter", "firstName": None})

        result = await auth_service.update_profile(rider.id, patch)

        assert result.bio == "Daily commuter"
        assert result.first_name == "Ayesha"

    @pytest.mark.asyncio
    async def test_password_change_is_hashed(self, auth_service, rider):
        await auth_service.update_profile(rider.id, ProfileUpdate(password="Changed789"))

        user = await auth_service.get_profile(rider.id)
        assert verify_password("Changed789", user.password_hash)

