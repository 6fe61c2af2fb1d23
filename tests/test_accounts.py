"""
Tests for charity registration and deletion, admin user management and the
audit trail's failure handling.
"""
from unittest.mock import AsyncMock

import pytest

from core.errors import ErrorCode, PlatformError
from database import audit as audit_db
from database import charities as charities_db
from database import profiles as profiles_db
from services import audit_service, charity_service, user_service

from tests.conftest import (
    ADMIN_ID, CHARITY_ID, CHARITY_USER_ID, DONOR_ID, charity_row, profile_row,
)

REGISTRATION = {
    "organizationName": "Bayanihan Relief",
    "description": "Community-run disaster relief for Metro Manila.",
    "contactEmail": "hello@bayanihan.example.org",
}


class TestRegisterCharity:
    """Tests for register_charity."""

    @pytest.mark.asyncio
    async def test_registers_pending(self, profiles, monkeypatch, side_effects):
        monkeypatch.setattr(charities_db, "get_charity_by_user", AsyncMock(return_value=None))
        create = AsyncMock(return_value=charity_row(verification_status="pending"))
        monkeypatch.setattr(charities_db, "create_charity", create)

        result = await charity_service.register_charity(REGISTRATION, CHARITY_USER_ID)

        assert result["verificationStatus"] == "pending"
        user_id, fields = create.await_args.args
        assert user_id == CHARITY_USER_ID
        assert fields["contact_email"] == "hello@bayanihan.example.org"
        assert side_effects["audit"].await_args.args[1] == "CHARITY_REGISTRATION"

    @pytest.mark.asyncio
    async def test_one_per_user(self, profiles, monkeypatch):
        monkeypatch.setattr(charities_db, "get_charity_by_user", AsyncMock(return_value=charity_row()))
        create = AsyncMock()
        monkeypatch.setattr(charities_db, "create_charity", create)

        with pytest.raises(PlatformError) as exc:
            await charity_service.register_charity(REGISTRATION, CHARITY_USER_ID)

        assert exc.value.code == ErrorCode.ALREADY_EXISTS
        assert exc.value.status_code == 409
        create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_donor_cannot_register(self, profiles):
        with pytest.raises(PlatformError) as exc:
            await charity_service.register_charity(REGISTRATION, DONOR_ID)
        assert exc.value.status_code == 403


class TestDeleteCharity:
    """Tests for delete_charity."""

    @pytest.fixture
    def charity(self, monkeypatch):
        mocks = {
            "active": AsyncMock(return_value=2),
            "delete": AsyncMock(return_value=True),
        }
        monkeypatch.setattr(charities_db, "get_charity", AsyncMock(return_value=charity_row()))
        monkeypatch.setattr(charities_db, "count_active_campaigns", mocks["active"])
        monkeypatch.setattr(charities_db, "delete_charity", mocks["delete"])
        return mocks

    @pytest.mark.asyncio
    async def test_blocked_by_active_campaigns(self, profiles, charity):
        with pytest.raises(PlatformError) as exc:
            await charity_service.delete_charity(CHARITY_ID, CHARITY_USER_ID)
        assert exc.value.code == ErrorCode.DELETION_BLOCKED
        charity["delete"].assert_not_awaited()

    @pytest.mark.asyncio
    async def test_deleted_without_active_campaigns(self, profiles, charity):
        charity["active"].return_value = 0
        assert await charity_service.delete_charity(CHARITY_ID, ADMIN_ID) is True

    @pytest.mark.asyncio
    async def test_stranger(self, profiles, charity):
        with pytest.raises(PlatformError) as exc:
            await charity_service.delete_charity(CHARITY_ID, DONOR_ID)
        assert exc.value.status_code == 403


class TestAdminUserManagement:
    """Tests for update_user_role and toggle_user_status."""

    @pytest.fixture
    def update_profile(self, monkeypatch):
        mock = AsyncMock(side_effect=lambda user_id, fields: {**profile_row(user_id, "donor"), **fields})
        monkeypatch.setattr(profiles_db, "update_profile", mock)
        return mock

    @pytest.mark.asyncio
    async def test_cannot_change_own_role(self, profiles, update_profile):
        with pytest.raises(PlatformError) as exc:
            await user_service.update_user_role(ADMIN_ID, "donor", ADMIN_ID)
        assert exc.value.message == "role: You cannot change your own role"
        update_profile.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cannot_ban_self(self, profiles, update_profile):
        with pytest.raises(PlatformError) as exc:
            await user_service.toggle_user_status(ADMIN_ID, False, ADMIN_ID)
        assert exc.value.details == {"field": "isActive"}
        update_profile.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_bans_donor(self, profiles, update_profile, side_effects):
        result = await user_service.toggle_user_status(DONOR_ID, False, ADMIN_ID)
        assert result["isActive"] is False
        assert side_effects["audit"].await_args.args[4] == {"is_active": False}

    @pytest.mark.asyncio
    async def test_promotes_donor(self, profiles, update_profile):
        result = await user_service.update_user_role(DONOR_ID, "charity", ADMIN_ID)
        assert result["role"] == "charity"
        assert update_profile.await_args.args == (DONOR_ID, {"role": "charity"})

    @pytest.mark.asyncio
    async def test_non_admin(self, profiles, update_profile):
        with pytest.raises(PlatformError) as exc:
            await user_service.update_user_role(DONOR_ID, "admin", DONOR_ID)
        assert exc.value.status_code == 403


class TestAuditLog:
    """Tests for log_audit_event."""

    @pytest.mark.asyncio
    async def test_write_failure_is_swallowed(self, monkeypatch, caplog):
        monkeypatch.setattr(audit_db, "insert_log", AsyncMock(side_effect=RuntimeError("disk full")))

        result = await audit_service.log_audit_event(ADMIN_ID, audit_service.USER_ROLE_UPDATED, "user", DONOR_ID)

        assert result is None
        assert "Failed to write audit log USER_ROLE_UPDATED" in caplog.text

    @pytest.mark.asyncio
    async def test_request_meta_filled_in(self, side_effects):
        token = audit_service.request_meta.set({"ip": "203.0.113.7", "user_agent": "pytest"})
        try:
            await audit_service.log_audit_event(ADMIN_ID, audit_service.USER_VERIFIED, "user", DONOR_ID)
        finally:
            audit_service.request_meta.reset(token)
        assert side_effects["audit"].await_args.args[5:] == ("203.0.113.7", "pytest")
