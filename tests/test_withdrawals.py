"""
Tests for charity withdrawals.
"""
import re
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from core.errors import ErrorCode, PlatformError
from database import charities as charities_db
from database import withdrawals as withdrawals_db
from services import withdrawal_service

from tests.conftest import CHARITY_ID, CHARITY_USER_ID, DONOR_ID, charity_row

BANK = {"bankName": "BDO Unibank", "accountNumber": "0012-3456-7890", "accountHolder": "Bayanihan Relief Inc."}


@pytest.fixture
def charity(monkeypatch):
    row = charity_row(available_balance=Decimal("5000.00"))
    monkeypatch.setattr(charities_db, "get_charity", AsyncMock(return_value=row))
    return row


@pytest.fixture
def create_withdrawal(monkeypatch):
    async def fake(charity_id, amount, bank_name, last4, holder, reference):
        return {
            "id": "00000000-0000-4000-8000-000000000200",
            "charity_id": charity_id,
            "amount": amount,
            "bank_name": bank_name,
            "bank_account_last4": last4,
            "account_holder": holder,
            "transaction_reference": reference,
            "status": "completed",
        }
    mock = AsyncMock(side_effect=fake)
    monkeypatch.setattr(withdrawals_db, "create_withdrawal", mock)
    return mock


class TestProcessWithdrawal:
    """Tests for process_withdrawal."""

    @pytest.mark.asyncio
    async def test_successful_withdrawal(self, profiles, charity, create_withdrawal, side_effects):
        result = await withdrawal_service.process_withdrawal(CHARITY_ID, 1500, BANK, CHARITY_USER_ID)

        assert result["amount"] == 1500.0
        assert result["bankAccountLast4"] == "7890"
        assert result["status"] == "completed"
        assert re.fullmatch(r"WTX-\d{13}-[A-Z0-9]{6}", result["transactionReference"])
        side_effects["notify"].assert_awaited_once()
        side_effects["audit"].assert_awaited_once()

    @pytest.mark.asyncio
    async def test_only_last_four_digits_stored(self, profiles, charity, create_withdrawal):
        await withdrawal_service.process_withdrawal(CHARITY_ID, 500, BANK, CHARITY_USER_ID)
        assert create_withdrawal.await_args.args[3] == "7890"
        assert "001234567890" not in create_withdrawal.await_args.args

    @pytest.mark.asyncio
    async def test_more_than_balance(self, profiles, charity, create_withdrawal):
        with pytest.raises(PlatformError) as exc:
            await withdrawal_service.process_withdrawal(CHARITY_ID, 5000.01, BANK, CHARITY_USER_ID)
        assert exc.value.code == ErrorCode.INSUFFICIENT_FUNDS
        assert exc.value.message.startswith("Insufficient balance")
        create_withdrawal.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_below_minimum(self, profiles, charity, create_withdrawal):
        with pytest.raises(PlatformError) as exc:
            await withdrawal_service.process_withdrawal(CHARITY_ID, 99.99, BANK, CHARITY_USER_ID)
        assert exc.value.code == ErrorCode.VALIDATION_ERROR
        assert exc.value.message == "Minimum withdrawal amount is ₱100"
        create_withdrawal.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_exact_minimum_allowed(self, profiles, charity, create_withdrawal):
        result = await withdrawal_service.process_withdrawal(CHARITY_ID, 100, BANK, CHARITY_USER_ID)
        assert result["amount"] == 100.0

    @pytest.mark.asyncio
    async def test_not_owner(self, profiles, charity, create_withdrawal):
        with pytest.raises(PlatformError) as exc:
            await withdrawal_service.process_withdrawal(CHARITY_ID, 500, BANK, DONOR_ID)
        assert exc.value.status_code == 403
        create_withdrawal.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_balance_drained_concurrently(self, profiles, charity, monkeypatch):
        """The locked deduction returns None when another withdrawal got there first."""
        monkeypatch.setattr(withdrawals_db, "create_withdrawal", AsyncMock(return_value=None))
        with pytest.raises(PlatformError) as exc:
            await withdrawal_service.process_withdrawal(CHARITY_ID, 4000, BANK, CHARITY_USER_ID)
        assert exc.value.code == ErrorCode.INSUFFICIENT_FUNDS

    @pytest.mark.asyncio
    async def test_account_number_must_be_digits(self, profiles, charity, create_withdrawal):
        with pytest.raises(PlatformError) as exc:
            await withdrawal_service.process_withdrawal(
                CHARITY_ID, 500, {**BANK, "accountNumber": "ABCD1234"}, CHARITY_USER_ID
            )
        assert exc.value.code == ErrorCode.VALIDATION_ERROR


class TestWithdrawalHistory:
    """Tests for get_withdrawal_history."""

    @pytest.mark.asyncio
    async def test_owner_sees_history(self, profiles, charity, monkeypatch):
        rows = [{
            "id": "00000000-0000-4000-8000-000000000201", "charity_id": CHARITY_ID,
            "amount": Decimal("750.00"), "bank_name": "BPI", "bank_account_last4": "4321",
            "transaction_reference": "WTX-1700000000000-ABC123",
        }]
        monkeypatch.setattr(withdrawals_db, "list_by_charity", AsyncMock(return_value=rows))
        history = await withdrawal_service.get_withdrawal_history(CHARITY_ID, CHARITY_USER_ID)
        assert [h["amount"] for h in history] == [750.0]

    @pytest.mark.asyncio
    async def test_others_are_refused(self, profiles, charity):
        with pytest.raises(PlatformError) as exc:
            await withdrawal_service.get_withdrawal_history(CHARITY_ID, DONOR_ID)
        assert exc.value.status_code == 403
