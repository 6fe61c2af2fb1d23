"""
Tests for seed and milestone fund release.
"""
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from core.errors import ErrorCode, PlatformError
from core.event_bus import FUNDS_RELEASED
from database import campaigns as campaigns_db
from database import disbursements as disbursements_db
from database import milestones as milestones_db
from services import fund_service

from tests.conftest import (
    ADMIN_ID, CAMPAIGN_ID, CHARITY_ID, CHARITY_USER_ID, MILESTONE_ID, campaign_row,
)


class FakeLedger:
    """In-memory stand-in for the locked release queries."""

    def __init__(self, campaign: dict, milestone: dict = None):
        self.campaign = campaign
        self.milestone = milestone
        self.available_balance = Decimal("0")
        self.disbursements = []

    async def get_campaign(self, campaign_id):
        return dict(self.campaign) if campaign_id == self.campaign["id"] else None

    async def get_seed_disbursement(self, campaign_id):
        return next((d for d in self.disbursements if d["disbursement_type"] == "seed"), None)

    async def get_milestone(self, milestone_id):
        return dict(self.milestone) if self.milestone and milestone_id == self.milestone["id"] else None

    def _record(self, kind, amount, admin_id, notes, milestone_id=None):
        row = {
            "id": f"00000000-0000-4000-8000-0000000001{len(self.disbursements):02d}",
            "campaign_id": self.campaign["id"],
            "charity_id": CHARITY_ID,
            "milestone_id": milestone_id,
            "amount": amount,
            "disbursement_type": kind,
            "approved_by": admin_id,
            "notes": notes,
        }
        self.disbursements.append(row)
        self.available_balance += amount
        return row

    async def release_seed(self, campaign_id, amount, admin_id, notes):
        if self.campaign.get("seed_released_at"):
            return None
        self.campaign["seed_released_at"] = datetime.now(timezone.utc)
        self.campaign["seed_amount_released"] = amount
        return self._record("seed", amount, admin_id, notes)

    async def release_milestone(self, milestone_id, amount, admin_id, notes):
        if self.milestone.get("funds_released"):
            return None
        self.milestone["funds_released"] = True
        self.milestone["released_amount"] = amount
        return self._record("milestone", amount, admin_id, notes, milestone_id)


@pytest.fixture
def ledger(monkeypatch):
    milestone = {
        "id": MILESTONE_ID,
        "campaign_id": CAMPAIGN_ID,
        "title": "Install filtration units",
        "target_amount": Decimal("4000.00"),
        "status": "verified",
        "funds_released": False,
        "charity_user_id": CHARITY_USER_ID,
    }
    fake = FakeLedger(campaign_row(goal_amount=Decimal("10000.00")), milestone)
    monkeypatch.setattr(campaigns_db, "get_campaign", fake.get_campaign)
    monkeypatch.setattr(disbursements_db, "get_seed_disbursement", fake.get_seed_disbursement)
    monkeypatch.setattr(disbursements_db, "release_seed", fake.release_seed)
    monkeypatch.setattr(disbursements_db, "release_milestone", fake.release_milestone)
    monkeypatch.setattr(milestones_db, "get_milestone", fake.get_milestone)
    return fake


class TestAmounts:
    """Tests for the release rate helpers."""

    def test_seed_is_quarter_of_goal(self):
        assert fund_service.seed_amount(Decimal("10000")) == Decimal("2500.00")

    def test_seed_rounds_to_cents(self):
        assert fund_service.seed_amount("333.33") == Decimal("83.33")

    def test_milestone_share(self):
        assert fund_service.milestone_amount(Decimal("4000")) == Decimal("3000.00")


class TestReleaseSeedFunds:
    """Tests for release_seed_funds."""

    @pytest.mark.asyncio
    async def test_release_credits_quarter(self, profiles, ledger, side_effects):
        result = await fund_service.release_seed_funds(CAMPAIGN_ID, ADMIN_ID, "Kick-off")

        assert result["amount"] == 2500.0
        assert result["disbursementType"] == "seed"
        assert ledger.available_balance == Decimal("2500.00")
        event_name, data = side_effects["emit"].await_args.args
        assert event_name == FUNDS_RELEASED
        assert data["type"] == "seed"
        side_effects["notify"].assert_awaited_once()

    @pytest.mark.asyncio
    async def test_second_release_fails_without_double_credit(self, profiles, ledger):
        """A repeated release is rejected and the balance is untouched."""
        await fund_service.release_seed_funds(CAMPAIGN_ID, ADMIN_ID)

        with pytest.raises(PlatformError) as exc:
            await fund_service.release_seed_funds(CAMPAIGN_ID, ADMIN_ID)

        assert exc.value.code == ErrorCode.ALREADY_RELEASED
        assert "already been released" in exc.value.message
        assert ledger.available_balance == Decimal("2500.00")
        assert len(ledger.disbursements) == 1

    @pytest.mark.asyncio
    async def test_lost_race_reports_already_released(self, profiles, ledger, monkeypatch):
        """The locked re-check wins even when the pre-check passed."""
        monkeypatch.setattr(disbursements_db, "release_seed", AsyncMock(return_value=None))
        with pytest.raises(PlatformError) as exc:
            await fund_service.release_seed_funds(CAMPAIGN_ID, ADMIN_ID)
        assert exc.value.code == ErrorCode.ALREADY_RELEASED
        assert ledger.available_balance == Decimal("0")

    @pytest.mark.asyncio
    async def test_inactive_campaign(self, profiles, ledger):
        ledger.campaign["status"] = "pending"
        with pytest.raises(PlatformError) as exc:
            await fund_service.release_seed_funds(CAMPAIGN_ID, ADMIN_ID)
        assert exc.value.code == ErrorCode.CAMPAIGN_INACTIVE

    @pytest.mark.asyncio
    async def test_admin_only(self, profiles, ledger):
        with pytest.raises(PlatformError) as exc:
            await fund_service.release_seed_funds(CAMPAIGN_ID, CHARITY_USER_ID)
        assert exc.value.status_code == 403
        assert ledger.disbursements == []


class TestReleaseMilestoneFunds:
    """Tests for release_milestone_funds."""

    @pytest.mark.asyncio
    async def test_verified_milestone_released_once(self, profiles, ledger):
        result = await fund_service.release_milestone_funds(MILESTONE_ID, ADMIN_ID)
        assert result["amount"] == 3000.0

        with pytest.raises(PlatformError) as exc:
            await fund_service.release_milestone_funds(MILESTONE_ID, ADMIN_ID)
        assert exc.value.code == ErrorCode.ALREADY_RELEASED
        assert ledger.available_balance == Decimal("3000.00")

    @pytest.mark.asyncio
    async def test_unverified_milestone(self, profiles, ledger):
        ledger.milestone["status"] = "completed"
        with pytest.raises(PlatformError) as exc:
            await fund_service.release_milestone_funds(MILESTONE_ID, ADMIN_ID)
        assert exc.value.code == ErrorCode.MILESTONE_NOT_READY
