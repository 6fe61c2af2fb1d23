"""
Tests for milestone proofs: submission, review and the release it triggers.
"""
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from core.errors import ErrorCode, PlatformError
from core.event_bus import FUNDS_RELEASED
from database import disbursements as disbursements_db
from database import milestones as milestones_db
from services import milestone_service

from tests.conftest import (
    ADMIN_ID, CAMPAIGN_ID, CHARITY_ID, CHARITY_USER_ID, DONOR_ID, MILESTONE_ID,
)

PROOF_ID = "00000000-0000-4000-8000-000000000040"
SECOND_PROOF_ID = "00000000-0000-4000-8000-000000000041"


class FakeMilestones:
    """One milestone and its proofs, updated the way the locked queries do."""

    def __init__(self):
        self.milestone = {
            "id": MILESTONE_ID,
            "campaign_id": CAMPAIGN_ID,
            "title": "Install filtration units",
            "target_amount": Decimal("4000.00"),
            "status": "completed",
            "funds_released": False,
            "campaign_status": "active",
            "charity_user_id": CHARITY_USER_ID,
        }
        self.proofs = {PROOF_ID: self._proof(PROOF_ID)}
        self.disbursements = []

    @staticmethod
    def _proof(proof_id):
        return {
            "id": proof_id,
            "milestone_id": MILESTONE_ID,
            "proof_url": "https://clearcause.example/uploads/milestone-proofs/receipt.pdf",
            "description": "Receipts for the filtration units",
            "verification_status": "pending",
        }

    async def get_milestone(self, milestone_id):
        return dict(self.milestone) if milestone_id == MILESTONE_ID else None

    async def get_proof(self, proof_id):
        proof = self.proofs.get(proof_id)
        if not proof:
            return None
        return {
            **proof,
            "milestone_title": self.milestone["title"],
            "milestone_status": self.milestone["status"],
            "campaign_id": CAMPAIGN_ID,
            "target_amount": self.milestone["target_amount"],
            "charity_user_id": CHARITY_USER_ID,
        }

    async def has_pending_proof(self, milestone_id):
        return any(p["verification_status"] == "pending" for p in self.proofs.values())

    async def has_approved_proof(self, milestone_id):
        return any(p["verification_status"] == "approved" for p in self.proofs.values())

    async def create_proof(self, milestone_id, proof_url, description):
        proof = {**self._proof(SECOND_PROOF_ID), "proof_url": proof_url, "description": description}
        self.proofs[SECOND_PROOF_ID] = proof
        self.milestone["status"] = "completed"
        return dict(proof)

    async def approve_proof(self, proof_id, milestone_id, admin_id, notes):
        if self.milestone["status"] == "verified" or self.milestone["funds_released"]:
            return None
        proof = self.proofs[proof_id]
        if proof["verification_status"] != "pending":
            return None
        proof.update(verification_status="approved", verification_notes=notes, verified_by=admin_id)
        self.milestone["status"] = "verified"
        return dict(proof)

    async def reject_proof(self, proof_id, milestone_id, admin_id, status, notes):
        proof = self.proofs[proof_id]
        if proof["verification_status"] != "pending":
            return None
        proof.update(verification_status=status, verification_notes=notes, verified_by=admin_id)
        if self.milestone["status"] != "verified":
            self.milestone["status"] = "in_progress"
        return dict(proof)

    async def release_milestone(self, milestone_id, amount, admin_id, notes):
        if self.milestone["funds_released"]:
            return None
        self.milestone["funds_released"] = True
        row = {
            "id": "00000000-0000-4000-8000-000000000100",
            "campaign_id": CAMPAIGN_ID,
            "charity_id": CHARITY_ID,
            "milestone_id": milestone_id,
            "amount": amount,
            "disbursement_type": "milestone",
            "approved_by": admin_id,
        }
        self.disbursements.append(row)
        return row


@pytest.fixture
def store(monkeypatch):
    fake = FakeMilestones()
    for name in ("get_milestone", "get_proof", "has_pending_proof", "has_approved_proof",
                 "create_proof", "approve_proof", "reject_proof"):
        monkeypatch.setattr(milestones_db, name, getattr(fake, name))
    monkeypatch.setattr(disbursements_db, "release_milestone", fake.release_milestone)
    return fake


class TestSubmitProof:
    """Tests for submit_milestone_proof."""

    @pytest.mark.asyncio
    async def test_owner_submits(self, profiles, store):
        store.proofs.clear()
        store.milestone["status"] = "in_progress"

        result = await milestone_service.submit_milestone_proof(
            MILESTONE_ID, "https://clearcause.example/p.pdf", "Delivery receipts", CHARITY_USER_ID
        )

        assert result["verificationStatus"] == "pending"
        assert store.milestone["status"] == "completed"

    @pytest.mark.asyncio
    async def test_second_proof_while_one_is_pending(self, profiles, store, monkeypatch):
        """Only one proof per milestone may await review at a time."""
        create = AsyncMock()
        monkeypatch.setattr(milestones_db, "create_proof", create)

        with pytest.raises(PlatformError) as exc:
            await milestone_service.submit_milestone_proof(
                MILESTONE_ID, "https://clearcause.example/again.pdf", None, CHARITY_USER_ID
            )

        assert exc.value.code == ErrorCode.INVALID_STATUS
        create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_paid_out_milestone(self, profiles, store):
        store.proofs.clear()
        store.milestone.update(status="verified", funds_released=True)
        with pytest.raises(PlatformError) as exc:
            await milestone_service.submit_milestone_proof(
                MILESTONE_ID, "https://clearcause.example/p.pdf", None, CHARITY_USER_ID
            )
        assert exc.value.code == ErrorCode.ALREADY_RELEASED

    @pytest.mark.asyncio
    async def test_only_owner(self, profiles, store):
        with pytest.raises(PlatformError) as exc:
            await milestone_service.submit_milestone_proof(
                MILESTONE_ID, "https://clearcause.example/p.pdf", None, DONOR_ID
            )
        assert exc.value.status_code == 403


class TestApproveProof:
    """Tests for approve_milestone_proof."""

    @pytest.mark.asyncio
    async def test_approval_releases_three_quarters(self, profiles, store, side_effects):
        result = await milestone_service.approve_milestone_proof(PROOF_ID, "Receipts match", ADMIN_ID)

        assert result["verificationStatus"] == "approved"
        assert store.milestone["status"] == "verified"
        assert result["disbursement"]["amount"] == 3000.0
        assert store.milestone["funds_released"] is True
        assert len(store.disbursements) == 1

        actions = [c.args[1] for c in side_effects["audit"].await_args_list]
        assert actions == ["MILESTONE_PROOF_APPROVED", "MILESTONE_FUNDS_RELEASED"]
        event_name, data = side_effects["emit"].await_args.args
        assert event_name == FUNDS_RELEASED
        assert data["amount"] == 3000.0

    @pytest.mark.asyncio
    async def test_paid_out_milestone_is_left_alone(self, profiles, store, side_effects, monkeypatch):
        """A pending proof on a verified, released milestone changes nothing."""
        store.milestone.update(status="verified", funds_released=True)
        approve = AsyncMock()
        monkeypatch.setattr(milestones_db, "approve_proof", approve)

        with pytest.raises(PlatformError) as exc:
            await milestone_service.approve_milestone_proof(PROOF_ID, None, ADMIN_ID)

        assert exc.value.code == ErrorCode.ALREADY_RELEASED
        approve.assert_not_awaited()
        side_effects["audit"].assert_not_awaited()
        side_effects["notify"].assert_not_awaited()
        assert store.proofs[PROOF_ID]["verification_status"] == "pending"

    @pytest.mark.asyncio
    async def test_verified_milestone(self, profiles, store, side_effects):
        store.milestone["status"] = "verified"
        with pytest.raises(PlatformError) as exc:
            await milestone_service.approve_milestone_proof(PROOF_ID, None, ADMIN_ID)
        assert exc.value.code == ErrorCode.INVALID_STATUS
        side_effects["audit"].assert_not_awaited()

    @pytest.mark.asyncio
    async def test_lost_race(self, profiles, store, side_effects, monkeypatch):
        """The locked update refused; nothing is audited or released."""
        monkeypatch.setattr(milestones_db, "approve_proof", AsyncMock(return_value=None))
        with pytest.raises(PlatformError) as exc:
            await milestone_service.approve_milestone_proof(PROOF_ID, None, ADMIN_ID)
        assert exc.value.status_code == 409
        side_effects["audit"].assert_not_awaited()
        assert store.disbursements == []

    @pytest.mark.asyncio
    async def test_already_reviewed(self, profiles, store):
        store.proofs[PROOF_ID]["verification_status"] = "rejected"
        with pytest.raises(PlatformError) as exc:
            await milestone_service.approve_milestone_proof(PROOF_ID, None, ADMIN_ID)
        assert exc.value.message == "Proof has already been rejected"

    @pytest.mark.asyncio
    async def test_admin_only(self, profiles, store):
        with pytest.raises(PlatformError) as exc:
            await milestone_service.approve_milestone_proof(PROOF_ID, None, CHARITY_USER_ID)
        assert exc.value.status_code == 403
        assert store.milestone["status"] == "completed"


class TestSendBack:
    """Tests for reject_milestone_proof and request_proof_resubmission."""

    @pytest.mark.asyncio
    async def test_reject_formats_notes(self, profiles, store, side_effects):
        result = await milestone_service.reject_milestone_proof(
            PROOF_ID, "Receipts are unreadable", "Please rescan at higher resolution", ADMIN_ID
        )

        assert result["verificationStatus"] == "rejected"
        assert result["verificationNotes"] == (
            "REJECTED: Receipts are unreadable\n\nAdmin Notes: Please rescan at higher resolution"
        )
        assert store.milestone["status"] == "in_progress"
        side_effects["notify"].assert_awaited_once()

    @pytest.mark.asyncio
    async def test_resubmission_label(self, profiles, store):
        result = await milestone_service.request_proof_resubmission(
            PROOF_ID, "Missing delivery receipt", None, ADMIN_ID
        )
        assert result["verificationNotes"] == "RESUBMISSION REQUIRED: Missing delivery receipt"

    @pytest.mark.asyncio
    async def test_reason_required(self, profiles, store):
        with pytest.raises(PlatformError) as exc:
            await milestone_service.reject_milestone_proof(PROOF_ID, "", None, ADMIN_ID)
        assert exc.value.code == ErrorCode.MISSING_REQUIRED_FIELD


class TestCanReleaseFunds:
    """Tests for can_release_funds."""

    @pytest.mark.asyncio
    async def test_verified_with_approved_proof(self, store):
        store.milestone["status"] = "verified"
        store.proofs[PROOF_ID]["verification_status"] = "approved"
        assert await milestone_service.can_release_funds(MILESTONE_ID) is True

    @pytest.mark.asyncio
    async def test_pending_proof_only(self, store):
        assert await milestone_service.can_release_funds(MILESTONE_ID) is False

    @pytest.mark.asyncio
    async def test_already_released(self, store):
        store.milestone.update(status="verified", funds_released=True)
        store.proofs[PROOF_ID]["verification_status"] = "approved"
        assert await milestone_service.can_release_funds(MILESTONE_ID) is False

    @pytest.mark.asyncio
    async def test_unknown_milestone(self, store):
        assert await milestone_service.can_release_funds("00000000-0000-4000-8000-000000000999") is False
