"""
Milestone Service - progress tracking and proof verification
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from core.errors import ErrorCode, PlatformError, forbidden, not_found, with_error_handling
from core.validation import MilestoneProofSchema, MilestoneStatusSchema, ProofDecisionSchema, validate_data
from database import campaigns as campaigns_db
from database import milestones as milestones_db
from database.db import paginate
from models import Milestone, MilestoneProof
from models.base import calculate_percentage
from services import audit_service, fund_service, notification_service
from services.access import get_actor, require_admin

logger = logging.getLogger(__name__)

DONE_STATUSES = ("completed", "verified")


async def _load_proof(proof_id: str) -> Dict:
    proof = await milestones_db.get_proof(proof_id)
    if not proof:
        raise not_found("Milestone proof")
    return proof


def _pending_only(proof: Dict) -> None:
    if proof["verification_status"] != "pending":
        raise PlatformError(ErrorCode.INVALID_STATUS,
                            f"Proof has already been {proof['verification_status']}", 400)


def _open_for_review(milestone: Dict) -> None:
    if milestone.get("funds_released"):
        raise PlatformError(ErrorCode.ALREADY_RELEASED,
                            "Funds have already been released for this milestone", 400)
    if milestone["status"] == "verified":
        raise PlatformError(ErrorCode.INVALID_STATUS, "This milestone has already been verified", 400)


@with_error_handling
async def get_milestones(campaign_id: str) -> List[Dict[str, Any]]:
    if not await campaigns_db.get_campaign(campaign_id):
        raise not_found("Campaign")
    rows = await milestones_db.list_by_campaign(campaign_id)
    return [Milestone.from_db_row(r).to_dict() for r in rows]


@with_error_handling
async def update_milestone_status(milestone_id: str, status: str, current_user_id: str) -> Dict[str, Any]:
    payload = validate_data(MilestoneStatusSchema, {"status": status})
    milestone = await milestones_db.get_milestone(milestone_id)
    if not milestone:
        raise not_found("Milestone")

    actor = await get_actor(current_user_id)
    if not actor.is_admin and actor.id != str(milestone["charity_user_id"]):
        raise forbidden("You can only update milestones of your own campaigns")
    if payload.status == "verified":
        raise PlatformError(ErrorCode.INVALID_STATUS,
                            "Milestones are verified by approving a submitted proof", 400)
    if milestone["status"] == "verified":
        raise PlatformError(ErrorCode.INVALID_STATUS, "Verified milestones cannot be changed", 400)

    row = await milestones_db.set_status(milestone_id, payload.status)
    return Milestone.from_db_row(row).to_dict()


@with_error_handling
async def submit_milestone_proof(milestone_id: str, proof_url: str, description: Optional[str],
                                 current_user_id: str) -> Dict[str, Any]:
    payload = validate_data(MilestoneProofSchema, {"proof_url": proof_url, "description": description})
    milestone = await milestones_db.get_milestone(milestone_id)
    if not milestone:
        raise not_found("Milestone")

    actor = await get_actor(current_user_id)
    if actor.id != str(milestone["charity_user_id"]):
        raise forbidden("Only the campaign's charity can submit milestone proof")
    _open_for_review(milestone)
    if milestone["campaign_status"] not in ("active", "paused", "completed"):
        raise PlatformError(ErrorCode.CAMPAIGN_INACTIVE,
                            "Proof can only be submitted for running or finished campaigns", 400)
    if await milestones_db.has_pending_proof(milestone_id):
        raise PlatformError(ErrorCode.INVALID_STATUS,
                            "A proof for this milestone is already awaiting review", 400)

    row = await milestones_db.create_proof(milestone_id, payload.proof_url, payload.description)
    proof = MilestoneProof.from_db_row(row)
    await audit_service.log_audit_event(
        actor.id, audit_service.MILESTONE_PROOF_SUBMITTED, "milestone", milestone_id,
        {"proof_id": proof.id},
    )
    logger.info(f"Proof {proof.id} submitted for milestone {milestone_id}")
    return proof.to_dict()


@with_error_handling
async def get_milestone_proofs(milestone_id: str) -> List[Dict[str, Any]]:
    rows = await milestones_db.list_proofs(milestone_id)
    return [MilestoneProof.from_db_row(r).to_dict() for r in rows]


@with_error_handling
async def list_pending_proofs(admin_id: str, page: int = 1, limit: int = 20) -> Tuple[list, int]:
    await require_admin(admin_id, "Only administrators can review milestone proofs")
    limit, offset = paginate(page, limit)
    rows, total = await milestones_db.list_pending_proofs(limit, offset)
    return [MilestoneProof.from_db_row(r).to_dict() for r in rows], total


@with_error_handling
async def approve_milestone_proof(proof_id: str, notes: Optional[str], admin_id: str) -> Dict[str, Any]:
    admin = await require_admin(admin_id, "Only administrators can approve milestone proofs")
    payload = validate_data(ProofDecisionSchema, {"notes": notes})
    proof = await _load_proof(proof_id)
    _pending_only(proof)

    milestone_id = str(proof["milestone_id"])
    milestone = await milestones_db.get_milestone(milestone_id)
    if not milestone:
        raise not_found("Milestone")
    _open_for_review(milestone)

    row = await milestones_db.approve_proof(proof_id, milestone_id, admin.id, payload.notes)
    if not row:
        raise PlatformError(ErrorCode.INVALID_STATUS, "Proof or milestone changed during review", 409)
    await audit_service.log_audit_event(
        admin.id, audit_service.MILESTONE_PROOF_APPROVED, "milestone_proof", proof_id,
        {"milestone_id": milestone_id, "notes": payload.notes},
    )
    await notification_service.create_notification(
        str(proof["charity_user_id"]), "milestone_verified", "Milestone verified",
        f"Your proof for \"{proof['milestone_title']}\" was approved.",
        action_url=f"/charity/campaigns/{proof['campaign_id']}",
        metadata={"milestone_id": milestone_id, "proof_id": proof_id},
    )

    result = MilestoneProof.from_db_row({**proof, **row}).to_dict()
    result["disbursement"] = None
    if await can_release_funds(milestone_id):
        result["disbursement"] = await fund_service.release_milestone_funds(milestone_id, admin.id)
    return result


async def _send_back(proof_id: str, reason: Optional[str], notes: Optional[str], admin_id: str,
                     status: str, action: str, title: str) -> Dict[str, Any]:
    admin = await require_admin(admin_id, "Only administrators can review milestone proofs")
    payload = validate_data(ProofDecisionSchema, {"reason": reason, "notes": notes})
    if not payload.reason:
        raise PlatformError(ErrorCode.MISSING_REQUIRED_FIELD, "reason: A reason is required", 400)
    proof = await _load_proof(proof_id)
    _pending_only(proof)

    label = "REJECTED" if status == "rejected" else "RESUBMISSION REQUIRED"
    full_notes = f"{label}: {payload.reason}"
    if payload.notes:
        full_notes += f"\n\nAdmin Notes: {payload.notes}"

    milestone_id = str(proof["milestone_id"])
    row = await milestones_db.reject_proof(proof_id, milestone_id, admin.id, status, full_notes)
    if not row:
        raise PlatformError(ErrorCode.INVALID_STATUS, "Proof changed during review", 409)
    await audit_service.log_audit_event(
        admin.id, action, "milestone_proof", proof_id,
        {"milestone_id": milestone_id, "reason": payload.reason},
    )
    await notification_service.create_notification(
        str(proof["charity_user_id"]), "milestone_proof_" + status, title,
        f"Your proof for \"{proof['milestone_title']}\": {payload.reason}",
        action_url=f"/charity/campaigns/{proof['campaign_id']}",
        metadata={"milestone_id": milestone_id, "proof_id": proof_id},
    )
    return MilestoneProof.from_db_row({**proof, **row}).to_dict()


@with_error_handling
async def reject_milestone_proof(proof_id: str, reason: str, notes: Optional[str], admin_id: str) -> Dict[str, Any]:
    return await _send_back(proof_id, reason, notes, admin_id, "rejected",
                            audit_service.MILESTONE_PROOF_REJECTED, "Milestone proof rejected")


@with_error_handling
async def request_proof_resubmission(proof_id: str, reason: str, notes: Optional[str], admin_id: str) -> Dict[str, Any]:
    return await _send_back(proof_id, reason, notes, admin_id, "resubmission_required",
                            audit_service.MILESTONE_PROOF_RESUBMISSION, "Milestone proof resubmission requested")


@with_error_handling
async def get_milestone_progress(campaign_id: str) -> Dict[str, Any]:
    counts = await milestones_db.count_by_status(campaign_id)
    total = sum(counts.values())
    done = sum(counts.get(s, 0) for s in DONE_STATUSES)
    return {
        "total": total,
        "pending": counts.get("pending", 0),
        "inProgress": counts.get("in_progress", 0),
        "completed": counts.get("completed", 0),
        "verified": counts.get("verified", 0),
        "percentComplete": calculate_percentage(done, total),
    }


@with_error_handling
async def can_release_funds(milestone_id: str) -> bool:
    milestone = await milestones_db.get_milestone(milestone_id)
    if not milestone or milestone.get("funds_released"):
        return False
    if milestone["status"] not in DONE_STATUSES:
        return False
    return await milestones_db.has_approved_proof(milestone_id)
