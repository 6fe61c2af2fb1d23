"""
Charity Service - registration, verification, balances and statistics
"""
import logging
from typing import Any, Dict, Optional, Tuple

from core.errors import ErrorCode, PlatformError, forbidden, not_found, with_error_handling
from core.validation import (
    CharityRegistrationSchema, CharityUpdateSchema, CharityVerificationSchema, validate_data,
)
from database import charities as charities_db
from database import disbursements as disbursements_db
from database.db import paginate
from models import Charity, FundDisbursement
from models.base import money
from services import audit_service, notification_service
from services.access import get_actor, require_admin, require_owner_or_admin

logger = logging.getLogger(__name__)

VERIFICATION_MESSAGES = {
    "approved": ("Charity verified", "Your organization has been verified. You can now create campaigns."),
    "rejected": ("Verification rejected", "Your verification request was rejected."),
    "under_review": ("Verification under review", "An administrator is reviewing your documents."),
    "resubmission_required": ("Resubmission required", "Please update your documents and resubmit."),
}


async def _load(charity_id: str) -> Charity:
    row = await charities_db.get_charity(charity_id)
    if not row:
        raise not_found("Charity")
    return Charity.from_db_row(row)


@with_error_handling
async def register_charity(data: Dict, user_id: str) -> Dict[str, Any]:
    actor = await get_actor(user_id)
    if actor.role not in ("charity", "admin"):
        raise forbidden("Only charity accounts can register an organization")

    payload = validate_data(CharityRegistrationSchema, data)
    if await charities_db.get_charity_by_user(actor.id):
        raise PlatformError(ErrorCode.ALREADY_EXISTS, "A charity is already registered for this account", 409)

    row = await charities_db.create_charity(actor.id, payload.model_dump())
    charity = Charity.from_db_row(row)
    await audit_service.log_audit_event(
        actor.id, audit_service.CHARITY_REGISTRATION, "charity", charity.id,
        {"organization_name": charity.organization_name},
    )
    logger.info(f"Charity registered: {charity.organization_name} ({charity.id})")
    return charity.to_dict()


@with_error_handling
async def get_charity_by_id(charity_id: str) -> Dict[str, Any]:
    return (await _load(charity_id)).to_dict()


@with_error_handling
async def get_charity_by_user_id(user_id: str) -> Dict[str, Any]:
    row = await charities_db.get_charity_by_user(user_id)
    if not row:
        raise not_found("Charity")
    return Charity.from_db_row(row).to_dict()


@with_error_handling
async def update_charity(charity_id: str, updates: Dict, current_user_id: str) -> Dict[str, Any]:
    charity = await _load(charity_id)
    actor = await require_owner_or_admin(current_user_id, charity.user_id,
                                         "You can only update your own organization")
    payload = validate_data(CharityUpdateSchema, updates)
    changes = payload.changes()

    row = await charities_db.update_charity(charity_id, changes)
    await audit_service.log_audit_event(
        actor.id, audit_service.CHARITY_UPDATED, "charity", charity_id, {"fields": sorted(changes)}
    )
    return Charity.from_db_row(row).to_dict()


@with_error_handling
async def verify_charity(charity_id: str, status: str, notes: Optional[str], admin_id: str) -> Dict[str, Any]:
    admin = await require_admin(admin_id, "Only administrators can verify charities")
    payload = validate_data(CharityVerificationSchema, {"status": status, "notes": notes})
    charity = await _load(charity_id)

    row = await charities_db.set_verification(charity_id, payload.status, payload.notes)
    await audit_service.log_audit_event(
        admin.id, audit_service.CHARITY_VERIFICATION_UPDATE, "charity", charity_id,
        {"old_status": charity.verification_status, "new_status": payload.status, "notes": payload.notes},
    )

    title, message = VERIFICATION_MESSAGES[payload.status]
    if payload.notes:
        message = f"{message} Notes: {payload.notes}"
    await notification_service.create_notification(
        charity.user_id, "charity_verification", title, message,
        action_url="/charity/verification", metadata={"status": payload.status},
    )
    logger.info(f"Charity {charity_id} verification: {charity.verification_status} -> {payload.status}")
    return Charity.from_db_row(row).to_dict()


@with_error_handling
async def list_charities(filters: Optional[Dict] = None, page: int = 1, limit: int = 20) -> Tuple[list, int]:
    filters = filters or {}
    limit, offset = paginate(page, limit)
    rows, total = await charities_db.list_charities(
        filters.get("verification_status"), filters.get("search"), limit, offset
    )
    return [Charity.from_db_row(r).to_dict() for r in rows], total


@with_error_handling
async def get_charity_funds(charity_id: str, current_user_id: str) -> Dict[str, float]:
    charity = await _load(charity_id)
    await require_owner_or_admin(current_user_id, charity.user_id, "You can only view your own balance")
    return charity.funds()


@with_error_handling
async def get_charity_disbursements(charity_id: str, current_user_id: str) -> list:
    charity = await _load(charity_id)
    await require_owner_or_admin(current_user_id, charity.user_id, "You can only view your own disbursements")
    rows = await disbursements_db.list_by_charity(charity_id)
    return [FundDisbursement.from_db_row(r).to_dict() for r in rows]


@with_error_handling
async def get_charity_statistics(charity_id: str, current_user_id: str) -> Dict[str, Any]:
    charity = await _load(charity_id)
    await require_owner_or_admin(current_user_id, charity.user_id, "You can only view your own statistics")

    stats = await charities_db.get_statistics(charity_id)
    by_status = {r["status"]: r["count"] for r in stats["campaigns"]}
    milestones = {r["status"]: r["count"] for r in stats["milestones"]}
    return {
        "totalCampaigns": sum(by_status.values()),
        "activeCampaigns": by_status.get("active", 0),
        "completedCampaigns": by_status.get("completed", 0),
        "campaignsByStatus": by_status,
        "totalRaised": money(sum(r["raised"] for r in stats["campaigns"])),
        "totalDonations": stats["donations"]["total_donations"],
        "uniqueDonors": stats["donations"]["unique_donors"],
        "totalReleased": money(stats["released"]),
        "milestonesByStatus": milestones,
        "verifiedMilestones": milestones.get("verified", 0),
        **charity.funds(),
    }


@with_error_handling
async def delete_charity(charity_id: str, current_user_id: str) -> bool:
    charity = await _load(charity_id)
    actor = await require_owner_or_admin(current_user_id, charity.user_id,
                                         "You can only delete your own organization")
    if await charities_db.count_active_campaigns(charity_id):
        raise PlatformError(ErrorCode.DELETION_BLOCKED,
                            "Cannot delete a charity with active campaigns", 400)

    deleted = await charities_db.delete_charity(charity_id)
    await audit_service.log_audit_event(
        actor.id, audit_service.CHARITY_DELETED, "charity", charity_id,
        {"organization_name": charity.organization_name},
    )
    return deleted
