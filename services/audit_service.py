"""
Audit Service

Records who did what to which entity. Writing an audit entry never fails
the operation that triggered it.
"""
import logging
from contextvars import ContextVar
from typing import Any, Dict, Optional, Tuple

from core.errors import with_error_handling
from database import audit as audit_db
from database.db import paginate
from models import AuditLog
from models.base import money
from services.access import require_admin

logger = logging.getLogger(__name__)

# Client address and user agent of the request being served (set by the API middleware)
request_meta: ContextVar = ContextVar('request_meta', default=None)

# Actions
CAMPAIGN_CREATED = "CAMPAIGN_CREATED"
CAMPAIGN_UPDATED = "CAMPAIGN_UPDATED"
CAMPAIGN_STATUS_UPDATE = "CAMPAIGN_STATUS_UPDATE"
CAMPAIGN_DELETED = "CAMPAIGN_DELETED"
CAMPAIGN_AUTO_COMPLETED = "CAMPAIGN_AUTO_COMPLETED"
CAMPAIGN_UPDATE_POSTED = "CAMPAIGN_UPDATE_POSTED"
CAMPAIGN_UPDATE_EDITED = "CAMPAIGN_UPDATE_EDITED"
CAMPAIGN_UPDATE_DELETED = "CAMPAIGN_UPDATE_DELETED"
CHARITY_REGISTRATION = "CHARITY_REGISTRATION"
CHARITY_UPDATED = "CHARITY_UPDATED"
CHARITY_DELETED = "CHARITY_DELETED"
CHARITY_VERIFICATION_UPDATE = "CHARITY_VERIFICATION_UPDATE"
DONATION_CREATED = "DONATION_CREATED"
DONATION_STATUS_UPDATE = "DONATION_STATUS_UPDATE"
DONATION_REFUNDED = "DONATION_REFUNDED"
SEED_FUNDS_RELEASED = "SEED_FUNDS_RELEASED"
MILESTONE_FUNDS_RELEASED = "MILESTONE_FUNDS_RELEASED"
MILESTONE_PROOF_SUBMITTED = "MILESTONE_PROOF_SUBMITTED"
MILESTONE_PROOF_APPROVED = "MILESTONE_PROOF_APPROVED"
MILESTONE_PROOF_REJECTED = "MILESTONE_PROOF_REJECTED"
MILESTONE_PROOF_RESUBMISSION = "MILESTONE_PROOF_RESUBMISSION_REQUESTED"
REVIEW_CREATED = "REVIEW_CREATED"
REVIEW_UPDATED = "REVIEW_UPDATED"
REVIEW_DELETED = "REVIEW_DELETED"
REVIEW_MODERATED = "REVIEW_MODERATED"
CHARITY_FEEDBACK_CREATED = "CHARITY_FEEDBACK_CREATED"
CHARITY_FEEDBACK_UPDATED = "CHARITY_FEEDBACK_UPDATED"
CHARITY_FEEDBACK_DELETED = "CHARITY_FEEDBACK_DELETED"
CHARITY_FEEDBACK_ADMIN_DELETED = "CHARITY_FEEDBACK_ADMIN_DELETED"
WITHDRAWAL_PROCESSED = "WITHDRAWAL_PROCESSED"
USER_ROLE_UPDATED = "USER_ROLE_UPDATED"
USER_STATUS_UPDATED = "USER_STATUS_UPDATED"
USER_VERIFIED = "USER_VERIFIED"


async def log_audit_event(
    user_id: Optional[str],
    action: str,
    entity_type: str,
    entity_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> None:
    meta = request_meta.get() or {}
    try:
        await audit_db.insert_log(
            user_id, action, entity_type,
            str(entity_id) if entity_id is not None else None,
            details,
            ip_address or meta.get("ip"),
            user_agent or meta.get("user_agent"),
        )
    except Exception as e:
        logger.error(f"Failed to write audit log {action} for {entity_type}:{entity_id}: {e}")


@with_error_handling
async def get_audit_logs(admin_id: str, filters: Optional[Dict] = None,
                         page: int = 1, limit: int = 20) -> Tuple[list, int]:
    await require_admin(admin_id, "Only administrators can view audit logs")
    limit, offset = paginate(page, limit)
    rows, total = await audit_db.list_logs(filters or {}, limit, offset)
    return [AuditLog.from_db_row(r).to_dict() for r in rows], total


@with_error_handling
async def get_platform_statistics(admin_id: str) -> Dict[str, Any]:
    await require_admin(admin_id, "Only administrators can view platform statistics")
    counts = await audit_db.get_platform_counts() or {}
    return {
        "totalUsers": counts.get("total_users", 0),
        "totalDonors": counts.get("total_donors", 0),
        "totalCharities": counts.get("total_charities", 0),
        "verifiedCharities": counts.get("verified_charities", 0),
        "pendingVerifications": counts.get("pending_verifications", 0),
        "totalCampaigns": counts.get("total_campaigns", 0),
        "activeCampaigns": counts.get("active_campaigns", 0),
        "pendingCampaigns": counts.get("pending_campaigns", 0),
        "totalDonations": counts.get("total_donations", 0),
        "totalRaised": money(counts.get("total_raised")),
        "pendingProofs": counts.get("pending_proofs", 0),
        "totalDisbursed": money(counts.get("total_disbursed")),
    }
