"""
Fund Service - milestone-based disbursement

A campaign's money reaches the charity in two steps:
  - seed: SEED_RELEASE_RATE of the goal, released once by an admin while
    the campaign is active
  - milestone: MILESTONE_RELEASE_RATE of each milestone's target, released
    once after the milestone's proof is verified
Both credit the charity's available balance, which it can then withdraw.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

import config
from core.errors import ErrorCode, PlatformError, not_found, with_error_handling
from core.event_bus import event_bus, FUNDS_RELEASED
from database import campaigns as campaigns_db
from database import disbursements as disbursements_db
from database import milestones as milestones_db
from models import FundDisbursement
from models.base import money
from services import audit_service, notification_service
from services.access import require_admin

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def seed_amount(goal_amount: Any) -> Decimal:
    return (Decimal(str(goal_amount)) * Decimal(str(config.SEED_RELEASE_RATE))).quantize(CENTS, rounding=ROUND_HALF_UP)


def milestone_amount(target_amount: Any) -> Decimal:
    return (Decimal(str(target_amount)) * Decimal(str(config.MILESTONE_RELEASE_RATE))).quantize(CENTS, rounding=ROUND_HALF_UP)


def _already_released(message: str) -> PlatformError:
    return PlatformError(ErrorCode.ALREADY_RELEASED, message, 400)


@with_error_handling
async def release_seed_funds(campaign_id: str, admin_id: str, notes: Optional[str] = None) -> Dict[str, Any]:
    admin = await require_admin(admin_id, "Only administrators can release funds")

    campaign = await campaigns_db.get_campaign(campaign_id)
    if not campaign:
        raise not_found("Campaign")
    if campaign["status"] != "active":
        raise PlatformError(ErrorCode.CAMPAIGN_INACTIVE,
                            "Seed funds can only be released for active campaigns", 400)
    if campaign.get("seed_released_at") or await disbursements_db.get_seed_disbursement(campaign_id):
        raise _already_released("Seed funds have already been released for this campaign")

    amount = seed_amount(campaign["goal_amount"])
    row = await disbursements_db.release_seed(campaign_id, amount, admin.id, notes)
    if not row:
        # Lost the race to a concurrent release
        raise _already_released("Seed funds have already been released for this campaign")

    disbursement = FundDisbursement.from_db_row(row)
    await audit_service.log_audit_event(
        admin.id, audit_service.SEED_FUNDS_RELEASED, "campaign", campaign_id,
        {"amount": money(amount), "goal_amount": money(campaign["goal_amount"]),
         "disbursement_id": disbursement.id},
    )
    await notification_service.create_notification(
        str(campaign["charity_user_id"]), "funds_released", "Seed funds released",
        f"₱{money(amount):,.2f} from \"{campaign['title']}\" is now available for withdrawal.",
        action_url="/charity/funds", metadata={"campaign_id": campaign_id, "type": "seed"},
    )
    await event_bus.emit(FUNDS_RELEASED, {
        "campaign_id": campaign_id, "type": "seed", "amount": money(amount),
    })
    logger.info(f"Seed funds released for campaign {campaign_id}: {amount}")
    return disbursement.to_dict()


@with_error_handling
async def release_milestone_funds(milestone_id: str, admin_id: str, notes: Optional[str] = None) -> Dict[str, Any]:
    admin = await require_admin(admin_id, "Only administrators can release funds")

    milestone = await milestones_db.get_milestone(milestone_id)
    if not milestone:
        raise not_found("Milestone")
    if milestone["status"] != "verified":
        raise PlatformError(ErrorCode.MILESTONE_NOT_READY,
                            "Milestone must be verified before funds can be released", 400)
    if milestone.get("funds_released"):
        raise _already_released("Funds have already been released for this milestone")

    amount = milestone_amount(milestone["target_amount"])
    row = await disbursements_db.release_milestone(milestone_id, amount, admin.id, notes)
    if not row:
        raise _already_released("Funds have already been released for this milestone")

    disbursement = FundDisbursement.from_db_row(row)
    campaign_id = str(milestone["campaign_id"])
    await audit_service.log_audit_event(
        admin.id, audit_service.MILESTONE_FUNDS_RELEASED, "milestone", milestone_id,
        {"amount": money(amount), "campaign_id": campaign_id, "disbursement_id": disbursement.id},
    )
    await notification_service.create_notification(
        str(milestone["charity_user_id"]), "funds_released", "Milestone funds released",
        f"₱{money(amount):,.2f} for milestone \"{milestone['title']}\" is now available for withdrawal.",
        action_url="/charity/funds", metadata={"milestone_id": milestone_id, "type": "milestone"},
    )
    await event_bus.emit(FUNDS_RELEASED, {
        "campaign_id": campaign_id, "milestone_id": milestone_id, "type": "milestone", "amount": money(amount),
    })
    logger.info(f"Milestone funds released for {milestone_id}: {amount}")
    return disbursement.to_dict()


@with_error_handling
async def get_campaign_disbursements(campaign_id: str) -> List[Dict[str, Any]]:
    rows = await disbursements_db.list_by_campaign(campaign_id)
    return [FundDisbursement.from_db_row(r).to_dict() for r in rows]
